"""
风险聚合器

并发运行所有检测器，等待全部完成（成功或失败），
合并检测字段并计算分类评分与综合风险。

合并逻辑 combine() 是纯函数：相同子报告输入必然得到完全相同的评分。
"""

from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional
import asyncio
import logging
import time

from vibeguard.dashboard.scan_feed import ScanHistory
from vibeguard.detectors import Detector, default_detectors
from vibeguard.models.chain import ScanContext, normalize_address
from vibeguard.models.risk import (
    AggregateReport,
    Category,
    DETECTION_FIELDS,
    DetectionField,
    Finding,
    Severity,
    SubReport,
    clamp_score,
    make_field,
    round_half_up,
)
from vibeguard.scoring.config import DEFAULT_SCORING, ScoringConfig
from vibeguard.scoring.levels import risk_level_for

logger = logging.getLogger(__name__)

# 发现与字段合并时的检测器顺序
DETECTOR_ORDER = ("bytecode", "source", "liquidity", "creator", "flash_loan", "mev")
CONTRACT_DETECTORS = ("bytecode", "source")


def _ordered(reports: Iterable[SubReport]) -> List[SubReport]:
    rank = {name: i for i, name in enumerate(DETECTOR_ORDER)}
    return sorted(reports, key=lambda r: (rank.get(r.detector, len(rank)), r.detector))


def merge_detection_fields(reports: Iterable[SubReport]) -> Dict[str, DetectionField]:
    """合并各检测器的检测字段

    detected 取或，severity 取最高；未被任何检测器报告的规范字段以"未检测到"补齐。
    结果与子报告顺序无关。
    """
    merged: Dict[str, DetectionField] = {}
    for report in reports:
        for key, detection in report.detection_fields.items():
            current = merged.get(key)
            if current is None:
                merged[key] = replace(detection)
                continue
            severity = max(current.severity, detection.severity, key=lambda s: s.rank)
            merged[key] = replace(current, detected=current.detected or detection.detected, severity=severity)

    for key in DETECTION_FIELDS:
        if key not in merged:
            merged[key] = make_field(key, detected=False)
    return dict(sorted(merged.items()))


def category_scores(fields: Dict[str, DetectionField]) -> Dict[Category, int]:
    """分类评分 = 风险字段权重的有符号和，限制到 [0, 100]"""
    sums = {category: 0 for category in Category}
    for key in sorted(fields):
        detection = fields[key]
        if detection.is_risky:
            sums[detection.category] += detection.weight
    return {category: clamp_score(total) for category, total in sums.items()}


def combine(token_address: str, reports: Iterable[SubReport],
            config: ScoringConfig = DEFAULT_SCORING,
            contract_name: Optional[str] = None) -> AggregateReport:
    """把子报告合并为聚合报告（纯函数，不含时间戳）"""
    ordered = _ordered(reports)
    by_name = {r.detector: r for r in ordered}
    degraded = [r.detector for r in ordered if r.degraded]
    degraded += [name for name in DETECTOR_ORDER if name not in by_name]

    fields = merge_detection_fields(ordered)
    categories = category_scores(fields)

    if all(name in degraded for name in CONTRACT_DETECTORS):
        contract_risk = config.neutral_contract_risk
    else:
        contract_risk = round_half_up(sum(
            config.contract_weights[category] * categories[category]
            for category in Category
        ))

    defaults = config.neutral_defaults
    creator = by_name["creator"].score if "creator" in by_name else defaults["creator"]
    liquidity = by_name.get("liquidity")
    health = liquidity.metrics.get("liquidity_health", defaults["liquidity_health"]) if liquidity else defaults["liquidity_health"]
    flash = by_name["flash_loan"].score if "flash_loan" in by_name else defaults["flash_loan"]
    mev = by_name["mev"].score if "mev" in by_name else defaults["mev"]

    honeypot = clamp_score(round_half_up(
        config.honeypot_contract * categories[Category.HONEYPOT]
        + config.honeypot_creator * creator
    ))
    rug_pull = clamp_score(round_half_up(
        config.rug_contract * categories[Category.RUG_PULL]
        + config.rug_creator * creator
        + config.rug_liquidity * (100 - health)
    ))

    w = config.overall_weights
    overall = clamp_score(round_half_up(
        w["contract"] * contract_risk
        + w["honeypot"] * honeypot
        + w["rug_pull"] * rug_pull
        + w["liquidity"] * (100 - health)
        + w["flash_loan"] * flash
        + w["mev"] * mev
    ))

    findings: List[Finding] = [f for r in ordered for f in r.findings]

    if contract_name is None and "source" in by_name:
        contract_name = by_name["source"].metrics.get("contract_name")

    return AggregateReport(
        token_address=token_address,
        overall_risk=overall,
        risk_level=risk_level_for(overall),
        contract_risk=clamp_score(contract_risk),
        honeypot=honeypot,
        rug_pull=rug_pull,
        flash_loan=clamp_score(flash),
        mev=clamp_score(mev),
        ownership=categories[Category.OWNERSHIP],
        tax=categories[Category.TAX],
        liquidity_health=clamp_score(health),
        creator_risk=clamp_score(creator),
        verified=fields["is_open_source"].detected,
        is_proxy=fields["is_proxy"].detected,
        detection_fields=fields,
        findings=findings,
        detector_scores={r.detector: r.score for r in ordered},
        degraded_detectors=degraded,
        scoring_version=config.version,
        contract_name=contract_name,
    )


class RiskAggregator:
    """风险聚合器

    Args:
        provider: 链上数据源（ChainDataProvider）
        detectors: 检测器列表，默认全部六个
        config: 评分配置
        detector_timeout: 单个检测器超时（秒），None 表示一直等待
        clock: 时间函数（测试可注入）
        history: 扫描历史，每次完成的扫描都会记录
    """

    def __init__(
        self,
        provider,
        detectors: Optional[List[Detector]] = None,
        config: ScoringConfig = DEFAULT_SCORING,
        detector_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        history: Optional[ScanHistory] = None,
    ):
        self.provider = provider
        self.detectors = detectors if detectors is not None else default_detectors()
        self.config = config
        self.detector_timeout = detector_timeout
        self.clock = clock
        self.history = history

    def aggregate(self, token_address: str) -> AggregateReport:
        """同步入口（不能在运行中的事件循环里调用，异步场景用 aggregate_async）"""
        return asyncio.run(self.aggregate_async(token_address))

    async def aggregate_async(self, token_address: str) -> AggregateReport:
        """扫描一个代币

        Raises:
            InvalidInput: 地址格式错误（在任何检测器运行前）
        """
        address = normalize_address(token_address)
        started = time.monotonic()

        context = await self.provider.build_context(address)
        reports = await self.run_detectors(address, context)

        report = combine(address, reports, self.config, contract_name=context.contract_name)
        report = replace(
            report,
            scan_duration_seconds=round(time.monotonic() - started, 3),
            timestamp=self.clock(),
        )
        logger.info(
            f"Scan completed: {address}, overall={report.overall_risk} ({report.risk_level.value}), "
            f"degraded={report.degraded_detectors}"
        )
        if self.history is not None:
            self.history.record(report)
        return report

    async def run_detectors(self, token_address: str, context: ScanContext) -> List[SubReport]:
        """每个检测器一个任务，等待全部完成；单个失败不影响其它"""
        tasks = [self._run_one(detector, token_address, context) for detector in self.detectors]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        reports: List[SubReport] = []
        for detector, result in zip(self.detectors, results):
            if isinstance(result, Exception):
                logger.error(f"Detector {detector.name} raised: {result}")
                result = detector.degraded_report(token_address, f"Detector error: {result}")
            reports.append(result)
        return reports

    async def _run_one(self, detector: Detector, token_address: str, context: ScanContext) -> SubReport:
        call = asyncio.to_thread(detector.analyze, token_address, context)
        if self.detector_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.detector_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Detector {detector.name} timed out after {self.detector_timeout}s")
            return detector.degraded_report(
                token_address, f"Timed out after {self.detector_timeout}s", Severity.WARNING
            )
