"""
流动性集中度分析

- 持有人集中度（Top-1 / Top-5 / 持有人数量）
- 转账模式（对敲交易、重复金额、交易频率）
- 流动性健康度 = 100 - round(0.6 * 持有人风险 + 0.4 * 转账风险)
"""

from collections import Counter
from typing import List, Optional, Tuple
import logging

from vibeguard.detectors.base import Detector
from vibeguard.models.chain import HolderBalance, ScanContext, TokenTransfer
from vibeguard.models.risk import Severity, SubReport, clamp_score, round_half_up

logger = logging.getLogger(__name__)


class LiquidityConcentrationAnalyzer(Detector):
    """流动性集中度分析器"""

    name = "liquidity"
    neutral_score = 50

    # 持有人集中度阈值 (百分比, 加分, 严重程度)
    TOP1_TIERS = [
        (50, 40, Severity.CRITICAL),
        (30, 25, Severity.HIGH),
        (15, 10, Severity.MEDIUM),
    ]
    TOP5_TIERS = [
        (80, 30, Severity.CRITICAL),
        (60, 15, Severity.HIGH),
    ]
    MIN_HOLDERS = 10

    # 转账模式
    WASH_PAIR_REPEATS = 5            # 同一地址对超过 5 次
    WASH_PAIR_COUNT = 3              # 超过 3 个这样的地址对
    DUPLICATE_MIN_TRANSFERS = 20
    DUPLICATE_UNIQUE_RATIO = 0.3
    MAX_TX_PER_HOUR = 100

    NO_HOLDER_RISK = 30
    NO_TRANSFER_RISK = 20

    def _fill_neutral_metrics(self, report: SubReport):
        report.metrics["liquidity_health"] = 50

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        holders = self._require(context, "holders")
        transfers = self._require(context, "transfers")

        holder_risk = self._score_holders(report, holders or [], context.total_supply)
        transfer_risk = self._score_transfers(report, transfers or [])

        concentration = round_half_up(0.6 * holder_risk + 0.4 * transfer_risk)
        health = clamp_score(100 - concentration)

        report.metrics.update({
            "holder_risk": holder_risk,
            "transfer_risk": transfer_risk,
            "liquidity_health": health,
        })
        report.score = clamp_score(concentration)
        logger.debug(f"Liquidity analysis completed: {token_address}, health={health}")
        return report

    def _score_holders(self, report: SubReport, holders: List[HolderBalance],
                       total_supply: Optional[float]) -> int:
        """持有人集中度风险"""
        balances = sorted((h.balance for h in holders), reverse=True)
        report.metrics["holder_count"] = len(balances)

        # 未提供总供应量时以持有人余额之和估算
        total = total_supply if total_supply else sum(balances)
        if not balances or total <= 0:
            report.add_finding("No holder data", Severity.MEDIUM,
                               "Holder distribution could not be evaluated", weight=self.NO_HOLDER_RISK)
            return self.NO_HOLDER_RISK

        risk = 0
        top1_pct = balances[0] / total * 100
        report.metrics["top1_pct"] = round(top1_pct, 2)
        for threshold, weight, severity in self.TOP1_TIERS:
            if top1_pct > threshold:
                report.add_finding("Top holder concentration", severity,
                                   f"Largest holder owns {top1_pct:.1f}% of supply", weight=weight)
                risk += weight
                break

        if len(balances) >= 5:
            top5_pct = sum(balances[:5]) / total * 100
            report.metrics["top5_pct"] = round(top5_pct, 2)
            for threshold, weight, severity in self.TOP5_TIERS:
                if top5_pct > threshold:
                    report.add_finding("Top 5 holder concentration", severity,
                                       f"Top 5 holders own {top5_pct:.1f}% of supply", weight=weight)
                    risk += weight
                    break

        if len(balances) < self.MIN_HOLDERS:
            report.add_finding("Few holders", Severity.HIGH,
                               f"Only {len(balances)} holders", weight=20)
            risk += 20

        return clamp_score(risk)

    def _score_transfers(self, report: SubReport, transfers: List[TokenTransfer]) -> int:
        """转账模式风险"""
        report.metrics["transfer_count"] = len(transfers)
        if not transfers:
            report.add_finding("No transfer data", Severity.LOW,
                               "Transfer history could not be evaluated", weight=self.NO_TRANSFER_RISK)
            return self.NO_TRANSFER_RISK

        risk = 0

        pair_counts = Counter((t.from_address.lower(), t.to_address.lower()) for t in transfers)
        repeated_pairs = [pair for pair, count in pair_counts.items() if count > self.WASH_PAIR_REPEATS]
        if len(repeated_pairs) > self.WASH_PAIR_COUNT:
            report.add_finding("Possible wash trading", Severity.HIGH,
                               f"{len(repeated_pairs)} address pairs trade repeatedly", weight=25)
            risk += 25

        n = len(transfers)
        unique_amounts = len(set(t.amount for t in transfers))
        if n > self.DUPLICATE_MIN_TRANSFERS and unique_amounts < self.DUPLICATE_UNIQUE_RATIO * n:
            report.add_finding("Repeated transfer amounts", Severity.MEDIUM,
                               f"{unique_amounts} distinct amounts across {n} transfers", weight=15)
            risk += 15

        rate, span = self._transfer_rate(transfers)
        report.metrics["tx_per_hour"] = None if rate == float("inf") else round(rate, 2)
        if rate > self.MAX_TX_PER_HOUR:
            report.add_finding("High transfer frequency", Severity.MEDIUM,
                               f"{n} transfers within {span} seconds", weight=10)
            risk += 10

        return clamp_score(risk)

    @staticmethod
    def _transfer_rate(transfers: List[TokenTransfer]) -> Tuple[float, int]:
        """每小时转账数；时间跨度为 0 且多于一笔时视为无穷大"""
        timestamps = [t.timestamp for t in transfers]
        span = max(timestamps) - min(timestamps)
        if span <= 0:
            return (float("inf") if len(transfers) > 1 else 0.0), span
        return len(transfers) / (span / 3600), span
