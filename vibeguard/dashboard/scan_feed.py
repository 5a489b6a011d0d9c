"""
扫描记录与威胁动态

为展示层提供数据：
- 最近扫描历史（有上限）
- 统计（扫描总数、威胁数）
- 威胁动态（高风险扫描，最新在前）
"""

from collections import deque
from dataclasses import dataclass, field as dc_field
from datetime import datetime as dt
from typing import Any, Deque, Dict, List, Optional
from enum import Enum
import logging
import threading

from vibeguard.models.chain import normalize_address
from vibeguard.models.risk import AggregateReport, DETECTION_FIELDS

logger = logging.getLogger(__name__)

THREAT_THRESHOLD = 60      # 计入威胁统计
FEED_THRESHOLD = 50        # 进入威胁动态
FEED_SIZE = 20
RECENT_SIZE = 10


class ResponseStatus(Enum):
    """响应状态"""
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class APIResponse:
    """API响应"""
    status: ResponseStatus
    data: Any = None
    message: str = ""
    timestamp: str = dc_field(default_factory=lambda: dt.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "data": self.data,
            "message": self.message,
            "timestamp": self.timestamp,
        }


def _summary(report: AggregateReport) -> Dict[str, Any]:
    return {
        "token_address": report.token_address,
        "contract_name": report.contract_name,
        "overall_risk": report.overall_risk,
        "risk_level": report.risk_level.value,
        "honeypot": report.honeypot,
        "rug_pull": report.rug_pull,
        "flash_loan": report.flash_loan,
        "mev": report.mev,
        "liquidity_health": report.liquidity_health,
        "timestamp": report.timestamp,
    }


class ScanHistory:
    """扫描历史"""

    def __init__(self, max_size: int = 100):
        self._scans: Deque[AggregateReport] = deque(maxlen=max_size)
        self._total_scans = 0
        self._threats = 0
        self._lock = threading.Lock()

    def record(self, report: AggregateReport):
        with self._lock:
            self._scans.append(report)
            self._total_scans += 1
            if report.overall_risk >= THREAT_THRESHOLD:
                self._threats += 1
        logger.debug(f"Scan recorded: {report.token_address} ({report.overall_risk})")

    def latest(self, token_address: str) -> Optional[AggregateReport]:
        address = normalize_address(token_address)
        with self._lock:
            for report in reversed(self._scans):
                if report.token_address == address:
                    return report
        return None

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            recent = list(self._scans)[-RECENT_SIZE:]
            return {
                "total_scans": self._total_scans,
                "threats_detected": self._threats,
                "detection_fields": len(DETECTION_FIELDS),
                "recent_scans": [_summary(r) for r in recent],
            }

    def threat_feed(self) -> List[Dict[str, Any]]:
        with self._lock:
            threats = [r for r in self._scans if r.overall_risk >= FEED_THRESHOLD]
        return [_summary(r) for r in reversed(threats[-FEED_SIZE:])]


class ScanFeedAPI:
    """展示层接口（返回 APIResponse 字典）"""

    def __init__(self, history: ScanHistory):
        self.history = history

    def get_stats(self) -> Dict[str, Any]:
        return APIResponse(ResponseStatus.SUCCESS, data=self.history.stats()).to_dict()

    def get_threat_feed(self) -> Dict[str, Any]:
        feed = self.history.threat_feed()
        return APIResponse(ResponseStatus.SUCCESS, data=feed, message=f"{len(feed)} threats").to_dict()

    def get_scan(self, token_address: str) -> Dict[str, Any]:
        try:
            report = self.history.latest(token_address)
        except ValueError as e:
            return APIResponse(ResponseStatus.ERROR, message=str(e)).to_dict()
        if report is None:
            return APIResponse(ResponseStatus.ERROR, message="Scan not found").to_dict()
        return APIResponse(ResponseStatus.SUCCESS, data=report.to_dict()).to_dict()
