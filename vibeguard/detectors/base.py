"""
检测器基类

analyze() 是全函数：任何内部异常都被转换为带说明的降级子报告，
绝不抛给调用方。
"""

from abc import ABC, abstractmethod
from typing import Any
import logging

from vibeguard.errors import DataUnavailable
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Severity, SubReport

logger = logging.getLogger(__name__)


class Detector(ABC):
    """检测器基类"""

    name: str = "detector"
    neutral_score: int = 50

    def analyze(self, token_address: str, context: ScanContext) -> SubReport:
        """运行检测，失败时返回中性降级报告"""
        try:
            report = self._analyze(token_address, context)
        except DataUnavailable as e:
            logger.warning(f"{self.name}: {e} ({token_address})")
            report = self.degraded_report(token_address, f"Data unavailable: {e}", Severity.WARNING)
        except Exception as e:
            logger.error(f"{self.name} failed for {token_address}: {e}")
            report = self.degraded_report(token_address, f"Detector error: {e}", Severity.WARNING)
        return report

    def degraded_report(self, token_address: str, detail: str, severity: Severity = Severity.WARNING) -> SubReport:
        report = SubReport(
            token_address=token_address,
            detector=self.name,
            score=self.neutral_score,
            degraded=True,
        )
        report.add_finding(f"{self.name} degraded", severity, detail)
        self._fill_neutral_metrics(report)
        return report

    def _fill_neutral_metrics(self, report: SubReport):
        """子类可为降级报告补充中性指标"""

    def _new_report(self, token_address: str) -> SubReport:
        return SubReport(token_address=token_address, detector=self.name)

    @staticmethod
    def _require(context: ScanContext, source: str) -> Any:
        """取上下文数据；数据源失败时抛 DataUnavailable"""
        value = getattr(context, source)
        if value is None and source in context.unavailable:
            raise DataUnavailable(source, context.unavailable[source])
        return value

    @abstractmethod
    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        """子类实现具体检测逻辑"""
