"""
风险检测器

模块：
- base: 检测器基类（失败即降级）
- rules: 声明式规则表与通用匹配器
- evm: 字节码工具
- bytecode: 字节码选择器检测
- source: 源码模式 / 仿冒代币检测
- liquidity: 流动性集中度分析
- creator: 创建者画像
- flash_loan: 闪电贷漏洞检测
- mev: MEV 暴露检测
"""

from vibeguard.detectors.base import Detector
from vibeguard.detectors.rules import PatternRule, RuleMatcher, RuleHit, apply_hits
from vibeguard.detectors.bytecode import BytecodeSelectorDetector
from vibeguard.detectors.source import SourcePatternDetector
from vibeguard.detectors.liquidity import LiquidityConcentrationAnalyzer
from vibeguard.detectors.creator import CreatorProfiler
from vibeguard.detectors.flash_loan import FlashLoanVulnerabilityDetector
from vibeguard.detectors.mev import MEVExposureDetector


def default_detectors():
    """默认检测器组合"""
    return [
        BytecodeSelectorDetector(),
        SourcePatternDetector(),
        LiquidityConcentrationAnalyzer(),
        CreatorProfiler(),
        FlashLoanVulnerabilityDetector(),
        MEVExposureDetector(),
    ]


__all__ = [
    "Detector",
    "PatternRule",
    "RuleMatcher",
    "RuleHit",
    "apply_hits",
    "BytecodeSelectorDetector",
    "SourcePatternDetector",
    "LiquidityConcentrationAnalyzer",
    "CreatorProfiler",
    "FlashLoanVulnerabilityDetector",
    "MEVExposureDetector",
    "default_detectors",
]
