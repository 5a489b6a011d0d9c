"""
闪电贷漏洞检测

- 价格预言机类型（现货 / TWAP）
- 无重入保护的闪电贷回调
- 基于储备量或余额的价格计算（可被闪电贷操纵）
"""

from typing import Dict, List
import logging

from vibeguard.detectors.base import Detector
from vibeguard.detectors.evm import (
    count_opcodes,
    find_selectors,
    has_reentrancy_guard,
    has_selector,
    strip_code,
)
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Severity, SubReport, clamp_score

logger = logging.getLogger(__name__)


VULNERABLE_ORACLES = [
    "getReserves", "balanceOf", "slot0", "latestAnswer",
    "getAmountsOut", "getAmountOut", "quote",
]
TWAP_INDICATORS = ["observe", "consult", "getTimeWeightedAverage", "cumulativePrices", "twap"]
FLASH_CALLBACKS = [
    "onFlashLoan", "executeOperation", "pancakeV3FlashCallback",
    "uniswapV3FlashCallback", "callFunction", "onFlashSwap",
]
FLASH_LOAN_PROVIDER_SELECTORS = {
    "5cffe9de": "flashLoan (ERC-3156)",
    "ab9c4b5d": "flashLoan (Aave V2)",
    "e9c1c6fc": "flashLoanSimple",
    "d9d98ce4": "flashFee",
    "5711e9c8": "flash (pool)",
}

VULNERABILITY_WEIGHTS = {
    Severity.CRITICAL: 30,
    Severity.HIGH: 20,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
}
VECTOR_WEIGHTS = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
}
DEFAULT_VECTOR_WEIGHT = 5


class FlashLoanVulnerabilityDetector(Detector):
    """闪电贷漏洞检测器"""

    name = "flash_loan"
    neutral_score = 0

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        code = strip_code(self._require(context, "bytecode"))

        if len(code) < 8:
            report.add_finding("No contract", Severity.INFO, "No contract code to analyze")
            report.metrics.update({"oracle_type": "none", "recommendations": []})
            return report

        opcodes = count_opcodes(code)
        vulnerabilities: List[Dict] = []
        vectors: List[Dict] = []

        oracle_type = self._classify_oracle(code)
        report.metrics["oracle_type"] = oracle_type
        if oracle_type == "vulnerable":
            vulnerabilities.append({
                "type": "VULNERABLE_ORACLE",
                "severity": Severity.CRITICAL,
                "detail": "Spot-price oracle without TWAP protection",
            })

        guarded = has_reentrancy_guard(opcodes)
        callbacks = find_selectors(code, [f"{cb}(address,uint256,uint256,bytes)" for cb in FLASH_CALLBACKS])
        report.metrics["flash_callbacks"] = [cb.split("(")[0] for cb in callbacks]
        if callbacks and not guarded:
            vulnerabilities.append({
                "type": "UNPROTECTED_CALLBACK",
                "severity": Severity.HIGH,
                "detail": f"Flash loan callback without reentrancy guard: {', '.join(report.metrics['flash_callbacks'])}",
            })
        if not guarded:
            vulnerabilities.append({
                "type": "NO_REENTRANCY_GUARD",
                "severity": Severity.MEDIUM,
                "detail": "No storage-lock pattern (SLOAD/SSTORE/REVERT) found",
            })

        if opcodes["DIV"]:
            if has_selector(code, "getReserves()"):
                vectors.append({
                    "type": "RESERVE_PRICE_MANIPULATION",
                    "severity": Severity.CRITICAL,
                    "detail": "Price derived from pair reserves",
                })
            if has_selector(code, "balanceOf(address)"):
                vectors.append({
                    "type": "BALANCE_PRICE_MANIPULATION",
                    "severity": Severity.HIGH,
                    "detail": "Price derived from token balances",
                })

        for selector, label in FLASH_LOAN_PROVIDER_SELECTORS.items():
            if selector in code:
                report.add_finding("FLASH_LOAN_PROVIDER", Severity.INFO, f"Exposes {label}")

        score = 0
        for item in vulnerabilities:
            weight = VULNERABILITY_WEIGHTS.get(item["severity"], 0)
            report.add_finding(item["type"], item["severity"], item["detail"], weight=weight)
            score += weight
        for item in vectors:
            weight = VECTOR_WEIGHTS.get(item["severity"], DEFAULT_VECTOR_WEIGHT)
            report.add_finding(item["type"], item["severity"], item["detail"], weight=weight)
            score += weight

        report.metrics["attack_vectors"] = [v["type"] for v in vectors]
        report.metrics["recommendations"] = self._recommendations(vulnerabilities, vectors)
        report.score = clamp_score(score)
        return report

    @staticmethod
    def _classify_oracle(code: str) -> str:
        """预言机分类：存在 TWAP 指标即视为 twap"""
        if find_selectors(code, [f"{p}()" for p in TWAP_INDICATORS]):
            return "twap"
        for name in VULNERABLE_ORACLES:
            if has_selector(code, f"{name}()") or has_selector(code, f"{name}(address)"):
                return "vulnerable"
        return "none"

    @staticmethod
    def _recommendations(vulnerabilities: List[Dict], vectors: List[Dict]) -> List[str]:
        types = {v["type"] for v in vulnerabilities} | {v["type"] for v in vectors}
        recs = []
        if "VULNERABLE_ORACLE" in types or "RESERVE_PRICE_MANIPULATION" in types:
            recs.append("Use a TWAP or decentralized oracle instead of spot reserves")
        if "UNPROTECTED_CALLBACK" in types:
            recs.append("Validate the initiator and caller of flash loan callbacks")
        if "NO_REENTRANCY_GUARD" in types:
            recs.append("Add a reentrancy guard to state-changing entry points")
        if "BALANCE_PRICE_MANIPULATION" in types:
            recs.append("Avoid deriving prices from instantaneous balances")
        return recs
