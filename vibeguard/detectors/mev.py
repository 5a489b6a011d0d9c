"""
MEV 暴露检测

- 三明治攻击面：可变手续费、无冷却、approve 无 increaseAllowance，
  反机器人与单笔上限可抵扣（该子项最低为 0）
- DEX 交换入口、套利 / 批量调用机器人特征、LP 交易对
"""

from typing import List
import logging

from vibeguard.detectors.base import Detector
from vibeguard.detectors.evm import find_selectors, has_selector, strip_code
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Severity, SubReport, clamp_score

logger = logging.getLogger(__name__)


FEE_SETTERS = [
    "setFee(uint256)", "setTaxFee(uint256)", "setLiquidityFee(uint256)",
    "setBuyFee(uint256)", "setSellFee(uint256)",
]
MAX_TX_LIMITS = [
    "setMaxTxPercent(uint256)", "setMaxTransactionAmount(uint256)", "_maxTxAmount()",
]
ANTI_BOT = [
    "setAntiBot(bool)", "setBotBlacklist(address,bool)", "setTradingEnabled(bool)",
]
COOLDOWN = "setCooldownEnabled(bool)"
APPROVE = "approve(address,uint256)"
INCREASE_ALLOWANCE = "increaseAllowance(address,uint256)"

SWAP_FUNCTIONS = [
    "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)",
    "swapExactETHForTokens(uint256,address[],address,uint256)",
    "swapTokensForExactTokens(uint256,uint256,address[],address,uint256)",
]
FEE_ON_TRANSFER_SWAP = "swapExactTokensForTokensSupportingFeeOnTransferTokens(uint256,uint256,address[],address,uint256)"
BOT_INDICATORS = [
    "multicall(bytes[])",
    "swap(uint256,uint256,address,bytes)",
    "executeArbitrage(address[],uint256)",
    "execute(address,uint256,uint256,bytes)",
]
LP_PAIR = ["uniswapV2Pair()", "pancakePair()", "pair()"]


class MEVExposureDetector(Detector):
    """MEV 暴露检测器"""

    name = "mev"
    neutral_score = 0

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        code = strip_code(self._require(context, "bytecode"))

        if len(code) < 8:
            report.add_finding("No contract", Severity.INFO, "No contract code to analyze")
            report.metrics.update({"sandwich_risk": 0, "recommendations": []})
            return report

        sandwich = self._sandwich_risk(report, code)
        report.metrics["sandwich_risk"] = sandwich
        score = sandwich

        swaps = find_selectors(code, SWAP_FUNCTIONS)
        for sig in swaps:
            report.add_finding("DEX swap entry point", Severity.LOW, sig.split("(")[0], weight=10)
            score += 10

        if has_selector(code, FEE_ON_TRANSFER_SWAP):
            report.add_finding("Fee-on-transfer swap", Severity.MEDIUM,
                               "Swaps supporting fee-on-transfer tokens", weight=20)
            score += 20

        bots = find_selectors(code, BOT_INDICATORS)
        if bots:
            report.add_finding("Bot / arbitrage interface", Severity.MEDIUM,
                               ", ".join(sig.split("(")[0] for sig in bots), weight=15)
            score += 15

        if find_selectors(code, LP_PAIR):
            report.add_finding("LP pair reference", Severity.LOW, "Contract references an LP pair", weight=5)
            score += 5

        report.metrics["recommendations"] = self._recommendations(report)
        report.score = clamp_score(score)
        return report

    def _sandwich_risk(self, report: SubReport, code: str) -> int:
        risk = 0
        if find_selectors(code, FEE_SETTERS):
            report.add_finding("Mutable fees", Severity.HIGH,
                               "Fees can be changed between a victim's quote and execution", weight=25)
            risk += 25
        if not has_selector(code, COOLDOWN):
            report.add_finding("No trade cooldown", Severity.MEDIUM,
                               "Back-to-back trades are not rate limited", weight=15)
            risk += 15
        if has_selector(code, APPROVE) and not has_selector(code, INCREASE_ALLOWANCE):
            report.add_finding("Approve without increaseAllowance", Severity.LOW,
                               "Allowance changes are front-runnable", weight=10)
            risk += 10
        if find_selectors(code, ANTI_BOT):
            report.add_finding("Anti-bot controls", Severity.SAFE, "Anti-bot functions present", weight=-15)
            risk -= 15
        if find_selectors(code, MAX_TX_LIMITS):
            report.add_finding("Max transaction limit", Severity.SAFE, "Per-transaction limits present", weight=-10)
            risk -= 10
        return max(0, risk)

    @staticmethod
    def _recommendations(report: SubReport) -> List[str]:
        names = {f.name for f in report.findings}
        recs = []
        if "Mutable fees" in names:
            recs.append("Use strict slippage limits; fees can change mid-trade")
        if "No trade cooldown" in names:
            recs.append("Submit trades through a private mempool")
        if "Bot / arbitrage interface" in names:
            recs.append("Contract exposes bot-style entry points; review before interacting")
        return recs
