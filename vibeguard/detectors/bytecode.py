"""
字节码选择器检测器

通过 4 字节函数选择器在运行时字节码中的出现情况推断合约能力。
选择器存在只能证明函数被导出，不能证明其可达或已启用。
"""

from typing import List
import logging

from vibeguard.detectors.base import Detector
from vibeguard.detectors.evm import (
    count_opcodes,
    is_minimal_proxy,
    is_upgradeable_proxy,
    strip_code,
)
from vibeguard.detectors.rules import PatternRule, RuleMatcher, apply_hits
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Category, Severity, SubReport, clamp_score

logger = logging.getLogger(__name__)


SELECTOR_RULES: List[PatternRule] = [
    PatternRule("has_owner", "8da5cb5b", Category.OWNERSHIP, 10,
                description="owner() is exported"),
    PatternRule("can_renounce", "715018a6", Category.OWNERSHIP, -5,
                description="renounceOwnership() is exported"),
    PatternRule("can_transfer_ownership", "f2fde38b", Category.OWNERSHIP, 15,
                description="transferOwnership(address) is exported"),
    PatternRule("mint_function", "40c10f19", Category.RUG_PULL, 25, field="is_mintable",
                description="mint(address,uint256) is exported"),
    PatternRule("burn_function", "42966c68", Category.RUG_PULL, 5, field="is_burnable",
                description="burn(uint256) is exported"),
    PatternRule("pause_function", "8456cb59", Category.HONEYPOT, 30, field="transfer_pausable",
                description="pause() is exported"),
    PatternRule("max_tx_setter", "e4748b9e", Category.TRADING, 20, field="has_max_tx",
                description="setMaxTxPercent(uint256) is exported"),
    PatternRule("fee_setter", "69fe0e2d|a0e47bf6", Category.TAX, 15, field="tax_modifiable",
                description="setFee/setTaxFee is exported"),
    PatternRule("fee_exclusion", "437823ec", Category.TAX, 5,
                description="excludeFromFee(address) is exported"),
    PatternRule("blacklist_function", "f9f92be4", Category.HONEYPOT, 25, field="is_blacklisted",
                description="blacklist(address) is exported"),
]


class BytecodeSelectorDetector(Detector):
    """字节码选择器检测器"""

    name = "bytecode"
    neutral_score = 50

    def __init__(self, rules: List[PatternRule] = None):
        self.matcher = RuleMatcher(rules if rules is not None else SELECTOR_RULES)

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        code = strip_code(self._require(context, "bytecode"))

        if not code:
            report.score = 50
            report.add_finding("No bytecode found", Severity.WARNING,
                               "Address has no deployed runtime code")
            return report

        score = apply_hits(report, self.matcher.scan(code))

        opcodes = count_opcodes(code)
        report.metrics["opcodes"] = opcodes
        report.metrics["code_size"] = len(code) // 2

        if opcodes["SELFDESTRUCT"]:
            report.set_field("has_selfdestruct", severity=Severity.CRITICAL)
            report.add_finding("has_selfdestruct", Severity.CRITICAL,
                               "SELFDESTRUCT opcode present", weight=40)
            score += 40

        if is_minimal_proxy(code):
            report.set_field("is_proxy", severity=Severity.WARNING)
            report.add_finding("minimal_proxy", Severity.WARNING,
                               "EIP-1167 minimal proxy", weight=15)
            score += 15
        elif is_upgradeable_proxy(code, opcodes):
            report.set_field("is_proxy", severity=Severity.WARNING)
            report.set_field("is_upgradeable", severity=Severity.WARNING)
            report.add_finding("upgradeable_proxy", Severity.WARNING,
                               "DELEGATECALL with upgrade/implementation selectors", weight=20)
            score += 20

        report.add_finding(
            "selector_presence_limitation", Severity.INFO,
            "Selector presence shows a function is exported, not that it is reachable or enabled",
        )

        report.score = clamp_score(score)
        logger.debug(f"Bytecode analysis completed: {token_address}, score={report.score}")
        return report
