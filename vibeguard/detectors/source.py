"""
源码模式检测器

对已验证源码做正则扫描，每条命中的规则计一次权重；
未验证源码本身即为风险信号。同时识别仿冒知名资产的代币。
"""

from typing import List
import logging

from vibeguard.detectors.base import Detector
from vibeguard.detectors.rules import PatternRule, RuleMatcher, apply_hits
from vibeguard.models.chain import ScanContext
from vibeguard.models.risk import Category, Severity, SubReport, clamp_score

logger = logging.getLogger(__name__)

_HP = Category.HONEYPOT
_CS = Category.CONTRACT_SECURITY
_RP = Category.RUG_PULL
_OW = Category.OWNERSHIP
_TX = Category.TAX
_TR = Category.TRADING
_FR = Category.FRAUD


HONEYPOT_RULES: List[PatternRule] = [
    PatternRule("max_transaction", r"setMaxTx|maxTransaction|_maxTxAmount", _TR, 15, field="has_max_tx"),
    PatternRule("max_wallet", r"setMaxWallet|maxWallet|_maxWalletSize", _TR, 10, field="has_max_wallet"),
    PatternRule("blacklist", r"blacklist|_isBlacklisted|isBlackListed", _HP, 25, field="is_blacklisted"),
    PatternRule("whitelist", r"whitelist|_isWhitelisted|isWhiteListed", _HP, 10, field="is_whitelisted"),
    PatternRule("selfdestruct", r"selfdestruct", _CS, 40, field="has_selfdestruct"),
    PatternRule("delegatecall", r"delegatecall", _CS, 20, field="is_upgradeable"),
    PatternRule("trading_cooldown", r"cooldown|_cooldownTimer|tradingCooldown", _HP, 10, field="trading_cooldown"),
    PatternRule("trading_toggle", r"tradingActive|tradingOpen|_tradingOpen|enableTrading", _HP, 20,
                field="has_trading_toggle"),
    PatternRule("anti_bot", r"botProtection|antibotActive|antiBotEnabled", _TR, 15, field="is_anti_whale"),
    PatternRule("inline_assembly", r"assembly\s*\{", _CS, 10, field="has_assembly"),
    PatternRule("proxy_pattern", r"proxy|upgradeable|implementation", _CS, 15, field="is_proxy"),
    PatternRule("pausable_transfers", r"_pausable|whenNotPaused|_pause\(\)", _HP, 25, field="transfer_pausable"),
    PatternRule("personal_slippage", r"personalSlippage|setSlippage.*address", _HP, 20,
                field="personal_slippage_mod"),
]

RUG_PULL_RULES: List[PatternRule] = [
    PatternRule("remove_liquidity", r"removeLiquidity|removeAllETH|removeLiquidityETH", _RP, 30,
                field="can_remove_liquidity"),
    PatternRule("owner_mint", r"mint.*onlyOwner|_mint.*internal", _RP, 20, field="is_mintable"),
    PatternRule("ownership_renounced", r"renounced|renounceOwnership", _OW, -15, field="is_ownership_renounced"),
    PatternRule("liquidity_lock", r"lock.*liquidity|liquidityLock|lpLocked", _RP, -20, field="has_liquidity_lock"),
    PatternRule("owner_withdraw", r"withdraw.*onlyOwner|emergencyWithdraw", _RP, 35, field="owner_can_drain"),
    PatternRule("external_value_call", r"extern.*call\{value|\.transfer\(|\.send\(", _CS, 10,
                field="has_external_call"),
    PatternRule("reinitializable", r"initialize\(\)|constructor.*public", _FR, 15, field="can_reinit"),
]

TAX_RULES: List[PatternRule] = [
    PatternRule("fee_setter", r"setFee|setTaxFee|changeFee|updateFee", _TX, 20, field="tax_modifiable"),
    PatternRule("buy_tax", r"buyFee|_buyTax|buyMarketingFee", _TX, 10, field="has_buy_tax"),
    PatternRule("sell_tax", r"sellFee|_sellTax|sellMarketingFee", _TX, 10, field="has_sell_tax"),
    PatternRule("high_tax", r"setFee.*[5-9]\d|taxFee.*[5-9]\d|fee.*= *[5-9]\d", _TX, 30, field="high_tax_risk"),
    PatternRule("buy_back", r"buyBack|autoBuyBack", _TX, 5, field="is_buy_back"),
    PatternRule("anti_whale_setter", r"setAntiWhale|antiWhaleEnabled|setAntiWhaleAmount", _TR, 15,
                field="anti_whale_modifiable"),
]

FRAUD_RULES: List[PatternRule] = [
    PatternRule("counterfeit_keyword", r"fake|counterfeit|imitation", _FR, 35, field="fake_token"),
    PatternRule("hidden_owner", r"hidden.*owner|_owner.*private.*no.*getter", _OW, 25, field="hidden_owner"),
    PatternRule("balance_override", r"changeBalance|setBalance|modifyBalance", _OW, 35, field="owner_change_balance"),
    PatternRule("ownership_reclaim", r"takeOwnership|reclaimOwnership|claimOwnership", _OW, 25,
                field="can_take_back_ownership"),
]

SOURCE_RULES: List[PatternRule] = HONEYPOT_RULES + RUG_PULL_RULES + TAX_RULES + FRAUD_RULES


# 仿冒知名资产
KNOWN_SYMBOLS = (
    "WBNB", "BUSD", "USDT", "USDC", "ETH", "WETH", "BTC", "WBTC", "CAKE", "XRP",
    "ADA", "DOGE", "SOL", "DOT", "MATIC", "SHIB", "LINK", "UNI", "AAVE", "AVAX",
)
DECEPTIVE_PREFIXES = ("Fake", "New", "Super", "Baby", "Mini", "Safe", "Inu")

FAKE_TOKEN_RULE = PatternRule(
    "fake_token_name",
    r"contract\s+(?:%s)(?:%s)" % ("|".join(DECEPTIVE_PREFIXES), "|".join(KNOWN_SYMBOLS)),
    _FR,
    40,
    field="fake_token",
    severity=Severity.CRITICAL,
    description="Contract name impersonates a well-known asset",
    ignore_case=False,
)


class SourcePatternDetector(Detector):
    """源码模式检测器"""

    name = "source"
    neutral_score = 50
    unverified_score = 30

    def __init__(self, rules: List[PatternRule] = None):
        self.matcher = RuleMatcher(rules if rules is not None else SOURCE_RULES)
        self.fake_matcher = RuleMatcher([FAKE_TOKEN_RULE])

    def _analyze(self, token_address: str, context: ScanContext) -> SubReport:
        report = self._new_report(token_address)
        source = self._require(context, "source")
        contract_name = source.contract_name if source else None
        report.metrics["contract_name"] = contract_name

        if source is None or not source.is_verified or not source.source_code.strip():
            report.set_field("is_open_source", detected=False, severity=Severity.WARNING)
            report.add_finding("Unverified contract", Severity.WARNING,
                               "No verified source code is published for this contract", weight=20)
            score = self.unverified_score
            score += self._check_fake_token(report, "", contract_name)
            report.score = clamp_score(score)
            return report

        report.set_field("is_open_source", detected=True, severity=Severity.SAFE)
        hits = self.matcher.scan(source.source_code)
        score = apply_hits(report, hits)
        counted = max((h.rule.weight for h in hits if h.rule.field == FAKE_TOKEN_RULE.field), default=0)
        score += self._check_fake_token(report, source.source_code, contract_name, counted)

        report.metrics["rules_evaluated"] = len(self.matcher.rules)
        report.score = clamp_score(score)
        logger.debug(f"Source analysis completed: {token_address}, score={report.score}")
        return report

    def _check_fake_token(self, report: SubReport, source_code: str, contract_name: str = None,
                          counted: int = 0) -> int:
        """仿冒检测：源码中的合约声明或合约名称

        fake_token 字段的权重每份报告只计一次（取最大值），counted 为已计入的部分。
        """
        text = source_code
        if contract_name:
            text = f"{text}\ncontract {contract_name}"
        added = apply_hits(report, self.fake_matcher.scan(text))
        if not added:
            return 0
        return max(added - counted, 0)
