"""
检测器测试
"""

import pytest

from vibeguard.detectors import (
    BytecodeSelectorDetector,
    CreatorProfiler,
    Detector,
    FlashLoanVulnerabilityDetector,
    LiquidityConcentrationAnalyzer,
    MEVExposureDetector,
    SourcePatternDetector,
)
from vibeguard.models.chain import CreatorStats, HolderBalance, SourceInfo, TokenTransfer
from vibeguard.models.risk import Severity

from tests.conftest import TOKEN_A, make_code, make_context


def finding_names(report):
    return [f.name for f in report.findings]


class TestBytecodeSelectorDetector:

    def test_empty_code(self):
        report = BytecodeSelectorDetector().analyze(TOKEN_A, make_context(bytecode="0x"))
        assert report.score == 50
        assert "No bytecode found" in finding_names(report)

    def test_capabilities_from_selectors(self):
        code = make_code("mint(address,uint256)", "pause()", tail="ff")
        report = BytecodeSelectorDetector().analyze(TOKEN_A, make_context(bytecode=code))

        assert report.detection_fields["is_mintable"].detected
        assert report.detection_fields["transfer_pausable"].detected
        assert report.detection_fields["has_selfdestruct"].severity == Severity.CRITICAL
        assert report.score == 25 + 30 + 40
        assert "selector_presence_limitation" in finding_names(report)

    def test_selfdestruct_byte_inside_push_data_ignored(self):
        # 0x63 PUSH4 的数据里含有 ff，不是 SELFDESTRUCT 操作码
        report = BytecodeSelectorDetector().analyze(TOKEN_A, make_context(bytecode="0x63ffffffff00"))
        assert "has_selfdestruct" not in report.detection_fields

    def test_minimal_proxy(self):
        code = "0x363d3d373d3d3d363d73" + "ab" * 20 + "5af43d82803e903d91602b57fd5bf3"
        report = BytecodeSelectorDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.detection_fields["is_proxy"].detected
        assert "minimal_proxy" in finding_names(report)

    def test_renounce_lowers_score(self):
        code = make_code("owner()", "renounceOwnership()")
        report = BytecodeSelectorDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.score == 10 - 5

    def test_source_failure_degrades(self):
        context = make_context(unavailable={"bytecode": "rpc down"})
        report = BytecodeSelectorDetector().analyze(TOKEN_A, context)
        assert report.degraded
        assert report.score == 50
        assert report.findings[0].severity == Severity.WARNING


class TestSourcePatternDetector:

    def test_unverified_source(self):
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=None))
        field = report.detection_fields["is_open_source"]
        assert field.detected is False
        assert field.is_risky
        assert report.score == 30
        assert "Unverified contract" in finding_names(report)

    def test_rules_contribute_once(self):
        source = SourceInfo(
            is_verified=True,
            contract_name="Token",
            source_code="""
                contract Token {
                    mapping(address => bool) _isBlacklisted;
                    function blacklist(address a) external onlyOwner { _isBlacklisted[a] = true; }
                    function renounceOwnership() public {}
                }
            """,
        )
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=source))

        assert report.detection_fields["is_open_source"].detected
        assert report.detection_fields["is_blacklisted"].detected
        assert report.detection_fields["is_ownership_renounced"].detected
        assert finding_names(report).count("blacklist") == 1
        assert report.score == 25 - 15

    def test_fake_token_fires_once(self):
        source = SourceInfo(
            is_verified=True,
            contract_name="BabyDOGE",
            source_code="contract BabyDOGE is ERC20 { }",
        )
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=source))
        fake = [f for f in report.findings if f.name == "fake_token_name"]
        assert len(fake) == 1
        assert fake[0].severity == Severity.CRITICAL
        assert fake[0].weight == 40
        assert report.detection_fields["fake_token"].detected

    def test_fake_token_weight_counted_once(self):
        source = SourceInfo(
            is_verified=True,
            contract_name="FakeUSDT",
            source_code="contract FakeUSDT is ERC20 { }",
        )
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=source))

        assert {"counterfeit_keyword", "fake_token_name"} <= set(finding_names(report))
        assert report.detection_fields["fake_token"].severity == Severity.CRITICAL
        assert report.score == 40

    def test_fake_token_from_name_when_unverified(self):
        source = SourceInfo(is_verified=False, contract_name="SafeUSDT")
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=source))
        assert report.detection_fields["fake_token"].detected
        assert report.score == 30 + 40

    def test_plain_name_not_flagged(self):
        source = SourceInfo(is_verified=True, contract_name="SafeMath", source_code="library SafeMath {}")
        report = SourcePatternDetector().analyze(TOKEN_A, make_context(source=source))
        assert "fake_token" not in report.detection_fields


class TestLiquidityConcentrationAnalyzer:

    def _holders(self, *balances):
        return [HolderBalance(address="0x" + f"{i:040x}", balance=b) for i, b in enumerate(balances)]

    def test_top_holder_over_half(self):
        holders = self._holders(51, *([4.9] * 10))
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, make_context(holders=holders))

        top = [f for f in report.findings if f.name == "Top holder concentration"]
        assert len(top) == 1
        assert top[0].severity == Severity.CRITICAL
        assert top[0].weight == 40

    def test_uses_total_supply_when_given(self):
        holders = self._holders(*([10] * 12))
        context = make_context(holders=holders, total_supply=1000)
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, context)
        assert report.metrics["top1_pct"] == 1.0
        assert "Top holder concentration" not in finding_names(report)

    def test_no_data_defaults(self):
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, make_context(holders=[], transfers=[]))
        assert report.metrics["holder_risk"] == 30
        assert report.metrics["transfer_risk"] == 20
        # 100 - round(0.6 * 30 + 0.4 * 20)
        assert report.metrics["liquidity_health"] == 74
        assert not report.degraded

    def test_few_holders(self):
        holders = self._holders(*([10] * 9))
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, make_context(holders=holders))
        assert "Few holders" in finding_names(report)
        # top5 = 55.6%
        assert report.metrics["holder_risk"] == 20

    def test_wash_trading_and_frequency(self):
        transfers = []
        for pair in range(4):
            for i in range(6):
                transfers.append(TokenTransfer(
                    from_address=f"0x{pair:040x}",
                    to_address=f"0x{pair + 100:040x}",
                    amount=1000 + pair * 10 + i,
                    timestamp=1_700_000_000 + i,
                ))
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, make_context(transfers=transfers))
        names = finding_names(report)
        assert "Possible wash trading" in names
        assert "High transfer frequency" in names
        assert "Repeated transfer amounts" not in names
        assert report.metrics["transfer_risk"] == 35

    def test_degraded_when_holder_source_fails(self):
        context = make_context(unavailable={"holders": "timeout"})
        report = LiquidityConcentrationAnalyzer().analyze(TOKEN_A, context)
        assert report.degraded
        assert report.metrics["liquidity_health"] == 50


class TestCreatorProfiler:

    def test_unknown_creator(self):
        report = CreatorProfiler().analyze(TOKEN_A, make_context(creator=None))
        assert report.score == 30
        assert not report.degraded

    def test_fresh_serial_deployer(self):
        creator = CreatorStats(address="0x" + "cc" * 20, wallet_age_days=3, deployed_contracts=25, balance=0.001)
        report = CreatorProfiler().analyze(TOKEN_A, make_context(creator=creator))
        assert report.score == 30 + 30 + 15

    def test_established_creator_clamped(self):
        creator = CreatorStats(address="0x" + "cc" * 20, wallet_age_days=400, deployed_contracts=1, balance=5)
        report = CreatorProfiler().analyze(TOKEN_A, make_context(creator=creator))
        assert report.score == 0

    def test_middle_tiers(self):
        creator = CreatorStats(address="0x" + "cc" * 20, wallet_age_days=20, deployed_contracts=11, balance=1)
        report = CreatorProfiler().analyze(TOKEN_A, make_context(creator=creator))
        assert report.score == 15 + 15


class TestFlashLoanVulnerabilityDetector:

    def test_spot_oracle_without_guard(self):
        code = make_code("getReserves()", tail="04")
        report = FlashLoanVulnerabilityDetector().analyze(TOKEN_A, make_context(bytecode=code))

        assert report.metrics["oracle_type"] == "vulnerable"
        names = finding_names(report)
        assert "VULNERABLE_ORACLE" in names
        assert "NO_REENTRANCY_GUARD" in names
        assert "RESERVE_PRICE_MANIPULATION" in names
        assert report.score == 30 + 10 + 25

    def test_twap_overrides_spot(self):
        code = make_code("getReserves()", "observe()", tail="04")
        report = FlashLoanVulnerabilityDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.metrics["oracle_type"] == "twap"
        assert report.score == 10 + 25

    def test_unguarded_callback(self):
        code = make_code("onFlashLoan(address,uint256,uint256,bytes)")
        report = FlashLoanVulnerabilityDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert "UNPROTECTED_CALLBACK" in finding_names(report)
        assert report.score == 20 + 10

    def test_guarded_callback(self):
        code = make_code("onFlashLoan(address,uint256,uint256,bytes)", tail="5455fd")
        report = FlashLoanVulnerabilityDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.score == 0

    def test_no_contract(self):
        report = FlashLoanVulnerabilityDetector().analyze(TOKEN_A, make_context(bytecode="0x"))
        assert report.score == 0
        assert report.findings[0].severity == Severity.INFO


class TestMEVExposureDetector:

    def test_mutable_fee_without_cooldown(self):
        code = make_code("setFee(uint256)")
        report = MEVExposureDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.metrics["sandwich_risk"] == 25 + 15
        assert report.score == 40

    def test_sandwich_floor(self):
        code = make_code("setAntiBot(bool)", "setMaxTxPercent(uint256)", "setCooldownEnabled(bool)")
        report = MEVExposureDetector().analyze(TOKEN_A, make_context(bytecode=code))
        assert report.metrics["sandwich_risk"] == 0
        assert report.score == 0

    def test_swaps_and_bots(self):
        code = make_code(
            "setCooldownEnabled(bool)",
            "swapExactETHForTokens(uint256,address[],address,uint256)",
            "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)",
            "multicall(bytes[])",
            "execute(address,uint256,uint256,bytes)",
            "uniswapV2Pair()",
        )
        report = MEVExposureDetector().analyze(TOKEN_A, make_context(bytecode=code))
        # 两个 swap + 机器人特征只计一次 + LP
        assert report.score == 10 + 10 + 15 + 5


class _Exploding(Detector):
    name = "exploding"
    neutral_score = 42

    def _analyze(self, token_address, context):
        raise RuntimeError("boom")


def test_detector_never_raises():
    report = _Exploding().analyze(TOKEN_A, make_context())
    assert report.degraded
    assert report.score == 42
    assert "boom" in report.findings[0].detail
