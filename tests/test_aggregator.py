"""
聚合器测试
"""

import pytest

from vibeguard.dashboard import ScanHistory
from vibeguard.errors import InvalidInput
from vibeguard.models.risk import Category, RiskLevel, SubReport
from vibeguard.provider import StaticChainDataProvider
from vibeguard.scoring import RiskAggregator, category_scores, combine, merge_detection_fields

from tests.conftest import TOKEN_A, make_code


def sub_reports(creator=40, health=60, flash=20, mev=10, verified=True):
    bytecode = SubReport(token_address=TOKEN_A, detector="bytecode", score=55)
    bytecode.set_field("transfer_pausable")
    bytecode.set_field("is_mintable")

    source = SubReport(token_address=TOKEN_A, detector="source", score=0 if verified else 30)
    source.set_field("is_open_source", detected=verified)

    liquidity = SubReport(token_address=TOKEN_A, detector="liquidity", score=100 - health,
                          metrics={"liquidity_health": health})
    return [
        bytecode,
        source,
        liquidity,
        SubReport(token_address=TOKEN_A, detector="creator", score=creator),
        SubReport(token_address=TOKEN_A, detector="flash_loan", score=flash),
        SubReport(token_address=TOKEN_A, detector="mev", score=mev),
    ]


class TestCombine:

    def test_weighted_blend(self):
        report = combine(TOKEN_A, sub_reports())

        # 蜜罐分类 30，跑路分类 30
        assert report.contract_risk == 14     # round(.25*30 + .20*30)
        assert report.honeypot == 33          # round(.7*30 + .3*40)
        assert report.rug_pull == 35          # round(.5*30 + .3*40 + .2*40)
        assert report.overall_risk == 24
        assert report.risk_level == RiskLevel.LOW
        assert report.liquidity_health == 60
        assert report.creator_risk == 40
        assert report.verified is True
        assert report.scoring_version == "1"
        assert report.degraded_detectors == []

    def test_deterministic_and_order_independent(self):
        first = combine(TOKEN_A, sub_reports())
        second = combine(TOKEN_A, sub_reports())
        shuffled = combine(TOKEN_A, list(reversed(sub_reports())))

        assert first.score_fields() == second.score_fields()
        assert first.score_fields() == shuffled.score_fields()
        assert first.to_dict() == shuffled.to_dict()

    def test_unverified_source_penalty(self):
        verified = combine(TOKEN_A, sub_reports(verified=True))
        unverified = combine(TOKEN_A, sub_reports(verified=False))

        assert unverified.detection_fields["is_open_source"].detected is False
        assert unverified.verified is False
        assert category_scores(unverified.detection_fields)[Category.CONTRACT_SECURITY] == 20
        # .10 * 20 计入合约风险
        assert unverified.contract_risk == verified.contract_risk + 2

    def test_both_contract_detectors_degraded(self):
        reports = sub_reports()
        reports[0].degraded = True
        reports[1].degraded = True
        report = combine(TOKEN_A, reports)
        assert report.contract_risk == 50
        assert set(report.degraded_detectors) == {"bytecode", "source"}

    def test_missing_detectors_use_neutral_defaults(self):
        report = combine(TOKEN_A, sub_reports()[:2])
        assert report.creator_risk == 50
        assert report.liquidity_health == 50
        assert report.flash_loan == 0
        assert report.mev == 0
        assert "liquidity" in report.degraded_detectors

    def test_negative_weights_reduce_category(self):
        report = SubReport(token_address=TOKEN_A, detector="source")
        report.set_field("owner_change_balance")
        report.set_field("is_ownership_renounced")
        scores = category_scores(merge_detection_fields([report]))
        assert scores[Category.OWNERSHIP] == 35 - 15

    def test_category_floor_is_zero(self):
        report = SubReport(token_address=TOKEN_A, detector="source")
        report.set_field("is_open_source")
        report.set_field("has_liquidity_lock")
        scores = category_scores(merge_detection_fields([report]))
        assert scores[Category.RUG_PULL] == 0

    def test_merge_takes_highest_severity(self):
        a = SubReport(token_address=TOKEN_A, detector="bytecode")
        a.set_field("is_mintable")
        b = SubReport(token_address=TOKEN_A, detector="source")
        b.set_field("is_mintable", detected=False)
        merged = merge_detection_fields([b, a])
        assert merged["is_mintable"].detected is True
        assert merged == merge_detection_fields([a, b])


class _CountingProvider(StaticChainDataProvider):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    def get_bytecode(self, token_address):
        self.calls += 1
        return super().get_bytecode(token_address)


class TestRiskAggregator:

    def _provider(self, **kwargs):
        return StaticChainDataProvider(tokens={
            TOKEN_A: {
                "bytecode": make_code("mint(address,uint256)", "pause()"),
                "source": None,
                "holders": [
                    {"address": "0x" + "01" * 20, "balance": 900},
                    {"address": "0x" + "02" * 20, "balance": 100},
                ],
                "transfers": [],
                "creator": {"address": "0x" + "cc" * 20, "wallet_age_days": 2, "deployed_contracts": 0},
            },
        }, **kwargs)

    def test_full_scan(self, clock):
        report = RiskAggregator(self._provider(), clock=clock).aggregate(TOKEN_A)

        assert report.token_address == TOKEN_A
        assert report.timestamp == clock.now
        assert report.scan_duration_seconds >= 0
        assert report.verified is False
        assert report.detection_fields["is_mintable"].detected
        assert set(report.detector_scores) == {"bytecode", "source", "liquidity", "creator", "flash_loan", "mev"}
        assert report.degraded_detectors == []
        assert 0 <= report.overall_risk <= 100

    def test_scan_matches_pure_combine(self, clock):
        aggregator = RiskAggregator(self._provider(), clock=clock)
        report = aggregator.aggregate(TOKEN_A)
        again = aggregator.aggregate(TOKEN_A)
        assert report.score_fields() == again.score_fields()

    def test_scans_recorded_in_history(self, clock):
        history = ScanHistory()
        aggregator = RiskAggregator(self._provider(), clock=clock, history=history)
        report = aggregator.aggregate(TOKEN_A)

        assert history.latest(TOKEN_A) is report
        assert history.stats()["total_scans"] == 1
        assert history.stats()["recent_scans"][0]["overall_risk"] == report.overall_risk

    def test_invalid_address_rejected_before_detectors(self):
        provider = _CountingProvider()
        with pytest.raises(InvalidInput):
            RiskAggregator(provider).aggregate("0xnothex")
        assert provider.calls == 0

    def test_source_failure_isolated(self, clock):
        provider = self._provider(failures={TOKEN_A: ["holders"]})
        report = RiskAggregator(provider, clock=clock).aggregate(TOKEN_A)

        assert report.degraded_detectors == ["liquidity"]
        assert report.liquidity_health == 50
        assert report.detection_fields["is_mintable"].detected

    def test_detector_timeout_degrades_only_that_detector(self, clock):
        import time as _time

        from vibeguard.detectors import default_detectors
        from vibeguard.detectors.creator import CreatorProfiler

        class SlowCreator(CreatorProfiler):
            def _analyze(self, token_address, context):
                _time.sleep(1.5)
                return super()._analyze(token_address, context)

        detectors = [d for d in default_detectors() if d.name != "creator"] + [SlowCreator()]
        aggregator = RiskAggregator(self._provider(), detectors=detectors, detector_timeout=0.25, clock=clock)
        report = aggregator.aggregate(TOKEN_A)

        assert report.degraded_detectors == ["creator"]
        assert report.creator_risk == 50
