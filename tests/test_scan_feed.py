"""
扫描记录与威胁动态测试
"""

from vibeguard.dashboard import ScanFeedAPI, ScanHistory
from vibeguard.models.risk import AggregateReport
from vibeguard.scoring import risk_level_for


def make_report(index: int, overall: int) -> AggregateReport:
    return AggregateReport(
        token_address="0x" + f"{index:040x}",
        overall_risk=overall,
        risk_level=risk_level_for(overall),
        contract_risk=0, honeypot=0, rug_pull=0, flash_loan=0, mev=0,
        ownership=0, tax=0, liquidity_health=100, creator_risk=0,
        verified=True, is_proxy=False, detection_fields={}, findings=[],
        timestamp=float(index),
    )


class TestScanHistory:

    def test_stats(self):
        history = ScanHistory()
        for i, score in enumerate([10, 60, 59, 90]):
            history.record(make_report(i, score))

        stats = history.stats()
        assert stats["total_scans"] == 4
        assert stats["threats_detected"] == 2
        assert stats["detection_fields"] == 35
        assert len(stats["recent_scans"]) == 4

    def test_bounded(self):
        history = ScanHistory(max_size=5)
        for i in range(12):
            history.record(make_report(i, 10))
        stats = history.stats()
        assert stats["total_scans"] == 12
        assert len(stats["recent_scans"]) == 5

    def test_threat_feed_newest_first(self):
        history = ScanHistory()
        for i in range(30):
            history.record(make_report(i, 50 if i % 2 else 10))

        feed = history.threat_feed()
        assert len(feed) == 15
        assert feed[0]["timestamp"] == 29.0
        assert all(item["overall_risk"] >= 50 for item in feed)

    def test_threat_feed_capped(self):
        history = ScanHistory()
        for i in range(25):
            history.record(make_report(i, 70))
        assert len(history.threat_feed()) == 20


class TestScanFeedAPI:

    def test_envelope(self):
        history = ScanHistory()
        history.record(make_report(1, 70))
        api = ScanFeedAPI(history)

        stats = api.get_stats()
        assert stats["status"] == "success"
        assert stats["data"]["total_scans"] == 1

        scan = api.get_scan("0x" + f"{1:040x}")
        assert scan["data"]["overall_risk"] == 70

    def test_missing_scan(self):
        api = ScanFeedAPI(ScanHistory())
        assert api.get_scan("0x" + "ab" * 20)["status"] == "error"
        assert api.get_scan("nope")["status"] == "error"
