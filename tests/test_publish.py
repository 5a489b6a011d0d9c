"""
扫描发布测试
"""

import pytest

from vibeguard.errors import InvalidInput
from vibeguard.models.chain import ZERO_ADDRESS
from vibeguard.provider import StaticChainDataProvider
from vibeguard.publish import InMemoryIdentityRegistry, PublishAdapter
from vibeguard.registry import RiskRegistry
from vibeguard.scoring import RiskAggregator

from tests.conftest import AGENT, OWNER, STRANGER, TOKEN_A, LockedEventStore, make_code


@pytest.fixture
def aggregator(clock):
    provider = StaticChainDataProvider(tokens={
        TOKEN_A: {
            "bytecode": make_code("blacklist(address)", "pause()"),
            "source": {"source_code": "", "contract_name": "Token", "is_verified": False},
            "holders": [{"address": "0x" + "01" * 20, "balance": 1}],
            "creator": None,
        },
    })
    return RiskAggregator(provider, clock=clock)


@pytest.fixture
def registry(clock):
    registry = RiskRegistry(OWNER, clock=clock)
    registry.authorize_agent(OWNER, AGENT)
    return registry


class TestPublishAdapter:

    def test_register_then_update(self, aggregator, registry):
        result = PublishAdapter(aggregator, registry, AGENT).scan_and_publish(TOKEN_A)

        assert result.published
        assert result.registered_now
        assert result.token_id == 0
        record = registry.get_full_risk_report(TOKEN_A)
        assert record.risk_score == result.report.overall_risk
        assert record.honeypot_score == result.report.honeypot
        assert record.rug_pull_score == result.report.rug_pull
        assert record.liquidity_score == result.report.liquidity_health
        assert record.risk_level == result.report.risk_level.value

    def test_republish_reuses_record(self, aggregator, registry):
        adapter = PublishAdapter(aggregator, registry, AGENT)
        adapter.scan_and_publish(TOKEN_A)
        second = adapter.scan_and_publish(TOKEN_A)

        assert second.published
        assert not second.registered_now
        assert second.token_id == 0
        assert registry.total_tokens() == 1

    def test_already_registered_by_another_writer(self, aggregator, registry):
        registry.register_token(OWNER, TOKEN_A)
        result = PublishAdapter(aggregator, registry, AGENT).scan_and_publish(TOKEN_A)
        assert result.published
        assert not result.registered_now

    def test_paused_registry_keeps_report(self, aggregator, registry):
        registry.pause(OWNER)
        result = PublishAdapter(aggregator, registry, AGENT).scan_and_publish(TOKEN_A)

        assert not result.published
        assert "paused" in result.error.lower()
        assert result.report.token_address == TOKEN_A
        assert not registry.is_registered(TOKEN_A)

    def test_unauthorized_agent(self, aggregator, registry):
        result = PublishAdapter(aggregator, registry, STRANGER).scan_and_publish(TOKEN_A)
        assert not result.published
        assert result.error == "Not authorized"

    def test_invalid_address_raises(self, aggregator, registry):
        with pytest.raises(InvalidInput):
            PublishAdapter(aggregator, registry, AGENT).scan_and_publish("bogus")

    def test_zero_address_keeps_report(self, aggregator, registry):
        result = PublishAdapter(aggregator, registry, AGENT).scan_and_publish(ZERO_ADDRESS)

        assert not result.published
        assert result.error == "Zero address"
        assert result.report.token_address == ZERO_ADDRESS
        assert registry.total_tokens() == 0

    def test_storage_failure_keeps_report(self, aggregator, clock):
        store = LockedEventStore()
        registry = RiskRegistry(OWNER, authorized=[AGENT], clock=clock, store=store)
        store.locked = True

        result = PublishAdapter(aggregator, registry, AGENT).scan_and_publish(TOKEN_A)

        assert not result.published
        assert "locked" in result.error
        assert result.report.token_address == TOKEN_A
        assert not registry.is_registered(TOKEN_A)

    def test_identity_feedback(self, aggregator, registry):
        identity = InMemoryIdentityRegistry()
        adapter = PublishAdapter(aggregator, registry, AGENT, identity=identity, agent_uri="ipfs://agent",
                                 feedback_endpoint="https://scanner.example/api")
        result = adapter.scan_and_publish(TOKEN_A)
        adapter.scan_and_publish(TOKEN_A)

        assert len(identity.agents) == 1
        assert identity.agents[0]["type"] == "risk-scanner"
        feedback = identity.feedback_for(adapter.agent_id)
        assert len(feedback) == 2
        assert feedback[0].value == result.report.overall_risk
        assert feedback[0].decimals == 0
        assert feedback[0].tag1 == "risk-scan"
        assert feedback[0].tag2 == result.report.risk_level.value
        assert feedback[0].endpoint == "https://scanner.example/api"
        assert feedback[0].uri == "ipfs://agent"
        assert feedback[0].content_hash.startswith("0x") and len(feedback[0].content_hash) == 66

    def test_identity_failure_is_not_fatal(self, aggregator, registry):

        class BrokenIdentity(InMemoryIdentityRegistry):
            def give_feedback(self, *args, **kwargs):
                raise ConnectionError("identity registry down")

        adapter = PublishAdapter(aggregator, registry, AGENT, identity=BrokenIdentity())
        result = adapter.scan_and_publish(TOKEN_A)
        assert result.published
        assert result.error is None
