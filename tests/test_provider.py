"""
数据源测试（不访问网络）
"""

import asyncio

from vibeguard.config import Settings
from vibeguard.errors import DataUnavailable
from vibeguard.provider import ExplorerChainDataProvider, StaticChainDataProvider

from tests.conftest import TOKEN_A


class FakeExplorer:
    """按 (module, action) 返回预置结果"""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def call(self, module, action, **params):
        self.calls.append((module, action, params))
        result = self.responses[(module, action)]
        if isinstance(result, Exception):
            raise result
        return result


def make_provider(responses, now=1_700_000_000):
    return ExplorerChainDataProvider(
        config=Settings(rpc_url=None),
        client=FakeExplorer(responses),
        clock=lambda: now,
    )


class TestExplorerProvider:

    def test_source(self):
        provider = make_provider({
            ("contract", "getsourcecode"): [{
                "SourceCode": "contract Token {}",
                "ContractName": "Token",
                "CompilerVersion": "v0.8.20",
            }],
        })
        source = provider.get_source(TOKEN_A)
        assert source.is_verified
        assert source.contract_name == "Token"

    def test_unverified_source(self):
        provider = make_provider({
            ("contract", "getsourcecode"): [{"SourceCode": "", "ContractName": ""}],
        })
        source = provider.get_source(TOKEN_A)
        assert not source.is_verified
        assert source.contract_name is None

    def test_transfers(self):
        provider = make_provider({
            ("account", "tokentx"): [{
                "from": "0x" + "01" * 20,
                "to": "0x" + "02" * 20,
                "value": "1000000",
                "timeStamp": "1699999000",
                "hash": "0xabc",
            }],
        })
        transfers = provider.get_transfers(TOKEN_A)
        assert transfers[0].amount == 1_000_000
        assert transfers[0].timestamp == 1_699_999_000

    def test_creator_stats(self):
        creator = "0x" + "cc" * 20
        provider = make_provider({
            ("contract", "getcontractcreation"): [{"contractCreator": creator}],
            ("account", "txlist"): [
                {"timeStamp": str(1_700_000_000 - 10 * 86400), "to": "", "contractAddress": "0x" + "01" * 20},
                {"timeStamp": str(1_700_000_000 - 86400), "to": "0x" + "02" * 20, "contractAddress": ""},
            ],
            ("account", "balance"): "5000000000000000",
        })
        stats = provider.get_creator_stats(TOKEN_A)
        assert stats.address == creator
        assert stats.wallet_age_days == 10
        assert stats.deployed_contracts == 1
        assert stats.balance == 0.005

    def test_bytecode_via_explorer_proxy(self):
        provider = make_provider({("proxy", "eth_getCode"): "0x6080"})
        assert provider.get_bytecode(TOKEN_A) == "0x6080"

    def test_failed_source_marked_unavailable(self):
        provider = make_provider({
            ("proxy", "eth_getCode"): "0x",
            ("contract", "getsourcecode"): DataUnavailable("explorer", "rate limited"),
            ("token", "tokenholderlist"): [],
            ("account", "tokentx"): [],
            ("contract", "getcontractcreation"): [],
            ("stats", "tokensupply"): "1000",
        })
        context = asyncio.run(provider.build_context(TOKEN_A))
        assert context.source is None
        assert "source" in context.unavailable
        assert context.creator is None
        assert "creator" not in context.unavailable
        assert context.total_supply == 1000


class TestStaticProvider:

    def test_from_file(self, tmp_path):
        path = tmp_path / "fixture.json"
        path.write_text(
            '{"tokens": {"%s": {"bytecode": "0x00", "source": "contract A {}"}}}' % TOKEN_A,
            encoding="utf-8",
        )
        provider = StaticChainDataProvider.from_file(path)
        assert provider.get_bytecode(TOKEN_A) == "0x00"
        assert provider.get_source(TOKEN_A).is_verified
        assert provider.get_holders(TOKEN_A) == []
