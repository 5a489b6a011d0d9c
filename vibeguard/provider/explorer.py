"""
区块浏览器 + RPC 数据源

- 源码 / 持有人 / 转账 / 创建者：Etherscan 兼容 API
- 字节码 / 余额 / 总供应量：配置了 RPC 时走 web3，否则走浏览器 proxy 接口
"""

from typing import List, Optional
import logging
import time

from eth_abi import decode
from eth_utils import to_checksum_address
from web3 import Web3

from vibeguard.config import Settings, settings as default_settings
from vibeguard.detectors.evm import compute_selector
from vibeguard.models.chain import CreatorStats, HolderBalance, SourceInfo, TokenTransfer
from vibeguard.provider.base import ChainDataProvider
from vibeguard.provider.http import ExplorerClient

logger = logging.getLogger(__name__)

WEI_PER_ETHER = 10 ** 18
SECONDS_PER_DAY = 86400


class ExplorerChainDataProvider(ChainDataProvider):
    """Etherscan 兼容浏览器 + 可选 RPC"""

    def __init__(self, config: Optional[Settings] = None, client: Optional[ExplorerClient] = None,
                 w3: Optional[Web3] = None, transfer_limit: int = 200, clock=time.time):
        config = config or default_settings
        self.client = client or ExplorerClient(
            api_url=config.explorer_api_url,
            api_key=config.explorer_api_key,
            max_qps=config.explorer_max_qps,
            timeout=config.explorer_timeout,
        )
        if w3 is None and config.rpc_url:
            w3 = Web3(Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.explorer_timeout}))
        self.w3 = w3
        self.transfer_limit = transfer_limit
        self.clock = clock

    def get_bytecode(self, token_address: str) -> Optional[str]:
        if self.w3 is not None:
            code = self.w3.eth.get_code(to_checksum_address(token_address))
            return "0x" + bytes(code).hex()
        return self.client.call("proxy", "eth_getCode", address=token_address, tag="latest")

    def get_source(self, token_address: str) -> Optional[SourceInfo]:
        result = self.client.call("contract", "getsourcecode", address=token_address)
        if not result:
            return None
        entry = result[0]
        code = entry.get("SourceCode") or ""
        return SourceInfo(
            source_code=code,
            contract_name=entry.get("ContractName") or None,
            is_verified=bool(code.strip()),
            compiler_version=entry.get("CompilerVersion") or None,
        )

    def get_holders(self, token_address: str) -> List[HolderBalance]:
        result = self.client.call(
            "token", "tokenholderlist", contractaddress=token_address, page=1, offset=100
        )
        return [
            HolderBalance(address=h["TokenHolderAddress"], balance=float(h["TokenHolderQuantity"]))
            for h in result or []
        ]

    def get_transfers(self, token_address: str) -> List[TokenTransfer]:
        result = self.client.call(
            "account", "tokentx", contractaddress=token_address,
            page=1, offset=self.transfer_limit, sort="desc",
        )
        return [
            TokenTransfer(
                from_address=t["from"],
                to_address=t["to"],
                amount=float(t["value"]),
                timestamp=int(t["timeStamp"]),
                tx_hash=t.get("hash"),
            )
            for t in result or []
        ]

    def get_creator_stats(self, token_address: str) -> Optional[CreatorStats]:
        creation = self.client.call("contract", "getcontractcreation", contractaddresses=token_address)
        if not creation:
            return None
        creator = creation[0]["contractCreator"]

        txs = self.client.call(
            "account", "txlist", address=creator, startblock=0, endblock=99999999,
            page=1, offset=1000, sort="asc",
        ) or []
        age_days = None
        if txs:
            age_days = max(0.0, (self.clock() - int(txs[0]["timeStamp"])) / SECONDS_PER_DAY)
        deployed = sum(1 for tx in txs if not tx.get("to") and tx.get("contractAddress"))

        return CreatorStats(
            address=creator,
            wallet_age_days=age_days,
            deployed_contracts=deployed,
            balance=self._native_balance(creator),
            tx_count=len(txs),
        )

    def get_total_supply(self, token_address: str) -> Optional[float]:
        if self.w3 is not None:
            raw = self.w3.eth.call({
                "to": to_checksum_address(token_address),
                "data": compute_selector("totalSupply()"),
            })
            (supply,) = decode(["uint256"], bytes(raw))
            return float(supply)
        result = self.client.call("stats", "tokensupply", contractaddress=token_address)
        return float(result) if result not in (None, [], "") else None

    def _native_balance(self, address: str) -> Optional[float]:
        if self.w3 is not None:
            wei = self.w3.eth.get_balance(to_checksum_address(address))
        else:
            wei = int(self.client.call("account", "balance", address=address, tag="latest"))
        return wei / WEI_PER_ETHER
