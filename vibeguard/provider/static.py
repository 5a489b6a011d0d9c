"""
静态数据源

从内存字典或 JSON 夹具文件提供上下文，用于测试与离线扫描。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json

from vibeguard.errors import DataUnavailable
from vibeguard.models.chain import (
    CreatorStats,
    HolderBalance,
    SourceInfo,
    TokenTransfer,
    normalize_address,
)
from vibeguard.provider.base import ChainDataProvider


class StaticChainDataProvider(ChainDataProvider):
    """静态数据源

    Args:
        tokens: {地址: {"bytecode", "source", "holders", "transfers", "creator", "total_supply"}}
        failures: {地址: [失败的数据源名称]}，模拟上游故障
    """

    def __init__(self, tokens: Optional[Dict[str, Dict[str, Any]]] = None,
                 failures: Optional[Dict[str, List[str]]] = None):
        self.tokens = {normalize_address(k): v for k, v in (tokens or {}).items()}
        self.failures = {normalize_address(k): set(v) for k, v in (failures or {}).items()}

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticChainDataProvider":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(tokens=data.get("tokens", {}), failures=data.get("failures"))

    def add_token(self, token_address: str, **data):
        self.tokens[normalize_address(token_address)] = data

    def _get(self, token_address: str, source: str) -> Any:
        address = normalize_address(token_address)
        if source in self.failures.get(address, ()):
            raise DataUnavailable(source, "simulated failure")
        return self.tokens.get(address, {}).get(source)

    def get_bytecode(self, token_address: str) -> Optional[str]:
        return self._get(token_address, "bytecode")

    def get_source(self, token_address: str) -> Optional[SourceInfo]:
        source = self._get(token_address, "source")
        if source is None or isinstance(source, SourceInfo):
            return source
        if isinstance(source, str):
            return SourceInfo(source_code=source, is_verified=bool(source.strip()))
        return SourceInfo(**source)

    def get_holders(self, token_address: str) -> List[HolderBalance]:
        holders = self._get(token_address, "holders") or []
        return [h if isinstance(h, HolderBalance) else HolderBalance(**h) for h in holders]

    def get_transfers(self, token_address: str) -> List[TokenTransfer]:
        transfers = self._get(token_address, "transfers") or []
        return [t if isinstance(t, TokenTransfer) else TokenTransfer(**t) for t in transfers]

    def get_creator_stats(self, token_address: str) -> Optional[CreatorStats]:
        creator = self._get(token_address, "creator")
        if creator is None or isinstance(creator, CreatorStats):
            return creator
        return CreatorStats(**creator)

    def get_total_supply(self, token_address: str) -> Optional[float]:
        return self._get(token_address, "total_supply")
