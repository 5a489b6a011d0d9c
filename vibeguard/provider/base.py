"""
链上数据源接口

每个数据源独立获取；任一失败只会让对应上下文字段为空，
并记录在 ScanContext.unavailable 中。
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
import asyncio
import logging

from vibeguard.models.chain import (
    CreatorStats,
    HolderBalance,
    ScanContext,
    SourceInfo,
    TokenTransfer,
)

logger = logging.getLogger(__name__)


class ChainDataProvider(ABC):
    """链上数据源"""

    @abstractmethod
    def get_bytecode(self, token_address: str) -> Optional[str]:
        """运行时字节码（0x 前缀）"""

    @abstractmethod
    def get_source(self, token_address: str) -> Optional[SourceInfo]:
        """已验证源码"""

    @abstractmethod
    def get_holders(self, token_address: str) -> List[HolderBalance]:
        """持有人列表"""

    @abstractmethod
    def get_transfers(self, token_address: str) -> List[TokenTransfer]:
        """近期转账"""

    @abstractmethod
    def get_creator_stats(self, token_address: str) -> Optional[CreatorStats]:
        """创建者画像；找不到创建者时返回 None"""

    def get_total_supply(self, token_address: str) -> Optional[float]:
        """总供应量；默认未知（由持有人余额估算）"""
        return None

    def _sources(self) -> Dict[str, Callable]:
        return {
            "bytecode": self.get_bytecode,
            "source": self.get_source,
            "holders": self.get_holders,
            "transfers": self.get_transfers,
            "creator": self.get_creator_stats,
            "total_supply": self.get_total_supply,
        }

    async def build_context(self, token_address: str) -> ScanContext:
        """并发获取所有数据源"""
        sources = self._sources()
        results = await asyncio.gather(
            *(asyncio.to_thread(fetch, token_address) for fetch in sources.values()),
            return_exceptions=True,
        )

        data = {}
        unavailable = {}
        for name, result in zip(sources, results):
            if isinstance(result, Exception):
                logger.warning(f"Data source {name} failed for {token_address}: {result}")
                data[name] = None
                unavailable[name] = str(result) or type(result).__name__
            else:
                data[name] = result

        return ScanContext(token_address=token_address, unavailable=unavailable, **data)
