"""
链上输入数据模型

检测器消费的外部上下文：字节码、源码、持有人、转账、创建者信息
"""

import re
from typing import List, Optional, Dict
from pydantic import BaseModel, Field

from vibeguard.errors import InvalidInput


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
ZERO_ADDRESS = "0x" + "0" * 40


def normalize_address(address: str) -> str:
    """校验并规范化地址（小写）

    Raises:
        InvalidInput: 不是 0x + 40 位十六进制
    """
    if not isinstance(address, str) or not ADDRESS_PATTERN.match(address.strip()):
        raise InvalidInput(f"Invalid address: {address!r}")
    return address.strip().lower()


def is_valid_address(address: str) -> bool:
    return isinstance(address, str) and bool(ADDRESS_PATTERN.match(address.strip()))


class SourceInfo(BaseModel):
    """合约源码（区块浏览器验证结果）"""
    source_code: str = Field(default="", description="已验证源码")
    contract_name: Optional[str] = Field(default=None, description="合约名称")
    is_verified: bool = Field(default=False, description="是否已验证")
    compiler_version: Optional[str] = Field(default=None, description="编译器版本")


class HolderBalance(BaseModel):
    """持有人余额"""
    address: str = Field(..., description="持有人地址")
    balance: float = Field(..., ge=0, description="持有数量")


class TokenTransfer(BaseModel):
    """代币转账记录"""
    from_address: str = Field(..., description="发送方")
    to_address: str = Field(..., description="接收方")
    amount: float = Field(..., ge=0, description="转账数量")
    timestamp: int = Field(..., description="Unix 时间戳（秒）")
    tx_hash: Optional[str] = Field(default=None, description="交易哈希")


class CreatorStats(BaseModel):
    """合约创建者画像数据"""
    address: str = Field(..., description="创建者地址")
    wallet_age_days: Optional[float] = Field(default=None, ge=0, description="钱包年龄（天）")
    deployed_contracts: int = Field(default=0, ge=0, description="部署过的合约数量")
    balance: Optional[float] = Field(default=None, ge=0, description="原生代币余额")
    tx_count: Optional[int] = Field(default=None, description="交易数量")


class ScanContext(BaseModel):
    """一次扫描的全部外部上下文

    任一字段为 None 表示对应数据源不可用，原因记录在 unavailable 中。
    """
    token_address: str = Field(..., description="代币地址")
    bytecode: Optional[str] = Field(default=None, description="运行时字节码（0x 前缀）")
    source: Optional[SourceInfo] = Field(default=None, description="源码信息")
    holders: Optional[List[HolderBalance]] = Field(default=None, description="持有人列表")
    transfers: Optional[List[TokenTransfer]] = Field(default=None, description="近期转账")
    creator: Optional[CreatorStats] = Field(default=None, description="创建者画像")
    total_supply: Optional[float] = Field(default=None, description="总供应量")
    unavailable: Dict[str, str] = Field(default_factory=dict, description="不可用数据源及原因")

    @property
    def contract_name(self) -> Optional[str]:
        return self.source.contract_name if self.source else None
