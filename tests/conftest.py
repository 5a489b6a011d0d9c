"""
测试公共夹具
"""

import sqlite3

import pytest

from vibeguard.detectors.evm import compute_selector
from vibeguard.models.chain import ScanContext
from vibeguard.registry import SQLiteEventStore

OWNER = "0x" + "11" * 20
AGENT = "0x" + "22" * 20
STRANGER = "0x" + "33" * 20
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20


def make_code(*signatures, tail: str = "") -> str:
    """用 PUSH4 <selector> 序列拼出字节码，tail 追加原始操作码"""
    body = "".join("63" + compute_selector(sig)[2:] for sig in signatures)
    return "0x" + body + tail


def make_context(token: str = TOKEN_A, **kwargs) -> ScanContext:
    return ScanContext(token_address=token, **kwargs)


class FakeClock:
    """可控时钟"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class LockedEventStore(SQLiteEventStore):
    """locked=True 时写入失败的事件存储"""

    def __init__(self):
        super().__init__(":memory:")
        self.locked = False

    def append(self, event):
        if self.locked:
            raise sqlite3.OperationalError("database is locked")
        super().append(event)
