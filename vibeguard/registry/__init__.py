"""
风险注册表

模块：
- access: 访问控制（owner + 授权写入者）
- events: 追加写事件日志与 SQLite 存储
- registry: 注册表状态机
"""

from vibeguard.registry.access import AccessControl
from vibeguard.registry.events import (
    AlertReason,
    EventLog,
    EventType,
    RegistryEvent,
    SQLiteEventStore,
)
from vibeguard.registry.registry import (
    FullRiskReport,
    RiskQuery,
    RiskRecord,
    RiskRegistry,
    DEFAULT_STALENESS_SECONDS,
)

__all__ = [
    "AccessControl",
    "AlertReason",
    "EventLog",
    "EventType",
    "RegistryEvent",
    "SQLiteEventStore",
    "FullRiskReport",
    "RiskQuery",
    "RiskRecord",
    "RiskRegistry",
    "DEFAULT_STALENESS_SECONDS",
]
