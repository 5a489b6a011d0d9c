"""
注册表事件日志

追加写事件日志 + 可选的 SQLite 持久化；当前状态是事件的物化投影。
"""

from dataclasses import dataclass, field as dc_field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional
from enum import Enum
import json
import logging
import sqlite3

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """事件类型"""
    TOKEN_REGISTERED = "TokenRegistered"
    RISK_SCORE_UPDATED = "RiskScoreUpdated"
    ALERT_TRIGGERED = "AlertTriggered"
    AGENT_AUTHORIZED = "AgentAuthorized"
    AGENT_REVOKED = "AgentRevoked"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    STALENESS_THRESHOLD_UPDATED = "StalenessThresholdUpdated"


class AlertReason(str, Enum):
    """告警原因"""
    CRITICAL_RISK = "CRITICAL_RISK"
    HONEYPOT_WARNING = "HONEYPOT_WARNING"
    RUG_PULL_WARNING = "RUG_PULL_WARNING"


@dataclass(frozen=True)
class RegistryEvent:
    """注册表事件"""
    sequence: int
    event_type: EventType
    timestamp: float
    actor: Optional[str] = None
    token_address: Optional[str] = None
    token_id: Optional[int] = None
    data: Dict[str, Any] = dc_field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "token_address": self.token_address,
            "token_id": self.token_id,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RegistryEvent":
        return cls(
            sequence=d["sequence"],
            event_type=EventType(d["event_type"]),
            timestamp=d["timestamp"],
            actor=d.get("actor"),
            token_address=d.get("token_address"),
            token_id=d.get("token_id"),
            data=d.get("data") or {},
        )


class SQLiteEventStore:
    """SQLite 事件存储"""

    def __init__(self, db_path: str = "data/registry_events.db"):
        """初始化存储

        Args:
            db_path: 数据库文件路径，":memory:" 表示内存库
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self):
        """创建数据表"""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS registry_events (
                sequence INTEGER PRIMARY KEY,
                event_type TEXT NOT NULL,
                timestamp REAL NOT NULL,
                actor TEXT,
                token_address TEXT,
                token_id INTEGER,
                data TEXT NOT NULL
            )
        """)
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_registry_events_token ON registry_events(token_address)"
        )
        self.conn.commit()

    def append(self, event: RegistryEvent):
        self.conn.execute(
            """
            INSERT INTO registry_events
                (sequence, event_type, timestamp, actor, token_address, token_id, data)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.sequence,
                event.event_type.value,
                event.timestamp,
                event.actor,
                event.token_address,
                event.token_id,
                json.dumps(event.data, sort_keys=True),
            ),
        )
        self.conn.commit()

    def load(self) -> List[RegistryEvent]:
        rows = self.conn.execute("SELECT * FROM registry_events ORDER BY sequence").fetchall()
        return [
            RegistryEvent(
                sequence=row["sequence"],
                event_type=EventType(row["event_type"]),
                timestamp=row["timestamp"],
                actor=row["actor"],
                token_address=row["token_address"],
                token_id=row["token_id"],
                data=json.loads(row["data"]),
            )
            for row in rows
        ]

    def close(self):
        self.conn.close()


class EventLog:
    """追加写事件日志"""

    def __init__(self, store: Optional[SQLiteEventStore] = None):
        self._events: List[RegistryEvent] = []
        self._subscribers: Dict[str, Callable[[RegistryEvent], Any]] = {}
        self.store = store

    def __len__(self) -> int:
        return len(self._events)

    @property
    def next_sequence(self) -> int:
        return len(self._events)

    def subscribe(self, name: str, handler: Callable[[RegistryEvent], Any]):
        """注册事件订阅者"""
        self._subscribers[name] = handler
        logger.info(f"Event subscriber registered: {name}")

    def unsubscribe(self, name: str):
        self._subscribers.pop(name, None)

    def append(self, event: RegistryEvent, persist: bool = True):
        """追加事件；先持久化，失败时内存日志不变"""
        if persist and self.store is not None:
            self.store.append(event)
        self._events.append(event)

    def dispatch(self, event: RegistryEvent):
        """分发给订阅者；订阅者异常只记录不传播"""
        for name, handler in list(self._subscribers.items()):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event dispatch error for {name}: {e}")

    def events(self, token_address: Optional[str] = None,
               event_type: Optional[EventType] = None) -> List[RegistryEvent]:
        result: Iterable[RegistryEvent] = self._events
        if token_address is not None:
            result = [e for e in result if e.token_address == token_address]
        if event_type is not None:
            result = [e for e in result if e.event_type == event_type]
        return list(result)

    def clear(self):
        self._events = []
