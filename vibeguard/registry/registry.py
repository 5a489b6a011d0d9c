"""
风险注册表

每个代币一条记录的权威存储：
- 注册（一次性）、评分更新、查询、isSafe
- 访问控制（owner + 授权写入者）
- 熔断（暂停所有写操作）
- 过期判断在读取时计算，不存储

所有操作由同一把可重入锁串行化；状态是事件日志的物化投影，
可通过 replay() 从事件重建。
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional
import logging
import threading
import time

from vibeguard.errors import (
    AlreadyRegistered,
    InvalidInput,
    NotRegistered,
    PausedError,
    ScoreOutOfRange,
)
from vibeguard.models.chain import ZERO_ADDRESS, normalize_address
from vibeguard.models.risk import RiskLevel
from vibeguard.registry.access import AccessControl
from vibeguard.registry.events import (
    AlertReason,
    EventLog,
    EventType,
    RegistryEvent,
    SQLiteEventStore,
)
from vibeguard.scoring.levels import risk_level_for

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_SECONDS = 24 * 3600
NEUTRAL_SCORE = 50

# 告警阈值
CRITICAL_RISK_THRESHOLD = 80
HONEYPOT_THRESHOLD = 70
RUG_PULL_THRESHOLD = 70


@dataclass
class RiskRecord:
    """代币风险记录"""
    token_id: int
    token_address: str
    risk_score: int = NEUTRAL_SCORE
    honeypot_score: int = NEUTRAL_SCORE
    rug_pull_score: int = NEUTRAL_SCORE
    liquidity_score: int = NEUTRAL_SCORE
    last_updated: float = 0.0
    risk_level: str = RiskLevel.PENDING.value

    @property
    def is_pending(self) -> bool:
        return self.risk_level == RiskLevel.PENDING.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "token_address": self.token_address,
            "risk_score": self.risk_score,
            "honeypot_score": self.honeypot_score,
            "rug_pull_score": self.rug_pull_score,
            "liquidity_score": self.liquidity_score,
            "last_updated": self.last_updated,
            "risk_level": self.risk_level,
        }


class RiskQuery(NamedTuple):
    """query_risk 返回值"""
    score: int
    level: str
    last_updated: float
    is_stale: bool


@dataclass(frozen=True)
class FullRiskReport:
    """完整风险报告（读取时视图）"""
    token_id: int
    token_address: str
    risk_score: int
    honeypot_score: int
    rug_pull_score: int
    liquidity_score: int
    last_updated: float
    risk_level: str
    is_active: bool
    is_stale: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_id": self.token_id,
            "token_address": self.token_address,
            "risk_score": self.risk_score,
            "honeypot_score": self.honeypot_score,
            "rug_pull_score": self.rug_pull_score,
            "liquidity_score": self.liquidity_score,
            "last_updated": self.last_updated,
            "risk_level": self.risk_level,
            "is_active": self.is_active,
            "is_stale": self.is_stale,
        }


def _token_address(address: str) -> str:
    address = normalize_address(address)
    if address == ZERO_ADDRESS:
        raise InvalidInput("Zero address")
    return address


def _check_score(name: str, value) -> int:
    # bool 是 int 的子类，需单独排除
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ScoreOutOfRange(name, value)
    return value


class RiskRegistry:
    """风险注册表

    Args:
        owner: owner 地址（同时是第一个授权写入者）
        authorized: 额外的授权写入者
        staleness_threshold: 过期阈值（秒）
        clock: 时间函数（测试可注入）
        store: 可选的 SQLite 事件存储
        strict_pending: 为 True 时，从未评分的代币在 is_safe 中一律视为不安全
    """

    def __init__(
        self,
        owner: str,
        authorized: Iterable[str] = (),
        staleness_threshold: int = DEFAULT_STALENESS_SECONDS,
        clock: Callable[[], float] = time.time,
        store: Optional[SQLiteEventStore] = None,
        strict_pending: bool = False,
    ):
        self.access = AccessControl(owner, authorized)
        self.clock = clock
        self.strict_pending = strict_pending
        self.log = EventLog(store)
        self._lock = threading.RLock()
        self._initial_agents = self.access.authorized_agents
        self._initial_threshold = staleness_threshold
        self._reset_state()

    def _reset_state(self):
        self._records: Dict[str, RiskRecord] = {}
        self._token_ids: Dict[int, str] = {}
        self._next_token_id = 0
        self._paused = False
        self._staleness_threshold = self._initial_threshold
        self.access.reset(self._initial_agents)

    # ------------------------------------------------------------------
    # 只读属性
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self.access.owner

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @property
    def staleness_threshold(self) -> int:
        with self._lock:
            return self._staleness_threshold

    def total_tokens(self) -> int:
        with self._lock:
            return len(self._records)

    def is_registered(self, token_address: str) -> bool:
        try:
            address = normalize_address(token_address)
        except InvalidInput:
            return False
        with self._lock:
            return address in self._records

    def is_authorized(self, agent: str) -> bool:
        with self._lock:
            return self.access.is_authorized(agent)

    def token_id_of(self, token_address: str) -> int:
        return self._get_record(token_address).token_id

    def token_address_of(self, token_id: int) -> str:
        with self._lock:
            try:
                return self._token_ids[token_id]
            except KeyError:
                raise NotRegistered(f"token id {token_id}") from None

    # ------------------------------------------------------------------
    # 写操作
    # ------------------------------------------------------------------

    def register_token(self, caller: str, token_address: str) -> int:
        """注册代币（一次性），返回记录 id

        Raises:
            InvalidInput: 零地址或格式错误
            AlreadyRegistered: 已注册（任何调用方）
            PausedError: 熔断中
            AuthorizationError: 调用方未授权
        """
        address = _token_address(token_address)
        with self._lock:
            if address in self._records:
                raise AlreadyRegistered(address)
            self._require_not_paused()
            self.access.require_authorized(caller)

            event = self._emit(
                EventType.TOKEN_REGISTERED,
                actor=normalize_address(caller),
                token_address=address,
                token_id=self._next_token_id,
            )
            logger.info(f"Token registered: {address} (id={event.token_id})")
            return event.token_id

    def update_risk_score(
        self,
        caller: str,
        token_address: str,
        risk_score: int,
        honeypot_score: int,
        rug_pull_score: int,
        liquidity_score: int,
    ) -> RiskRecord:
        """整体替换评分；至多触发一个告警

        Raises:
            PausedError: 熔断中
            AuthorizationError: 调用方未授权
            NotRegistered: 代币未注册
            ScoreOutOfRange: 任一分数不在 [0, 100]
        """
        with self._lock:
            self._require_not_paused()
            self.access.require_authorized(caller)
            address = normalize_address(token_address)
            record = self._records.get(address)
            if record is None:
                raise NotRegistered(address)

            scores = {
                "risk_score": _check_score("risk_score", risk_score),
                "honeypot_score": _check_score("honeypot_score", honeypot_score),
                "rug_pull_score": _check_score("rug_pull_score", rug_pull_score),
                "liquidity_score": _check_score("liquidity_score", liquidity_score),
            }
            actor = normalize_address(caller)
            level = risk_level_for(risk_score).value
            self._emit(
                EventType.RISK_SCORE_UPDATED,
                actor=actor,
                token_address=address,
                token_id=record.token_id,
                data=dict(scores, risk_level=level),
            )

            reason = self._alert_reason(risk_score, honeypot_score, rug_pull_score)
            if reason is not None:
                self._emit(
                    EventType.ALERT_TRIGGERED,
                    actor=actor,
                    token_address=address,
                    token_id=record.token_id,
                    data={"score": risk_score, "reason": reason.value},
                )
                logger.warning(f"Alert triggered: {address} {reason.value} (score={risk_score})")

            logger.info(f"Risk score updated: {address}, score={risk_score} ({level})")
            return replace(self._records[address])

    def authorize_agent(self, caller: str, agent: str):
        with self._lock:
            self.access.require_owner(caller)
            agent = normalize_address(agent)
            if agent == ZERO_ADDRESS:
                raise InvalidInput("Zero address")
            self._emit(EventType.AGENT_AUTHORIZED, actor=normalize_address(caller), data={"agent": agent})
            logger.info(f"Agent authorized: {agent}")

    def revoke_agent(self, caller: str, agent: str):
        with self._lock:
            self.access.require_owner(caller)
            agent = normalize_address(agent)
            if agent == ZERO_ADDRESS:
                raise InvalidInput("Zero address")
            self._emit(EventType.AGENT_REVOKED, actor=normalize_address(caller), data={"agent": agent})
            logger.info(f"Agent revoked: {agent}")

    def pause(self, caller: str):
        with self._lock:
            self.access.require_owner(caller)
            self._emit(EventType.PAUSED, actor=normalize_address(caller))
            logger.warning("Registry paused")

    def unpause(self, caller: str):
        with self._lock:
            self.access.require_owner(caller)
            self._emit(EventType.UNPAUSED, actor=normalize_address(caller))
            logger.info("Registry unpaused")

    def set_staleness_threshold(self, caller: str, seconds: int):
        with self._lock:
            self.access.require_owner(caller)
            if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
                raise InvalidInput(f"Invalid staleness threshold: {seconds!r}")
            self._emit(
                EventType.STALENESS_THRESHOLD_UPDATED,
                actor=normalize_address(caller),
                data={"seconds": seconds},
            )

    # ------------------------------------------------------------------
    # 读操作
    # ------------------------------------------------------------------

    def query_risk(self, token_address: str) -> RiskQuery:
        """返回 (score, level, last_updated, is_stale)"""
        with self._lock:
            record = self._get_record(token_address)
            return RiskQuery(
                score=record.risk_score,
                level=record.risk_level,
                last_updated=record.last_updated,
                is_stale=self._is_stale(record),
            )

    def get_full_risk_report(self, token_address: str) -> FullRiskReport:
        with self._lock:
            record = self._get_record(token_address)
            return FullRiskReport(
                token_id=record.token_id,
                token_address=record.token_address,
                risk_score=record.risk_score,
                honeypot_score=record.honeypot_score,
                rug_pull_score=record.rug_pull_score,
                liquidity_score=record.liquidity_score,
                last_updated=record.last_updated,
                risk_level=record.risk_level,
                is_active=not self._paused,
                is_stale=self._is_stale(record),
            )

    def is_safe(self, token_address: str, max_risk: int) -> bool:
        """未注册返回 False（不抛异常），否则 risk_score <= max_risk"""
        try:
            address = normalize_address(token_address)
        except InvalidInput:
            return False
        with self._lock:
            record = self._records.get(address)
            if record is None:
                return False
            safe = record.risk_score <= max_risk
            if safe and record.is_pending:
                if self.strict_pending:
                    return False
                logger.warning(
                    f"is_safe passed for never-scored token {address} "
                    f"(default score {record.risk_score} <= {max_risk})"
                )
            return safe

    def history(self, token_address: str) -> List[RegistryEvent]:
        """某代币的全部事件"""
        address = normalize_address(token_address)
        with self._lock:
            return self.log.events(token_address=address)

    def subscribe(self, name: str, handler: Callable[[RegistryEvent], Any]):
        self.log.subscribe(name, handler)

    # ------------------------------------------------------------------
    # 事件投影
    # ------------------------------------------------------------------

    def replay(self, events: Iterable[RegistryEvent]):
        """从事件重建当前状态（不重新持久化、不通知订阅者）"""
        with self._lock:
            self.log.clear()
            self._reset_state()
            for event in sorted(events, key=lambda e: e.sequence):
                self.log.append(event, persist=False)
                self._apply(event)
            logger.info(f"Registry rebuilt from {len(self.log)} events")

    @classmethod
    def restore(cls, owner: str, store: SQLiteEventStore, **kwargs) -> "RiskRegistry":
        """从 SQLite 事件存储恢复注册表"""
        registry = cls(owner, store=store, **kwargs)
        registry.replay(store.load())
        return registry

    def _emit(self, event_type: EventType, actor: Optional[str] = None,
              token_address: Optional[str] = None, token_id: Optional[int] = None,
              data: Optional[Dict[str, Any]] = None) -> RegistryEvent:
        event = RegistryEvent(
            sequence=self.log.next_sequence,
            event_type=event_type,
            timestamp=self.clock(),
            actor=actor,
            token_address=token_address,
            token_id=token_id,
            data=data or {},
        )
        self.log.append(event)
        self._apply(event)
        self.log.dispatch(event)
        return event

    def _apply(self, event: RegistryEvent):
        """把事件应用到投影"""
        t = event.event_type
        if t == EventType.TOKEN_REGISTERED:
            record = RiskRecord(
                token_id=event.token_id,
                token_address=event.token_address,
                last_updated=event.timestamp,
            )
            self._records[event.token_address] = record
            self._token_ids[event.token_id] = event.token_address
            self._next_token_id = max(self._next_token_id, event.token_id + 1)
        elif t == EventType.RISK_SCORE_UPDATED:
            record = self._records[event.token_address]
            record.risk_score = event.data["risk_score"]
            record.honeypot_score = event.data["honeypot_score"]
            record.rug_pull_score = event.data["rug_pull_score"]
            record.liquidity_score = event.data["liquidity_score"]
            record.risk_level = event.data["risk_level"]
            # 时钟回拨时保持单调
            record.last_updated = max(record.last_updated, event.timestamp)
        elif t == EventType.AGENT_AUTHORIZED:
            self.access.grant(event.data["agent"])
        elif t == EventType.AGENT_REVOKED:
            self.access.revoke(event.data["agent"])
        elif t == EventType.PAUSED:
            self._paused = True
        elif t == EventType.UNPAUSED:
            self._paused = False
        elif t == EventType.STALENESS_THRESHOLD_UPDATED:
            self._staleness_threshold = event.data["seconds"]

    # ------------------------------------------------------------------
    # 内部
    # ------------------------------------------------------------------

    def _get_record(self, token_address: str) -> RiskRecord:
        address = normalize_address(token_address)
        with self._lock:
            record = self._records.get(address)
            if record is None:
                raise NotRegistered(address)
            return record

    def _is_stale(self, record: RiskRecord) -> bool:
        return self.clock() - record.last_updated > self._staleness_threshold

    def _require_not_paused(self):
        if self._paused:
            raise PausedError()

    @staticmethod
    def _alert_reason(risk: int, honeypot: int, rug_pull: int) -> Optional[AlertReason]:
        if risk >= CRITICAL_RISK_THRESHOLD:
            return AlertReason.CRITICAL_RISK
        if honeypot >= HONEYPOT_THRESHOLD:
            return AlertReason.HONEYPOT_WARNING
        if rug_pull >= RUG_PULL_THRESHOLD:
            return AlertReason.RUG_PULL_WARNING
        return None
