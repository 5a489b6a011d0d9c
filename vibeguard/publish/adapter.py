"""
扫描并发布

聚合 -> (未注册则注册) -> 更新评分。
发布失败不会使已经算出的报告失效，失败原因放在 PublishResult.error 中。
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import asyncio
import logging
import sqlite3

from vibeguard.errors import AlreadyRegistered, VibeGuardError
from vibeguard.models.chain import normalize_address
from vibeguard.models.risk import AggregateReport
from vibeguard.publish.identity import AgentIdentityRegistry, report_hash
from vibeguard.registry.registry import RiskRegistry
from vibeguard.scoring.aggregator import RiskAggregator

logger = logging.getLogger(__name__)

AGENT_TYPE = "risk-scanner"
FEEDBACK_TAG = "risk-scan"
# 风险分是 0-100 的整数
FEEDBACK_DECIMALS = 0


@dataclass
class PublishResult:
    """发布结果"""
    report: AggregateReport
    published: bool = False
    registered_now: bool = False
    token_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report": self.report.to_dict(),
            "published": self.published,
            "registered_now": self.registered_now,
            "token_id": self.token_id,
            "error": self.error,
        }


class PublishAdapter:
    """扫描并发布到注册表

    Args:
        aggregator: 风险聚合器
        registry: 风险注册表
        agent: 本扫描代理的写入者地址
        identity: 可选的代理身份注册表
        agent_uri: 注册身份时使用的 URI
        feedback_endpoint: 反馈中附带的服务端点
    """

    def __init__(self, aggregator: RiskAggregator, registry: RiskRegistry, agent: str,
                 identity: Optional[AgentIdentityRegistry] = None, agent_uri: str = "",
                 feedback_endpoint: str = ""):
        self.aggregator = aggregator
        self.registry = registry
        self.agent = normalize_address(agent)
        self.identity = identity
        self.agent_uri = agent_uri
        self.feedback_endpoint = feedback_endpoint
        self.agent_id: Optional[int] = None

    def scan_and_publish(self, token_address: str) -> PublishResult:
        return asyncio.run(self.scan_and_publish_async(token_address))

    async def scan_and_publish_async(self, token_address: str) -> PublishResult:
        """扫描并发布

        Raises:
            InvalidInput: 地址格式错误（扫描前）
        """
        report = await self.aggregator.aggregate_async(token_address)
        return self.publish(report)

    def publish(self, report: AggregateReport) -> PublishResult:
        """两阶段发布：注册（幂等）后更新"""
        result = PublishResult(report=report)
        address = report.token_address

        try:
            if not self.registry.is_registered(address):
                try:
                    result.token_id = self.registry.register_token(self.agent, address)
                    result.registered_now = True
                except AlreadyRegistered:
                    # 并发注册竞争，继续更新
                    logger.debug(f"Token registered concurrently: {address}")
            if result.token_id is None:
                result.token_id = self.registry.token_id_of(address)

            self.registry.update_risk_score(
                self.agent,
                address,
                report.overall_risk,
                report.honeypot,
                report.rug_pull,
                report.liquidity_health,
            )
            result.published = True
        except (VibeGuardError, sqlite3.Error) as e:
            # 注册表拒绝或事件持久化失败，报告仍然返回
            logger.error(f"Publish failed for {address}: {e}")
            result.error = str(e)
            return result

        self._send_feedback(report)
        logger.info(f"Published {address}: score={report.overall_risk} ({report.risk_level.value})")
        return result

    def _send_feedback(self, report: AggregateReport):
        if self.identity is None:
            return
        try:
            if self.agent_id is None:
                self.agent_id = self.identity.register_agent(self.agent, AGENT_TYPE, self.agent_uri)
            self.identity.give_feedback(
                self.agent_id,
                report.overall_risk,
                FEEDBACK_DECIMALS,
                FEEDBACK_TAG,
                report.risk_level.value,
                endpoint=self.feedback_endpoint,
                uri=self.agent_uri,
                content_hash=report_hash(report),
            )
        except Exception as e:
            logger.warning(f"Identity feedback failed for {report.token_address}: {e}")
