"""
代理身份 / 信誉注册表接口

只使用其中两个操作：register_agent 与 give_feedback。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List
import json
import logging

from eth_utils import keccak

from vibeguard.models.risk import AggregateReport

logger = logging.getLogger(__name__)


def report_hash(report: AggregateReport) -> str:
    """报告内容哈希（keccak256，规范化 JSON）"""
    payload = json.dumps(report.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
    return "0x" + keccak(text=payload).hex()


@dataclass
class Feedback:
    """信誉反馈"""
    agent_id: int
    value: int
    decimals: int
    tag1: str
    tag2: str
    endpoint: str = ""
    uri: str = ""
    content_hash: str = ""


class AgentIdentityRegistry(ABC):
    """代理身份注册表"""

    @abstractmethod
    def register_agent(self, wallet: str, agent_type: str, uri: str = "") -> int:
        """注册代理，返回代理 id"""

    @abstractmethod
    def give_feedback(self, agent_id: int, value: int, decimals: int, tag1: str, tag2: str,
                      endpoint: str = "", uri: str = "", content_hash: str = "") -> None:
        """提交一次反馈"""


class InMemoryIdentityRegistry(AgentIdentityRegistry):
    """内存实现（本地运行与测试）"""

    def __init__(self):
        self.agents: Dict[int, Dict[str, Any]] = {}
        self.feedback: List[Feedback] = []

    def register_agent(self, wallet: str, agent_type: str, uri: str = "") -> int:
        for agent_id, agent in self.agents.items():
            if agent["wallet"] == wallet.lower() and agent["type"] == agent_type:
                return agent_id
        agent_id = len(self.agents)
        self.agents[agent_id] = {"wallet": wallet.lower(), "type": agent_type, "uri": uri}
        logger.info(f"Agent registered: {agent_id} ({agent_type})")
        return agent_id

    def give_feedback(self, agent_id: int, value: int, decimals: int, tag1: str, tag2: str,
                      endpoint: str = "", uri: str = "", content_hash: str = "") -> None:
        if agent_id not in self.agents:
            raise KeyError(f"Unknown agent: {agent_id}")
        self.feedback.append(Feedback(agent_id, value, decimals, tag1, tag2, endpoint, uri, content_hash))

    def feedback_for(self, agent_id: int) -> List[Feedback]:
        return [f for f in self.feedback if f.agent_id == agent_id]
