"""
发布

模块：
- adapter: 扫描并发布到风险注册表
- identity: 代理身份 / 信誉注册表接口
"""

from vibeguard.publish.adapter import PublishAdapter, PublishResult
from vibeguard.publish.identity import (
    AgentIdentityRegistry,
    InMemoryIdentityRegistry,
    Feedback,
    report_hash,
)

__all__ = [
    "PublishAdapter",
    "PublishResult",
    "AgentIdentityRegistry",
    "InMemoryIdentityRegistry",
    "Feedback",
    "report_hash",
]
