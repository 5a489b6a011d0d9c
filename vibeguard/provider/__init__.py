"""
链上数据源

模块：
- base: 数据源接口与并发上下文获取
- static: 静态 / 夹具数据源
- http: 浏览器 HTTP 客户端（限速 + 重试）
- explorer: 浏览器 + RPC 数据源
"""

from vibeguard.provider.base import ChainDataProvider
from vibeguard.provider.static import StaticChainDataProvider
from vibeguard.provider.http import ExplorerClient, RateLimiter
from vibeguard.provider.explorer import ExplorerChainDataProvider

__all__ = [
    "ChainDataProvider",
    "StaticChainDataProvider",
    "ExplorerClient",
    "RateLimiter",
    "ExplorerChainDataProvider",
]
