"""
VibeGuard 配置

使用 pydantic-settings 从环境变量 / .env 加载配置，
所有变量均以 VIBEGUARD_ 为前缀。
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """应用配置"""

    # 链上数据源
    rpc_url: Optional[str] = Field(
        default=None,
        description="EVM RPC endpoint used for bytecode and balance lookups"
    )

    explorer_api_url: str = Field(
        default="https://api.etherscan.io/api",
        description="Etherscan-compatible explorer API endpoint"
    )

    explorer_api_key: Optional[str] = Field(
        default=None,
        description="Explorer API key"
    )

    explorer_timeout: int = Field(
        default=15,
        description="Explorer HTTP timeout in seconds"
    )

    explorer_max_qps: float = Field(
        default=4.0,
        description="Max explorer requests per second"
    )

    # 扫描
    detector_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Per-detector time limit; unset means wait for every detector"
    )

    scan_history_size: int = Field(
        default=100,
        description="Number of scans kept for stats and threat feed"
    )

    # 注册表
    staleness_threshold_seconds: int = Field(
        default=24 * 3600,
        description="Age after which a published score is reported stale"
    )

    strict_pending_is_safe: bool = Field(
        default=False,
        description="Treat never-scored (PENDING) tokens as unsafe in is_safe"
    )

    event_db_path: Optional[str] = Field(
        default=None,
        description="SQLite file for the registry event log (optional)"
    )

    # 日志
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    class Config:
        env_prefix = "VIBEGUARD_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# 全局配置实例
settings = Settings()
