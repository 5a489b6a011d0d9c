"""
配置模块
"""

from vibeguard.config.settings import Settings, settings

__all__ = ["Settings", "settings"]
