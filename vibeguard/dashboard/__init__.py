"""
展示层数据

模块：
- scan_feed: 扫描历史、统计与威胁动态
"""

from vibeguard.dashboard.scan_feed import APIResponse, ResponseStatus, ScanFeedAPI, ScanHistory

__all__ = ["APIResponse", "ResponseStatus", "ScanFeedAPI", "ScanHistory"]
