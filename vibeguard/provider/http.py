"""
区块浏览器 HTTP 客户端

Etherscan 兼容 API：按主机限速 + 429/5xx 重试。
"""

from collections import deque
from typing import Any, Dict, Optional
import logging
import random
import threading
import time

import requests

from vibeguard.errors import DataUnavailable

logger = logging.getLogger(__name__)

RETRY_STATUS = (429, 500, 502, 503, 504)


class RateLimiter:
    """滑动窗口限速（每秒请求数）"""

    def __init__(self, max_per_sec: float):
        self.max_per_sec = max(0.1, float(max_per_sec))
        self.window = deque()
        self.lock = threading.Lock()

    def wait(self):
        with self.lock:
            now = time.monotonic()
            while self.window and now - self.window[0] > 1.0:
                self.window.popleft()
            if len(self.window) >= self.max_per_sec:
                time.sleep(max(0.0, 1.0 - (now - self.window[0]) + 0.001))
            self.window.append(time.monotonic())


class ExplorerClient:
    """Etherscan 兼容 API 客户端

    Args:
        api_url: API 地址
        api_key: API key
        max_qps: 每秒最大请求数
        timeout: 单次请求超时（秒）
        retries: 最大重试次数
    """

    def __init__(self, api_url: str, api_key: Optional[str] = None, max_qps: float = 4.0,
                 timeout: int = 15, retries: int = 4, session: Optional[requests.Session] = None):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.retries = retries
        self.limiter = RateLimiter(max_qps)
        self.session = session or requests.Session()

    def get_json(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET 请求，失败时指数退避重试"""
        query = dict(params)
        if self.api_key:
            query["apikey"] = self.api_key

        backoff = 0.5
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            self.limiter.wait()
            try:
                resp = self.session.get(self.api_url, params=query, timeout=self.timeout)
                if resp.status_code in RETRY_STATUS:
                    last_error = requests.HTTPError(f"HTTP {resp.status_code}")
                else:
                    resp.raise_for_status()
                    return resp.json()
            except requests.RequestException as e:
                last_error = e
            logger.debug(f"Explorer request retry {attempt + 1}: {last_error}")
            time.sleep(backoff + random.uniform(0, 0.2))
            backoff = min(backoff * 2, 4.0)

        raise DataUnavailable("explorer", str(last_error))

    def call(self, module: str, action: str, **params) -> Any:
        """调用 API 并返回 result 字段

        status=0 且提示无数据时返回空列表，其余 status=0 视为数据源失败。
        """
        payload = self.get_json({"module": module, "action": action, **params})
        if module == "proxy":
            if "error" in payload:
                raise DataUnavailable(f"{module}.{action}", str(payload["error"]))
            return payload.get("result")

        status = str(payload.get("status", "0"))
        result = payload.get("result")
        if status == "1":
            return result
        message = str(payload.get("message", ""))
        if message.lower().startswith("no ") or "not found" in message.lower():
            return []
        raise DataUnavailable(f"{module}.{action}", f"{message}: {result}")
