"""
异常定义

- DataUnavailable: 上游数据源失败，检测器以中性默认值降级
- InvalidInput: 输入格式错误，在任何检测器运行前拒绝
- RegistryError: 注册表操作失败（原子性，不修改状态）
"""


class VibeGuardError(Exception):
    """所有 VibeGuard 异常的基类"""


class DataUnavailable(VibeGuardError):
    """上游数据源不可用"""

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        message = f"{source} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidInput(VibeGuardError, ValueError):
    """输入不合法（地址格式等）"""


class RegistryError(VibeGuardError):
    """注册表错误基类"""


class AuthorizationError(RegistryError):
    """调用方未授权"""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class StateError(RegistryError):
    """状态不满足操作前置条件"""


class AlreadyRegistered(StateError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Already registered: {address}")


class NotRegistered(StateError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Token not registered: {address}")


class ScoreOutOfRange(StateError):
    def __init__(self, name: str, value):
        self.name = name
        self.value = value
        super().__init__(f"Score out of range: {name}={value!r}")


class PausedError(RegistryError):
    """熔断开启，拒绝写操作"""

    def __init__(self, message: str = "Registry is paused"):
        super().__init__(message)
