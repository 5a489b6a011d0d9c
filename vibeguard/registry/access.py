"""
访问控制

一个 owner 能力 + 一组授权写入者。owner 在创建时即被授权，
授权/撤销只能由 owner 执行。
"""

from typing import Iterable, Set
import logging

from vibeguard.errors import AuthorizationError, InvalidInput
from vibeguard.models.chain import ZERO_ADDRESS, normalize_address

logger = logging.getLogger(__name__)


def _principal(address: str) -> str:
    address = normalize_address(address)
    if address == ZERO_ADDRESS:
        raise InvalidInput("Zero address")
    return address


class AccessControl:
    """授权写入者集合"""

    def __init__(self, owner: str, authorized: Iterable[str] = ()):
        self.owner = _principal(owner)
        self._authorized: Set[str] = {self.owner}
        for agent in authorized:
            self._authorized.add(_principal(agent))

    def is_owner(self, caller: str) -> bool:
        try:
            return normalize_address(caller) == self.owner
        except InvalidInput:
            return False

    def is_authorized(self, caller: str) -> bool:
        try:
            return normalize_address(caller) in self._authorized
        except InvalidInput:
            return False

    def require_owner(self, caller: str):
        if not self.is_owner(caller):
            raise AuthorizationError("Not owner")

    def require_authorized(self, caller: str):
        if not self.is_authorized(caller):
            raise AuthorizationError("Not authorized")

    @property
    def authorized_agents(self) -> Set[str]:
        return set(self._authorized)

    # 以下两个方法只修改集合，权限检查由注册表负责
    def grant(self, agent: str) -> str:
        agent = _principal(agent)
        self._authorized.add(agent)
        return agent

    def revoke(self, agent: str) -> str:
        agent = _principal(agent)
        self._authorized.discard(agent)
        return agent

    def reset(self, agents: Iterable[str]):
        """重置授权集合（事件重放前使用）"""
        self._authorized = {_principal(agent) for agent in agents}
