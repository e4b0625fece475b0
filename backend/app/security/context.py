"""
请求上下文: 操作人身份与客户端 IP

操作人由前端通过 x-user-id / x-user-name 请求头传入，只用于审计记录，
不做认证和鉴权。
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request

SYSTEM_USER_ID = "system"
SYSTEM_USER_NAME = "System"

# 按优先级排列的代理头
_IP_HEADERS = (
    "x-vercel-forwarded-for",
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
)


@dataclass
class UserContext:
    """
    操作上下文

    Attributes:
        user_id: 操作人ID，缺省为 system
        user_name: 操作人名称
        ip: 客户端IP
    """

    user_id: Optional[str] = None
    user_name: Optional[str] = None
    ip: Optional[str] = None

    @property
    def actor_id(self) -> str:
        return self.user_id or SYSTEM_USER_ID

    @property
    def actor_name(self) -> str:
        return self.user_name or SYSTEM_USER_NAME

    @property
    def actor_ip(self) -> str:
        return self.ip or SYSTEM_USER_ID

    def to_dict(self) -> Dict[str, Any]:
        return {"user_id": self.actor_id, "user_name": self.actor_name, "ip": self.actor_ip}


def _first_value(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def get_client_ip(request: Request) -> str:
    """取代理头中的第一个地址，否则取连接对端地址"""
    ip = None
    for header in _IP_HEADERS:
        ip = _first_value(request.headers.get(header))
        if ip:
            break
    if not ip and request.client:
        ip = request.client.host
    if ip and ip.startswith("::ffff:"):
        ip = ip[7:]
    return ip or "unknown"


def get_user_context(request: Request) -> UserContext:
    """依赖注入：从请求头构建操作上下文"""
    return UserContext(
        user_id=request.headers.get("x-user-id") or None,
        user_name=request.headers.get("x-user-name") or None,
        ip=get_client_ip(request),
    )
