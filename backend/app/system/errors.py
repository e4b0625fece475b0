"""
导航子系统错误类型

每个错误带 HTTP 状态码和稳定的错误码，路由层据此转换为 HTTPException。
"""
from typing import Any, Dict, Optional

FALLBACK_HINT = "当前将使用静态树"


class NavigationError(Exception):
    """导航相关错误基类"""

    status_code = 500
    code = "NAV_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code:
            self.code = code

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class StoreUnavailableError(NavigationError):
    """存储不可达（连接或配置失败），调用方可回退到内置默认树"""
    status_code = 503
    code = "NAV_DB_UNAVAILABLE"


class StoreEmptyError(NavigationError):
    """存储可达但导航表为空"""
    status_code = 503
    code = "NAV_DB_EMPTY"


class NodeNotFoundError(NavigationError):
    status_code = 404
    code = "NODE_NOT_FOUND"


class ParentNotFoundError(NodeNotFoundError):
    code = "PARENT_NOT_FOUND"


class NodeConflictError(NavigationError):
    status_code = 409
    code = "NODE_EXISTS"


class InvalidTreeError(NavigationError):
    """提交的树或节点操作不合法（重复业务键、模块下挂子节点、循环移动等）"""
    status_code = 400
    code = "INVALID_REQUEST"
