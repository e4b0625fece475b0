"""
系统管理 ORM 模型
"""
from app.system.models.navigation import NavigationNode
from app.system.models.audit import AuditLog
from app.system.models.config import SysConfig

__all__ = ["NavigationNode", "AuditLog", "SysConfig"]
