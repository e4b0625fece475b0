"""
审计日志 ORM 模型
记录导航树等关键数据的变更
"""
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, Text

from app.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(100), nullable=False, default="system", index=True)
    user_name = Column(String(100), default="System")
    action = Column(String(100), nullable=False, index=True)   # 操作名称，如 Add Node
    module = Column(String(100), default="")                   # 所属功能模块
    details = Column(Text, default="")
    status = Column(String(20), default="success")             # success | failed
    ip = Column(String(64), default="")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.user_id}>"
