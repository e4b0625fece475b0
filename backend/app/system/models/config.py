"""
系统配置 ORM 模型
- SysConfig: 统一 key-value 配置（全局规范文档、导航同步标记等）
"""
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, Text

from app.database import Base


class SysConfig(Base):
    """系统配置"""
    __tablename__ = "sys_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(200), unique=True, nullable=False, index=True)
    value = Column(Text, default="")
    description = Column(String(500), default="")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))
    updated_by = Column(String(100), nullable=True)
