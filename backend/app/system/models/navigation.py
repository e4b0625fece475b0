"""
导航树 ORM 模型
每个节点一行：整型主键 + 业务键 key，父节点通过 parent_id 自引用
"""
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text

from app.database import Base


class NavigationNode(Base):
    __tablename__ = "navigation_nodes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True, comment="业务键")
    label = Column(String(200), nullable=False, default="", comment="名称")
    label_zh = Column(String(200), default="", comment="中文名称")
    type = Column(String(20), nullable=False, default="module", comment="类型: folder|module")
    status = Column(String(20), nullable=False, default="draft", comment="状态: draft|ready")
    icon = Column(String(50), default="", comment="图标名称")
    description = Column(Text, default="", comment="描述")
    parent_id = Column(
        Integer,
        ForeignKey("navigation_nodes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="父节点ID，为空表示根节点",
    )
    sort_order = Column(Integer, nullable=False, default=0, comment="同级排序")
    created_by = Column(String(100), default="system")
    updated_by = Column(String(100), default="system")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    def __repr__(self):
        return f"<NavigationNode {self.key} parent={self.parent_id} order={self.sort_order}>"
