"""
系统管理 Pydantic schemas
导航节点对外使用 camelCase 字段（labelZh、parentKey、orderedIds），与前端保持一致
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class NodeType(str, Enum):
    FOLDER = "folder"
    MODULE = "module"


class NodeStatus(str, Enum):
    DRAFT = "draft"
    READY = "ready"


# ---- Navigation schemas ----

class NavNode(BaseModel):
    """导航树节点（内存/JSON 形式）"""
    id: str = Field(..., min_length=1, max_length=100)
    label: str = ""
    label_zh: Optional[str] = Field(None, alias="labelZh")
    description: Optional[str] = ""
    type: NodeType = NodeType.MODULE
    status: NodeStatus = NodeStatus.DRAFT
    icon: Optional[str] = ""
    children: Optional[List["NavNode"]] = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def normalize_children(self):
        # 文件夹始终有 children 列表，模块始终没有
        if self.type == NodeType.FOLDER:
            if self.children is None:
                self.children = []
        else:
            if self.children:
                raise ValueError(f"模块节点 '{self.id}' 不能包含子节点")
            self.children = None
        return self


class NavNodeCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=100)
    parent_key: Optional[str] = Field(None, alias="parentKey")
    label: str = ""
    label_zh: Optional[str] = Field(None, alias="labelZh")
    description: Optional[str] = None
    type: NodeType = NodeType.MODULE
    status: Optional[NodeStatus] = None
    icon: Optional[str] = None

    model_config = {"populate_by_name": True}


class NavNodeUpdate(BaseModel):
    label: Optional[str] = None
    label_zh: Optional[str] = Field(None, alias="labelZh")
    description: Optional[str] = None
    status: Optional[NodeStatus] = None
    icon: Optional[str] = None

    model_config = {"populate_by_name": True}


class NavMoveRequest(BaseModel):
    key: str = Field(..., min_length=1)
    parent_key: Optional[str] = Field(None, alias="parentId")
    sort_order: Optional[int] = Field(None, alias="sortOrder", ge=0)

    model_config = {"populate_by_name": True}


class NavReorderRequest(BaseModel):
    parent_key: Optional[str] = Field(None, alias="parentId")
    ordered_keys: List[str] = Field(..., alias="orderedIds")

    model_config = {"populate_by_name": True}


class SyncStatusResponse(BaseModel):
    in_progress: bool = Field(False, alias="inProgress")
    started_at: Optional[str] = Field(None, alias="startedAt")
    started_by: Optional[str] = Field(None, alias="startedBy")

    model_config = {"populate_by_name": True}


class StandardsUpdate(BaseModel):
    content: str = ""


# ---- Audit log schemas ----

class AuditLogCreate(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")
    user_name: Optional[str] = Field(None, alias="userName")
    action: str = Field(..., min_length=1, max_length=100)
    module: str = ""
    details: str = ""
    status: str = Field("success", pattern="^(success|failed)$")
    ip: Optional[str] = None

    model_config = {"populate_by_name": True}


class AuditLogResponse(BaseModel):
    id: str
    user_id: str = Field(..., alias="userId")
    user_name: Optional[str] = Field(None, alias="userName")
    action: str
    module: Optional[str] = ""
    details: Optional[str] = ""
    status: str = "success"
    ip: Optional[str] = ""
    timestamp: Optional[datetime] = None

    model_config = {"populate_by_name": True}


class AuditLogPage(BaseModel):
    items: List[AuditLogResponse]
    total: int


class AuditLogCursorPage(BaseModel):
    items: List[AuditLogResponse]
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
    has_more: bool = Field(False, alias="hasMore")

    model_config = {"populate_by_name": True}
