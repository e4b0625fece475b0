"""
导航树 API 路由
前缀: /navigation
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.security.context import UserContext, get_user_context
from app.system.errors import NavigationError
from app.system.memory import MemoryRepository, get_memory_repository
from app.system.schemas import (
    NavMoveRequest,
    NavNode,
    NavNodeCreate,
    NavNodeUpdate,
    NavReorderRequest,
    StandardsUpdate,
    SyncStatusResponse,
)
from app.system.services.audit_service import AuditService
from app.system.services.config_service import ConfigService
from app.system.services.navigation_service import AUDIT_MODULE, NavigationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/navigation", tags=["导航树"])


def _service(db: Session, memory: MemoryRepository) -> NavigationService:
    return NavigationService(db, audit=AuditService(db, memory=memory))


def _to_http(e: Exception) -> HTTPException:
    """服务层错误 → HTTPException"""
    if isinstance(e, NavigationError):
        return HTTPException(status_code=e.status_code, detail=e.to_detail())
    logger.error(f"Navigation store error: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"code": "STORE_ERROR", "message": "存储操作失败", "details": {}},
    )


# ---- Tree ----

@router.get("", response_model=List[NavNode])
def get_navigation(
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
):
    """获取完整导航树"""
    try:
        return _service(db, memory).get_navigation()
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)


@router.get("/default", response_model=List[NavNode])
def get_default_navigation(memory: MemoryRepository = Depends(get_memory_repository)):
    """内置默认导航树（存储不可用或为空时前端回退使用）"""
    return memory.default_navigation()


@router.get("/sync-status", response_model=SyncStatusResponse)
def get_sync_status(db: Session = Depends(get_db)):
    """导航同步标记；in_progress 为真且无同步在跑，说明上次同步中途退出"""
    service = NavigationService(db)
    return SyncStatusResponse(**service.get_sync_status())


@router.post("")
def update_navigation(
    tree: List[NavNode],
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """提交整棵导航树，全量同步"""
    try:
        _service(db, memory).sync_navigation(tree, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)
    return {"success": True}


@router.post("/reseed")
def reseed_navigation(
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """用内置默认树覆盖当前导航树"""
    try:
        _service(db, memory).reseed(context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)
    return {"success": True}


# ---- Atomic node operations ----

@router.post("/nodes", response_model=NavNode)
def add_node(
    data: NavNodeCreate,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """新增节点（追加到同级末尾）"""
    try:
        return _service(db, memory).add_node(data, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)


@router.patch("/nodes/{key}", response_model=NavNode)
def update_node(
    key: str,
    data: NavNodeUpdate,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """修改节点名称、描述、状态、图标（未传字段保持不变）"""
    try:
        return _service(db, memory).update_node(key, data, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)


@router.delete("/nodes/{key}")
def delete_node(
    key: str,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """删除节点及其子孙节点"""
    try:
        _service(db, memory).delete_node(key, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)
    return {"success": True}


@router.post("/move")
def move_node(
    data: NavMoveRequest,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """移动节点（修改父节点和排序）"""
    try:
        _service(db, memory).move_node(data.key, data.parent_key, data.sort_order, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)
    return {"success": True}


@router.post("/reorder")
def reorder_nodes(
    data: NavReorderRequest,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """批量调整同级节点顺序"""
    try:
        _service(db, memory).reorder_nodes(data.parent_key, data.ordered_keys, context)
    except (NavigationError, SQLAlchemyError) as e:
        raise _to_http(e)
    return {"success": True}


# ---- Global standards ----

@router.get("/standards")
def get_standards(
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
):
    """全局架构与开发规范"""
    try:
        return ConfigService(db).get_global_standards(default=memory.default_standards())
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Global standards unavailable, serving bundled default: {e}")
        return memory.default_standards()


@router.post("/standards")
def update_standards(
    data: StandardsUpdate,
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """更新全局规范"""
    try:
        ConfigService(db).update_global_standards(data.content, updated_by=context.actor_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise _to_http(e)
    AuditService(db, memory=memory).log_action(
        context, "Update Standards", AUDIT_MODULE, "Updated global standards"
    )
    return {"success": True}
