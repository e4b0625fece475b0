"""
审计日志 API 路由
前缀: /logs/audit
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.security.context import UserContext, get_user_context
from app.system.memory import MemoryRepository, get_memory_repository
from app.system.schemas import AuditLogCreate, AuditLogCursorPage, AuditLogPage, AuditLogResponse
from app.system.services.audit_service import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs/audit", tags=["审计日志"])


@router.get("")
def list_logs(
    page: Optional[int] = Query(None, ge=1),
    page_size: Optional[int] = Query(None, alias="pageSize", ge=1),
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
):
    """获取审计日志：带 page/pageSize 时分页返回 {items, total}，否则返回最近 100 条"""
    service = AuditService(db, memory=memory)
    try:
        if page and page_size:
            items, total = service.get_page(page, page_size)
            return AuditLogPage(
                items=[AuditLogResponse(**service.to_api_dict(log)) for log in items],
                total=total,
            )
        return [AuditLogResponse(**service.to_api_dict(log)) for log in service.get_recent()]
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Audit log store unavailable, serving buffered entries: {e}")
        buffered = [AuditLogResponse(**entry) for entry in service.buffered_entries()]
        if page and page_size:
            return AuditLogPage(items=buffered, total=len(buffered))
        return buffered


@router.get("/paged", response_model=AuditLogCursorPage)
def list_logs_by_cursor(
    page_size: int = Query(20, alias="pageSize", ge=1),
    cursor: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """按时间游标分页"""
    service = AuditService(db)
    try:
        result = service.get_by_cursor(page_size, cursor)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_REQUEST", "message": "cursor 格式错误", "details": {}},
        )
    return AuditLogCursorPage(
        items=[AuditLogResponse(**service.to_api_dict(log)) for log in result["items"]],
        next_cursor=result["next_cursor"],
        has_more=result["has_more"],
    )


@router.post("", response_model=AuditLogResponse)
def create_log(
    data: AuditLogCreate,
    db: Session = Depends(get_db),
    context: UserContext = Depends(get_user_context),
):
    """写入一条审计日志（前端记录的操作）"""
    service = AuditService(db)
    log = service.create_log(
        action=data.action,
        user_id=data.user_id or context.actor_id,
        user_name=data.user_name or context.actor_name,
        module=data.module,
        details=data.details,
        status=data.status,
        ip=data.ip or context.actor_ip,
    )
    return AuditLogResponse(**service.to_api_dict(log))


@router.delete("")
def clear_logs(
    db: Session = Depends(get_db),
    memory: MemoryRepository = Depends(get_memory_repository),
    context: UserContext = Depends(get_user_context),
):
    """清空审计日志，并记录一条清空操作"""
    service = AuditService(db, memory=memory)
    deleted = service.clear()
    service.log_action(
        context, "Clear Audit Logs", "Audit Logs", f"Cleared {deleted} audit log entries"
    )
    return {"success": True, "deleted": deleted}
