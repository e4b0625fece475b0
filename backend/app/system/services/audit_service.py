"""
审计日志服务
记录导航树等关键操作；写日志失败只记本地日志并缓存到内存仓库，不影响主操作
"""
import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.security.context import UserContext
from app.system.models.audit import AuditLog

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _parse_cursor(cursor: str) -> datetime:
    # 游标是上一页最后一条的 ISO 时间戳
    parsed = datetime.fromisoformat(cursor.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


class AuditService:
    """审计日志服务"""

    def __init__(self, db: Session, memory=None):
        self.db = db
        self.memory = memory

    # ---- Write ----

    def create_log(
        self,
        action: str,
        user_id: str = "system",
        user_name: str = "System",
        module: str = "",
        details: str = "",
        status: str = "success",
        ip: str = "",
    ) -> AuditLog:
        log = AuditLog(
            user_id=user_id,
            user_name=user_name,
            action=action,
            module=module,
            details=details,
            status=status,
            ip=ip,
            created_at=datetime.now(UTC),
        )
        self.db.add(log)
        self.db.commit()
        self.db.refresh(log)
        return log

    def log_action(
        self,
        context: Optional[UserContext],
        action: str,
        module: str,
        details: str,
        status: str = "success",
    ) -> Optional[AuditLog]:
        """
        记录一次操作，缺少上下文时记为 System。

        写库失败时回滚、记录错误并把条目放进内存仓库，永不抛出。
        """
        ctx = context or UserContext()
        entry = {
            "user_id": ctx.actor_id,
            "user_name": ctx.actor_name,
            "action": action,
            "module": module,
            "details": details,
            "status": status,
            "ip": ctx.actor_ip,
        }
        try:
            return self.create_log(**entry)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to write audit log '{action}': {e}")
            if self.memory is not None:
                self.memory.record_audit(entry)
            return None

    # ---- Read ----

    def get_recent(self, limit: int = 100) -> List[AuditLog]:
        return (
            self.db.query(AuditLog)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )

    def get_page(self, page: int, page_size: int) -> Tuple[List[AuditLog], int]:
        page = max(1, page)
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        total = self.db.query(AuditLog).count()
        items = (
            self.db.query(AuditLog)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def get_by_cursor(self, page_size: int = 20, cursor: Optional[str] = None) -> Dict[str, Any]:
        """按时间倒序游标分页，cursor 为上一页最后一条的时间戳"""
        size = max(1, min(page_size or 20, MAX_PAGE_SIZE))
        query = self.db.query(AuditLog)
        if cursor:
            query = query.filter(AuditLog.created_at < _parse_cursor(cursor))
        items = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(size).all()
        has_more = len(items) == size
        next_cursor = items[-1].created_at.isoformat() if has_more else None
        return {"items": items, "next_cursor": next_cursor, "has_more": has_more}

    def clear(self) -> int:
        deleted = self.db.query(AuditLog).delete(synchronize_session=False)
        self.db.commit()
        if self.memory is not None:
            deleted += self.memory.clear_audit()
        return deleted

    def buffered_entries(self) -> List[Dict[str, Any]]:
        """内存仓库中未能写库的条目"""
        return self.memory.audit_entries() if self.memory is not None else []

    @staticmethod
    def to_api_dict(log: AuditLog) -> Dict[str, Any]:
        return {
            "id": str(log.id),
            "user_id": log.user_id,
            "user_name": log.user_name,
            "action": log.action,
            "module": log.module,
            "details": log.details,
            "status": log.status,
            "ip": log.ip,
            "timestamp": log.created_at,
        }
