"""
内存仓库: 存储不可用时的回退数据

进程启动时构建一次，通过 app.state 注入到需要回退的组件：
- 内置默认导航树（前端在 NAV_DB_UNAVAILABLE / NAV_DB_EMPTY 时使用）
- 写库失败的审计日志（有上限，最旧的先丢弃）
"""
import copy
import threading
from collections import deque
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from fastapi import Request

from app.system.services.navigation_seed import default_nav_tree, DEFAULT_GLOBAL_STANDARDS


class MemoryRepository:
    """进程内回退存储，线程安全"""

    def __init__(self, audit_limit: int = 1000, nav_tree: Optional[List[Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._nav_tree = nav_tree if nav_tree is not None else default_nav_tree()
        self._audit_entries: deque = deque(maxlen=audit_limit)
        self._next_audit_id = 1

    def default_navigation(self) -> List[Dict[str, Any]]:
        """Copy of the bundled navigation tree."""
        with self._lock:
            return copy.deepcopy(self._nav_tree)

    def default_standards(self) -> str:
        return DEFAULT_GLOBAL_STANDARDS

    def record_audit(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            stored = dict(entry)
            stored["id"] = f"mem-{self._next_audit_id}"
            stored.setdefault("timestamp", datetime.now(UTC))
            self._next_audit_id += 1
            self._audit_entries.append(stored)
            return stored

    def audit_entries(self) -> List[Dict[str, Any]]:
        """Buffered audit entries, newest first."""
        with self._lock:
            return list(reversed(self._audit_entries))

    def clear_audit(self) -> int:
        with self._lock:
            count = len(self._audit_entries)
            self._audit_entries.clear()
            return count


def get_memory_repository(request: Request) -> MemoryRepository:
    """依赖注入：获取启动时创建的内存仓库"""
    return request.app.state.memory
