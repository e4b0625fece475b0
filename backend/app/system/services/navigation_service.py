"""
导航树 Service

- 读取：扁平行 → 树
- 全量同步：删除缺失节点 → 按业务键 upsert → 第二遍回填 parent_id
- 原子操作：新增 / 修改 / 删除 / 移动 / 排序单个节点

每个写操作成功后追加一条审计日志。
"""
import json
import logging
from datetime import datetime, UTC
from typing import Dict, List, Optional, Set

from sqlalchemy import column, select, table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.security.context import UserContext
from app.system.errors import (
    FALLBACK_HINT,
    InvalidTreeError,
    NodeConflictError,
    NodeNotFoundError,
    ParentNotFoundError,
    StoreEmptyError,
    StoreUnavailableError,
)
from app.system.models.navigation import NavigationNode
from app.system.schemas import NavNode, NavNodeCreate, NavNodeUpdate, NodeStatus, NodeType
from app.system.services.audit_service import AuditService
from app.system.services.config_service import ConfigService
from app.system.services.navigation_seed import default_nav_tree
from app.system.services.navigation_tree import FlatNode, build_tree, flatten_tree, row_to_node

logger = logging.getLogger(__name__)

AUDIT_MODULE = "System Settings"
SYNC_MARKER_KEY = "navigation.sync_in_progress"

# 允许在列缺失时剔除后重试的可选列
OPTIONAL_COLUMNS = ("description",)

# upsert 命中已有行时不覆盖的列
INSERT_ONLY_COLUMNS = ("key", "created_at")

UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

DEFAULT_ICONS = {
    NodeType.FOLDER: "folder",
    NodeType.MODULE: "box",
}


def _missing_optional_column(exc: DBAPIError) -> Optional[str]:
    """识别“可选列不存在”类错误，返回列名"""
    message = str(getattr(exc, "orig", exc)).lower()
    if not any(p in message for p in ("does not exist", "no column named", "no such column")):
        return None
    for column in OPTIONAL_COLUMNS:
        if column in message:
            return column
    return None


def _upsert_target(names):
    """只含给定列的轻量表，不带列默认值，避免 INSERT 引用库里不存在的列"""
    columns = NavigationNode.__table__.c
    return table(
        NavigationNode.__tablename__,
        column("id", columns.id.type),
        *[column(name, columns[name].type) for name in names],
    )


class NavigationService:
    """导航树服务"""

    def __init__(self, db: Session, audit: Optional[AuditService] = None,
                 append_sort_order: Optional[int] = None):
        self.db = db
        self.audit = audit or AuditService(db)
        self.append_sort_order = (
            append_sort_order if append_sort_order is not None else settings.NAV_APPEND_SORT_ORDER
        )
        # 本次会话中已确认库里不存在的可选列
        self.missing_columns: Set[str] = set()

    # ---- Read ----

    def get_navigation(self) -> List[NavNode]:
        try:
            rows = self._load_rows()
        except (OperationalError, InterfaceError) as e:
            self.db.rollback()
            logger.error(f"Navigation store unavailable: {e}")
            raise StoreUnavailableError(
                "导航树数据库不可用", details={"hint": FALLBACK_HINT, "error": str(e.orig)}
            ) from e

        if not rows:
            raise StoreEmptyError("导航树数据库为空", details={"hint": FALLBACK_HINT})

        return build_tree(rows)

    def _load_rows(self) -> List:
        """按列名查询全部节点；可选列缺失时记录警告并去掉该列重查"""
        try:
            return self._select_rows()
        except DBAPIError as e:
            missing = _missing_optional_column(e)
            if missing is None:
                raise
            self.db.rollback()
            logger.warning(f"Column '{missing}' missing on navigation_nodes, reading without it")
            self.missing_columns.add(missing)
            return self._select_rows()

    def _select_rows(self) -> List:
        columns = NavigationNode.__table__.c
        stmt = (
            select(*[c for c in columns if c.name not in self.missing_columns])
            .order_by(columns.sort_order, columns.id)
        )
        return self.db.execute(stmt).all()

    def get_sync_status(self) -> Dict[str, Optional[str]]:
        marker = ConfigService(self.db).get_json(SYNC_MARKER_KEY)
        if not marker:
            return {"in_progress": False, "started_at": None, "started_by": None}
        return {
            "in_progress": True,
            "started_at": marker.get("started_at"),
            "started_by": marker.get("started_by"),
        }

    # ---- Full tree synchronization ----

    def sync_navigation(self, tree: List[NavNode], context: Optional[UserContext] = None) -> Dict[str, int]:
        """
        让库中状态与提交的整棵树完全一致。

        删除、upsert 和 parent_id 回填在同一个事务里，任何存储错误都会整体回滚并向上抛出。
        同步开始前单独提交一个进行中标记，事务内清除；进程中途退出时标记会残留，
        可通过 get_sync_status 发现并重新同步。

        Returns:
            业务键 → 生成的整型ID
        """
        flat = flatten_tree(tree)
        actor = (context or UserContext()).actor_id

        self._mark_sync_started(actor)
        try:
            key_to_id = self._apply_sync(flat, actor)
            ConfigService(self.db).set_value(SYNC_MARKER_KEY, "", commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._clear_marker_after_failure()
            raise

        logger.info(f"Navigation synchronized: {len(flat)} nodes")
        self.audit.log_action(context, "Update Navigation", AUDIT_MODULE, "Updated navigation tree")
        return key_to_id

    def reseed(self, context: Optional[UserContext] = None) -> Dict[str, int]:
        """用内置默认树覆盖当前导航树"""
        tree = [NavNode.model_validate(n) for n in default_nav_tree()]
        return self.sync_navigation(tree, context)

    def _apply_sync(self, flat: List[FlatNode], actor: str) -> Dict[str, int]:
        existing = {
            row.key: row
            for row in self.db.query(
                NavigationNode.id, NavigationNode.key, NavigationNode.created_by
            ).all()
        }
        new_keys = [item.key for item in flat]
        new_key_set = set(new_keys)
        to_delete = [key for key in existing if key not in new_key_set]

        if to_delete:
            doomed_ids = [existing[key].id for key in to_delete]
            # 先把要保留的子节点挂到根上，避免被级联删除；第二遍会重新挂回
            self.db.query(NavigationNode).filter(
                NavigationNode.parent_id.in_(doomed_ids),
                NavigationNode.key.in_(new_keys),
            ).update({NavigationNode.parent_id: None}, synchronize_session=False)
            self.db.query(NavigationNode).filter(
                NavigationNode.key.in_(to_delete)
            ).delete(synchronize_session=False)
            logger.info(f"Deleted {len(to_delete)} navigation nodes: {to_delete}")

        now = datetime.now(UTC)
        key_to_id: Dict[str, int] = {}
        for item in flat:
            prior = existing.get(item.key)
            node = item.node
            values = {
                "key": item.key,
                "label": node.label,
                "label_zh": node.label_zh or "",
                "type": node.type.value,
                "status": node.status.value,
                "icon": node.icon or "",
                "description": node.description or "",
                "sort_order": item.order,
                "created_by": prior.created_by if prior and prior.created_by else actor,
                "updated_by": actor,
                "created_at": now,
                "updated_at": now,
            }
            key_to_id[item.key] = self._upsert_node(values)

        for item in flat:
            parent_id = key_to_id.get(item.parent_key) if item.parent_key else None
            self.db.query(NavigationNode).filter(
                NavigationNode.key == item.key
            ).update({NavigationNode.parent_id: parent_id}, synchronize_session=False)

        return key_to_id

    def _upsert_node(self, values: Dict) -> int:
        values = {k: v for k, v in values.items() if k not in self.missing_columns}
        try:
            return self._execute_upsert(values)
        except DBAPIError as e:
            missing = _missing_optional_column(e)
            if missing is None or missing not in values:
                raise
            logger.warning(f"Column '{missing}' missing on navigation_nodes, retrying upsert without it")
            self.missing_columns.add(missing)
            retry_values = {k: v for k, v in values.items() if k != missing}
            return self._execute_upsert(retry_values)

    def _execute_upsert(self, values: Dict) -> int:
        """
        按业务键 upsert 一行并返回整型ID。

        语句只引用 values 中的列；在 SAVEPOINT 内执行，失败不影响外层事务。
        """
        target = _upsert_target(values)
        updates = {k: v for k, v in values.items() if k not in INSERT_ONLY_COLUMNS}
        with self.db.begin_nested():
            insert = UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
            if insert is not None:
                stmt = insert(target).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[target.c.key],
                    set_={k: stmt.excluded[k] for k in updates},
                ).returning(target.c.id)
                return self.db.execute(stmt).scalar_one()

            # 其他方言：先查后写
            find_id = select(target.c.id).where(target.c.key == values["key"])
            row_id = self.db.execute(find_id).scalar()
            if row_id is None:
                self.db.execute(target.insert().values(**values))
                return self.db.execute(find_id).scalar_one()
            self.db.execute(target.update().where(target.c.id == row_id).values(**updates))
            return row_id

    def _mark_sync_started(self, actor: str) -> None:
        config_service = ConfigService(self.db)
        previous = config_service.get_json(SYNC_MARKER_KEY)
        if previous:
            logger.warning(
                f"Previous navigation sync started at {previous.get('started_at')} "
                f"by {previous.get('started_by')} did not finish; resyncing"
            )
        marker = {"started_at": datetime.now(UTC).isoformat(), "started_by": actor}
        config_service.set_value(
            SYNC_MARKER_KEY, json.dumps(marker),
            description="Navigation reconciliation in progress", updated_by=actor,
        )

    def _clear_marker_after_failure(self) -> None:
        try:
            ConfigService(self.db).set_value(SYNC_MARKER_KEY, "")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to clear navigation sync marker: {e}")

    # ---- Atomic node operations ----

    def add_node(self, data: NavNodeCreate, context: Optional[UserContext] = None) -> NavNode:
        if self._get_node(data.key) is not None:
            raise NodeConflictError(f"节点 '{data.key}' 已存在")

        parent_id = None
        if data.parent_key:
            parent = self._get_node(data.parent_key)
            if parent is None:
                # 父节点不存在时挂到根上
                logger.warning(f"Parent '{data.parent_key}' not found, adding '{data.key}' at root")
            elif parent.type != NodeType.FOLDER.value:
                raise InvalidTreeError(f"节点 '{data.parent_key}' 不是文件夹，不能添加子节点", code="INVALID_PARENT")
            else:
                parent_id = parent.id

        actor = (context or UserContext()).actor_id
        node_type = NodeType(data.type)
        node = NavigationNode(
            key=data.key,
            label=data.label,
            label_zh=data.label_zh or "",
            type=node_type.value,
            status=(data.status or NodeStatus.DRAFT).value,
            icon=data.icon or DEFAULT_ICONS[node_type],
            description=data.description or "",
            parent_id=parent_id,
            sort_order=self.append_sort_order,
            created_by=actor,
            updated_by=actor,
        )
        self.db.add(node)
        self.db.commit()
        self.db.refresh(node)

        self.audit.log_action(context, "Add Node", AUDIT_MODULE, f"Added node {data.label} ({data.key})")
        return row_to_node(node)

    def update_node(self, key: str, data: NavNodeUpdate, context: Optional[UserContext] = None) -> NavNode:
        node = self._require_node(key)

        updates = data.model_dump(exclude_unset=True)
        for field in ("label", "label_zh", "description", "status", "icon"):
            value = updates.get(field)
            if value is None:
                continue
            if field == "status":
                value = NodeStatus(value).value
            setattr(node, field, value)
        node.updated_by = (context or UserContext()).actor_id

        self.db.commit()
        self.db.refresh(node)

        self.audit.log_action(context, "Update Node", AUDIT_MODULE, f"Updated node {key}")
        return row_to_node(node)

    def delete_node(self, key: str, context: Optional[UserContext] = None) -> None:
        """删除节点；子孙节点由外键 ON DELETE CASCADE 删除"""
        self._require_node(key)
        self.db.query(NavigationNode).filter(NavigationNode.key == key).delete(synchronize_session=False)
        self.db.commit()

        self.audit.log_action(context, "Delete Node", AUDIT_MODULE, f"Deleted node {key}")

    def move_node(self, key: str, parent_key: Optional[str], sort_order: Optional[int] = None,
                  context: Optional[UserContext] = None) -> None:
        node = self._require_node(key)

        parent_id = None
        if parent_key:
            parent = self._require_parent(parent_key)
            if parent.type != NodeType.FOLDER.value:
                raise InvalidTreeError(f"不能移动到模块节点 '{parent_key}' 下", code="INVALID_MOVE")
            if parent.id == node.id or parent.id in self._descendant_ids(node.id):
                raise InvalidTreeError(f"不能把节点 '{key}' 移动到自身或其子节点下", code="INVALID_MOVE")
            parent_id = parent.id

        node.parent_id = parent_id
        node.sort_order = sort_order if sort_order is not None else self.append_sort_order
        node.updated_by = (context or UserContext()).actor_id
        self.db.commit()

        self.audit.log_action(
            context, "Move Node", AUDIT_MODULE, f"Moved node {key} to parent {parent_key or 'root'}"
        )

    def reorder_nodes(self, parent_key: Optional[str], ordered_keys: List[str],
                      context: Optional[UserContext] = None) -> int:
        """
        按 ordered_keys 的位置设置 sort_order = 0..n-1。

        每个 key 单独 UPDATE，且只更新该父节点下的子节点；不在该父节点下的 key 跳过。

        Returns:
            实际更新的行数
        """
        if not ordered_keys:
            return 0

        parent_id = self._require_parent(parent_key).id if parent_key else None
        actor = (context or UserContext()).actor_id
        now = datetime.now(UTC)

        updated = 0
        for index, key in enumerate(ordered_keys):
            query = self.db.query(NavigationNode).filter(NavigationNode.key == key)
            if parent_id is None:
                query = query.filter(NavigationNode.parent_id.is_(None))
            else:
                query = query.filter(NavigationNode.parent_id == parent_id)
            count = query.update(
                {
                    NavigationNode.sort_order: index,
                    NavigationNode.updated_by: actor,
                    NavigationNode.updated_at: now,
                },
                synchronize_session=False,
            )
            if not count:
                logger.warning(f"Reorder skipped '{key}': not a child of {parent_key or 'root'}")
            updated += count
        self.db.commit()

        self.audit.log_action(
            context, "Reorder Nodes", AUDIT_MODULE,
            f"Reordered {len(ordered_keys)} nodes under {parent_key or 'root'}",
        )
        return updated

    # ---- Helpers ----

    def _get_node(self, key: str) -> Optional[NavigationNode]:
        return self.db.query(NavigationNode).filter(NavigationNode.key == key).first()

    def _require_node(self, key: str) -> NavigationNode:
        node = self._get_node(key)
        if node is None:
            raise NodeNotFoundError(f"节点 '{key}' 不存在")
        return node

    def _require_parent(self, key: str) -> NavigationNode:
        parent = self._get_node(key)
        if parent is None:
            raise ParentNotFoundError(f"父节点 '{key}' 不存在")
        return parent

    def _descendant_ids(self, node_id: int) -> Set[int]:
        children: Dict[int, List[int]] = {}
        for row_id, parent_id in self.db.query(NavigationNode.id, NavigationNode.parent_id).all():
            if parent_id is not None:
                children.setdefault(parent_id, []).append(row_id)

        found: Set[int] = set()
        stack = list(children.get(node_id, []))
        while stack:
            current = stack.pop()
            if current in found:
                continue
            found.add(current)
            stack.extend(children.get(current, []))
        return found
