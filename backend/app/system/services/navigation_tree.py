"""
导航树的扁平化与重建

flatten_tree: 树 → (key, parent_key, 同级序号) 列表，用于同步写库
build_tree:   库中扁平行 → 树，父节点无法解析的行按根节点处理
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from app.system.errors import InvalidTreeError
from app.system.schemas import NavNode, NodeType


@dataclass
class FlatNode:
    key: str
    parent_key: Optional[str]
    order: int
    node: NavNode


def flatten_tree(tree: Iterable[NavNode]) -> List[FlatNode]:
    """深度优先展开，父节点总在子节点之前"""
    flat: List[FlatNode] = []
    seen = set()

    def traverse(nodes: Iterable[NavNode], parent_key: Optional[str]) -> None:
        for index, node in enumerate(nodes):
            if node.id in seen:
                raise InvalidTreeError(f"业务键 '{node.id}' 在导航树中重复", code="DUPLICATE_KEY")
            seen.add(node.id)
            flat.append(FlatNode(key=node.id, parent_key=parent_key, order=index, node=node))
            if node.children:
                if node.type != NodeType.FOLDER:
                    raise InvalidTreeError(f"模块节点 '{node.id}' 不能包含子节点", code="INVALID_PARENT")
                traverse(node.children, node.id)

    traverse(tree, None)
    return flat


def row_to_node(row) -> NavNode:
    """单行 → 不含子节点的 NavNode（文件夹带空 children）"""
    return NavNode(
        id=row.key,
        label=row.label or "",
        label_zh=row.label_zh or row.label or "",
        description=getattr(row, "description", None) or "",
        type=row.type,
        status=row.status,
        icon=row.icon or "",
    )


def build_tree(rows: Iterable) -> List[NavNode]:
    """
    由扁平行重建导航树。

    rows 需提供 id / key / parent_id / type 等属性，且已按 sort_order 排序；
    同级顺序即输入顺序。parent_id 指向不存在的行、或指向模块节点时，
    该行作为额外的根节点返回，不会被丢弃。
    """
    rows = list(rows)
    node_map: Dict[str, NavNode] = {}
    id_to_key: Dict[int, str] = {}

    for row in rows:
        node_map[row.key] = row_to_node(row)
        id_to_key[row.id] = row.key

    roots: List[NavNode] = []
    for row in rows:
        node = node_map[row.key]
        parent_key = id_to_key.get(row.parent_id) if row.parent_id is not None else None
        parent = node_map.get(parent_key) if parent_key else None
        if parent is not None and parent.type == NodeType.FOLDER and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)

    return roots
