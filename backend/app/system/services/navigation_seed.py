"""
导航树种子数据: 内置默认导航树
既用于空库初始化，也是存储不可用时前端回退使用的静态树
"""
import copy
import logging

from sqlalchemy.orm import Session

from app.system.models.navigation import NavigationNode

logger = logging.getLogger(__name__)


def _module(key, label, label_zh, icon, status="draft"):
    return {"id": key, "label": label, "labelZh": label_zh, "icon": icon,
            "type": "module", "status": status}


def _folder(key, label, label_zh, icon, children):
    return {"id": key, "label": label, "labelZh": label_zh, "icon": icon,
            "type": "folder", "status": "draft", "children": children}


DEFAULT_NAV_TREE = [
    _module("home", "Home", "首页", "home", status="ready"),
    _folder("product", "Product Management", "商品管理", "package", [
        _module("prod_type", "Product Type", "商品类型管理", "tags"),
        _module("prod_category", "Category", "商品分类管理", "library"),
        _module("prod_item", "Product Item", "商品管理", "shopping-bag"),
        _module("prod_combo", "Combo", "商品套餐管理", "layers"),
        _module("prod_promotion", "Promotion", "商品促销管理", "percent"),
    ]),
    _folder("market_sales", "Market & Sales Management", "市场&销售管理", "trending-up", [
        _module("lead", "Lead", "线索", "user-plus"),
        _module("opportunity", "Opportunity", "商机", "target"),
        _module("customer", "Customer", "客户", "users"),
        _module("quote", "Quote", "报价单", "file-text"),
        _module("contract", "Contract", "合同", "file-signature"),
        _module("order", "Order", "订单", "shopping-cart"),
    ]),
    _folder("service_delivery", "Delivery & Service Management", "交付&服务管理", "truck", [
        _module("project", "Implementation Project", "实施项目", "briefcase"),
        _module("license_issuance", "License Issuance", "授权发放", "key"),
        _module("after_sales_ticket", "After-sales Ticket", "售后工单", "ticket-check"),
    ]),
    _folder("tenant", "Tenant & Authorization Management", "租户&授权管理", "building", [
        _module("group", "Group", "集团", "building-2"),
        _module("store", "Store", "门店", "store"),
        _module("auth", "Authorization", "授权", "key"),
    ]),
]


DEFAULT_GLOBAL_STANDARDS = """# Global Architecture & Development Standards

1. Every module documents its business rules before implementation starts.
2. Business keys are stable identifiers; never reuse a deleted key for a different concept.
3. Status moves from draft to ready only after requirements review.
"""


def default_nav_tree() -> list:
    """返回默认导航树的独立副本"""
    return copy.deepcopy(DEFAULT_NAV_TREE)


def seed_navigation_data(db: Session) -> dict:
    """Seed the default navigation tree into an empty table. Idempotent.

    Returns dict with count of created nodes.
    """
    from app.system.schemas import NavNode
    from app.system.services.navigation_service import NavigationService

    stats = {"nodes": 0}
    if db.query(NavigationNode.id).first() is not None:
        return stats

    tree = [NavNode.model_validate(n) for n in default_nav_tree()]
    NavigationService(db).sync_navigation(tree)
    stats["nodes"] = db.query(NavigationNode).count()
    logger.info(f"Seeded default navigation tree with {stats['nodes']} nodes")
    return stats
