"""
导航树种子数据测试
"""
from app.system.models.navigation import NavigationNode
from app.system.schemas import NavNode
from app.system.services.navigation_seed import DEFAULT_NAV_TREE, default_nav_tree, seed_navigation_data
from app.system.services.navigation_tree import flatten_tree


def test_default_tree_is_valid():
    tree = [NavNode.model_validate(n) for n in default_nav_tree()]
    flat = flatten_tree(tree)
    assert flat[0].key == "home"
    assert len({f.key for f in flat}) == len(flat)


def test_default_tree_copy_is_independent():
    tree = default_nav_tree()
    tree[1]["children"].clear()
    assert len(DEFAULT_NAV_TREE[1]["children"]) == 5


def test_seed_empty_table(db_session):
    stats = seed_navigation_data(db_session)
    expected = len(flatten_tree([NavNode.model_validate(n) for n in default_nav_tree()]))
    assert stats == {"nodes": expected}
    assert db_session.query(NavigationNode).count() == expected


def test_seed_is_idempotent(db_session):
    seed_navigation_data(db_session)
    assert seed_navigation_data(db_session) == {"nodes": 0}


def test_seed_skips_existing_tree(db_session):
    db_session.add(NavigationNode(key="custom", label="Custom"))
    db_session.commit()
    assert seed_navigation_data(db_session) == {"nodes": 0}
    assert db_session.query(NavigationNode).count() == 1
