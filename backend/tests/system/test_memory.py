"""
内存仓库测试
"""
from app.system.memory import MemoryRepository
from app.system.services.navigation_seed import DEFAULT_GLOBAL_STANDARDS


def test_default_navigation_is_independent_copy():
    memory = MemoryRepository()
    tree = memory.default_navigation()
    tree[0]["label"] = "Changed"
    tree.append({"id": "extra"})

    fresh = memory.default_navigation()
    assert fresh[0]["label"] == "Home"
    assert len(fresh) == 5


def test_custom_navigation_tree():
    memory = MemoryRepository(nav_tree=[{"id": "only", "label": "Only"}])
    assert memory.default_navigation() == [{"id": "only", "label": "Only"}]


def test_default_standards():
    assert MemoryRepository().default_standards() == DEFAULT_GLOBAL_STANDARDS


def test_audit_entries_newest_first():
    memory = MemoryRepository()
    memory.record_audit({"action": "first"})
    memory.record_audit({"action": "second"})

    entries = memory.audit_entries()
    assert [e["action"] for e in entries] == ["second", "first"]
    assert [e["id"] for e in entries] == ["mem-2", "mem-1"]
    assert entries[0]["timestamp"] is not None


def test_audit_buffer_drops_oldest():
    memory = MemoryRepository(audit_limit=3)
    for i in range(5):
        memory.record_audit({"action": f"a{i}"})
    assert [e["action"] for e in memory.audit_entries()] == ["a4", "a3", "a2"]


def test_clear_audit():
    memory = MemoryRepository()
    memory.record_audit({"action": "x"})
    assert memory.clear_audit() == 1
    assert memory.audit_entries() == []
    assert memory.clear_audit() == 0
