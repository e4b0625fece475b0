"""
导航树 API 测试
覆盖 /navigation 端点
"""
import pytest
from fastapi.testclient import TestClient

from app.system.models.audit import AuditLog
from app.system.models.navigation import NavigationNode


TREE = [
    {"id": "home", "label": "Home", "labelZh": "首页", "type": "module", "status": "ready", "icon": "home"},
    {"id": "product", "label": "Product", "labelZh": "商品管理", "type": "folder", "icon": "package",
     "children": [
         {"id": "prod_type", "label": "Product Type", "labelZh": "商品类型", "type": "module"},
         {"id": "prod_item", "label": "Product Item", "labelZh": "商品", "type": "module"},
     ]},
]


@pytest.fixture
def seeded(client: TestClient):
    response = client.post("/navigation", json=TREE)
    assert response.status_code == 200
    return client


def _ids(nodes):
    return [n["id"] for n in nodes]


class TestNavigationTreeAPI:

    def test_empty_store_reports_503(self, client: TestClient):
        response = client.get("/navigation")
        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["code"] == "NAV_DB_EMPTY"
        assert detail["details"]["hint"]

    def test_sync_and_read(self, seeded: TestClient):
        response = seeded.get("/navigation")
        assert response.status_code == 200
        data = response.json()
        assert _ids(data) == ["home", "product"]
        assert data[0]["labelZh"] == "首页"
        assert data[0]["status"] == "ready"
        assert _ids(data[1]["children"]) == ["prod_type", "prod_item"]

    def test_sync_response(self, client: TestClient):
        response = client.post("/navigation", json=TREE)
        assert response.json() == {"success": True}

    def test_sync_removes_missing_nodes(self, seeded: TestClient, db_session):
        response = seeded.post("/navigation", json=[TREE[0]])
        assert response.status_code == 200
        assert _ids(seeded.get("/navigation").json()) == ["home"]
        assert db_session.query(NavigationNode).count() == 1

    def test_sync_duplicate_key(self, client: TestClient):
        response = client.post("/navigation", json=[{"id": "a"}, {"id": "a"}])
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "DUPLICATE_KEY"

    def test_sync_module_with_children_rejected(self, client: TestClient):
        response = client.post("/navigation", json=[
            {"id": "m", "type": "module", "children": [{"id": "c"}]},
        ])
        assert response.status_code == 422

    def test_default_tree(self, client: TestClient):
        response = client.get("/navigation/default")
        assert response.status_code == 200
        data = response.json()
        assert _ids(data) == ["home", "product", "market_sales", "service_delivery", "tenant"]
        assert data[1]["children"][0]["id"] == "prod_type"

    def test_sync_status_idle(self, seeded: TestClient):
        response = seeded.get("/navigation/sync-status")
        assert response.status_code == 200
        assert response.json() == {"inProgress": False, "startedAt": None, "startedBy": None}

    def test_reseed(self, seeded: TestClient):
        response = seeded.post("/navigation/reseed")
        assert response.status_code == 200
        data = seeded.get("/navigation").json()
        assert _ids(data) == ["home", "product", "market_sales", "service_delivery", "tenant"]
        assert len(data[1]["children"]) == 5

    def test_sync_records_operator(self, client: TestClient, db_session, user_headers):
        client.post("/navigation", json=TREE, headers=user_headers)
        log = db_session.query(AuditLog).one()
        assert log.action == "Update Navigation"
        assert log.user_id == "u-1001"
        assert log.user_name == "Alice"
        assert log.ip == "testclient"


class TestNavigationNodeAPI:

    def test_add_node(self, seeded: TestClient):
        response = seeded.post("/navigation/nodes", json={
            "key": "prod_combo", "parentKey": "product", "label": "Combo", "labelZh": "套餐",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "prod_combo"
        assert data["labelZh"] == "套餐"
        assert data["icon"] == "box"
        assert data["status"] == "draft"
        children = seeded.get("/navigation").json()[1]["children"]
        assert _ids(children)[-1] == "prod_combo"

    def test_add_duplicate(self, seeded: TestClient):
        response = seeded.post("/navigation/nodes", json={"key": "home", "label": "Home"})
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "NODE_EXISTS"

    def test_add_under_missing_parent_goes_to_root(self, seeded: TestClient):
        response = seeded.post("/navigation/nodes", json={"key": "x", "parentKey": "missing", "label": "X"})
        assert response.status_code == 200
        assert response.json()["id"] == "x"
        assert _ids(seeded.get("/navigation").json()) == ["home", "product", "x"]

    def test_add_under_module(self, seeded: TestClient):
        response = seeded.post("/navigation/nodes", json={"key": "x", "parentKey": "home", "label": "X"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_PARENT"

    def test_update_node(self, seeded: TestClient):
        response = seeded.patch("/navigation/nodes/home", json={"labelZh": "主页", "description": "入口"})
        assert response.status_code == 200
        data = response.json()
        assert data["labelZh"] == "主页"
        assert data["description"] == "入口"
        assert data["label"] == "Home"

    def test_update_missing_node(self, seeded: TestClient):
        response = seeded.patch("/navigation/nodes/missing", json={"label": "X"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NODE_NOT_FOUND"

    def test_update_invalid_status(self, seeded: TestClient):
        response = seeded.patch("/navigation/nodes/home", json={"status": "archived"})
        assert response.status_code == 422

    def test_delete_node_cascades(self, seeded: TestClient, db_session):
        response = seeded.delete("/navigation/nodes/product")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert db_session.query(NavigationNode).count() == 1

    def test_delete_missing_node(self, seeded: TestClient):
        response = seeded.delete("/navigation/nodes/missing")
        assert response.status_code == 404

    def test_move_node(self, seeded: TestClient):
        response = seeded.post("/navigation/move", json={"key": "prod_type", "parentId": None, "sortOrder": 5})
        assert response.status_code == 200
        data = seeded.get("/navigation").json()
        assert _ids(data) == ["home", "product", "prod_type"]
        assert _ids(data[1]["children"]) == ["prod_item"]

    def test_move_into_module(self, seeded: TestClient):
        response = seeded.post("/navigation/move", json={"key": "prod_type", "parentId": "home"})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_MOVE"

    def test_move_negative_sort_order(self, seeded: TestClient):
        response = seeded.post("/navigation/move", json={"key": "prod_type", "sortOrder": -1})
        assert response.status_code == 422

    def test_reorder(self, seeded: TestClient):
        response = seeded.post("/navigation/reorder", json={
            "parentId": "product", "orderedIds": ["prod_item", "prod_type"],
        })
        assert response.status_code == 200
        children = seeded.get("/navigation").json()[1]["children"]
        assert _ids(children) == ["prod_item", "prod_type"]

    def test_reorder_roots(self, seeded: TestClient):
        response = seeded.post("/navigation/reorder", json={"orderedIds": ["product", "home"]})
        assert response.status_code == 200
        assert _ids(seeded.get("/navigation").json()) == ["product", "home"]

    def test_audit_failure_does_not_block_write(self, seeded: TestClient, db_session, db_engine):
        db_session.rollback()
        AuditLog.__table__.drop(bind=db_engine)

        response = seeded.post("/navigation/nodes", json={"key": "misc", "label": "Misc"})
        assert response.status_code == 200

        buffered = seeded.app.state.memory.audit_entries()
        assert buffered[0]["action"] == "Add Node"
        assert buffered[0]["id"].startswith("mem-")


class TestGlobalStandardsAPI:

    def test_default_standards(self, client: TestClient):
        response = client.get("/navigation/standards")
        assert response.status_code == 200
        assert response.json().startswith("# Global Architecture")

    def test_update_standards(self, client: TestClient, db_session):
        response = client.post("/navigation/standards", json={"content": "# Rules\n1. Keep keys stable"})
        assert response.status_code == 200
        assert client.get("/navigation/standards").json() == "# Rules\n1. Keep keys stable"
        log = db_session.query(AuditLog).one()
        assert log.action == "Update Standards"
