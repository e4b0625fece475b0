"""
Pytest 配置和共享 fixtures
"""
import os

# 测试使用内存库，且不在启动时写入种子数据
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_NAVIGATION_ON_STARTUP"] = "false"

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database import Base, create_db_engine, get_db
from app.system import models  # noqa
from app.system.memory import MemoryRepository
from app.system.schemas import NavNode
from app.main import app


@pytest.fixture(scope="function")
def db_engine():
    """创建内存数据库引擎（带外键级联和 SAVEPOINT 支持）"""
    engine = create_db_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """创建数据库会话"""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def client(db_session):
    """创建测试客户端"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def memory():
    return MemoryRepository(audit_limit=10)


@pytest.fixture
def user_headers():
    """操作人请求头"""
    return {"x-user-id": "u-1001", "x-user-name": "Alice"}


# ============== 导航树 Fixtures ==============

def make_tree(data):
    return [NavNode.model_validate(n) for n in data]


@pytest.fixture
def sample_tree():
    """两个根节点：home 模块 + product 文件夹（含两个模块）"""
    return make_tree([
        {"id": "home", "label": "Home", "labelZh": "首页", "type": "module", "status": "ready", "icon": "home"},
        {"id": "product", "label": "Product", "labelZh": "商品管理", "type": "folder", "icon": "package",
         "children": [
             {"id": "prod_type", "label": "Product Type", "labelZh": "商品类型", "type": "module"},
             {"id": "prod_item", "label": "Product Item", "labelZh": "商品", "type": "module"},
         ]},
    ])
