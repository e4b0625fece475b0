"""
T-Engine 主应用入口
需求与导航树管理后台
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import SessionLocal, init_db
from app.system.memory import MemoryRepository
from app.system.routers import audit_router, navigation_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 内存仓库：存储不可用时的回退数据，整个进程只有一份
    app.state.memory = MemoryRepository(audit_limit=settings.AUDIT_MEMORY_LIMIT)

    try:
        init_db()
        logger.info("✓ 数据库表已就绪")

        if settings.SEED_NAVIGATION_ON_STARTUP:
            from app.system.services.navigation_seed import seed_navigation_data
            seed_db = SessionLocal()
            try:
                nav_stats = seed_navigation_data(seed_db)
                if any(nav_stats.values()):
                    logger.info(f"✓ 导航树种子数据已初始化: {nav_stats}")
            finally:
                seed_db.close()
    except Exception as e:
        logger.warning(f"数据库初始化警告: {e}")

    yield


# 创建应用
app = FastAPI(
    title=settings.APP_NAME,
    description="需求、业务规则与导航树管理",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(navigation_router.router)
app.include_router(audit_router.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "需求、业务规则与导航树管理",
    }


@app.get("/health")
def health_check():
    """健康检查"""
    return {"status": "healthy"}
