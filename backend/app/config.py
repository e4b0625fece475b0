"""
应用配置
从环境变量 / .env 读取配置
"""
from typing import List

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "T-Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置（任意 SQLAlchemy URL，默认本地 SQLite）
    DATABASE_URL: str = "sqlite:///./tengine.db"

    # 启动时若导航表为空，写入内置默认导航树
    SEED_NAVIGATION_ON_STARTUP: bool = True

    # 新增节点默认排在同级末尾
    NAV_APPEND_SORT_ORDER: int = 9999

    # 存储不可用时内存中保留的审计日志条数
    AUDIT_MEMORY_LIMIT: int = 1000

    # CORS（环境变量中使用 JSON 数组）
    CORS_ORIGINS: List[str] = ["*"]

    model_config = ConfigDict(env_file=".env", case_sensitive=True)


# 全局设置实例
settings = Settings()
