"""
系统配置 Service: key-value 读写

当前承载两类配置：
- global_standards: 全局架构与开发规范文档
- navigation.sync_in_progress: 导航同步进行中标记（JSON）
"""
import json
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.system.models.config import SysConfig

GLOBAL_STANDARDS_KEY = "global_standards"


class ConfigService:
    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, key: str) -> Optional[SysConfig]:
        return self.db.query(SysConfig).filter(SysConfig.key == key).first()

    def get_value(self, key: str, default: Any = None) -> Any:
        config = self.get_by_key(key)
        if not config or config.value is None:
            return default
        return config.value

    def get_json(self, key: str, default: Any = None) -> Any:
        """JSON 值；空值或无法解析时返回默认值"""
        value = self.get_value(key)
        if not value:
            return default
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return default

    def set_value(self, key: str, value: str, description: str = "",
                  updated_by: Optional[str] = None, commit: bool = True) -> SysConfig:
        """写入配置，不存在则创建。commit=False 时只 flush，由调用方提交"""
        config = self.get_by_key(key)
        if config is None:
            config = SysConfig(key=key, value=value, description=description, updated_by=updated_by)
            self.db.add(config)
        else:
            config.value = value
            if description:
                config.description = description
            if updated_by:
                config.updated_by = updated_by

        if commit:
            self.db.commit()
            self.db.refresh(config)
        else:
            self.db.flush()
        return config

    # ---- Global standards ----

    def get_global_standards(self, default: str = "") -> str:
        return self.get_value(GLOBAL_STANDARDS_KEY, default)

    def update_global_standards(self, content: str, updated_by: Optional[str] = None) -> SysConfig:
        return self.set_value(
            GLOBAL_STANDARDS_KEY, content,
            description="Global Architecture & Development Standards",
            updated_by=updated_by,
        )
