"""
Repository Factory
根据配置选择存储后端
"""
import logging
from typing import Optional

from config import Settings, get_settings
from utils.exceptions import ConfigurationError

from .repository import BaseRepository, InMemoryRepository
from .sqlite_repository import SQLiteRepository


logger = logging.getLogger(__name__)


def create_repository(settings: Optional[Settings] = None) -> BaseRepository:
    """
    创建存储仓库

    Args:
        settings: 配置 (STORAGE_BACKEND=memory|sqlite, STORAGE_DB_PATH)

    Returns:
        BaseRepository 实例
    """
    storage = (settings or get_settings()).storage
    backend = (storage.backend or "memory").strip().lower()

    if backend == "memory":
        return InMemoryRepository()
    if backend == "sqlite":
        return SQLiteRepository(storage.db_path)

    raise ConfigurationError(
        f"Unsupported storage backend: {backend!r}. Available: memory, sqlite"
    )
