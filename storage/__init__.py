"""
Storage Module
存储模块 - 流水线运行记录与 Idea 持久化
"""
from .repository import BaseRepository, InMemoryRepository
from .sqlite_repository import SQLiteRepository
from .factory import create_repository

__all__ = [
    "BaseRepository",
    "InMemoryRepository",
    "SQLiteRepository",
    "create_repository",
]
