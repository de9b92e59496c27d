"""
Configuration Management Module
统一配置管理
"""
from .settings import (
    Settings,
    SourceSettings,
    LLMSettings,
    PipelineSettings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "SourceSettings",
    "LLMSettings",
    "PipelineSettings",
    "StorageSettings",
    "get_settings",
]
