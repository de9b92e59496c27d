"""
Utils Module
通用工具函数
"""
from .logger import setup_logger, get_logger, set_log_level
from .exceptions import (
    IdeatorError,
    ConfigurationError,
    SourceError,
    TransientSourceError,
    StorageError,
    LLMError,
    StructuredOutputError,
    PipelineError,
)
from .rate_limiter import RateLimiter
from .retry import retry

__all__ = [
    "setup_logger",
    "get_logger",
    "set_log_level",
    "IdeatorError",
    "ConfigurationError",
    "SourceError",
    "TransientSourceError",
    "StorageError",
    "LLMError",
    "StructuredOutputError",
    "PipelineError",
    "RateLimiter",
    "retry",
]
