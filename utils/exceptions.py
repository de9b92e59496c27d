"""
Custom Exceptions
自定义异常类
"""
from typing import Optional


class IdeatorError(Exception):
    """Ideator 基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(IdeatorError):
    """配置错误"""
    pass


class SourceError(IdeatorError):
    """数据源错误 (不可重试)"""

    def __init__(self, message: str, source: str = None, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source
        self.status_code = status_code


class TransientSourceError(SourceError):
    """数据源临时错误 (429 / 5xx / 网络异常)，可重试"""
    pass


class StorageError(IdeatorError):
    """存储错误"""
    pass


class LLMError(IdeatorError):
    """LLM 调用错误"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class StructuredOutputError(LLMError):
    """结构化输出在所有重试后仍未通过校验"""

    def __init__(self, message: str, attempts: int, last_error: Optional[Exception] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts
        self.last_error = last_error


class PipelineError(IdeatorError):
    """流水线错误"""
    pass
