"""
Intelligence Module
LLM 抽象 + 结构化输出
"""
from .llm import (
    BaseLLM,
    LLMResponse,
    Message,
    MessageRole,
    OpenAILLM,
    AnthropicLLM,
    PROVIDERS,
    get_llm,
)
from .structured import structured_generate, parse_json_object

__all__ = [
    # LLM
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "AnthropicLLM",
    "PROVIDERS",
    "get_llm",
    # Structured output
    "structured_generate",
    "parse_json_object",
]
