"""
LLM Factory
工厂函数 - 根据配置创建 LLM 实例
"""
from typing import Dict, NamedTuple, Optional
import logging

from config import Settings, get_settings
from utils.exceptions import ConfigurationError

from .anthropic_llm import AnthropicLLM
from .base import BaseLLM
from .openai_llm import OpenAILLM


logger = logging.getLogger(__name__)


class ProviderSpec(NamedTuple):
    base_url: Optional[str]
    default_model: str
    key_field: str


# OpenAI 兼容供应商 + Anthropic
PROVIDERS: Dict[str, ProviderSpec] = {
    "groq": ProviderSpec("https://api.groq.com/openai/v1", "llama-3.3-70b-versatile", "groq_api_key"),
    "openrouter": ProviderSpec("https://openrouter.ai/api/v1", "meta-llama/llama-3.3-70b-instruct", "openrouter_api_key"),
    "nvidia": ProviderSpec("https://integrate.api.nvidia.com/v1", "meta/llama-3.1-70b-instruct", "nvidia_api_key"),
    "deepseek": ProviderSpec("https://api.deepseek.com", "deepseek-chat", "deepseek_api_key"),
    "openai": ProviderSpec(None, "gpt-4o-mini", "openai_api_key"),
    "anthropic": ProviderSpec(None, "claude-3-5-sonnet-20241022", "anthropic_api_key"),
}


def get_llm(
    settings: Optional[Settings] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    获取 LLM 实例

    Args:
        settings: 配置 (默认读取全局配置)
        provider: 供应商 (groq, openrouter, nvidia, deepseek, openai, anthropic)
        model: 模型名称 (不传则使用配置或供应商默认)
        **kwargs: 额外参数 (api_key, temperature, max_tokens 等)

    Returns:
        BaseLLM 实例

    Raises:
        ConfigurationError: 未知供应商或缺少 API Key

    Example:
        llm = get_llm()
        llm = get_llm(provider="openrouter", model="anthropic/claude-3.5-sonnet")
    """
    llm_settings = (settings or get_settings()).llm

    provider = (provider or llm_settings.provider or "").strip().lower()
    spec = PROVIDERS.get(provider)
    if spec is None:
        raise ConfigurationError(
            f"Unsupported LLM provider: {provider!r}. Available: {', '.join(PROVIDERS)}"
        )

    api_key = kwargs.pop("api_key", None) or getattr(llm_settings, spec.key_field)
    if not api_key:
        raise ConfigurationError(
            f"Missing API key for provider {provider!r}. Set LLM_{spec.key_field.upper()}.",
            {"provider": provider},
        )

    model = model or llm_settings.model_name or spec.default_model
    for key, value in (
        ("temperature", llm_settings.temperature),
        ("max_tokens", llm_settings.max_tokens),
        ("timeout", llm_settings.timeout),
    ):
        kwargs.setdefault(key, value)

    logger.info(f"[LLM] Using provider={provider} model={model}")

    if provider == "anthropic":
        return AnthropicLLM(model=model, api_key=api_key, **kwargs)

    base_url = kwargs.pop("base_url", None) or llm_settings.base_url or spec.base_url
    return OpenAILLM(
        model=model,
        api_key=api_key,
        base_url=base_url,
        provider_name=provider,
        **kwargs,
    )
