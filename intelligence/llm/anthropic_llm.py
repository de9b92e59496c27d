"""
Anthropic LLM
Claude 系列模型
"""
from typing import List, Optional, Tuple
import logging

from anthropic import APIError, AsyncAnthropic

from utils.exceptions import LLMError

from .base import BaseLLM, LLMResponse, Message, MessageRole


logger = logging.getLogger(__name__)

JSON_ONLY_INSTRUCTION = "Respond with a single valid JSON object and nothing else."


class AnthropicLLM(BaseLLM):
    """
    Anthropic Claude LLM 实现

    Messages API 没有 JSON 输出模式，json_mode 时在 system 中追加约束。
    """

    def __init__(
        self,
        model: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key
        self._async_client = None

    @property
    def provider(self) -> str:
        return "anthropic"

    def _get_async_client(self) -> AsyncAnthropic:
        """获取异步客户端"""
        if self._async_client is None:
            self._async_client = AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout,
            )
        return self._async_client

    def _convert_messages(self, messages: List[Message]) -> Tuple[Optional[str], List[dict]]:
        """
        转换消息格式 (system 单独传递)

        Returns:
            (system_prompt, messages_list)
        """
        system_parts = []
        converted = []
        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_parts.append(msg.content)
            else:
                converted.append({"role": msg.role.value, "content": msg.content})
        return ("\n\n".join(system_parts) or None), converted

    async def acomplete(
        self,
        messages: List[Message],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """异步生成响应"""
        client = self._get_async_client()
        system_prompt, converted = self._convert_messages(messages)
        if json_mode:
            system_prompt = f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}" if system_prompt else JSON_ONLY_INSTRUCTION

        request_params = {
            "model": model or self.model,
            "messages": converted,
            "max_tokens": max_tokens or self.max_tokens,
            # Anthropic 温度上限为 1.0
            "temperature": min(1.0, self.temperature if temperature is None else temperature),
        }
        if system_prompt:
            request_params["system"] = system_prompt

        try:
            response = await client.messages.create(**request_params)
        except APIError as e:
            raise LLMError(f"anthropic request failed: {e}", provider=self.provider) from e

        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return LLMResponse(
            content=content,
            model=response.model,
            usage={
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
        )

    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.close()
            self._async_client = None
