"""
Structured Generation
调用 LLM 获取 JSON 输出并用 pydantic 模型校验，失败时带上错误信息重试
"""
import json
import logging
import re
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from utils.exceptions import StructuredOutputError

from .llm.base import BaseLLM, Message


logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_RETRIES = 2


class EmptyResponseError(ValueError):
    """LLM 返回空内容"""


def parse_json_object(text: str) -> Any:
    """
    解析 LLM 返回的 JSON

    先整体解析；失败时截取第一个 '{' 到最后一个 '}' 之间的内容再试一次
    (部分模型会包裹 markdown 代码块)。
    """
    raw = (text or "").strip()
    if not raw:
        raise EmptyResponseError("Empty response from LLM")
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        match = re.search(r"\{[\s\S]*\}", raw)
        if not match:
            raise
        return json.loads(match.group())


def repair_prompt(prompt: str, error: BaseException) -> str:
    return (
        f"{prompt}\n\nPrevious attempt failed JSON validation: {error}. "
        "Please fix and return valid JSON."
    )


async def structured_generate(
    llm: BaseLLM,
    *,
    system: str,
    prompt: str,
    schema: Type[T],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_retries: int = DEFAULT_MAX_RETRIES,
) -> T:
    """
    生成并校验结构化输出

    Args:
        llm: LLM 客户端 (显式注入)
        system: 系统提示词
        prompt: 用户提示词
        schema: 期望的 pydantic 模型
        model: 覆盖默认模型
        temperature: 采样温度，默认 0.7
        max_retries: 校验失败后的最大重试次数 (总尝试次数 = max_retries + 1)

    Returns:
        校验通过的 schema 实例

    Raises:
        StructuredOutputError: 所有尝试都未通过校验
        LLMError: LLM 调用本身失败 (不重试，直接抛出)
    """
    temperature = DEFAULT_TEMPERATURE if temperature is None else temperature
    attempts = max_retries + 1
    last_error: Optional[Exception] = None

    for attempt in range(attempts):
        user_content = prompt if last_error is None else repair_prompt(prompt, last_error)
        messages = [Message.system(system), Message.user(user_content)]

        response = await llm.acomplete(
            messages,
            model=model,
            temperature=temperature,
            json_mode=True,
        )

        try:
            parsed = parse_json_object(response.content)
            return schema.model_validate(parsed)
        except (EmptyResponseError, json.JSONDecodeError, ValidationError) as e:
            last_error = e
            logger.warning(
                f"[Structured] {schema.__name__} attempt {attempt + 1}/{attempts} failed: "
                f"{str(e).splitlines()[0] if str(e) else type(e).__name__}"
            )

    raise StructuredOutputError(
        f"Failed to get valid structured output after {attempts} attempts: {last_error}",
        attempts=attempts,
        last_error=last_error,
        schema=schema.__name__,
    )
