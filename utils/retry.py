"""
Retry
有上限的指数退避重试 (基于 tenacity)
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

# wait_exponential 默认上限过小，这里放开以保持 delay * 2^(k-1) 的语义
_MAX_BACKOFF_SECONDS = 3600.0


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    sleep_for = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.debug(
        f"Attempt {retry_state.attempt_number} failed ({exc!r}), "
        f"retrying in {sleep_for:.2f}s"
    )


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: bool = True,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    重新执行可能失败的异步操作

    Args:
        operation: 无参异步函数
        max_retries: 最大重试次数 (总尝试次数 = max_retries + 1)
        delay: 基础等待秒数; 第 k 次重试前等待 delay * 2^(k-1) (backoff) 或 delay
        backoff: 是否指数退避
        retry_if: 可选的异常分类函数, 返回 False 时立即抛出; 默认所有异常都重试
        sleep: 自定义等待函数 (测试注入), 默认 asyncio.sleep

    Returns:
        operation 的返回值

    Raises:
        最后一次尝试抛出的异常
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    if backoff:
        wait = wait_exponential(multiplier=delay, exp_base=2, min=0, max=_MAX_BACKOFF_SECONDS)
    else:
        wait = wait_fixed(delay)

    retrying = AsyncRetrying(
        sleep=sleep or asyncio.sleep,
        stop=stop_after_attempt(max_retries + 1),
        wait=wait,
        retry=retry_if_exception(retry_if or (lambda exc: True)),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
    return await retrying(operation)
