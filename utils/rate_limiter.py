"""
Rate Limiter
令牌桶限流器：每个刷新周期一次性补满全部令牌 (非匀速补充)
"""
import asyncio
import logging
import time


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Token bucket bounding outbound request rate.

    All ``max_tokens`` tokens are restored at once when ``refill_interval``
    seconds have elapsed since the last refill. Callers that find the bucket
    empty sleep until the next refill boundary. There is no ordering
    guarantee between concurrent waiters.
    """

    def __init__(self, max_tokens: int, refill_interval: float):
        if max_tokens < 1:
            raise ValueError("max_tokens must be >= 1")
        if refill_interval < 0:
            raise ValueError("refill_interval must be >= 0")
        self.max_tokens = int(max_tokens)
        self.refill_interval = float(refill_interval)
        self._tokens = self.max_tokens
        self._last_refill = time.monotonic()

    @property
    def available(self) -> int:
        self._refill()
        return self._tokens

    async def acquire(self) -> None:
        """获取一个令牌，必要时等待到下一个刷新时刻"""
        while True:
            self._refill()
            if self._tokens > 0:
                self._tokens -= 1
                return

            wait = self.refill_interval - (time.monotonic() - self._last_refill)
            logger.debug(f"Rate limit reached, waiting {max(0.0, wait):.2f}s")
            await asyncio.sleep(max(0.0, wait))

    def _refill(self) -> None:
        now = time.monotonic()
        if now - self._last_refill >= self.refill_interval:
            self._tokens = self.max_tokens
            self._last_refill = now

    def __repr__(self) -> str:
        return f"RateLimiter(max_tokens={self.max_tokens}, refill_interval={self.refill_interval})"
