"""
Base Source
所有数据源的抽象基类与共享 HTTP 工具
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import copy
import html as html_lib
import logging
import re
from typing import Any, Dict, FrozenSet, List, Optional

import httpx
from pydantic import BaseModel, Field

from config import Settings, get_settings
from core import SourceResult
from utils.exceptions import ConfigurationError, SourceError, TransientSourceError
from utils.rate_limiter import RateLimiter
from utils.retry import retry


logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60.0


class SourceOptions(BaseModel):
    """单次抓取参数"""
    query: str
    limit: int = Field(default=20, ge=1)


def is_transient(exc: BaseException) -> bool:
    """仅 429 / 5xx / 网络异常可重试"""
    return isinstance(exc, (TransientSourceError, httpx.TransportError))


def query_terms(query: str) -> List[str]:
    return [term for term in str(query or "").lower().split() if term]


def matches_query(text: str, query: str) -> bool:
    """任一查询词出现在文本中即视为相关 (空查询全部放行)"""
    terms = query_terms(query)
    if not terms:
        return True
    lowered = str(text or "").lower()
    return any(term in lowered for term in terms)


def strip_html(value: str) -> str:
    text = str(value or "")
    text = re.sub(r"<[^>]+>", " ", text)
    text = html_lib.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def epoch_to_iso(seconds: Any) -> Optional[str]:
    if seconds in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(float(seconds), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError):
        return None


def to_iso(value: Any) -> Optional[str]:
    """将 ISO-8601 或 RFC-822 时间字符串规范化为 UTC ISO 格式"""
    text = str(value or "").strip()
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return text
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sort_by_score(results: List[SourceResult]) -> List[SourceResult]:
    return sorted(results, key=lambda item: item.score or 0, reverse=True)


class BaseSource(ABC):
    """
    数据源抽象基类

    子类声明 ``name`` / ``type`` / ``requests_per_minute`` 并实现 ``fetch``。
    每个实例持有一个 RateLimiter，所有出站请求都经由 ``_request`` 先取令牌。
    """

    name: str = ""
    type: str = ""
    requests_per_minute: int = 30

    # 临时错误状态码 (子类可扩展，如 GitHub 的 403)
    rate_limit_statuses: FrozenSet[int] = frozenset({429})

    # 可按运行定制的列表属性名 (subreddits / feeds / tags / urls)
    customizable_field: Optional[str] = None

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None
        self.rate_limiter = rate_limiter or RateLimiter(
            self.requests_per_minute, RATE_LIMIT_WINDOW_SECONDS
        )

    @abstractmethod
    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        """
        抓取并归一化结果

        Args:
            options: 查询与数量上限

        Returns:
            SourceResult 列表，无结果时为空列表
        """
        pass

    def customize(self, values: List[str]) -> "BaseSource":
        """
        返回使用自定义列表的副本

        副本与原实例共享 RateLimiter 和 HTTP 客户端，保证同一数据源的吞吐限制跨运行生效。
        """
        if not self.customizable_field:
            raise ConfigurationError(
                f"Source '{self.type}' does not accept custom values",
                {"source": self.type},
            )
        cleaned = [str(value).strip() for value in values if str(value or "").strip()]
        if not cleaned:
            raise ConfigurationError(
                f"Custom values for '{self.type}' are empty",
                {"source": self.type},
            )

        self._get_client()
        clone = copy.copy(self)
        clone._owns_client = False
        setattr(clone, self.customizable_field, cleaned)
        logger.debug(f"[{self.name}] Customized {self.customizable_field}: {cleaned}")
        return clone

    def _get_client(self) -> httpx.AsyncClient:
        """获取或创建 HTTP 客户端"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.sources.request_timeout),
                follow_redirects=True,
                headers={"User-Agent": self.settings.sources.user_agent},
            )
            self._owns_client = True
        return self._client

    async def close(self):
        """清理资源"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        await self.rate_limiter.acquire()
        client = self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.TransportError as e:
            raise TransientSourceError(
                f"{self.name} request failed: {e}", source=self.type, url=url
            ) from e

        status = response.status_code
        if status in self.rate_limit_statuses:
            raise TransientSourceError(
                f"{self.name} rate limited", source=self.type, status_code=status
            )
        if status >= 500:
            raise TransientSourceError(
                f"{self.name} request failed: {status}", source=self.type, status_code=status
            )
        if status >= 400:
            raise SourceError(
                f"{self.name} request failed: {status}", source=self.type, status_code=status
            )
        return response

    async def _get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        async def _once():
            response = await self._request(url, params=params, headers=headers)
            try:
                return response.json()
            except ValueError as e:
                raise SourceError(
                    f"{self.name} returned invalid JSON", source=self.type
                ) from e

        return await self._with_retry(_once)

    async def _get_text(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        async def _once():
            response = await self._request(url, params=params, headers=headers)
            return response.text or ""

        return await self._with_retry(_once)

    async def _with_retry(self, operation):
        return await retry(
            operation,
            max_retries=self.settings.sources.max_retries,
            delay=self.settings.sources.retry_delay,
            retry_if=is_transient,
        )

    def _result(self, **fields) -> SourceResult:
        return SourceResult(source_type=self.type, **fields)

    def _log_fetch(self, query: str, count: int):
        logger.info(f"[{self.name}] Query '{query}' returned {count} results")

    def _log_error(self, message: str, error: BaseException):
        logger.warning(f"[{self.name}] {message}: {error}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r}, rpm={self.requests_per_minute})"
