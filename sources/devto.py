"""
Dev.to Source
按标签抓取文章，按查询词过滤后按点赞排序
"""
import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from config import Settings
from core import SourceResult

from .base import BaseSource, SourceOptions, matches_query, sort_by_score


logger = logging.getLogger(__name__)


class DevToSource(BaseSource):
    """Dev.to 数据源 (公开 articles API)"""

    name = "Dev.to"
    type = "devto"
    requests_per_minute = 30
    customizable_field = "tags"

    API_URL = "https://dev.to/api/articles"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None,
                 tags: Optional[List[str]] = None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.tags = list(tags or self.settings.devto.tags)

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        if not self.tags:
            return []

        per_tag = math.ceil(options.limit / len(self.tags))
        outcomes = await asyncio.gather(
            *(self._fetch_tag(tag, per_tag) for tag in self.tags),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for tag, outcome in zip(self.tags, outcomes):
            if isinstance(outcome, BaseException):
                self._log_error(f"Tag '{tag}' failed", outcome)
                continue
            results.extend(outcome)

        results = [r for r in results if matches_query(f"{r.title} {r.content}", options.query)]
        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _fetch_tag(self, tag: str, limit: int) -> List[SourceResult]:
        articles = await self._get_json(self.API_URL, params={"tag": tag, "per_page": limit})
        return [self._convert_article(a) for a in articles or []]

    def _convert_article(self, article: Dict[str, Any]) -> SourceResult:
        title = article.get("title") or "Untitled"
        return self._result(
            title=title,
            url=article.get("url"),
            content=article.get("description") or title,
            score=article.get("positive_reactions_count"),
            timestamp=article.get("published_at"),
            metadata={
                "tags": article.get("tag_list") or [],
                "author": (article.get("user") or {}).get("username"),
                "commentsCount": article.get("comments_count"),
            },
        )
