"""
Reddit Source
按 subreddit 并发搜索，汇总后按得分排序
"""
import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from config import Settings
from core import SourceResult

from .base import BaseSource, SourceOptions, epoch_to_iso, sort_by_score


logger = logging.getLogger(__name__)


class RedditSource(BaseSource):
    """
    Reddit 数据源

    使用 old.reddit.com 的公开 search.json，无需 OAuth。
    单个 subreddit 失败只记录日志，不影响其它 subreddit。
    """

    name = "Reddit"
    type = "reddit"
    requests_per_minute = 30
    customizable_field = "subreddits"

    BASE_URL = "https://old.reddit.com"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None,
                 subreddits: Optional[List[str]] = None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.subreddits = list(subreddits or self.settings.reddit.subreddits)

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        if not self.subreddits:
            return []

        per_sub = math.ceil(options.limit / len(self.subreddits))
        outcomes = await asyncio.gather(
            *(self._search_subreddit(sub, options.query, per_sub) for sub in self.subreddits),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for sub, outcome in zip(self.subreddits, outcomes):
            if isinstance(outcome, BaseException):
                self._log_error(f"r/{sub} search failed", outcome)
                continue
            results.extend(outcome)

        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _search_subreddit(self, subreddit: str, query: str, limit: int) -> List[SourceResult]:
        params = {
            "q": query,
            "sort": "relevance",
            "t": "month",
            "limit": limit,
            "restrict_sr": "1",
        }
        data = await self._get_json(f"{self.BASE_URL}/r/{subreddit}/search.json", params=params)
        children = ((data or {}).get("data") or {}).get("children") or []
        return [self._convert_post(child.get("data") or {}) for child in children]

    def _convert_post(self, post: Dict[str, Any]) -> SourceResult:
        title = post.get("title") or "Untitled"
        return self._result(
            title=title,
            url=f"https://reddit.com{post.get('permalink', '')}",
            content=post.get("selftext") or title,
            score=post.get("score"),
            timestamp=epoch_to_iso(post.get("created_utc")),
            metadata={
                "subreddit": post.get("subreddit"),
                "author": post.get("author"),
                "numComments": post.get("num_comments"),
            },
        )
