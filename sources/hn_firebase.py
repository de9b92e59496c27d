"""
HN Firebase Source
Show HN / Ask HN / Jobs 列表，逐条拉取详情后过滤
"""
import asyncio
import logging
import math
from typing import Any, Dict, List, Optional

from core import SourceResult

from .base import BaseSource, SourceOptions, epoch_to_iso, matches_query, sort_by_score


logger = logging.getLogger(__name__)

STORY_ENDPOINTS = ["showstories", "askstories", "jobstories"]


class HNFirebaseSource(BaseSource):
    """
    Hacker News 官方 Firebase API 数据源

    没有搜索能力，只能在列表结果上做关键词过滤。
    """

    name = "HN Show/Ask/Jobs"
    type = "hn-firebase"
    requests_per_minute = 30

    BASE_URL = "https://hacker-news.firebaseio.com/v0"
    ITEM_URL = "https://news.ycombinator.com/item?id="

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        per_endpoint = math.ceil(options.limit / len(STORY_ENDPOINTS))
        outcomes = await asyncio.gather(
            *(self._fetch_story_list(ep, per_endpoint) for ep in STORY_ENDPOINTS),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for endpoint, outcome in zip(STORY_ENDPOINTS, outcomes):
            if isinstance(outcome, BaseException):
                self._log_error(f"{endpoint} failed", outcome)
                continue
            results.extend(outcome)

        results = [r for r in results if matches_query(f"{r.title} {r.content}", options.query)]
        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _fetch_story_list(self, endpoint: str, limit: int) -> List[SourceResult]:
        ids = await self._get_json(f"{self.BASE_URL}/{endpoint}.json") or []
        items = await asyncio.gather(
            *(self._fetch_item(item_id) for item_id in ids[:limit]),
            return_exceptions=True,
        )
        return [
            self._convert_item(item)
            for item in items
            if isinstance(item, dict) and item.get("id") is not None
        ]

    async def _fetch_item(self, item_id: int) -> Optional[Dict[str, Any]]:
        return await self._get_json(f"{self.BASE_URL}/item/{item_id}.json")

    def _convert_item(self, item: Dict[str, Any]) -> SourceResult:
        title = item.get("title") or "Untitled"
        return self._result(
            title=title,
            url=item.get("url") or f"{self.ITEM_URL}{item['id']}",
            content=item.get("text") or item.get("title") or "",
            score=item.get("score"),
            timestamp=epoch_to_iso(item.get("time")),
            metadata={
                "author": item.get("by"),
                "commentsCount": item.get("descendants"),
                "storyType": item.get("type"),
            },
        )
