"""
Hacker News Source
使用 Algolia HN Search API 搜索故事
API 文档: https://hn.algolia.com/api
"""
import logging
from typing import Any, Dict, List, Optional

from core import SourceResult

from .base import BaseSource, SourceOptions


logger = logging.getLogger(__name__)


class HackerNewsSource(BaseSource):
    """
    Hacker News 数据源 (Algolia API)

    服务端全文搜索，仅返回 story，无需 API Key。
    """

    name = "Hacker News"
    type = "hackernews"
    requests_per_minute = 30

    ALGOLIA_URL = "https://hn.algolia.com/api/v1"
    ITEM_URL = "https://news.ycombinator.com/item?id="

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        params = {
            "query": options.query,
            "tags": "story",
            "hitsPerPage": options.limit,
        }
        data = await self._get_json(f"{self.ALGOLIA_URL}/search", params=params)

        results = []
        for hit in (data or {}).get("hits", [])[: options.limit]:
            item = self._convert_hit(hit)
            if item:
                results.append(item)

        self._log_fetch(options.query, len(results))
        return results

    def _convert_hit(self, hit: Dict[str, Any]) -> Optional[SourceResult]:
        """将 Algolia 结果转换为 SourceResult"""
        object_id = hit.get("objectID")
        if not object_id:
            return None

        title = hit.get("title") or "Untitled"
        return self._result(
            title=title,
            url=hit.get("url") or f"{self.ITEM_URL}{object_id}",
            content=hit.get("story_text") or hit.get("comment_text") or hit.get("title") or "",
            score=hit.get("points"),
            timestamp=hit.get("created_at"),
            metadata={
                "author": hit.get("author"),
                "numComments": hit.get("num_comments"),
                "hnId": object_id,
            },
        )
