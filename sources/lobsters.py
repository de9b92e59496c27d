"""
Lobste.rs Source
抓取热门列表并按查询词过滤
"""
import logging
from typing import Any, Dict, List

from core import SourceResult

from .base import BaseSource, SourceOptions, matches_query


logger = logging.getLogger(__name__)


class LobstersSource(BaseSource):
    """Lobste.rs 数据源 (hottest.json，无搜索接口)"""

    name = "Lobste.rs"
    type = "lobsters"
    requests_per_minute = 20

    HOTTEST_URL = "https://lobste.rs/hottest.json"

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        stories = await self._get_json(self.HOTTEST_URL) or []

        results = []
        for story in stories:
            tags = story.get("tags") or []
            text = f"{story.get('title', '')} {story.get('description', '')} {' '.join(tags)}"
            if matches_query(text, options.query):
                results.append(self._convert_story(story))
            if len(results) >= options.limit:
                break

        self._log_fetch(options.query, len(results))
        return results

    def _convert_story(self, story: Dict[str, Any]) -> SourceResult:
        title = story.get("title") or "Untitled"
        submitter = story.get("submitter_user")
        author = submitter.get("username") if isinstance(submitter, dict) else submitter
        return self._result(
            title=title,
            url=story.get("url") or f"https://lobste.rs/s/{story.get('short_id', '')}",
            content=story.get("description") or title,
            score=story.get("score"),
            timestamp=story.get("created_at"),
            metadata={
                "tags": story.get("tags") or [],
                "author": author,
                "commentsCount": story.get("comment_count"),
            },
        )
