"""
Stack Exchange Source
按投票数搜索问题，正文去除 HTML
"""
import logging
from typing import Any, Dict, List, Optional

from config import Settings
from core import SourceResult

from .base import BaseSource, SourceOptions, epoch_to_iso, strip_html


logger = logging.getLogger(__name__)

CONTENT_MAX_CHARS = 1000


class StackExchangeSource(BaseSource):
    """Stack Exchange 数据源 (API 2.3，匿名每日约 300 次)"""

    name = "Stack Exchange"
    type = "stackexchange"
    requests_per_minute = 5

    SEARCH_URL = "https://api.stackexchange.com/2.3/search/advanced"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.site = self.settings.stackexchange.site
        self.api_key = self.settings.stackexchange.api_key

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        params = {
            "q": options.query,
            "site": self.site,
            "sort": "votes",
            "order": "desc",
            "pagesize": min(options.limit, 100),
            "filter": "withbody",
        }
        if self.api_key:
            params["key"] = self.api_key

        data = await self._get_json(self.SEARCH_URL, params=params, headers={"Accept": "application/json"})
        results = [self._convert_question(q) for q in (data or {}).get("items", [])[: options.limit]]
        self._log_fetch(options.query, len(results))
        return results

    def _convert_question(self, question: Dict[str, Any]) -> SourceResult:
        title = strip_html(question.get("title") or "") or "Untitled"
        body = question.get("body")
        return self._result(
            title=title,
            url=question.get("link"),
            content=strip_html(body)[:CONTENT_MAX_CHARS] if body else title,
            score=question.get("score"),
            timestamp=epoch_to_iso(question.get("creation_date")),
            metadata={
                "tags": question.get("tags") or [],
                "answerCount": question.get("answer_count"),
                "viewCount": question.get("view_count"),
                "author": (question.get("owner") or {}).get("display_name"),
            },
        )
