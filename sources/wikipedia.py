"""
Wikipedia Pageviews Source
统计查询词对应词条近 30 天的浏览量
"""
import asyncio
from datetime import datetime, timedelta, timezone
import logging
from typing import List, Optional
from urllib.parse import quote

from core import SourceResult
from utils.exceptions import SourceError

from .base import BaseSource, SourceOptions, now_iso, sort_by_score


logger = logging.getLogger(__name__)

MIN_TOPIC_LENGTH = 3
WINDOW_DAYS = 30


def topics_from_query(query: str) -> List[str]:
    """长度大于 2 的查询词，首字母大写"""
    words = [w for w in str(query or "").split() if len(w) >= MIN_TOPIC_LENGTH]
    return [w[0].upper() + w[1:] for w in words]


class WikipediaSource(BaseSource):
    """Wikimedia Pageviews API 数据源，每个查询词一条结果"""

    name = "Wikipedia Pageviews"
    type = "wikipedia"
    requests_per_minute = 20

    PAGEVIEWS_URL = (
        "https://wikimedia.org/api/rest_v1/metrics/pageviews/per-article/"
        "en.wikipedia/all-access/all-agents"
    )

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        topics = topics_from_query(options.query)[: options.limit]
        outcomes = await asyncio.gather(
            *(self._fetch_pageviews(topic) for topic in topics),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for topic, outcome in zip(topics, outcomes):
            if isinstance(outcome, SourceError) and outcome.status_code == 404:
                # 词条不存在
                logger.debug(f"[{self.name}] No pageviews for {topic}: {outcome}")
                continue
            if isinstance(outcome, BaseException):
                self._log_error(f"Pageviews for {topic} failed", outcome)
                continue
            if outcome is not None:
                results.append(outcome)

        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _fetch_pageviews(self, topic: str) -> Optional[SourceResult]:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=WINDOW_DAYS)
        article = quote(topic, safe="")
        url = f"{self.PAGEVIEWS_URL}/{article}/daily/{start:%Y%m%d}/{end:%Y%m%d}"

        data = await self._get_json(url)
        items = (data or {}).get("items") or []
        if not items:
            return None

        total_views = sum(int(day.get("views") or 0) for day in items)
        return self._result(
            title=f"Wikipedia: {topic}",
            url=f"https://en.wikipedia.org/wiki/{article}",
            content=f'"{topic}" received {total_views:,} Wikipedia pageviews in the last {WINDOW_DAYS} days',
            score=total_views,
            timestamp=now_iso(),
            metadata={
                "dailyViews": [{"date": d.get("timestamp"), "views": d.get("views")} for d in items],
                "totalViews": total_views,
            },
        )
