"""
Google Trends Source
解析 Google Trends 每日热搜 RSS，按查询词过滤
"""
import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

from config import Settings
from core import SourceResult
from utils.exceptions import SourceError

from .base import BaseSource, SourceOptions, matches_query, sort_by_score, to_iso


logger = logging.getLogger(__name__)


def _child_text(node: ET.Element, suffix: str) -> str:
    """按标签后缀查找子节点文本 (忽略命名空间前缀)"""
    for child in list(node):
        if str(child.tag or "").endswith(suffix):
            return str(child.text or "").strip()
    return ""


def parse_traffic(value: str) -> float:
    """'20,000+' / '2K+' / '1M+' -> 数值"""
    text = str(value or "").strip().upper().replace(",", "").rstrip("+")
    match = re.match(r"^(\d+(?:\.\d+)?)([KM]?)$", text)
    if not match:
        return 0.0
    number = float(match.group(1))
    multiplier = {"": 1, "K": 1_000, "M": 1_000_000}[match.group(2)]
    return number * multiplier


class GoogleTrendsSource(BaseSource):
    """
    Google Trends 数据源

    无官方 API，使用公开的 trending RSS；得分为近似搜索流量。
    """

    name = "Google Trends"
    type = "google-trends"
    requests_per_minute = 10

    RSS_URL = "https://trends.google.com/trending/rss"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.geo = self.settings.google_trends.geo

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        xml_text = await self._get_text(self.RSS_URL, params={"geo": self.geo})
        if not xml_text.strip():
            return []

        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise SourceError(f"Google Trends returned invalid RSS: {e}", source=self.type) from e

        results: List[SourceResult] = []
        for item in root.iter("item"):
            title = _child_text(item, "title")
            news_titles = [
                str(node.text or "").strip()
                for node in item.iter()
                if str(node.tag or "").endswith("news_item_title")
            ]
            text = " ".join([title, *news_titles])
            if not title or not matches_query(text, options.query):
                continue

            traffic = _child_text(item, "approx_traffic")
            news_url = next(
                (
                    str(node.text or "").strip()
                    for node in item.iter()
                    if str(node.tag or "").endswith("news_item_url")
                ),
                None,
            )
            results.append(
                self._result(
                    title=f"Trending: {title}",
                    url=news_url or _child_text(item, "link") or None,
                    content=(
                        f'Trending search "{title}" with approximately {traffic or "unknown"} searches. '
                        + " ".join(news_titles)
                    ).strip(),
                    score=parse_traffic(traffic),
                    timestamp=to_iso(_child_text(item, "pubDate")),
                    metadata={"approxTraffic": traffic, "geo": self.geo},
                )
            )

        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results
