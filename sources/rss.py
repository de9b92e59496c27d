"""
RSS Source
抓取配置的 RSS/Atom 订阅，按查询词过滤
"""
import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from config import Settings
from core import SourceResult
from utils.exceptions import SourceError

from .base import BaseSource, SourceOptions, matches_query, strip_html, to_iso


logger = logging.getLogger(__name__)

CONTENT_MAX_CHARS = 1000


def _local(tag: str) -> str:
    return str(tag or "").rsplit("}", 1)[-1]


def _rss_text(node: ET.Element, *names: str) -> str:
    for name in names:
        for child in list(node):
            if _local(child.tag) == name and (child.text or "").strip():
                return str(child.text).strip()
    return ""


def _atom_link(node: ET.Element) -> str:
    for child in list(node):
        if _local(child.tag) == "link":
            href = child.attrib.get("href")
            if href:
                return href
            if (child.text or "").strip():
                return child.text.strip()
    return ""


class RSSSource(BaseSource):
    """
    RSS/Atom 数据源

    同时支持 RSS 2.0 的 <item> 与 Atom 的 <entry>；单个订阅失败只记录日志。
    """

    name = "RSS Feeds"
    type = "rss"
    requests_per_minute = 20
    customizable_field = "feeds"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None,
                 feeds: Optional[List[str]] = None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.feeds = list(feeds or self.settings.rss.feeds)

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        outcomes = await asyncio.gather(
            *(self._fetch_feed(url, options.query) for url in self.feeds),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for url, outcome in zip(self.feeds, outcomes):
            if isinstance(outcome, BaseException):
                self._log_error(f"Feed {url} failed", outcome)
                continue
            results.extend(outcome)

        results = results[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _fetch_feed(self, feed_url: str, query: str) -> List[SourceResult]:
        xml_text = await self._get_text(feed_url)
        if not xml_text.strip():
            return []
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise SourceError(f"Invalid feed {feed_url}: {e}", source=self.type) from e

        channel = next((n for n in root.iter() if _local(n.tag) == "channel"), root)
        feed_title = _rss_text(channel, "title")

        results: List[SourceResult] = []
        for entry in root.iter():
            if _local(entry.tag) not in {"item", "entry"}:
                continue

            title = _rss_text(entry, "title")
            content = strip_html(_rss_text(entry, "description", "summary", "content", "encoded"))
            if not matches_query(f"{title} {content}", query):
                continue

            results.append(
                self._result(
                    title=title or "Untitled",
                    url=_rss_text(entry, "link") or _atom_link(entry) or None,
                    content=content[:CONTENT_MAX_CHARS],
                    timestamp=to_iso(_rss_text(entry, "pubDate", "published", "updated", "date")),
                    metadata={"feedTitle": feed_title, "feedUrl": feed_url},
                )
            )
        return results
