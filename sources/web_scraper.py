"""
Web Scraper Source
抓取配置的页面，提取类文章元素
"""
import asyncio
import logging
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from config import Settings
from core import SourceResult

from .base import BaseSource, SourceOptions, matches_query, now_iso


logger = logging.getLogger(__name__)

ARTICLE_SELECTOR = "article, .post, .entry, [class*='card'], [class*='item']"
NOISE_TAGS = ["script", "style", "nav", "footer", "header"]
ELEMENT_CONTENT_CHARS = 500
PAGE_CONTENT_CHARS = 1000


class WebScraperSource(BaseSource):
    """
    网页抓取数据源

    页面没有可识别的文章元素时，退化为整页正文的一条结果。
    """

    name = "Web Scraper"
    type = "web-scraper"
    requests_per_minute = 10
    customizable_field = "urls"

    BROWSER_UA = "Mozilla/5.0 (compatible; ideator-bot/1.0; internal tool)"

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None,
                 urls: Optional[List[str]] = None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.urls = list(urls or self.settings.web_scraper.urls)

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        outcomes = await asyncio.gather(
            *(self._scrape_url(url, options.query) for url in self.urls),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for url, outcome in zip(self.urls, outcomes):
            if isinstance(outcome, BaseException):
                self._log_error(f"Scrape {url} failed", outcome)
                continue
            results.extend(outcome)

        results = results[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _scrape_url(self, url: str, query: str) -> List[SourceResult]:
        html = await self._get_text(url, headers={"User-Agent": self.BROWSER_UA})
        return self.parse_page(html, url, query)

    def parse_page(self, html: str, url: str, query: str) -> List[SourceResult]:
        """从 HTML 中提取与查询相关的条目"""
        soup = BeautifulSoup(html or "", "lxml")
        for tag in soup(NOISE_TAGS):
            tag.decompose()

        fetched_at = now_iso()
        results: List[SourceResult] = []
        for element in soup.select(ARTICLE_SELECTOR):
            heading = element.find(["h1", "h2", "h3", "a"])
            title = heading.get_text(" ", strip=True) if heading else ""
            content = element.get_text(" ", strip=True)[:ELEMENT_CONTENT_CHARS]
            if not matches_query(f"{title} {content}", query):
                continue

            anchor = element.find("a")
            link = (anchor.get("href") if anchor else "") or ""
            results.append(
                self._result(
                    title=title or "Untitled",
                    url=urljoin(url, link),
                    content=content,
                    timestamp=fetched_at,
                    metadata={"sourceUrl": url},
                )
            )

        if results:
            return results

        body = soup.body.get_text(" ", strip=True) if soup.body else ""
        if body and matches_query(body[:2000], query):
            page_title = soup.title.get_text(strip=True) if soup.title else ""
            results.append(
                self._result(
                    title=page_title or url,
                    url=url,
                    content=body[:PAGE_CONTENT_CHARS],
                    timestamp=fetched_at,
                    metadata={"sourceUrl": url},
                )
            )
        return results
