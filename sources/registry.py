"""
Source Registry
按 type 管理数据源并并发抓取
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from config import Settings, get_settings
from core import SourceResult
from utils.exceptions import ConfigurationError

from .base import BaseSource, SourceOptions


logger = logging.getLogger(__name__)


class SourceRegistry:
    """
    数据源注册表

    同一 type 重复注册时后者覆盖前者；``fetch_all`` 中单个数据源失败不会影响其它数据源。
    """

    def __init__(self, sources: Optional[Iterable[BaseSource]] = None):
        self._sources: Dict[str, BaseSource] = {}
        for source in sources or []:
            self.register(source)

    def register(self, source: BaseSource) -> None:
        self._sources[source.type] = source
        logger.debug(f"Registered source: {source.name} ({source.type})")

    def get(self, source_type: str) -> Optional[BaseSource]:
        return self._sources.get(source_type)

    def list(self) -> List[Dict[str, str]]:
        return [{"name": s.name, "type": s.type} for s in self._sources.values()]

    def types(self) -> List[str]:
        return list(self._sources.keys())

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_type: str) -> bool:
        return source_type in self._sources

    async def fetch_all(
        self,
        options: SourceOptions,
        source_types: Optional[List[str]] = None,
    ) -> List[SourceResult]:
        """
        并发抓取指定 (或全部) 数据源

        Args:
            options: 查询参数
            source_types: 数据源 type 列表，None 表示全部；未知 type 会被忽略

        Returns:
            所有成功数据源结果的拼接 (按数据源顺序)
        """
        if source_types is None:
            targets = list(self._sources.values())
        else:
            targets = [self._sources[t] for t in source_types if t in self._sources]
            unknown = [t for t in source_types if t not in self._sources]
            if unknown:
                logger.warning(f"Ignoring unknown sources: {', '.join(unknown)}")

        if not targets:
            logger.warning("No sources to fetch from")
            return []

        logger.info(
            f"Fetching from {len(targets)} sources: {', '.join(s.name for s in targets)}"
        )

        outcomes = await asyncio.gather(
            *(source.fetch(options) for source in targets),
            return_exceptions=True,
        )

        all_results: List[SourceResult] = []
        for source, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Source {source.name} failed: {outcome}")
                continue
            logger.info(f"{source.name}: fetched {len(outcome)} results")
            all_results.extend(outcome)

        return all_results

    def with_overrides(self, custom_sources: Optional[Dict[str, List[str]]]) -> "SourceRegistry":
        """
        生成应用了自定义列表的注册表副本 (仅本次运行使用)

        不支持定制的数据源或未知 type 记录警告后忽略。
        """
        if not custom_sources:
            return self

        clone = SourceRegistry()
        clone._sources = dict(self._sources)
        for source_type, values in custom_sources.items():
            source = self._sources.get(source_type)
            if source is None:
                logger.warning(f"Ignoring override for unknown source: {source_type}")
                continue
            try:
                clone._sources[source_type] = source.customize(values)
            except ConfigurationError as e:
                logger.warning(f"Ignoring override for {source_type}: {e}")
        return clone

    async def close(self) -> None:
        for source in self._sources.values():
            await source.close()


def build_default_registry(settings: Optional[Settings] = None, client=None) -> SourceRegistry:
    """注册全部内置数据源"""
    from .devto import DevToSource
    from .github import GitHubSource
    from .google_trends import GoogleTrendsSource
    from .hackernews import HackerNewsSource
    from .hn_firebase import HNFirebaseSource
    from .lobsters import LobstersSource
    from .npm_downloads import NpmDownloadsSource
    from .reddit import RedditSource
    from .rss import RSSSource
    from .stackexchange import StackExchangeSource
    from .web_scraper import WebScraperSource
    from .wikipedia import WikipediaSource

    settings = settings or get_settings()
    source_classes = [
        HackerNewsSource,
        RedditSource,
        GoogleTrendsSource,
        RSSSource,
        WebScraperSource,
        DevToSource,
        LobstersSource,
        GitHubSource,
        StackExchangeSource,
        HNFirebaseSource,
        WikipediaSource,
        NpmDownloadsSource,
    ]
    return SourceRegistry(cls(settings=settings, client=client) for cls in source_classes)
