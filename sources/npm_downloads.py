"""
npm Downloads Source
搜索 npm 包并附带上月下载量
"""
import asyncio
import logging
from typing import Any, Dict, List
from urllib.parse import quote

from core import SourceResult

from .base import BaseSource, SourceOptions, sort_by_score


logger = logging.getLogger(__name__)


class NpmDownloadsSource(BaseSource):
    """npm 数据源：得分为上月下载量"""

    name = "npm Downloads"
    type = "npm-downloads"
    requests_per_minute = 20

    SEARCH_URL = "https://registry.npmjs.org/-/v1/search"
    DOWNLOADS_URL = "https://api.npmjs.org/downloads/point/last-month"

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        data = await self._get_json(
            self.SEARCH_URL, params={"text": options.query, "size": min(options.limit, 250)}
        )
        packages = [obj.get("package") or {} for obj in (data or {}).get("objects", [])[: options.limit]]
        packages = [pkg for pkg in packages if pkg.get("name")]

        downloads = await asyncio.gather(*(self._get_downloads(pkg["name"]) for pkg in packages))
        results = [self._convert_package(pkg, count) for pkg, count in zip(packages, downloads)]

        results = sort_by_score(results)[: options.limit]
        self._log_fetch(options.query, len(results))
        return results

    async def _get_downloads(self, package: str) -> int:
        """下载量接口失败时记为 0"""
        try:
            data = await self._get_json(f"{self.DOWNLOADS_URL}/{quote(package, safe='@')}")
            return int((data or {}).get("downloads") or 0)
        except Exception as e:
            logger.debug(f"[{self.name}] Downloads lookup for {package} failed: {e}")
            return 0

    def _convert_package(self, pkg: Dict[str, Any], downloads: int) -> SourceResult:
        links = pkg.get("links") or {}
        return self._result(
            title=pkg["name"],
            url=links.get("npm"),
            content=pkg.get("description") or pkg["name"],
            score=downloads,
            timestamp=pkg.get("date"),
            metadata={
                "keywords": pkg.get("keywords") or [],
                "author": (pkg.get("author") or {}).get("name"),
                "monthlyDownloads": downloads,
                "repository": links.get("repository"),
            },
        )
