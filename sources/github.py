"""
GitHub Source
搜索近 90 天内创建的热门仓库
"""
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

from config import Settings
from core import SourceResult

from .base import BaseSource, SourceOptions


logger = logging.getLogger(__name__)


class GitHubSource(BaseSource):
    """
    GitHub 数据源 (REST search API)

    未认证时限额很低 (403 同样视为限流)，可通过 GITHUB_TOKEN 提升。
    """

    name = "GitHub"
    type = "github"
    requests_per_minute = 10
    rate_limit_statuses = frozenset({403, 429})

    SEARCH_URL = "https://api.github.com/search/repositories"
    WINDOW_DAYS = 90

    def __init__(self, settings: Optional[Settings] = None, client=None, rate_limiter=None):
        super().__init__(settings=settings, client=client, rate_limiter=rate_limiter)
        self.token = self.settings.github.token

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.settings.sources.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, options: SourceOptions) -> List[SourceResult]:
        created_after = (datetime.now(timezone.utc) - timedelta(days=self.WINDOW_DAYS)).date().isoformat()
        params = {
            "q": f"{options.query} created:>{created_after}",
            "sort": "stars",
            "order": "desc",
            "per_page": min(options.limit, 100),
        }
        data = await self._get_json(self.SEARCH_URL, params=params, headers=self._headers())

        results = [self._convert_repo(repo) for repo in (data or {}).get("items", [])[: options.limit]]
        self._log_fetch(options.query, len(results))
        return results

    def _convert_repo(self, repo: Dict[str, Any]) -> SourceResult:
        full_name = repo.get("full_name") or "unknown"
        return self._result(
            title=full_name,
            url=repo.get("html_url"),
            content=repo.get("description") or full_name,
            score=repo.get("stargazers_count"),
            timestamp=repo.get("created_at"),
            metadata={
                "language": repo.get("language"),
                "topics": repo.get("topics") or [],
                "forks": repo.get("forks_count"),
                "owner": (repo.get("owner") or {}).get("login"),
            },
        )
