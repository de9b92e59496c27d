"""
Sources Module
市场信号数据源
"""
from .base import BaseSource, SourceOptions, is_transient, matches_query
from .registry import SourceRegistry, build_default_registry
from .hackernews import HackerNewsSource
from .reddit import RedditSource
from .google_trends import GoogleTrendsSource
from .rss import RSSSource
from .web_scraper import WebScraperSource
from .devto import DevToSource
from .lobsters import LobstersSource
from .github import GitHubSource
from .stackexchange import StackExchangeSource
from .hn_firebase import HNFirebaseSource
from .wikipedia import WikipediaSource
from .npm_downloads import NpmDownloadsSource

__all__ = [
    "BaseSource",
    "SourceOptions",
    "is_transient",
    "matches_query",
    "SourceRegistry",
    "build_default_registry",
    "HackerNewsSource",
    "RedditSource",
    "GoogleTrendsSource",
    "RSSSource",
    "WebScraperSource",
    "DevToSource",
    "LobstersSource",
    "GitHubSource",
    "StackExchangeSource",
    "HNFirebaseSource",
    "WikipediaSource",
    "NpmDownloadsSource",
]
