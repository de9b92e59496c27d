from __future__ import annotations

from typing import Dict, List

import httpx
import pytest

from sources import (
    GitHubSource,
    GoogleTrendsSource,
    HackerNewsSource,
    HNFirebaseSource,
    LobstersSource,
    NpmDownloadsSource,
    RedditSource,
    RSSSource,
    SourceOptions,
    WebScraperSource,
    WikipediaSource,
    build_default_registry,
    matches_query,
)
from sources.base import epoch_to_iso, to_iso
from sources.google_trends import parse_traffic
from sources.wikipedia import topics_from_query
from utils.exceptions import ConfigurationError, SourceError, TransientSourceError

from fakes import json_response, mock_client, text_response


ALL_TYPES = [
    "hackernews",
    "reddit",
    "google-trends",
    "rss",
    "web-scraper",
    "devto",
    "lobsters",
    "github",
    "stackexchange",
    "hn-firebase",
    "wikipedia",
    "npm-downloads",
]

TEXT_TYPES = {"google-trends", "rss", "web-scraper"}

# 429 propagates from single-endpoint sources; fan-out sources isolate it per request
RAISES_ON_RATE_LIMIT = {"hackernews", "google-trends", "lobsters", "github", "stackexchange", "npm-downloads"}


def _registry(settings, handler):
    return build_default_registry(settings, client=mock_client(handler))


def test_default_registry_registers_every_source(settings):
    registry = build_default_registry(settings)
    assert registry.types() == ALL_TYPES
    assert all(entry["name"] for entry in registry.list())


@pytest.mark.asyncio
@pytest.mark.parametrize("source_type", ALL_TYPES)
async def test_empty_payload_yields_no_results(settings, source_type):
    def handler(request: httpx.Request) -> httpx.Response:
        if source_type in TEXT_TYPES:
            return text_response("")
        return json_response({})

    source = _registry(settings, handler).get(source_type)
    assert await source.fetch(SourceOptions(query="saas", limit=10)) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("source_type", ALL_TYPES)
async def test_rate_limited_response(settings, source_type):
    source = _registry(settings, lambda request: json_response({}, status_code=429)).get(source_type)
    options = SourceOptions(query="saas", limit=5)

    if source_type in RAISES_ON_RATE_LIMIT:
        with pytest.raises(TransientSourceError) as exc_info:
            await source.fetch(options)
        assert exc_info.value.status_code == 429
    else:
        assert await source.fetch(options) == []


@pytest.mark.asyncio
async def test_transient_errors_are_retried(settings):
    settings.sources.max_retries = 2
    calls: List[int] = []

    def handler(request):
        calls.append(1)
        if len(calls) < 3:
            return json_response({}, status_code=503)
        return json_response({"hits": [{"objectID": "1", "title": "SaaS", "points": 3}]})

    source = HackerNewsSource(settings=settings, client=mock_client(handler))
    results = await source.fetch(SourceOptions(query="saas", limit=5))

    assert len(calls) == 3
    assert [r.title for r in results] == ["SaaS"]


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(settings):
    settings.sources.max_retries = 3
    calls: List[int] = []

    def handler(request):
        calls.append(1)
        return json_response({}, status_code=400)

    source = LobstersSource(settings=settings, client=mock_client(handler))
    with pytest.raises(SourceError) as exc_info:
        await source.fetch(SourceOptions(query="saas"))

    assert not isinstance(exc_info.value, TransientSourceError)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_hackernews_maps_hits(settings):
    seen: Dict[str, str] = {}

    def handler(request):
        seen.update(request.url.params)
        return json_response(
            {
                "hits": [
                    {
                        "objectID": "42",
                        "title": "Show HN: invoices",
                        "points": 120,
                        "num_comments": 7,
                        "author": "pg",
                        "created_at": "2024-05-01T10:00:00Z",
                    },
                    {"title": "missing id"},
                ]
            }
        )

    source = HackerNewsSource(settings=settings, client=mock_client(handler))
    results = await source.fetch(SourceOptions(query="invoices", limit=5))

    assert seen["query"] == "invoices"
    assert seen["tags"] == "story"
    assert len(results) == 1
    item = results[0]
    assert item.source_type == "hackernews"
    assert item.url == "https://news.ycombinator.com/item?id=42"
    assert item.score == 120
    assert item.metadata["numComments"] == 7


@pytest.mark.asyncio
async def test_reddit_fans_out_and_sorts_by_score(settings):
    def handler(request):
        sub = request.url.path.split("/")[2]
        if sub == "broken":
            return json_response({}, status_code=500)
        score = {"SaaS": 5, "startups": 50}[sub]
        assert request.url.params["restrict_sr"] == "1"
        return json_response(
            {
                "data": {
                    "children": [
                        {
                            "data": {
                                "title": f"{sub} post",
                                "permalink": f"/r/{sub}/comments/1",
                                "score": score,
                                "created_utc": 1700000000,
                                "subreddit": sub,
                            }
                        }
                    ]
                }
            }
        )

    source = RedditSource(
        settings=settings, client=mock_client(handler), subreddits=["SaaS", "startups", "broken"]
    )
    results = await source.fetch(SourceOptions(query="tools", limit=10))

    assert [r.title for r in results] == ["startups post", "SaaS post"]
    assert results[0].url == "https://reddit.com/r/startups/comments/1"
    assert results[0].timestamp == epoch_to_iso(1700000000)


RSS_FEED = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Startup Feed</title>
<item><title>SaaS pricing guide</title><link>https://example.com/a</link>
<description>&lt;p&gt;How to price &lt;b&gt;SaaS&lt;/b&gt;&lt;/p&gt;</description>
<pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate></item>
<item><title>Gardening tips</title><link>https://example.com/b</link><description>Roses</description></item>
</channel></rss>"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"><title>Atom Feed</title>
<entry><title>Bootstrapped SaaS</title><link href="https://example.com/c"/>
<summary>Revenue story</summary><updated>2024-05-02T08:00:00Z</updated></entry>
</feed>"""


@pytest.mark.asyncio
async def test_rss_parses_rss_and_atom_and_filters(settings):
    feeds = {
        "https://feeds.test/rss": text_response(RSS_FEED),
        "https://feeds.test/atom": text_response(ATOM_FEED),
        "https://feeds.test/bad": text_response("<not xml"),
    }

    def handler(request):
        return feeds[str(request.url)]

    source = RSSSource(settings=settings, client=mock_client(handler), feeds=list(feeds))
    results = await source.fetch(SourceOptions(query="saas", limit=10))

    assert [r.title for r in results] == ["SaaS pricing guide", "Bootstrapped SaaS"]
    first, second = results
    assert first.content == "How to price SaaS"
    assert first.timestamp == "2024-05-01T10:00:00+00:00"
    assert first.metadata == {"feedTitle": "Startup Feed", "feedUrl": "https://feeds.test/rss"}
    assert second.url == "https://example.com/c"


TRENDS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:ht="https://trends.google.com/trending/rss" version="2.0"><channel>
<item><title>ai agents</title><ht:approx_traffic>20,000+</ht:approx_traffic>
<pubDate>Wed, 01 May 2024 10:00:00 -0700</pubDate>
<ht:news_item><ht:news_item_title>Startups bet on agents</ht:news_item_title>
<ht:news_item_url>https://news.test/agents</ht:news_item_url></ht:news_item></item>
<item><title>football</title><ht:approx_traffic>2M+</ht:approx_traffic></item>
<item><title>startup layoffs</title><ht:approx_traffic>5K+</ht:approx_traffic></item>
</channel></rss>"""


@pytest.mark.asyncio
async def test_google_trends_filters_and_scores_by_traffic(settings):
    source = GoogleTrendsSource(
        settings=settings, client=mock_client(lambda request: text_response(TRENDS_FEED))
    )
    results = await source.fetch(SourceOptions(query="startup", limit=10))

    assert [r.title for r in results] == ["Trending: ai agents", "Trending: startup layoffs"]
    assert results[0].score == 20000
    assert results[0].url == "https://news.test/agents"
    assert results[0].timestamp == "2024-05-01T17:00:00+00:00"


@pytest.mark.asyncio
async def test_google_trends_invalid_feed_raises(settings):
    source = GoogleTrendsSource(
        settings=settings, client=mock_client(lambda request: text_response("<rss"))
    )
    with pytest.raises(SourceError):
        await source.fetch(SourceOptions(query="ai"))


def test_parse_traffic():
    assert parse_traffic("20,000+") == 20000
    assert parse_traffic("2K+") == 2000
    assert parse_traffic("1.5M+") == 1_500_000
    assert parse_traffic("lots") == 0


def test_web_scraper_extracts_articles(settings):
    html = """<html><head><title>Blog</title></head><body>
    <nav>SaaS menu</nav>
    <article><h2>Scaling a SaaS</h2><a href="/posts/1">read</a><p>Lessons learned</p></article>
    <div class="card"><h3>Cooking</h3><p>Pasta</p></div>
    </body></html>"""
    source = WebScraperSource(settings=settings, urls=["https://blog.test"])

    results = source.parse_page(html, "https://blog.test", "saas")

    assert len(results) == 1
    assert results[0].title == "Scaling a SaaS"
    assert results[0].url == "https://blog.test/posts/1"
    assert results[0].metadata == {"sourceUrl": "https://blog.test"}


def test_web_scraper_resolves_relative_links_against_page_path(settings):
    html = """<html><body>
    <article><h2>SaaS pricing</h2><a href="/posts/2">read</a></article>
    <article><h2>SaaS churn</h2><a href="notes/3">read</a></article>
    </body></html>"""
    source = WebScraperSource(settings=settings, urls=["https://x.test/blog/index"])

    results = source.parse_page(html, "https://x.test/blog/index", "saas")

    assert [r.url for r in results] == ["https://x.test/posts/2", "https://x.test/blog/notes/3"]


def test_web_scraper_falls_back_to_page_body(settings):
    html = "<html><head><title>Landing</title></head><body><p>Invoice automation for SaaS</p></body></html>"
    source = WebScraperSource(settings=settings, urls=["https://landing.test"])

    results = source.parse_page(html, "https://landing.test", "invoice")

    assert len(results) == 1
    assert results[0].title == "Landing"
    assert results[0].url == "https://landing.test"


@pytest.mark.asyncio
async def test_github_sends_token_and_treats_403_as_rate_limit(settings):
    settings.github.token = "secret"
    headers: List[str] = []

    def handler(request):
        headers.append(request.headers.get("Authorization"))
        return json_response({"message": "rate limit"}, status_code=403)

    source = GitHubSource(settings=settings, client=mock_client(handler))
    with pytest.raises(TransientSourceError):
        await source.fetch(SourceOptions(query="crm"))
    assert headers == ["Bearer secret"]


@pytest.mark.asyncio
async def test_github_maps_repositories(settings):
    def handler(request):
        assert "created:>" in request.url.params["q"]
        return json_response(
            {
                "items": [
                    {
                        "full_name": "acme/crm",
                        "html_url": "https://github.com/acme/crm",
                        "description": "Open CRM",
                        "stargazers_count": 900,
                        "language": "Python",
                        "owner": {"login": "acme"},
                    }
                ]
            }
        )

    source = GitHubSource(settings=settings, client=mock_client(handler))
    (repo,) = await source.fetch(SourceOptions(query="crm"))
    assert repo.title == "acme/crm"
    assert repo.score == 900
    assert repo.metadata["owner"] == "acme"


@pytest.mark.asyncio
async def test_lobsters_matches_tags(settings):
    stories = [
        {"title": "A story", "tags": ["saas"], "score": 4, "short_id": "x1", "submitter_user": "amy"},
        {"title": "Other", "tags": ["rust"], "score": 9, "short_id": "x2", "submitter_user": {"username": "bo"}},
    ]
    source = LobstersSource(settings=settings, client=mock_client(lambda request: json_response(stories)))

    results = await source.fetch(SourceOptions(query="saas"))

    assert len(results) == 1
    assert results[0].url == "https://lobste.rs/s/x1"
    assert results[0].metadata["author"] == "amy"


@pytest.mark.asyncio
async def test_hn_firebase_drops_missing_items(settings):
    def handler(request):
        path = request.url.path
        if path.endswith("showstories.json"):
            return json_response([1, 2])
        if path.endswith("stories.json"):
            return json_response([])
        if path.endswith("/item/1.json"):
            return json_response({"id": 1, "title": "Show HN: SaaS kit", "score": 10, "time": 1700000000})
        return text_response("null")

    source = HNFirebaseSource(settings=settings, client=mock_client(handler))
    results = await source.fetch(SourceOptions(query="saas", limit=6))

    assert [r.title for r in results] == ["Show HN: SaaS kit"]
    assert results[0].url == "https://news.ycombinator.com/item?id=1"


@pytest.mark.asyncio
async def test_wikipedia_skips_missing_articles(settings):
    def handler(request):
        if "/Unknownthing/" in request.url.path:
            return json_response({}, status_code=404)
        return json_response({"items": [{"timestamp": "2024050100", "views": 100}, {"views": 50}]})

    source = WikipediaSource(settings=settings, client=mock_client(handler))
    results = await source.fetch(SourceOptions(query="crm unknownthing", limit=5))

    assert [r.title for r in results] == ["Wikipedia: Crm"]
    assert results[0].score == 150


def test_topics_from_query():
    assert topics_from_query("ai crm for small teams") == ["Crm", "For", "Small", "Teams"]


@pytest.mark.asyncio
async def test_npm_downloads_defaults_to_zero_on_lookup_failure(settings):
    def handler(request):
        if request.url.host == "registry.npmjs.org":
            return json_response(
                {"objects": [{"package": {"name": "fast-csv"}}, {"package": {"name": "slow-csv"}}]}
            )
        if request.url.path.endswith("fast-csv"):
            return json_response({"downloads": 1234})
        return json_response({}, status_code=404)

    source = NpmDownloadsSource(settings=settings, client=mock_client(handler))
    results = await source.fetch(SourceOptions(query="csv"))

    assert [(r.title, r.score) for r in results] == [("fast-csv", 1234), ("slow-csv", 0)]


@pytest.mark.asyncio
async def test_customize_shares_rate_limiter_and_client(settings):
    client = mock_client(lambda request: json_response([]))
    source = build_default_registry(settings, client=client).get("devto")

    clone = source.customize(["python", " ", "rust"])

    assert clone is not source
    assert clone.tags == ["python", "rust"]
    assert source.tags == settings.devto.tags
    assert clone.rate_limiter is source.rate_limiter
    assert clone._get_client() is source._get_client()


def test_customize_rejects_fixed_and_empty_sources(settings):
    registry = build_default_registry(settings)
    with pytest.raises(ConfigurationError):
        registry.get("hackernews").customize(["x"])
    with pytest.raises(ConfigurationError):
        registry.get("rss").customize(["  "])


def test_matches_query_and_timestamps():
    assert matches_query("Cheap CRM for dentists", "crm tools")
    assert not matches_query("Gardening", "crm tools")
    assert matches_query("anything", "  ")
    assert to_iso("2024-05-01T10:00:00Z") == "2024-05-01T10:00:00+00:00"
    assert to_iso("not a date") == "not a date"
    assert epoch_to_iso(None) is None
