import httpx
import pytest

from newsagent.core.entities import Source
from newsagent.ingestion.arxiv import ArxivAdapter
from newsagent.ingestion.github_trending import GitHubTrendingAdapter
from newsagent.ingestion.hackernews import HackerNewsAdapter
from newsagent.ingestion.source_factory import create_adapters_from_config, create_source_adapter
from newsagent.services.config import RetryConfig, SourceConfig, parse_config

from conftest import RUN_DATE

NO_WAIT = RetryConfig(max_attempts=2, base_delay=0)


def hn_transport(stories, top_ids=None, fail_ids=(), top_status=200):
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/topstories.json"):
            ids = top_ids if top_ids is not None else list(stories)
            return httpx.Response(top_status, json=ids)
        sid = int(path.rsplit("/", 1)[-1].split(".")[0])
        if sid in fail_ids:
            return httpx.Response(500)
        return httpx.Response(200, json=stories.get(sid))

    return httpx.MockTransport(handler)


def story(sid, **overrides):
    data = {
        "id": sid,
        "type": "story",
        "title": f"Story {sid}",
        "url": f"https://example.com/{sid}",
        "score": 100 + sid,
        "by": f"user{sid}",
        "descendants": sid,
        "time": 1714550400,
    }
    data.update(overrides)
    return data


class TestHackerNewsAdapter:
    async def test_maps_stories_in_rank_order(self):
        stories = {1: story(1), 2: story(2), 3: story(3)}
        adapter = HackerNewsAdapter(limit=2, retry=NO_WAIT, transport=hn_transport(stories))

        items = await adapter.fetch_items(RUN_DATE)

        assert [i.title for i in items] == ["Story 1", "Story 2"]
        first = items[0]
        assert first.id == f"hacker-news-{RUN_DATE}-0"
        assert first.source == Source.HACKER_NEWS
        assert first.score == 101
        assert first.author == "user1"
        assert first.secondary_count == 1
        assert first.published_at == "2024-05-01T08:00:00+00:00"
        assert first.summary is None

    async def test_skips_non_stories_and_missing_urls(self):
        stories = {
            1: story(1, type="job"),
            2: story(2, url=None),
            3: story(3),
        }
        adapter = HackerNewsAdapter(limit=5, retry=NO_WAIT, transport=hn_transport(stories))

        items = await adapter.fetch_items(RUN_DATE)

        assert [i.title for i in items] == ["Story 3"]
        assert items[0].id == f"hacker-news-{RUN_DATE}-0"

    async def test_failed_story_is_skipped(self):
        stories = {1: story(1), 2: story(2)}
        adapter = HackerNewsAdapter(limit=5, retry=NO_WAIT, transport=hn_transport(stories, fail_ids=(1,)))

        items = await adapter.fetch_items(RUN_DATE)
        assert [i.title for i in items] == ["Story 2"]

    async def test_top_stories_failure_returns_empty(self):
        adapter = HackerNewsAdapter(retry=NO_WAIT, transport=hn_transport({}, top_status=503))
        assert await adapter.fetch_items(RUN_DATE) == []

    async def test_limit_override(self):
        stories = {i: story(i) for i in range(1, 6)}
        adapter = HackerNewsAdapter(limit=5, retry=NO_WAIT, transport=hn_transport(stories))

        assert len(await adapter.fetch_items(RUN_DATE, limit=1)) == 1
        assert await adapter.fetch_items(RUN_DATE, limit=0) == []


def repo(name, stars, description="A repo"):
    return {
        "full_name": f"octo/{name}",
        "description": description,
        "html_url": f"https://github.com/octo/{name}",
        "stargazers_count": stars,
        "owner": {"login": "octo"},
        "open_issues_count": 4,
        "created_at": "2024-04-28T10:00:00Z",
    }


class TestGitHubTrendingAdapter:
    async def test_queries_last_week_sorted_by_stars(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"items": [repo("low", 10), repo("high", 500)]})

        adapter = GitHubTrendingAdapter(token="secret", limit=5, retry=NO_WAIT, transport=httpx.MockTransport(handler))
        items = await adapter.fetch_items(RUN_DATE)

        assert seen["params"]["q"] == "created:>2024-04-24"
        assert seen["params"]["sort"] == "stars"
        assert seen["params"]["order"] == "desc"
        assert seen["auth"] == "Bearer secret"

        assert [i.title for i in items] == ["octo/high: A repo", "octo/low: A repo"]
        assert items[0].id == f"github-trending-{RUN_DATE}-0"
        assert items[0].score == 500
        assert items[0].author == "octo"
        assert items[0].secondary_count == 4
        assert items[0].published_at == "2024-04-28T10:00:00Z"

    async def test_title_without_description(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"items": [repo("bare", 1, description=None)]})
        )
        adapter = GitHubTrendingAdapter(retry=NO_WAIT, transport=transport)

        items = await adapter.fetch_items(RUN_DATE)
        assert items[0].title == "octo/bare"

    async def test_failure_returns_empty(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, json={"message": "rate limited"}))
        adapter = GitHubTrendingAdapter(retry=NO_WAIT, transport=transport)

        assert await adapter.fetch_items(RUN_DATE) == []


ARXIV_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>arXiv Query</title>
  <entry>
    <id>http://arxiv.org/abs/2405.00001v1</id>
    <published>2024-04-30T17:59:59Z</published>
    <title>Agents   that
      Plan</title>
    <summary>We study planning.</summary>
    <author><name>Ada Lovelace</name></author>
    <author><name>Alan Turing</name></author>
    <link href="http://arxiv.org/abs/2405.00001v1" rel="alternate" type="text/html"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/2405.00002v1</id>
    <published>2024-04-30T12:00:00Z</published>
    <title>Second Paper</title>
    <author><name>Grace Hopper</name></author>
    <link href="http://arxiv.org/abs/2405.00002v1" rel="alternate" type="text/html"/>
  </entry>
</feed>
"""


class TestArxivAdapter:
    async def test_parses_feed(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, text=ARXIV_FEED)

        adapter = ArxivAdapter(category="cs.CL", limit=5, retry=NO_WAIT, transport=httpx.MockTransport(handler))
        items = await adapter.fetch_items(RUN_DATE)

        assert seen["params"]["search_query"] == "cat:cs.CL"
        assert [i.title for i in items] == ["Agents that Plan", "Second Paper"]
        assert items[0].url == "http://arxiv.org/abs/2405.00001v1"
        assert items[0].author == "Ada Lovelace"
        assert items[0].secondary_count == 2
        assert items[0].published_at == "2024-04-30T17:59:59+00:00"
        assert items[0].id == f"arxiv-{RUN_DATE}-0"

    async def test_failure_returns_empty(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        adapter = ArxivAdapter(retry=NO_WAIT, transport=httpx.MockTransport(handler))
        assert await adapter.fetch_items(RUN_DATE) == []


class TestSourceFactory:
    def test_creates_enabled_adapters(self):
        config = parse_config({})
        adapters = create_adapters_from_config(config)

        assert [a.name for a in adapters] == ["hacker-news", "github-trending"]
        assert all(a.limit == 5 for a in adapters)

    def test_unknown_type_is_skipped(self):
        config = parse_config({"sources": [{"type": "myspace"}, {"type": "arxiv", "limit": 2}]})
        adapters = create_adapters_from_config(config)

        assert len(adapters) == 1
        assert isinstance(adapters[0], ArxivAdapter)
        assert adapters[0].limit == 2

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError, match="myspace"):
            create_source_adapter(SourceConfig(type="myspace"), parse_config({}))
