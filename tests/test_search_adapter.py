from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core import TopicConfig
from pipeline import SourceSearchAdapter
from utils.exceptions import SearchError


HITS = [
    {"url": "https://www.echa.europa.eu/a", "title": "A", "content": "snippet a", "published_date": "2025-05-01"},
    {"url": "https://news.test/b", "title": "B", "content": "no date in here"},
    {"url": "https://news.test/c", "title": "C", "content": "old", "published_date": "2023-01-01"},
    {"url": "https://news.test/d", "title": "D", "content": "recent", "raw_content": "full text", "published_date": "2025-06-01"},
    {"title": "no url"},
]


@pytest.mark.asyncio
async def test_search_normalizes_filters_and_sorts(fake_search, now) -> None:
    provider = fake_search({"svhc": HITS})
    adapter = SourceSearchAdapter(provider, lookback_days=365, keep_undated=True, timeout=5)

    articles = await adapter.search("svhc", 10, topic_id="reach", now=now)

    assert [a.url for a in articles] == ["https://news.test/d", "https://www.echa.europa.eu/a", "https://news.test/b"]
    assert articles[0].content == "full text"
    assert articles[0].snippet == "recent"
    assert articles[1].source == "echa.europa.eu"
    assert articles[2].published_at is None
    assert all(a.topic_id == "reach" for a in articles)
    assert provider.calls[0]["days"] == 365


@pytest.mark.asyncio
async def test_search_can_drop_undated_hits(fake_search, now) -> None:
    adapter = SourceSearchAdapter(fake_search({"svhc": HITS}), lookback_days=365, keep_undated=False, timeout=5)

    articles = await adapter.search("svhc", 10, topic_id="reach", now=now)

    assert [a.url for a in articles] == ["https://news.test/d", "https://www.echa.europa.eu/a"]


@pytest.mark.asyncio
async def test_search_propagates_provider_errors(fake_search, now) -> None:
    adapter = SourceSearchAdapter(fake_search({"svhc": SearchError("down")}), timeout=5)
    with pytest.raises(SearchError):
        await adapter.search("svhc", 5, topic_id="reach", now=now)


@pytest.mark.asyncio
async def test_scan_skips_failing_query_and_dedupes_urls(fake_search, now) -> None:
    provider = fake_search(
        {
            "first": [HITS[0], HITS[3]],
            "broken": SearchError("rate limited"),
            "second": [HITS[3], {"url": "https://news.test/e", "content": "e", "published_date": "2025-04-01"}],
        }
    )
    adapter = SourceSearchAdapter(provider, lookback_days=365, keep_undated=True, timeout=5)
    config = TopicConfig(id="reach", search_queries=["first", "broken", "second"], allowed_domains=["echa.europa.eu"])

    articles = await adapter.scan(config, now=now)

    assert [a.url for a in articles] == [
        "https://news.test/d",
        "https://www.echa.europa.eu/a",
        "https://news.test/e",
    ]
    assert [c["query"] for c in provider.calls] == ["first", "broken", "second"]
    assert provider.calls[0]["include_domains"] == ["echa.europa.eu"]


@pytest.mark.asyncio
async def test_scan_caps_articles_per_query(fake_search, now) -> None:
    provider = fake_search({"q": [HITS[0], HITS[1], HITS[3]]})
    adapter = SourceSearchAdapter(provider, lookback_days=365, keep_undated=True, timeout=5)

    articles = await adapter.scan(TopicConfig(id="reach", search_queries=["q"], max_articles=2), now=now)

    assert len(articles) == 2
    assert provider.calls[0]["max_results"] == 2


@pytest.mark.asyncio
async def test_lookback_window_uses_now(fake_search) -> None:
    adapter = SourceSearchAdapter(fake_search({"q": HITS}), lookback_days=30, keep_undated=False, timeout=5)

    articles = await adapter.search("q", 10, topic_id="t", now=datetime(2025, 6, 15, tzinfo=timezone.utc))

    assert [a.url for a in articles] == ["https://news.test/d"]
