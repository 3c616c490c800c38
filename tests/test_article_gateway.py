from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core import Article
from pipeline import ArticleStoreGateway
from storage import InMemoryUpdateStore
from utils.exceptions import StorageError


def _articles():
    return [
        Article(url="https://x.test/a", topic_id="reach", published_at=datetime(2025, 5, 1, tzinfo=timezone.utc)),
        Article(url="https://x.test/b", topic_id="reach"),
        Article(url="https://x.test/c", topic_id="reach", published_at=datetime(2025, 6, 1, tzinfo=timezone.utc)),
    ]


@pytest.mark.asyncio
async def test_dedupe_and_insert_is_idempotent(store) -> None:
    gateway = ArticleStoreGateway(store)

    first = await gateway.dedupe_and_insert(_articles())
    second = await gateway.dedupe_and_insert(_articles())

    assert len(first) == 3
    assert second == []
    persisted = await store.get_articles(first)
    assert sorted(a.url for a in persisted) == ["https://x.test/a", "https://x.test/b", "https://x.test/c"]


@pytest.mark.asyncio
async def test_load_articles_newest_first(store) -> None:
    gateway = ArticleStoreGateway(store)
    ids = await gateway.dedupe_and_insert(_articles())

    loaded = await gateway.load_articles(ids)

    assert [a.url for a in loaded] == ["https://x.test/c", "https://x.test/a", "https://x.test/b"]
    assert await gateway.load_articles([]) == []


@pytest.mark.asyncio
async def test_mark_processed(store) -> None:
    gateway = ArticleStoreGateway(store)
    ids = await gateway.dedupe_and_insert(_articles())

    assert await gateway.mark_processed([ids[0], ids[0], ids[2]]) == 2
    processed = {a.url: a.processed for a in await store.get_articles(ids)}
    assert processed == {"https://x.test/a": True, "https://x.test/b": False, "https://x.test/c": True}


class _FlakyStore(InMemoryUpdateStore):
    async def insert_article(self, article: Article) -> Article:
        if article.url.endswith("/b"):
            raise StorageError("disk full", {"url": article.url})
        return await super().insert_article(article)


@pytest.mark.asyncio
async def test_one_failing_insert_does_not_block_others() -> None:
    store = _FlakyStore()
    gateway = ArticleStoreGateway(store)

    inserted = await gateway.dedupe_and_insert(_articles())

    assert len(inserted) == 2
    assert await store.find_article_by_url("https://x.test/b") is None
    assert await store.find_article_by_url("https://x.test/c") is not None


@pytest.mark.asyncio
async def test_inserted_articles_start_unprocessed(memory_store) -> None:
    gateway = ArticleStoreGateway(memory_store)
    ids = await gateway.dedupe_and_insert([Article(url="https://x.test/p", topic_id="reach", processed=True)])

    assert (await memory_store.get_articles(ids))[0].processed is False
