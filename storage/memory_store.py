"""In-memory update store for tests and single-process runs."""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Sequence

from core import Article, Topic, VerifiedUpdate
from utils.exceptions import StorageError
from .base import BaseUpdateStore, NewerCheck


def _newest_first(update: VerifiedUpdate):
    return (update.created_at, update.id or 0)


class InMemoryUpdateStore(BaseUpdateStore):
    """Thread-safe dict-backed store; every returned model is a copy."""

    def __init__(self) -> None:
        self._topics: Dict[str, Topic] = {}
        self._articles: Dict[int, Article] = {}
        self._article_ids_by_url: Dict[str, int] = {}
        self._updates: Dict[int, VerifiedUpdate] = {}
        self._next_article_id = 1
        self._next_update_id = 1
        self._lock = Lock()

    async def upsert_topic(self, topic: Topic) -> Topic:
        with self._lock:
            self._topics[topic.id] = topic.model_copy(deep=True)
            return topic.model_copy(deep=True)

    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        with self._lock:
            topic = self._topics.get(topic_id)
            return topic.model_copy(deep=True) if topic else None

    async def list_topics(self, active_only: bool = True) -> List[Topic]:
        with self._lock:
            topics = [t for t in self._topics.values() if t.is_active or not active_only]
            return [t.model_copy(deep=True) for t in sorted(topics, key=lambda t: t.id)]

    async def mark_topic_scanned(self, topic_id: str, scanned_at: datetime) -> None:
        with self._lock:
            topic = self._topics.get(topic_id)
            if topic is None:
                raise StorageError("Unknown topic", {"topic_id": topic_id})
            self._topics[topic_id] = topic.model_copy(update={"last_scanned_at": scanned_at})

    async def find_article_by_url(self, url: str) -> Optional[Article]:
        with self._lock:
            article_id = self._article_ids_by_url.get(url)
            return self._articles[article_id].model_copy(deep=True) if article_id else None

    async def insert_article(self, article: Article) -> Article:
        with self._lock:
            if article.url in self._article_ids_by_url:
                raise StorageError("Duplicate article url", {"url": article.url})
            article_id = self._next_article_id
            self._next_article_id += 1
            stored = article.model_copy(update={"id": article_id}, deep=True)
            self._articles[article_id] = stored
            self._article_ids_by_url[stored.url] = article_id
            return stored.model_copy(deep=True)

    async def get_articles(self, article_ids: Sequence[int]) -> List[Article]:
        with self._lock:
            return [self._articles[i].model_copy(deep=True) for i in article_ids if i in self._articles]

    async def mark_articles_processed(self, article_ids: Sequence[int]) -> int:
        with self._lock:
            count = 0
            for article_id in set(article_ids):
                article = self._articles.get(article_id)
                if article is None:
                    continue
                self._articles[article_id] = article.model_copy(update={"processed": True})
                count += 1
            return count

    def _latest_locked(self, topic_id: str, anchor: str) -> Optional[VerifiedUpdate]:
        for update in self._updates.values():
            if update.topic_id == topic_id and update.anchor == anchor and update.is_latest:
                return update
        return None

    async def get_latest_update(self, topic_id: str, anchor: str) -> Optional[VerifiedUpdate]:
        with self._lock:
            current = self._latest_locked(topic_id, anchor)
            return current.model_copy(deep=True) if current else None

    async def record_verified_update(self, update: VerifiedUpdate, is_newer: NewerCheck) -> VerifiedUpdate:
        with self._lock:
            current = self._latest_locked(update.topic_id, update.anchor)
            promote = bool(is_newer(update, current.model_copy(deep=True) if current else None))
            if promote and current is not None:
                self._updates[current.id] = current.model_copy(update={"is_latest": False})

            update_id = self._next_update_id
            self._next_update_id += 1
            stored = update.model_copy(update={"id": update_id, "is_latest": promote}, deep=True)
            self._updates[update_id] = stored
            return stored.model_copy(deep=True)

    async def list_updates(self, topic_id: Optional[str] = None, anchor: Optional[str] = None) -> List[VerifiedUpdate]:
        with self._lock:
            rows = [
                u for u in self._updates.values()
                if (topic_id is None or u.topic_id == topic_id) and (anchor is None or u.anchor == anchor)
            ]
            return [u.model_copy(deep=True) for u in sorted(rows, key=_newest_first, reverse=True)]

    async def list_latest_updates(self, topic_id: Optional[str] = None) -> List[VerifiedUpdate]:
        with self._lock:
            rows = [
                u for u in self._updates.values()
                if u.is_latest and (topic_id is None or u.topic_id == topic_id)
            ]
            return [u.model_copy(deep=True) for u in sorted(rows, key=_newest_first, reverse=True)]
