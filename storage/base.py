"""
Update Store
Abstract persistence contract for topics, articles and verified updates.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from core import Article, Topic, VerifiedUpdate


# (new record, current latest or None) -> should the new record become latest
NewerCheck = Callable[[VerifiedUpdate, Optional[VerifiedUpdate]], bool]


class BaseUpdateStore(ABC):
    """
    Relational store consumed by the pipeline.

    Logical tables: ``topics``, ``articles`` (unique by url),
    ``verified_updates`` and a latest view keyed by (topic_id, anchor).
    """

    # --- topics ---

    @abstractmethod
    async def upsert_topic(self, topic: Topic) -> Topic:
        pass

    @abstractmethod
    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        pass

    @abstractmethod
    async def list_topics(self, active_only: bool = True) -> List[Topic]:
        pass

    @abstractmethod
    async def mark_topic_scanned(self, topic_id: str, scanned_at: datetime) -> None:
        pass

    # --- articles ---

    @abstractmethod
    async def find_article_by_url(self, url: str) -> Optional[Article]:
        pass

    @abstractmethod
    async def insert_article(self, article: Article) -> Article:
        """Insert and return the stored article with its id. Duplicate URL raises StorageError."""
        pass

    @abstractmethod
    async def get_articles(self, article_ids: Sequence[int]) -> List[Article]:
        pass

    @abstractmethod
    async def mark_articles_processed(self, article_ids: Sequence[int]) -> int:
        """Set processed=True, returning how many rows matched."""
        pass

    # --- verified updates ---

    @abstractmethod
    async def get_latest_update(self, topic_id: str, anchor: str) -> Optional[VerifiedUpdate]:
        pass

    @abstractmethod
    async def record_verified_update(self, update: VerifiedUpdate, is_newer: NewerCheck) -> VerifiedUpdate:
        """
        Atomically read the current latest for (topic, anchor), decide with
        ``is_newer``, demote the old latest when promoting, then insert.

        Returns the stored record (id assigned, is_latest resolved).
        """
        pass

    @abstractmethod
    async def list_updates(self, topic_id: Optional[str] = None, anchor: Optional[str] = None) -> List[VerifiedUpdate]:
        pass

    @abstractmethod
    async def list_latest_updates(self, topic_id: Optional[str] = None) -> List[VerifiedUpdate]:
        pass

    async def close(self) -> None:
        return None
