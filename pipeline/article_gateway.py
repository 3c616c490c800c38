"""
Article Store Gateway
Idempotent article ingestion on top of an update store.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from core import Article
from storage.base import BaseUpdateStore
from .search_adapter import newest_first
from .timeouts import call_with_timeout


logger = logging.getLogger(__name__)


class ArticleStoreGateway:
    """Every operation is best-effort per item; one failing article never blocks the rest."""

    def __init__(self, store: BaseUpdateStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    async def dedupe_and_insert(self, articles: Sequence[Article]) -> List[int]:
        """Insert articles whose URL is unknown; return the ids of newly inserted rows only."""
        inserted: List[int] = []
        for article in articles:
            try:
                existing = await call_with_timeout(self.store.find_article_by_url(article.url), self.timeout)
                if existing is not None:
                    continue
                fresh = article.model_copy(update={"id": None, "processed": False})
                stored = await call_with_timeout(self.store.insert_article(fresh), self.timeout)
            except Exception as exc:
                logger.error(f"[Articles] insert failed for {article.url}: {exc!r}")
                continue
            inserted.append(stored.id)

        logger.info(f"[Articles] {len(inserted)} new of {len(articles)} discovered")
        return inserted

    async def load_articles(self, article_ids: Sequence[int]) -> List[Article]:
        """Full articles for ``article_ids``, newest first."""
        if not article_ids:
            return []
        try:
            articles = await call_with_timeout(self.store.get_articles(list(article_ids)), self.timeout)
        except Exception as exc:
            logger.error(f"[Articles] load failed for {len(article_ids)} ids: {exc!r}")
            return []
        return newest_first(articles)

    async def mark_processed(self, article_ids: Sequence[int]) -> int:
        ids = list(dict.fromkeys(article_ids))
        if not ids:
            return 0
        try:
            return await call_with_timeout(self.store.mark_articles_processed(ids), self.timeout)
        except Exception as exc:
            logger.warning(f"[Articles] bulk mark failed, retrying per article: {exc!r}")

        marked = 0
        for article_id in ids:
            try:
                marked += await call_with_timeout(self.store.mark_articles_processed([article_id]), self.timeout)
            except Exception as exc:
                logger.error(f"[Articles] mark processed failed for {article_id}: {exc!r}")
        return marked
