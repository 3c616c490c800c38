"""
Source Search Adapter
Turns raw provider hits into normalized Articles for one topic.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import urlparse

from core import Article, TopicConfig
from scrapers.base import BaseSearchProvider
from .dates import DEFAULT_STRATEGIES, DateStrategy, extract_date, lookback_cutoff, utcnow
from .timeouts import call_with_timeout


logger = logging.getLogger(__name__)


def _hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return None
    return host[4:] if host.startswith("www.") else (host or None)


def newest_first(articles: Sequence[Article]) -> List[Article]:
    """Sort by publication date descending; undated articles go last."""
    return sorted(
        articles,
        key=lambda a: (a.published_at is None, -(a.published_at.timestamp() if a.published_at else 0.0)),
    )


class SourceSearchAdapter:
    """
    Queries a search provider and yields deduplicated, date-filtered Articles.

    Hits older than ``lookback_days`` are dropped. Hits with no derivable
    date are kept or dropped according to ``keep_undated``.
    """

    def __init__(
        self,
        provider: BaseSearchProvider,
        *,
        lookback_days: Optional[int] = None,
        keep_undated: Optional[bool] = None,
        max_results_per_query: Optional[int] = None,
        timeout: Optional[float] = None,
        strategies: Sequence[DateStrategy] = DEFAULT_STRATEGIES,
    ):
        search_settings = provider.settings.search
        self.provider = provider
        self.lookback_days = search_settings.lookback_days if lookback_days is None else lookback_days
        self.keep_undated = search_settings.keep_undated if keep_undated is None else keep_undated
        self.max_results_per_query = max_results_per_query or search_settings.max_results_per_query
        self.timeout = provider.settings.pipeline.request_timeout if timeout is None else timeout
        self.strategies = tuple(strategies)

    def normalize_hit(self, hit: Mapping[str, Any], topic_id: str) -> Optional[Article]:
        url = str(hit.get("url") or "").strip()
        if not url:
            return None

        snippet = str(hit.get("content") or hit.get("snippet") or "").strip()
        content = str(hit.get("raw_content") or "").strip() or snippet
        return Article(
            url=url,
            title=str(hit.get("title") or "").strip(),
            snippet=snippet,
            content=content,
            source=str(hit.get("source") or "").strip() or _hostname(url),
            topic_id=topic_id,
            published_at=extract_date(hit, self.strategies),
        )

    def _within_window(self, article: Article, cutoff: datetime) -> bool:
        if article.published_at is None:
            return self.keep_undated
        return article.published_at >= cutoff

    async def search(
        self,
        query: str,
        limit: Optional[int] = None,
        *,
        topic_id: str,
        include_domains: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> List[Article]:
        """
        Run one query.

        Returns:
            Articles newest first, undated last. Provider errors and
            timeouts propagate to the caller.
        """
        options: Dict[str, Any] = {"days": self.lookback_days}
        if include_domains:
            options["include_domains"] = list(include_domains)

        hits = await call_with_timeout(
            self.provider.search(query, max_results=limit or self.max_results_per_query, **options),
            self.timeout,
        )

        cutoff = lookback_cutoff(self.lookback_days, now or utcnow())
        articles: List[Article] = []
        for hit in hits or []:
            article = self.normalize_hit(hit, topic_id)
            if article is None:
                continue
            if not self._within_window(article, cutoff):
                logger.debug(f"[Search] outside lookback window: {article.url}")
                continue
            articles.append(article)
        return newest_first(articles)

    async def scan(self, config: TopicConfig, now: Optional[datetime] = None) -> List[Article]:
        """
        Run every query of ``config``.

        A failing query is logged and skipped. URLs repeated across
        queries are kept once.
        """
        limit = config.max_articles or self.max_results_per_query
        seen = set()
        collected: List[Article] = []

        for query in config.search_queries:
            try:
                articles = await self.search(
                    query,
                    limit,
                    topic_id=config.id,
                    include_domains=config.allowed_domains,
                    now=now,
                )
            except Exception as exc:
                logger.error(f"[Search] query failed for topic {config.id} ({query!r}): {exc!r}")
                continue

            for article in articles[:limit]:
                if article.url in seen:
                    continue
                seen.add(article.url)
                collected.append(article)

        logger.info(f"[Search] topic {config.id}: {len(collected)} articles from {len(config.search_queries)} queries")
        return newest_first(collected)
