"""Orchestrator service layer for per-topic and fleet-wide pipeline runs."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import List, Optional, Sequence

from config import Settings, get_settings
from core import FleetRunSummary, RunResult, Topic, TopicConfig, TopicRunEntry
from intelligence.llm.base import BaseLLM
from pipeline import (
    ArticleStoreGateway,
    ConsensusEngine,
    ExtractionEngine,
    PrimarySourceVerifier,
    SemanticJudge,
    SourceSearchAdapter,
    TemporalReconciler,
    VerificationResult,
)
from scrapers.base import BaseSearchProvider
from scrapers.primary_source import PrimarySourceFetcher
from storage.base import BaseUpdateStore


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineOrchestrator:
    """
    Sequences search -> ingest -> extract -> consensus -> reconcile for a topic.

    ``run_topic`` never persists anything beyond the store calls made by
    its stages; ``run_all_topics`` always returns a summary and never
    raises for a single topic's failure.
    """

    def __init__(
        self,
        *,
        store: BaseUpdateStore,
        search: SourceSearchAdapter,
        extraction: ExtractionEngine,
        consensus: ConsensusEngine,
        gateway: Optional[ArticleStoreGateway] = None,
        reconciler: Optional[TemporalReconciler] = None,
        verifier: Optional[PrimarySourceVerifier] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.store = store
        self.search = search
        self.extraction = extraction
        self.consensus = consensus
        self.gateway = gateway or ArticleStoreGateway(store, timeout=timeout)
        self.reconciler = reconciler or TemporalReconciler(store, self.gateway)
        self.verifier = verifier

    @classmethod
    def from_components(
        cls,
        store: BaseUpdateStore,
        provider: BaseSearchProvider,
        llm: BaseLLM,
        settings: Optional[Settings] = None,
    ) -> "PipelineOrchestrator":
        """Wire every stage from settings."""
        settings = settings or get_settings()
        timeout = settings.pipeline.request_timeout
        gateway = ArticleStoreGateway(store, timeout=timeout)
        return cls(
            store=store,
            search=SourceSearchAdapter(
                provider,
                lookback_days=settings.search.lookback_days,
                keep_undated=settings.search.keep_undated,
                max_results_per_query=settings.search.max_results_per_query,
                timeout=timeout,
            ),
            extraction=ExtractionEngine(llm, timeout=timeout, content_max_chars=settings.pipeline.content_max_chars),
            consensus=ConsensusEngine(SemanticJudge(llm, timeout=timeout)),
            gateway=gateway,
            reconciler=TemporalReconciler(
                store,
                gateway,
                title_max_length=settings.pipeline.title_max_length,
            ),
            verifier=PrimarySourceVerifier(
                llm,
                PrimarySourceFetcher(timeout=timeout),
                timeout=timeout,
                content_max_chars=settings.pipeline.content_max_chars,
            ),
            timeout=timeout,
        )

    async def run_topic(self, config: TopicConfig, now: Optional[datetime] = None) -> RunResult:
        """
        Run one topic config end to end.

        Empty outcomes (no new articles, no candidates) return
        ``consensus=False`` and are not errors.
        """
        now = now or _utcnow()
        result = RunResult(topic_id=config.id)

        discovered = await self.search.scan(config, now=now)
        inserted_ids = await self.gateway.dedupe_and_insert(discovered)
        result.articles_inserted = len(inserted_ids)
        if not inserted_ids:
            logger.info(f"[Run] topic {config.id}: no new articles")
            return result

        articles = await self.gateway.load_articles(inserted_ids)
        candidates = await self.extraction.synthesize(config, articles)
        result.candidates = len(candidates)
        if not candidates:
            logger.info(f"[Run] topic {config.id}: no candidates synthesized")
            return result

        merged = await self.consensus.group_and_merge(candidates, topic_id=config.id, now=now)
        result.merged = len(merged)

        report = await self.reconciler.reconcile(config.id, merged, now=now)
        result.updates_written = report.written
        result.latest_promoted = report.promoted
        result.errors.extend(report.errors)
        result.consensus = report.written > 0

        logger.info(
            f"[Run] topic {config.id}: {result.articles_inserted} articles, {result.candidates} candidates, "
            f"{result.merged} merged, {result.updates_written} written, {result.latest_promoted} promoted"
        )
        return result

    async def _run_profiles(self, topic: Topic, entry: TopicRunEntry, now: datetime) -> None:
        configs = topic.to_configs()
        if not configs:
            entry.status = "skipped"
            logger.info(f"[Fleet] topic {topic.id}: no search profile with queries, skipped")
            return

        for config in configs:
            try:
                result = await self.run_topic(config, now=now)
            except Exception as exc:
                logger.exception(f"[Fleet] topic {topic.id} profile failed: {exc}")
                result = RunResult(topic_id=topic.id, ok=False, errors=[f"{type(exc).__name__}: {exc}"])
            entry.results.append(result)
            entry.profiles_run += 1

        entry.consensus = any(r.consensus for r in entry.results)
        if not any(r.ok for r in entry.results):
            entry.status = "failed"
            entry.error = entry.results[0].errors[0] if entry.results[0].errors else "all profiles failed"
            return

        try:
            await self.store.mark_topic_scanned(topic.id, now)
        except Exception as exc:
            logger.error(f"[Fleet] could not stamp last_scanned_at for {topic.id}: {exc!r}")
            entry.error = f"last_scanned_at not updated: {exc}"

    async def run_all_topics(
        self,
        topics: Optional[Sequence[Topic]] = None,
        now: Optional[datetime] = None,
    ) -> FleetRunSummary:
        """Run every active topic (or ``topics``) sequentially."""
        now = now or _utcnow()
        summary = FleetRunSummary(started_at=now)

        if topics is None:
            try:
                topics = await self.store.list_topics(active_only=True)
            except Exception as exc:
                logger.exception(f"[Fleet] could not list topics: {exc}")
                summary.entries.append(TopicRunEntry(topic_id="*", status="failed", error=str(exc)))
                summary.completed_at = _utcnow()
                return summary

        for topic in topics:
            entry = TopicRunEntry(topic_id=topic.id, topic_name=topic.name)
            try:
                await self._run_profiles(topic, entry, now)
            except Exception as exc:
                logger.exception(f"[Fleet] topic {topic.id} failed: {exc}")
                entry.status = "failed"
                entry.error = f"{type(exc).__name__}: {exc}"
            summary.entries.append(entry)

        summary.completed_at = _utcnow()
        logger.info(f"[Fleet] {len(summary.succeeded)} ok, {len(summary.failed)} failed of {len(summary.entries)} topics")
        return summary

    async def verify_topic(self, config: TopicConfig, now: Optional[datetime] = None) -> Optional[VerificationResult]:
        """Verify the newest article found for ``config`` against its primary source; None when nothing is found."""
        if self.verifier is None:
            raise ValueError("PipelineOrchestrator was built without a verifier")
        articles = await self.search.scan(config, now=now)
        if not articles:
            return None
        return await self.verifier.verify(config, articles[0])


def build_orchestrator(
    store: Optional[BaseUpdateStore] = None,
    provider: Optional[BaseSearchProvider] = None,
    llm: Optional[BaseLLM] = None,
) -> PipelineOrchestrator:
    """Orchestrator backed by the configured store, Tavily search and LLM provider."""
    from intelligence.llm import get_llm
    from scrapers import TavilySearchProvider
    from storage import get_store

    settings = get_settings()
    return PipelineOrchestrator.from_components(
        store or get_store(),
        provider or TavilySearchProvider(),
        llm or get_llm(settings.llm.provider, settings.llm.model_name),
        settings,
    )
