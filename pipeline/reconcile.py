"""
Temporal Reconciler
Persists merged candidates as verified updates and maintains the
single latest record per (topic, anchor).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import re
from typing import List, Optional, Sequence

from core import ImpactLevel, MergedCandidate, VerifiedUpdate
from storage.base import BaseUpdateStore
from .article_gateway import ArticleStoreGateway
from .dates import month_start, sanitize_date, utcnow


logger = logging.getLogger(__name__)

HIGH_IMPACT_TERMS = ("ban", "mandatory", "require", "prohibit", "enforce")
MEDIUM_IMPACT_TERMS = ("amend", "update", "revise", "consultation")

_HIGH_RE = re.compile("|".join(HIGH_IMPACT_TERMS), re.IGNORECASE)
_MEDIUM_RE = re.compile("|".join(MEDIUM_IMPACT_TERMS), re.IGNORECASE)


def infer_impact_level(text: str) -> ImpactLevel:
    """Substring keyword tiers; high terms win over medium ones."""
    if _HIGH_RE.search(text or ""):
        return ImpactLevel.HIGH
    if _MEDIUM_RE.search(text or ""):
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def deduce_published_date(merged: MergedCandidate, now: Optional[datetime] = None) -> Optional[datetime]:
    """First day of the event month when known, else the latest article date; never in the future."""
    raw = month_start(merged.event_month) or merged.latest_date
    return sanitize_date(raw, now)


def is_newer(new: VerifiedUpdate, current: Optional[VerifiedUpdate]) -> bool:
    """
    Whether ``new`` should replace ``current`` as latest.

    No current latest: always. Undated ``new``: never. Undated current
    with a dated ``new``: always. Otherwise strictly later wins.
    """
    if current is None:
        return True
    if new.deduced_published_date is None:
        return False
    if current.deduced_published_date is None:
        return True
    return new.deduced_published_date > current.deduced_published_date


def build_title(summary: str, max_length: int = 100) -> str:
    return (summary or "")[:max_length]


@dataclass
class ReconcileReport:
    written: int = 0
    promoted: int = 0
    failed: int = 0
    processed_article_ids: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


class TemporalReconciler:
    """
    Writes verified updates through the store's atomic latest swap.

    The store write is not wrapped in a timeout: a cancelled wait cannot
    stop a worker thread that is about to commit, so the store bounds
    itself (SQLite busy timeout, in-process lock).
    """

    def __init__(
        self,
        store: BaseUpdateStore,
        gateway: ArticleStoreGateway,
        *,
        title_max_length: int = 100,
    ):
        self.store = store
        self.gateway = gateway
        self.title_max_length = title_max_length

    def build_update(self, topic_id: str, merged: MergedCandidate, now: datetime) -> VerifiedUpdate:
        return VerifiedUpdate(
            topic_id=topic_id,
            anchor=merged.anchor,
            title=build_title(merged.summary, self.title_max_length),
            summary=merged.summary,
            impact_level=infer_impact_level(merged.summary),
            related_article_ids=list(merged.article_ids),
            deduced_published_date=deduce_published_date(merged, now),
            is_latest=False,
            created_at=now,
        )

    async def reconcile(
        self,
        topic_id: str,
        merged: Sequence[MergedCandidate],
        now: Optional[datetime] = None,
    ) -> ReconcileReport:
        """
        Write one verified update per merged candidate.

        The latest comparison and the demote/insert happen atomically in
        the store. A failing candidate is logged and skipped.
        """
        now = now or utcnow()
        report = ReconcileReport()

        for candidate in merged:
            if not candidate.summary.strip() or not candidate.article_ids:
                logger.debug(f"[Reconcile] skipping empty merged candidate {candidate.anchor}")
                continue

            try:
                update = self.build_update(topic_id, candidate, now)
                stored = await self.store.record_verified_update(update, is_newer)
            except Exception as exc:
                logger.error(f"[Reconcile] write failed for {candidate.anchor}: {exc!r}")
                report.failed += 1
                report.errors.append(f"{candidate.anchor}: {exc}")
                continue

            report.written += 1
            if stored.is_latest:
                report.promoted += 1
                logger.info(f"[Reconcile] new latest for {candidate.anchor} (id={stored.id})")

            await self.gateway.mark_processed(candidate.article_ids)
            report.processed_article_ids.extend(candidate.article_ids)

        return report
