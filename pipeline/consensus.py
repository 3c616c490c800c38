"""
Consensus Engine
Anchor bucketing plus LLM-judged semantic merging of candidates.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from datetime import datetime
import logging
import re
from typing import Dict, List, Optional, Sequence

from core import Candidate, MergedCandidate
from intelligence.llm.base import BaseLLM, complete_text
from utils.exceptions import LLMError
from .dates import resolve_latest_date
from .prompts import build_equivalence_messages


logger = logging.getLogger(__name__)


def build_anchor(candidate: Candidate, topic_id: Optional[str] = None) -> str:
    """``topic::update_type::event_month::change_scope``; identical inputs give identical anchors."""
    return "::".join(
        [
            topic_id or candidate.topic_id,
            candidate.update_type.value,
            candidate.event_month,
            candidate.change_scope,
        ]
    )


def bucket_candidates(candidates: Sequence[Candidate], topic_id: Optional[str] = None) -> Dict[str, List[Candidate]]:
    buckets: Dict[str, List[Candidate]] = OrderedDict()
    for candidate in candidates:
        buckets.setdefault(build_anchor(candidate, topic_id), []).append(candidate)
    return buckets


def is_affirmative(reply: str) -> bool:
    return re.sub(r"\W", "", str(reply or "")).upper() == "YES"


def passthrough(candidate: Candidate, anchor: str, now: Optional[datetime] = None) -> MergedCandidate:
    """Single-member merge of ``candidate``."""
    return MergedCandidate(
        topic_id=candidate.topic_id,
        anchor=anchor,
        update_type=candidate.update_type,
        event_month=candidate.event_month,
        change_scope=candidate.change_scope,
        summary=candidate.update_summary,
        article_ids=[candidate.article_id],
        latest_date=resolve_latest_date([candidate.article_published_at], now),
    )


class SemanticJudge:
    """Binary same-update oracle backed by an LLM."""

    def __init__(self, llm: BaseLLM, timeout: Optional[float] = None):
        self.llm = llm
        self.timeout = timeout

    async def same_update(self, summary_a: str, summary_b: str) -> bool:
        """True only for an exact YES reply; failures count as NO."""
        try:
            reply = await complete_text(self.llm, build_equivalence_messages(summary_a, summary_b), timeout=self.timeout)
        except LLMError as exc:
            logger.warning(f"[Consensus] equivalence check failed, treating as NO: {exc}")
            return False
        return is_affirmative(reply)


class ConsensusEngine:
    """
    Groups candidates by anchor, then merges bucket members the judge
    considers the same update as the bucket's first valid member.
    """

    def __init__(self, judge: SemanticJudge):
        self.judge = judge

    async def group_and_merge(
        self,
        candidates: Sequence[Candidate],
        topic_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[MergedCandidate]:
        merged: List[MergedCandidate] = []
        for anchor, members in bucket_candidates(candidates, topic_id).items():
            merged.extend(await self._merge_bucket(anchor, members, now))
        logger.info(f"[Consensus] {len(candidates)} candidates -> {len(merged)} merged")
        return merged

    async def _merge_bucket(
        self,
        anchor: str,
        members: Sequence[Candidate],
        now: Optional[datetime],
    ) -> List[MergedCandidate]:
        valid = [c for c in members if c.is_valid()]
        if len(valid) < len(members):
            logger.debug(f"[Consensus] dropped {len(members) - len(valid)} invalid candidates in {anchor}")
        if not valid:
            return []
        if len(valid) == 1:
            return [passthrough(valid[0], anchor, now)]

        representative, others = valid[0], valid[1:]
        verdicts = await asyncio.gather(
            *[self.judge.same_update(representative.update_summary, other.update_summary) for other in others]
        )
        group = [representative] + [c for c, same in zip(others, verdicts) if same]
        rest = [c for c, same in zip(others, verdicts) if not same]

        if len(group) < 2:
            return [passthrough(c, anchor, now) for c in valid]

        combined = MergedCandidate(
            topic_id=representative.topic_id,
            anchor=anchor,
            update_type=representative.update_type,
            event_month=representative.event_month,
            change_scope=representative.change_scope,
            summary=" ".join(c.update_summary for c in group),
            article_ids=list(dict.fromkeys(c.article_id for c in group)),
            latest_date=resolve_latest_date([c.article_published_at for c in group], now),
        )
        return [combined] + [passthrough(c, anchor, now) for c in rest]
