from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core import Candidate
from pipeline import ConsensusEngine, SemanticJudge, build_anchor, bucket_candidates
from pipeline.consensus import is_affirmative
from utils.exceptions import LLMError


def _candidate(article_id, summary, *, month="2025-01", scope="count_3", day=None, topic="reach") -> Candidate:
    return Candidate(
        article_id=article_id,
        topic_id=topic,
        update_type="addition",
        event_month=month,
        change_scope=scope,
        update_summary=summary,
        article_published_at=datetime(2025, 1, day, tzinfo=timezone.utc) if day else None,
    )


def _judge_by_keyword(keyword: str):
    """YES when both summaries contain ``keyword``."""

    def reply(messages) -> str:
        text = messages[-1].content
        summary_a, summary_b = text.split("Summary B:")
        return "YES." if keyword in summary_a and keyword in summary_b else "NO"

    return reply


def test_anchor_is_deterministic() -> None:
    a = _candidate(1, "first wording")
    b = _candidate(2, "completely different wording")

    assert build_anchor(a) == build_anchor(b) == "reach::addition::2025-01::count_3"
    assert build_anchor(a, "other") == "other::addition::2025-01::count_3"
    assert build_anchor(_candidate(3, "x", month="garbage")) == "reach::addition::unspecified::count_3"


def test_bucket_candidates_groups_by_anchor_in_order() -> None:
    buckets = bucket_candidates([_candidate(1, "a"), _candidate(2, "b", scope="process"), _candidate(3, "c")])
    assert list(buckets) == ["reach::addition::2025-01::count_3", "reach::addition::2025-01::process"]
    assert [c.article_id for c in buckets["reach::addition::2025-01::count_3"]] == [1, 3]


@pytest.mark.parametrize(
    "reply,expected",
    [("YES", True), ("yes.", True), (" Yes! ", True), ("NO", False), ("Yes, they match", False), ("", False)],
)
def test_is_affirmative(reply, expected) -> None:
    assert is_affirmative(reply) is expected


@pytest.mark.asyncio
async def test_single_valid_member_passes_through(scripted_llm) -> None:
    llm = scripted_llm(default="YES")
    engine = ConsensusEngine(SemanticJudge(llm))

    merged = await engine.group_and_merge([_candidate(5, "On January 2025, substances were added.", day=10)])

    assert len(merged) == 1
    assert merged[0].article_ids == [5]
    assert merged[0].latest_date == datetime(2025, 1, 10, tzinfo=timezone.utc)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_invalid_members_are_never_emitted(scripted_llm) -> None:
    engine = ConsensusEngine(SemanticJudge(scripted_llm(default="YES")))

    merged = await engine.group_and_merge([_candidate(None, "orphan"), _candidate(2, "   ", scope="process")])

    assert merged == []


@pytest.mark.asyncio
async def test_representative_merges_only_matching_members(scripted_llm) -> None:
    llm = scripted_llm(default=_judge_by_keyword("three substances"))
    engine = ConsensusEngine(SemanticJudge(llm))
    candidates = [
        _candidate(1, "On January 2025, three substances were added.", day=5),
        _candidate(2, "On January 2025, three substances joined the list.", day=9),
        _candidate(3, "On January 2025, a consultation opened.", day=12),
    ]

    merged = await engine.group_and_merge(candidates)

    assert len(merged) == 2
    group, rest = merged
    assert group.article_ids == [1, 2]
    assert group.summary == (
        "On January 2025, three substances were added. On January 2025, three substances joined the list."
    )
    assert group.latest_date == datetime(2025, 1, 9, tzinfo=timezone.utc)
    assert rest.article_ids == [3]
    assert rest.summary == "On January 2025, a consultation opened."
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_no_matches_emits_each_member_alone(scripted_llm) -> None:
    engine = ConsensusEngine(SemanticJudge(scripted_llm(default="NO")))

    merged = await engine.group_and_merge([_candidate(1, "a"), _candidate(2, "b"), _candidate(3, "c")])

    assert [m.article_ids for m in merged] == [[1], [2], [3]]
    assert all(m.summary for m in merged)


@pytest.mark.asyncio
async def test_judge_failure_counts_as_no(scripted_llm) -> None:
    judge = SemanticJudge(scripted_llm(default=LLMError("timeout", provider="fake")))

    assert await judge.same_update("a", "b") is False


@pytest.mark.asyncio
async def test_merged_date_ignores_future_articles(scripted_llm, now) -> None:
    engine = ConsensusEngine(SemanticJudge(scripted_llm(default="YES")))
    future = _candidate(2, "b")
    future = future.model_copy(update={"article_published_at": datetime(2026, 1, 1, tzinfo=timezone.utc)})

    merged = await engine.group_and_merge([_candidate(1, "a", day=3), future], now=now)

    assert merged[0].article_ids == [1, 2]
    assert merged[0].latest_date == datetime(2025, 1, 3, tzinfo=timezone.utc)
