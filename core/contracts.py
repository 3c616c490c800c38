"""Canonical data contracts for the regulatory update pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
import re
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


UNSPECIFIED = "unspecified"

# Plausible range for regulatory dates
MIN_YEAR = 1970
MAX_YEAR = 2100

_MONTH_RE = re.compile(r"^\s*(\d{4})[-/.](\d{1,2})(?:[-/.]\d{1,2}.*)?\s*$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_month(value: Any) -> str:
    """Coerce a month token to ``YYYY-MM`` or ``unspecified``."""
    match = _MONTH_RE.match(str(value or ""))
    if not match:
        return UNSPECIFIED
    year, month = int(match.group(1)), int(match.group(2))
    if not (MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12):
        return UNSPECIFIED
    return f"{year:04d}-{month:02d}"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _clean_list(values: Any) -> List[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    cleaned: List[str] = []
    seen = set()
    for value in values:
        text = str(value or "").strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        cleaned.append(text)
    return cleaned


class UpdateType(str, Enum):
    """Kind of regulatory change claimed by an article."""

    ADDITION = "addition"
    REVISION = "revision"
    ANNOUNCEMENT = "announcement"
    GUIDANCE = "guidance"
    UNSPECIFIED = UNSPECIFIED


class ImpactLevel(str, Enum):
    """Impact tier of a verified update."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SearchProfile(BaseModel):
    """One authority-specific query profile of a topic."""

    authority: str = ""
    search_queries: List[str] = Field(default_factory=list)
    primary_sources: List[str] = Field(default_factory=list)

    @field_validator("search_queries", "primary_sources", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return _clean_list(value)


class TopicConfig(BaseModel):
    """Run-time configuration of a single topic scan."""

    id: str
    name: str = ""
    description: str = ""
    search_queries: List[str] = Field(default_factory=list)
    primary_source_url: Optional[str] = None
    allowed_domains: List[str] = Field(default_factory=list)
    trigger_words: List[str] = Field(default_factory=list)
    max_articles: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _non_empty_id(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("topic id is required")
        return text

    @field_validator("search_queries", "allowed_domains", "trigger_words", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> List[str]:
        return _clean_list(value)

    @field_validator("max_articles", mode="before")
    @classmethod
    def _positive_cap(cls, value: Any) -> Optional[int]:
        if value in (None, ""):
            return None
        cap = int(value)
        return cap if cap > 0 else None

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Topic(BaseModel):
    """Tracked regulatory subject as stored by the configuration layer."""

    id: str
    name: str = ""
    description: str = ""
    is_active: bool = True
    last_scanned_at: Optional[datetime] = None
    search_profiles: List[SearchProfile] = Field(default_factory=list)
    allowed_domains: List[str] = Field(default_factory=list)
    trigger_words: List[str] = Field(default_factory=list)
    max_articles: Optional[int] = None

    @field_validator("last_scanned_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def to_configs(self) -> List[TopicConfig]:
        """Expand the topic into one run config per search profile."""
        configs: List[TopicConfig] = []
        for profile in self.search_profiles:
            if not profile.search_queries:
                continue
            configs.append(
                TopicConfig(
                    id=self.id,
                    name=self.name,
                    description=self.description,
                    search_queries=profile.search_queries,
                    primary_source_url=profile.primary_sources[0] if profile.primary_sources else None,
                    allowed_domains=self.allowed_domains,
                    trigger_words=self.trigger_words,
                    max_articles=self.max_articles,
                )
            )
        return configs


class Article(BaseModel):
    """One discovered document."""

    id: Optional[int] = None
    url: str
    title: str = ""
    snippet: str = ""
    content: str = ""
    source: Optional[str] = None
    topic_id: str
    processed: bool = False
    published_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("url", mode="before")
    @classmethod
    def _url(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("url is required")
        return text

    @field_validator("published_at", "created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class Candidate(BaseModel):
    """LLM-extracted claim about a regulatory change, scoped to one article."""

    article_id: Optional[int] = None
    topic_id: str
    update_type: UpdateType = UpdateType.UNSPECIFIED
    event_month: str = UNSPECIFIED
    change_scope: str = UNSPECIFIED
    update_summary: str = ""
    impact_hint: Optional[str] = None
    article_published_at: Optional[datetime] = None

    @field_validator("update_type", mode="before")
    @classmethod
    def _update_type(cls, value: Any) -> UpdateType:
        text = str(value.value if isinstance(value, Enum) else value or "").strip().lower()
        try:
            return UpdateType(text)
        except ValueError:
            return UpdateType.UNSPECIFIED

    @field_validator("event_month", mode="before")
    @classmethod
    def _month(cls, value: Any) -> str:
        return normalize_month(value)

    @field_validator("change_scope", mode="before")
    @classmethod
    def _scope(cls, value: Any) -> str:
        text = re.sub(r"\s+", "_", str(value or "").strip().lower())
        return text or UNSPECIFIED

    @field_validator("update_summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str:
        return re.sub(r"\s+", " ", str(value or "")).strip()

    @field_validator("impact_hint", mode="before")
    @classmethod
    def _hint(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip().lower()
        return text or None

    @field_validator("article_published_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def is_valid(self) -> bool:
        return bool(self.update_summary) and self.article_id is not None


class MergedCandidate(BaseModel):
    """Consensus output for one anchor within one run."""

    topic_id: str
    anchor: str
    update_type: UpdateType = UpdateType.UNSPECIFIED
    event_month: str = UNSPECIFIED
    change_scope: str = UNSPECIFIED
    summary: str
    article_ids: List[int] = Field(default_factory=list)
    latest_date: Optional[datetime] = None

    @field_validator("latest_date")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class VerifiedUpdate(BaseModel):
    """Durable record of a detected regulatory change."""

    id: Optional[int] = None
    topic_id: str
    anchor: str
    title: str
    summary: str
    impact_level: ImpactLevel = ImpactLevel.LOW
    related_article_ids: List[int] = Field(default_factory=list)
    deduced_published_date: Optional[datetime] = None
    is_latest: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("deduced_published_date", "created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class RunResult(BaseModel):
    """Outcome of one topic-config pipeline run."""

    topic_id: str
    ok: bool = True
    consensus: bool = False
    articles_inserted: int = 0
    candidates: int = 0
    merged: int = 0
    updates_written: int = 0
    latest_promoted: int = 0
    errors: List[str] = Field(default_factory=list)


class TopicRunEntry(BaseModel):
    """Per-topic line of a fleet run summary."""

    topic_id: str
    topic_name: str = ""
    status: Literal["ok", "failed", "skipped"] = "ok"
    profiles_run: int = 0
    consensus: bool = False
    error: Optional[str] = None
    results: List[RunResult] = Field(default_factory=list)


class FleetRunSummary(BaseModel):
    """Aggregate result of running every configured topic."""

    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    entries: List[TopicRunEntry] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        return [entry.topic_id for entry in self.entries if entry.status == "ok"]

    @property
    def failed(self) -> List[str]:
        return [entry.topic_id for entry in self.entries if entry.status == "failed"]
