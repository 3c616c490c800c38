"""Core contracts and shared types for the regulatory update pipeline."""

from .contracts import (
    UNSPECIFIED,
    Article,
    Candidate,
    FleetRunSummary,
    ImpactLevel,
    MergedCandidate,
    RunResult,
    SearchProfile,
    Topic,
    TopicConfig,
    TopicRunEntry,
    UpdateType,
    VerifiedUpdate,
    normalize_month,
)

__all__ = [
    "UNSPECIFIED",
    "Article",
    "Candidate",
    "FleetRunSummary",
    "ImpactLevel",
    "MergedCandidate",
    "RunResult",
    "SearchProfile",
    "Topic",
    "TopicConfig",
    "TopicRunEntry",
    "UpdateType",
    "VerifiedUpdate",
    "normalize_month",
]
