"""
Pipeline Module
Search -> ingest -> extract -> consensus -> reconcile stages.
"""
from .dates import (
    extract_date,
    extract_date_from_text,
    month_start,
    parse_date,
    resolve_latest_date,
    sanitize_date,
)
from .search_adapter import SourceSearchAdapter, newest_first
from .article_gateway import ArticleStoreGateway
from .extraction import ExtractionEngine, ParseFailure, parse_candidate, parse_llm_json
from .consensus import ConsensusEngine, SemanticJudge, build_anchor, bucket_candidates
from .reconcile import (
    ReconcileReport,
    TemporalReconciler,
    build_title,
    deduce_published_date,
    infer_impact_level,
    is_newer,
)
from .verification import PrimarySourceVerifier, VerificationResult

__all__ = [
    "extract_date",
    "extract_date_from_text",
    "month_start",
    "parse_date",
    "resolve_latest_date",
    "sanitize_date",
    "SourceSearchAdapter",
    "newest_first",
    "ArticleStoreGateway",
    "ExtractionEngine",
    "ParseFailure",
    "parse_candidate",
    "parse_llm_json",
    "ConsensusEngine",
    "SemanticJudge",
    "build_anchor",
    "bucket_candidates",
    "ReconcileReport",
    "TemporalReconciler",
    "build_title",
    "deduce_published_date",
    "infer_impact_level",
    "is_newer",
    "PrimarySourceVerifier",
    "VerificationResult",
]
