"""
Primary Source Verifier
Cross-checks a news article against the topic's official source page.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from core import Article, TopicConfig
from intelligence.llm.base import BaseLLM, complete_text
from scrapers.primary_source import (
    PrimarySourceFetcher,
    extract_last_updated,
    extract_table_entries,
    html_to_text,
)
from utils.exceptions import LLMError
from .extraction import parse_llm_json
from .prompts import build_verification_messages


logger = logging.getLogger(__name__)

_IMPACT_VALUES = ("high", "medium", "low", "none")
_FALLBACK_SUMMARY_CHARS = 300
_TRUTHY = ("true", "yes")


class VerificationResult(BaseModel):
    article_url: str
    matches: bool = False
    summary: str = ""
    impact_level: Literal["high", "medium", "low", "none"] = "none"
    key_identifiers: List[str] = Field(default_factory=list)
    primary_source_url: Optional[str] = None
    primary_updated_at: Optional[datetime] = None
    primary_entries: List[str] = Field(default_factory=list)


class PrimarySourceVerifier:
    """
    The fetch never fails (an unreachable page is verified against empty
    text). An unusable LLM reply falls back to the article's leading text
    with impact ``none``.
    """

    def __init__(
        self,
        llm: BaseLLM,
        fetcher: Optional[PrimarySourceFetcher] = None,
        *,
        timeout: Optional[float] = None,
        content_max_chars: int = 6000,
        max_entries: int = 50,
    ):
        self.llm = llm
        self.fetcher = fetcher or PrimarySourceFetcher(timeout=timeout or 30.0)
        self.timeout = timeout
        self.content_max_chars = content_max_chars
        self.max_entries = max_entries

    async def verify(self, config: TopicConfig, article: Article) -> VerificationResult:
        html = await self.fetcher.fetch_html(config.primary_source_url) if config.primary_source_url else ""
        try:
            primary_text = html_to_text(html)
            entries = extract_table_entries(html)[: self.max_entries]
        except Exception as exc:
            logger.warning(f"[Verify] could not parse primary source {config.primary_source_url}: {exc}")
            primary_text, entries = "", []
        updated_at = extract_last_updated(primary_text)

        messages = build_verification_messages(
            config,
            article,
            primary_text=primary_text,
            primary_entries=entries,
            primary_updated=updated_at,
            content_max_chars=self.content_max_chars,
        )
        try:
            reply = await complete_text(self.llm, messages, timeout=self.timeout)
        except LLMError as exc:
            logger.error(f"[Verify] LLM call failed for {article.url}: {exc}")
            reply = ""

        result = VerificationResult(
            article_url=article.url,
            primary_source_url=config.primary_source_url,
            primary_updated_at=updated_at,
            primary_entries=entries,
        )
        payload = parse_llm_json(reply)
        if payload is None:
            result.summary = (article.content or article.snippet)[:_FALLBACK_SUMMARY_CHARS]
            return result

        impact = str(payload.get("impact_level") or "none").strip().lower()
        identifiers = payload.get("key_identifiers")
        if identifiers is None and isinstance(payload.get("matches"), dict):
            identifiers = payload["matches"].get("key_identifiers")
        if isinstance(identifiers, str):
            identifiers = [identifiers]

        result.matches = _as_match(payload.get("matches"))
        result.summary = str(payload.get("summary") or "").strip()
        result.impact_level = impact if impact in _IMPACT_VALUES else "none"
        result.key_identifiers = [str(i) for i in identifiers or [] if str(i).strip()]
        return result


def _as_match(value: Any) -> bool:
    """Only an explicit yes counts; quoted ``"false"`` stays a no."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    if isinstance(value, dict):
        return bool(value.get("key_identifiers"))
    return False
