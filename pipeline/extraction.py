"""
Extraction Engine
One LLM synthesis call per article, parsed into a Candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from core import Article, Candidate, TopicConfig
from intelligence.llm.base import BaseLLM, complete_text
from utils.exceptions import LLMError
from .prompts import build_synthesis_messages


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*|\s*```$")


def parse_llm_json(content: str) -> Optional[Dict[str, Any]]:
    """First JSON object in an LLM reply (code fences and chatter tolerated), else None."""
    text = _FENCE_RE.sub("", str(content or "").strip()).strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except ValueError:
        pass

    for start in [idx for idx, ch in enumerate(text) if ch == "{"]:
        depth = 0
        for end in range(start, len(text)):
            ch = text[end]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(text[start : end + 1])
                    except ValueError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
    return None


@dataclass(frozen=True)
class ParseFailure:
    """A synthesis reply that could not be turned into a Candidate."""

    article_id: Optional[int]
    reason: str
    raw: str = ""


CandidateParse = Union[Candidate, ParseFailure]


def parse_candidate(content: str, article: Article) -> CandidateParse:
    payload = parse_llm_json(content)
    if payload is None:
        return ParseFailure(article.id, "reply is not a JSON object", raw=str(content or "")[:500])

    try:
        candidate = Candidate(
            article_id=article.id,
            topic_id=article.topic_id,
            update_type=payload.get("update_type"),
            event_month=payload.get("event_month"),
            change_scope=payload.get("change_scope"),
            update_summary=payload.get("update_summary") or payload.get("summary"),
            impact_hint=payload.get("impact_level") or payload.get("impact_hint"),
            article_published_at=article.published_at,
        )
    except ValidationError as exc:
        return ParseFailure(article.id, f"invalid candidate fields: {exc.error_count()} errors", raw=str(content)[:500])

    if not candidate.update_summary:
        return ParseFailure(article.id, "empty update_summary", raw=str(content)[:500])
    return candidate


class ExtractionEngine:
    """Synthesizes candidates sequentially; failures are logged per article and never abort the batch."""

    def __init__(self, llm: BaseLLM, *, timeout: Optional[float] = None, content_max_chars: int = 6000):
        self.llm = llm
        self.timeout = timeout
        self.content_max_chars = content_max_chars

    async def extract(self, config: TopicConfig, article: Article) -> CandidateParse:
        """Raises LLMError on transport failure or timeout."""
        messages = build_synthesis_messages(article, config, self.content_max_chars)
        content = await complete_text(self.llm, messages, timeout=self.timeout)
        return parse_candidate(content, article)

    async def synthesize(self, config: TopicConfig, articles: Sequence[Article]) -> List[Candidate]:
        candidates: List[Candidate] = []
        for article in articles:
            try:
                result = await self.extract(config, article)
            except LLMError as exc:
                logger.error(f"[Extraction] LLM call failed for article {article.id}: {exc}")
                continue

            if isinstance(result, ParseFailure):
                logger.warning(f"[Extraction] skipped article {result.article_id}: {result.reason}")
                continue
            candidates.append(result)

        logger.info(f"[Extraction] topic {config.id}: {len(candidates)} candidates from {len(articles)} articles")
        return candidates
