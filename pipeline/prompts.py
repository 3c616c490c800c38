"""
Prompt templates for synthesis, equivalence and primary-source verification.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import List, Optional, Sequence

from core import Article, TopicConfig
from intelligence.llm.base import Message


SYNTHESIS_SYSTEM_PROMPT = "You are an expert regulatory analyst."

# Synthesis prompt
SYNTHESIS_PROMPT = """You are an expert regulatory intelligence processor. Extract structured information from the news article about a regulation.

Regulation being analyzed: "{topic_name}"
{topic_description}
Article Text:
--- START ARTICLE TEXT ---
Title: {title}
URL: {url}
Published Date: {published_date}
Content: {content}
--- END ARTICLE TEXT ---

Task:
1. **update_type**: Choose one: "addition", "revision", "announcement", or "guidance".
2. **event_month**: Month of change in YYYY-MM format. Use "unspecified" if unknown. Look at both article content and published date.
3. **change_scope**: Magnitude/type of change. Examples:
   - Explicit count ("count_1", "count_3")
   - Process/procedure changes ("process")
   - Timeline/schedule changes ("timeline")
   - Unknown -> "unspecified"
4. **update_summary**: Write 1-2 concise sentences describing the change. **Start the sentence with "On [Month] [Year], ..."**, using the month/year of the change (from event_month if available, otherwise the article's published date). Use neutral, standardized phrasing so semantically similar updates across articles can be matched. Avoid adjectives, opinions, or citations.

Constraints:
* Do NOT include evidence, verification, justification, or citations.
* Output must be short; vague is OK.
* Do not use these keywords or other regulatory acronyms in the summary: {forbidden}.

Output EXACT JSON ONLY:
{{
  "update_type": "addition | revision | announcement | guidance",
  "event_month": "YYYY-MM | unspecified",
  "change_scope": "count_1 | count_3 | process | timeline | unspecified",
  "update_summary": "Starts with 'On Month Year, ...' describing the change concisely",
  "impact_level": "high | medium | low"
}}
"""

EQUIVALENCE_SYSTEM_PROMPT = "You decide whether two summaries describe the same regulatory update."

EQUIVALENCE_PROMPT = """Summary A:
{summary_a}

Summary B:
{summary_b}

Answer only YES or NO."""

# Primary-source verification prompt
VERIFICATION_PROMPT = """You are an expert regulation impact analyst.
You will receive:
1. regulation: {topic_name}
2. primary: the official source page ({primary_url}), last updated {primary_updated}
{primary_entries}
--- START OFFICIAL TEXT ---
{primary_text}
--- END OFFICIAL TEXT ---
3. article:
{article}

Task:
- Confirm if the article matches the official update.
- Summarize in 2-3 sentences.
- Provide impact_level: high | medium | low | none
- Output strictly JSON like:
{{ "summary": "...", "impact_level": "high", "matches": true, "key_identifiers": [] }}
"""

_ACRONYM_RE = re.compile(r"^[A-Z0-9][A-Z0-9&\-/]+$")


def _truncate(text: str, limit: int) -> str:
    text = str(text or "")
    return text if len(text) <= limit else text[:limit].rstrip() + " ..."


def forbidden_keywords(config: TopicConfig) -> List[str]:
    """Acronyms of the topic name plus its trigger words; the full name when it has no acronym."""
    keywords: List[str] = []
    for token in re.split(r"[\s,()]+", config.name or ""):
        if len(token) >= 2 and _ACRONYM_RE.match(token):
            keywords.append(token)
    if not keywords and config.name:
        keywords.append(config.name.strip())
    keywords.extend(config.trigger_words)
    return list(dict.fromkeys(k for k in keywords if k))


def build_synthesis_prompt(article: Article, config: TopicConfig, content_max_chars: int = 6000) -> str:
    content = article.content or article.snippet or "No content available."
    published: Optional[datetime] = article.published_at
    forbidden = forbidden_keywords(config)
    return SYNTHESIS_PROMPT.format(
        topic_name=config.display_name,
        topic_description=f"Scope: {config.description}\n" if config.description else "",
        title=article.title or "N/A",
        url=article.url,
        published_date=published.date().isoformat() if published else "N/A",
        content=_truncate(content, content_max_chars),
        forbidden=", ".join(f'"{k}"' for k in forbidden) if forbidden else "none",
    )


def build_synthesis_messages(article: Article, config: TopicConfig, content_max_chars: int = 6000) -> List[Message]:
    return [
        Message.system(SYNTHESIS_SYSTEM_PROMPT),
        Message.user(build_synthesis_prompt(article, config, content_max_chars)),
    ]


def build_equivalence_messages(summary_a: str, summary_b: str) -> List[Message]:
    return [
        Message.system(EQUIVALENCE_SYSTEM_PROMPT),
        Message.user(EQUIVALENCE_PROMPT.format(summary_a=summary_a, summary_b=summary_b)),
    ]


def build_verification_messages(
    config: TopicConfig,
    article: Article,
    *,
    primary_text: str,
    primary_entries: Sequence[str] = (),
    primary_updated: Optional[datetime] = None,
    content_max_chars: int = 6000,
) -> List[Message]:
    entries = ""
    if primary_entries:
        entries = "Official listing entries:\n" + "\n".join(f"- {e}" for e in primary_entries) + "\n"
    article_json = json.dumps(
        {
            "title": article.title,
            "url": article.url,
            "published_date": article.published_at.isoformat() if article.published_at else None,
            "content": _truncate(article.content or article.snippet, content_max_chars),
        },
        ensure_ascii=False,
        indent=2,
    )
    prompt = VERIFICATION_PROMPT.format(
        topic_name=config.display_name,
        primary_url=config.primary_source_url or "N/A",
        primary_updated=primary_updated.date().isoformat() if primary_updated else "unknown",
        primary_entries=entries,
        primary_text=_truncate(primary_text or "(unavailable)", content_max_chars),
        article=article_json,
    )
    return [Message.system(prompt), Message.user("Analyze the article now.")]
