"""Best-effort publication date extraction and date hygiene.

Date derivation is an ordered strategy list: the provider's own field,
then an HTML meta tag, then the first free-text date in the content.
The first strategy that yields a date wins. Nothing here raises; an
unparseable input is simply ``None``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
import re
from typing import Any, Callable, List, Mapping, Optional, Sequence

from dateutil import parser as date_parser

from core.contracts import MAX_YEAR as _MAX_YEAR, MIN_YEAR as _MIN_YEAR, UNSPECIFIED, normalize_month


DateStrategy = Callable[[Mapping[str, Any]], Optional[datetime]]


_META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_META_NAME_RE = re.compile(
    r"""(?:name|property|itemprop)\s*=\s*["'](?:article:published_time|og:published_time|date|pubdate|publish[-_]?date|datePublished)["']""",
    re.IGNORECASE,
)
_META_CONTENT_RE = re.compile(r"""content\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

_MONTHS = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?|Aug(?:ust)?"
    r"|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)
_FREE_TEXT_PATTERNS = [
    re.compile(r"\b\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?\b"),
    re.compile(rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTHS}\.?,?\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b{_MONTHS}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b", re.IGNORECASE),
    re.compile(
        r"\b(?:January|February|March|April|May|June|July|August|September|October|November|December)\s+\d{4}\b",
        re.IGNORECASE,
    ),
]
_DEFAULT_DAY = datetime(2000, 1, 1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _in_range(value: datetime) -> Optional[datetime]:
    return value if _MIN_YEAR <= value.year <= _MAX_YEAR else None


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a datetime/date/string into an aware UTC datetime, or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _in_range(_to_utc(value))
    if isinstance(value, date):
        return _in_range(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))

    text = str(value).strip()
    if not text:
        return None

    try:
        return _in_range(_to_utc(datetime.fromisoformat(text.replace("Z", "+00:00"))))
    except ValueError:
        pass

    try:
        return _in_range(_to_utc(parsedate_to_datetime(text)))
    except (TypeError, ValueError, IndexError):
        pass

    try:
        return _in_range(_to_utc(date_parser.parse(text, default=_DEFAULT_DAY)))
    except (ValueError, OverflowError):
        return None


def _hit_text(hit: Mapping[str, Any]) -> List[str]:
    texts = []
    for key in ("content", "raw_content", "snippet"):
        text = hit.get(key)
        if isinstance(text, str) and text.strip():
            texts.append(text)
    return texts


def provider_field_date(hit: Mapping[str, Any]) -> Optional[datetime]:
    """Date reported by the search provider itself."""
    for key in ("published_date", "publishedDate", "published_at"):
        parsed = parse_date(hit.get(key))
        if parsed:
            return parsed
    return None


def meta_tag_date(hit: Mapping[str, Any]) -> Optional[datetime]:
    """``<meta property="article:published_time" content="...">`` style markup."""
    for text in _hit_text(hit):
        for tag in _META_TAG_RE.findall(text):
            if not _META_NAME_RE.search(tag):
                continue
            content = _META_CONTENT_RE.search(tag)
            parsed = parse_date(content.group(1)) if content else None
            if parsed:
                return parsed
    return None


def free_text_date(hit: Mapping[str, Any]) -> Optional[datetime]:
    """First date-looking phrase in the content, in reading order."""
    for text in _hit_text(hit):
        matches = []
        for pattern in _FREE_TEXT_PATTERNS:
            matches.extend((m.start(), m.group(0)) for m in pattern.finditer(text))
        for _, token in sorted(matches):
            parsed = parse_date(token)
            if parsed:
                return parsed
    return None


DEFAULT_STRATEGIES: Sequence[DateStrategy] = (provider_field_date, meta_tag_date, free_text_date)


def extract_date(hit: Mapping[str, Any], strategies: Sequence[DateStrategy] = DEFAULT_STRATEGIES) -> Optional[datetime]:
    for strategy in strategies:
        try:
            parsed = strategy(hit)
        except Exception:
            parsed = None
        if parsed:
            return parsed
    return None


def extract_date_from_text(content: str) -> Optional[datetime]:
    return extract_date({"content": content}, (meta_tag_date, free_text_date))


def sanitize_date(value: Any, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse ``value``; anything strictly after ``now`` becomes None."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    reference = _to_utc(now) if now else utcnow()
    return None if parsed > reference else parsed


def month_start(month: Any) -> Optional[datetime]:
    normalized = normalize_month(month)
    if normalized == UNSPECIFIED:
        return None
    year, month_num = normalized.split("-")
    try:
        return datetime(int(year), int(month_num), 1, tzinfo=timezone.utc)
    except ValueError:
        return None


def lookback_cutoff(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of the day ``days`` before ``now``."""
    reference = _to_utc(now) if now else utcnow()
    cutoff = reference - timedelta(days=max(0, int(days)))
    return cutoff.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_latest_date(values: Sequence[Any], now: Optional[datetime] = None) -> Optional[datetime]:
    """Latest parseable value that is not after ``now``."""
    dates = [d for d in (sanitize_date(v, now) for v in values) if d is not None]
    return max(dates) if dates else None
