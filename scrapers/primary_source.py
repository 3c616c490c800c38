"""
Primary Source Fetcher
Best-effort text extraction from an official regulator page.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import re
from typing import Dict, List, Optional

import httpx
from bs4 import BeautifulSoup
from dateutil import parser as date_parser


logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) RegWatch/1.0"
_LAST_UPDATED_RE = re.compile(r"Last updated[:\s]*([0-9]{1,2}\s+[A-Za-z]+\s+[0-9]{4})", re.IGNORECASE)


async def _http_get_text(url: str, *, headers: Optional[Dict[str, str]] = None, timeout: float = 30.0) -> str:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
        response = await client.get(url, headers=headers)
        response.raise_for_status()
        return str(response.text or "")


def html_to_text(html: str) -> str:
    """Visible text of an HTML page with whitespace collapsed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return re.sub(r"\s+", " ", soup.get_text(" ", strip=True)).strip()


def extract_table_entries(html: str, selector: str = "table tbody tr") -> List[str]:
    """First-cell text of every row matched by ``selector`` (e.g. a substance listing)."""
    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    entries: List[str] = []
    for row in soup.select(selector):
        cell = row.find("td")
        text = cell.get_text(" ", strip=True) if cell else ""
        if text:
            entries.append(text)
    return entries


def extract_last_updated(text: str) -> Optional[datetime]:
    """Parse a 'Last updated: 12 March 2025' marker."""
    match = _LAST_UPDATED_RE.search(text or "")
    if not match:
        return None
    try:
        parsed = date_parser.parse(match.group(1))
    except (ValueError, OverflowError):
        return None
    return parsed.replace(tzinfo=timezone.utc) if parsed.tzinfo is None else parsed.astimezone(timezone.utc)


class PrimarySourceFetcher:
    """
    ``extract(url) -> text`` collaborator.

    Every failure (network, HTTP status, parse) degrades to an empty string.
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def fetch_html(self, url: str) -> str:
        if not str(url or "").strip():
            return ""
        headers = {"User-Agent": _USER_AGENT, "Accept-Language": "en-US,en;q=0.9"}
        try:
            return await _http_get_text(url, headers=headers, timeout=self.timeout)
        except Exception as exc:
            logger.warning(f"[PrimarySource] fetch failed for {url}: {exc}")
            return ""

    async def extract(self, url: str) -> str:
        html = await self.fetch_html(url)
        try:
            return html_to_text(html)
        except Exception as exc:
            logger.warning(f"[PrimarySource] parse failed for {url}: {exc}")
            return ""
