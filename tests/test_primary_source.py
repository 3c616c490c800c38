from __future__ import annotations

from datetime import datetime, timezone
import json

import pytest

from core import Article, TopicConfig
from pipeline import PrimarySourceVerifier
from scrapers import primary_source
from scrapers.primary_source import PrimarySourceFetcher, extract_last_updated, extract_table_entries, html_to_text


ECHA_HTML = """
<html>
  <head><title>Candidate List</title><script>var x = 1;</script></head>
  <body>
    <p>Last updated: 21 January 2025</p>
    <table>
      <thead><tr><th>Substance</th><th>EC</th></tr></thead>
      <tbody>
        <tr><td>Substance Alpha</td><td>200-001-8</td></tr>
        <tr><td>Substance Beta</td><td>200-002-3</td></tr>
        <tr><td></td><td>empty</td></tr>
      </tbody>
    </table>
  </body>
</html>
""".strip()

CONFIG = TopicConfig(
    id="reach",
    name="EU REACH SVHC",
    search_queries=["svhc"],
    primary_source_url="https://echa.test/candidate-list-table",
)
ARTICLE = Article(
    url="https://news.test/svhc",
    topic_id="reach",
    title="Two substances added",
    content="ECHA added Substance Alpha and Substance Beta to the Candidate List. " * 20,
)


def test_html_helpers() -> None:
    text = html_to_text(ECHA_HTML)
    assert "var x" not in text
    assert "Substance Alpha" in text
    assert extract_table_entries(ECHA_HTML) == ["Substance Alpha", "Substance Beta"]
    assert extract_last_updated(text) == datetime(2025, 1, 21, tzinfo=timezone.utc)
    assert extract_last_updated("nothing here") is None
    assert html_to_text("") == ""


@pytest.mark.asyncio
async def test_fetcher_returns_text(monkeypatch) -> None:
    seen = {}

    async def _fake_get_text(url: str, *, headers=None, timeout: float = 30.0) -> str:
        seen["url"] = url
        seen["headers"] = headers
        return ECHA_HTML

    monkeypatch.setattr(primary_source, "_http_get_text", _fake_get_text)

    text = await PrimarySourceFetcher().extract("https://echa.test/candidate-list-table")

    assert "Substance Beta" in text
    assert "User-Agent" in seen["headers"]


@pytest.mark.asyncio
async def test_fetcher_failure_degrades_to_empty_string(monkeypatch) -> None:
    async def _boom(url: str, *, headers=None, timeout: float = 30.0) -> str:
        raise ConnectionError("unreachable")

    monkeypatch.setattr(primary_source, "_http_get_text", _boom)

    assert await PrimarySourceFetcher().extract("https://echa.test/x") == ""
    assert await PrimarySourceFetcher().extract("") == ""


@pytest.mark.asyncio
async def test_verifier_uses_primary_source_and_llm(monkeypatch, scripted_llm) -> None:
    async def _fake_get_text(url: str, *, headers=None, timeout: float = 30.0) -> str:
        return ECHA_HTML

    monkeypatch.setattr(primary_source, "_http_get_text", _fake_get_text)
    llm = scripted_llm(
        default=json.dumps(
            {
                "summary": "ECHA added two substances in January 2025.",
                "impact_level": "HIGH",
                "matches": True,
                "key_identifiers": ["Substance Alpha", ""],
            }
        )
    )

    result = await PrimarySourceVerifier(llm, PrimarySourceFetcher()).verify(CONFIG, ARTICLE)

    assert result.matches is True
    assert result.impact_level == "high"
    assert result.key_identifiers == ["Substance Alpha"]
    assert result.primary_entries == ["Substance Alpha", "Substance Beta"]
    assert result.primary_updated_at == datetime(2025, 1, 21, tzinfo=timezone.utc)
    system_prompt = llm.calls[0][0].content
    assert "Substance Alpha" in system_prompt
    assert "2025-01-21" in system_prompt


@pytest.mark.asyncio
async def test_verifier_falls_back_on_unparseable_reply(monkeypatch, scripted_llm) -> None:
    async def _boom(url: str, *, headers=None, timeout: float = 30.0) -> str:
        raise ConnectionError("unreachable")

    monkeypatch.setattr(primary_source, "_http_get_text", _boom)

    result = await PrimarySourceVerifier(scripted_llm(default="no idea")).verify(CONFIG, ARTICLE)

    assert result.matches is False
    assert result.impact_level == "none"
    assert result.summary == ARTICLE.content[:300]
    assert result.primary_entries == []


@pytest.mark.parametrize(
    "matches,expected",
    [
        (True, True),
        (False, False),
        ("false", False),
        ("no", False),
        ("0", False),
        ("YES", True),
        (" true ", True),
        (1, False),
        ({"key_identifiers": ["Substance Alpha"]}, True),
        ({"key_identifiers": []}, False),
    ],
)
@pytest.mark.asyncio
async def test_verifier_reads_match_flag_strictly(monkeypatch, scripted_llm, matches, expected) -> None:
    async def _fake_get_text(url: str, *, headers=None, timeout: float = 30.0) -> str:
        return ECHA_HTML

    monkeypatch.setattr(primary_source, "_http_get_text", _fake_get_text)
    llm = scripted_llm(default=json.dumps({"summary": "no", "impact_level": "low", "matches": matches}))

    result = await PrimarySourceVerifier(llm).verify(CONFIG, ARTICLE)

    assert result.matches is expected


@pytest.mark.asyncio
async def test_verifier_wraps_single_identifier(monkeypatch, scripted_llm) -> None:
    async def _fake_get_text(url: str, *, headers=None, timeout: float = 30.0) -> str:
        return ECHA_HTML

    monkeypatch.setattr(primary_source, "_http_get_text", _fake_get_text)
    llm = scripted_llm(default=json.dumps({"summary": "ok", "matches": "true", "key_identifiers": "Substance Alpha"}))

    result = await PrimarySourceVerifier(llm).verify(CONFIG, ARTICLE)

    assert result.key_identifiers == ["Substance Alpha"]
