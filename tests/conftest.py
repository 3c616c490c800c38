"""Shared fakes: scripted LLM, canned search provider, stores."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from intelligence.llm.base import BaseLLM, LLMResponse, Message
from scrapers.base import BaseSearchProvider
from storage import InMemoryUpdateStore, SQLiteUpdateStore


Reply = Union[str, Exception, Callable[[List[Message]], str]]


class ScriptedLLM(BaseLLM):
    """Replies by the first rule whose marker occurs in the last message; ``default`` otherwise."""

    def __init__(self, rules: Optional[List[tuple]] = None, default: Reply = "{}"):
        super().__init__(model="scripted")
        self.rules = list(rules or [])
        self.default = default
        self.calls: List[List[Message]] = []

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages: List[Message], **kwargs: Any) -> LLMResponse:
        self.calls.append(list(messages))
        text = messages[-1].content if messages else ""
        reply = self.default
        for marker, candidate in self.rules:
            if marker in text:
                reply = candidate
                break
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return LLMResponse(content=reply, model=self.model, usage={})

    def prompts_containing(self, marker: str) -> int:
        return sum(1 for msgs in self.calls if marker in msgs[-1].content)


class FakeSearchProvider(BaseSearchProvider):
    def __init__(self, results: Optional[Dict[str, Union[List[Dict[str, Any]], Exception]]] = None):
        super().__init__()
        self.results = dict(results or {})
        self.calls: List[Dict[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    async def search(self, query: str, max_results: Optional[int] = None, **options: Any) -> List[Dict[str, Any]]:
        self.calls.append({"query": query, "max_results": max_results, **options})
        hits = self.results.get(query, [])
        if isinstance(hits, Exception):
            raise hits
        return [dict(hit) for hit in hits][: max_results or len(hits)]


def synthesis_reply(summary: str, update_type: str = "addition", event_month: str = "2025-01", change_scope: str = "count_3") -> str:
    return json.dumps(
        {
            "update_type": update_type,
            "event_month": event_month,
            "change_scope": change_scope,
            "update_summary": summary,
        }
    )


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def scripted_llm() -> Callable[..., ScriptedLLM]:
    return ScriptedLLM


@pytest.fixture
def fake_search() -> Callable[..., FakeSearchProvider]:
    return FakeSearchProvider


@pytest.fixture
def reply_for() -> Callable[..., str]:
    return synthesis_reply


@pytest.fixture
def memory_store() -> InMemoryUpdateStore:
    return InMemoryUpdateStore()


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteUpdateStore:
    return SQLiteUpdateStore(db_path=str(tmp_path / "regwatch.db"))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryUpdateStore()
    return SQLiteUpdateStore(db_path=str(tmp_path / "regwatch.db"))
