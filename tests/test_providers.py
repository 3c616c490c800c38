from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest
from tenacity import wait_none

from intelligence.llm import AnthropicLLM, BaseLLM, LLMResponse, Message, complete_text
from scrapers import TavilySearchProvider
from utils.exceptions import ConfigurationError, LLMError, SearchError


class _FakeTavilyClient:
    def __init__(self, response: Any = None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def search(self, **params: Any) -> Dict[str, Any]:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return self.response


class _SlowLLM(BaseLLM):
    def __init__(self):
        super().__init__(model="slow")

    @property
    def provider(self) -> str:
        return "slow"

    async def acomplete(self, messages: List[Message], **kwargs: Any) -> LLMResponse:
        await asyncio.sleep(5)
        return LLMResponse(content="late", model=self.model)


class _BrokenLLM(_SlowLLM):
    async def acomplete(self, messages: List[Message], **kwargs: Any) -> LLMResponse:
        raise RuntimeError("socket closed")


@pytest.mark.asyncio
async def test_tavily_search_builds_request_and_filters_hits() -> None:
    client = _FakeTavilyClient(
        {
            "results": [
                {"url": "https://echa.test/a", "title": "A", "content": "a", "published_date": "2025-01-02"},
                {"title": "missing url"},
            ]
        }
    )
    provider = TavilySearchProvider(api_key="k", client=client)

    hits = await provider.search("svhc update", max_results=3, days=90, include_domains=["https://echa.test/"])

    assert [h["url"] for h in hits] == ["https://echa.test/a"]
    params = client.calls[0]
    assert params["query"] == "svhc update"
    assert params["topic"] == "news"
    assert params["max_results"] == 3
    assert params["days"] == 90
    assert params["include_raw_content"] is True
    assert params["include_domains"] == ["echa.test"]


@pytest.mark.asyncio
async def test_tavily_without_key_is_a_configuration_error() -> None:
    provider = TavilySearchProvider(api_key="")
    provider.api_key = None

    assert provider.is_configured() is False
    with pytest.raises(ConfigurationError):
        await provider.search("svhc")


@pytest.mark.asyncio
async def test_tavily_failures_are_retried_then_raised() -> None:
    client = _FakeTavilyClient(error=RuntimeError("502 bad gateway"))
    provider = TavilySearchProvider(api_key="k", client=client)
    search = TavilySearchProvider.search.retry_with(wait=wait_none())

    with pytest.raises(SearchError):
        await search(provider, "svhc")

    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_complete_text_wraps_timeouts_and_errors() -> None:
    with pytest.raises(LLMError) as timed_out:
        await complete_text(_SlowLLM(), [Message.user("hi")], timeout=0.01)
    assert timed_out.value.provider == "slow"

    with pytest.raises(LLMError) as broken:
        await complete_text(_BrokenLLM(), [Message.user("hi")])
    assert "socket closed" in str(broken.value)


def test_anthropic_splits_system_messages() -> None:
    system, messages = AnthropicLLM._convert_messages(
        [Message.system("rule one"), Message.system("rule two"), Message.user("question")]
    )

    assert system == "rule one\n\nrule two"
    assert messages == [{"role": "user", "content": "question"}]


@pytest.mark.asyncio
async def test_achat_builds_single_turn_messages(scripted_llm) -> None:
    llm = scripted_llm(default="YES")

    reply = await llm.achat("same update?", system_prompt="answer tersely")

    assert reply == "YES"
    assert [m.role.value for m in llm.calls[0]] == ["system", "user"]
    assert llm.calls[0][1].content == "same update?"

    with pytest.raises(LLMError):
        await _SlowLLM().achat("hi", timeout=0.01)
