"""
Base LLM
Provider-agnostic chat completion interface.
"""
from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from utils.exceptions import LLMError


class MessageRole(str, Enum):
    """Chat message role"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """Chat message"""
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)


@dataclass
class LLMResponse:
    """LLM response"""
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None


class BaseLLM(ABC):
    """
    Abstract LLM provider.

    Every provider implementation subclasses this and implements ``acomplete``.
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 1024,
        timeout: float = 60.0,
        **kwargs,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.extra_config = kwargs

    @property
    @abstractmethod
    def provider(self) -> str:
        """Provider name"""
        pass

    @abstractmethod
    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        """
        Generate one response.

        Args:
            messages: conversation messages
            **kwargs: per-call overrides (temperature, max_tokens)

        Returns:
            LLMResponse
        """
        pass

    async def achat(
        self,
        user_message: str,
        system_prompt: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        """Single-turn chat returning the text content; failures raise LLMError."""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(user_message))
        return await complete_text(self, messages, timeout=timeout)

    async def aclose(self) -> None:
        """Release underlying client resources (no-op by default)."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"


async def complete_text(
    llm: BaseLLM,
    messages: Sequence[Message],
    *,
    timeout: Optional[float] = None,
) -> str:
    """Run one completion and return its text, raising LLMError on any provider failure or timeout."""
    try:
        if timeout:
            response = await asyncio.wait_for(llm.acomplete(list(messages)), timeout=timeout)
        else:
            response = await llm.acomplete(list(messages))
    except asyncio.TimeoutError as exc:
        raise LLMError("LLM call timed out", provider=llm.provider, timeout=timeout) from exc
    except LLMError:
        raise
    except Exception as exc:
        raise LLMError(f"LLM call failed: {exc}", provider=llm.provider) from exc
    return str(response.content or "")
