"""
DeepSeek LLM
OpenAI-compatible endpoint (deepseek-chat, deepseek-reasoner).
"""
from typing import Optional

from .openai_llm import OpenAILLM


class DeepSeekLLM(OpenAILLM):
    """DeepSeek through the OpenAI SDK."""

    DEFAULT_BASE_URL = "https://api.deepseek.com"

    def __init__(
        self,
        model: str = "deepseek-chat",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 1024,
        timeout: float = 120.0,
        **kwargs,
    ):
        super().__init__(
            model=model,
            api_key=api_key,
            base_url=base_url or self.DEFAULT_BASE_URL,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            **kwargs,
        )

    @property
    def provider(self) -> str:
        return "deepseek"
