"""
Intelligence Module
LLM provider abstraction used by extraction, consensus and verification.
"""
from .llm import (
    BaseLLM,
    OpenAILLM,
    AnthropicLLM,
    DeepSeekLLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "OpenAILLM",
    "AnthropicLLM",
    "DeepSeekLLM",
    "get_llm",
]
