"""
LLM Module
Multi-provider LLM abstraction
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole, complete_text
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM
from .deepseek_llm import DeepSeekLLM
from .factory import get_llm

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "complete_text",
    "OpenAILLM",
    "AnthropicLLM",
    "DeepSeekLLM",
    "get_llm",
]
