"""
LLM Factory
Build an LLM instance from settings.
"""
from typing import Optional

from .base import BaseLLM
from .anthropic_llm import AnthropicLLM
from .deepseek_llm import DeepSeekLLM
from .openai_llm import OpenAILLM


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
    "deepseek": "deepseek-chat",
}


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    **kwargs,
) -> BaseLLM:
    """
    Return an LLM instance.

    Reads LLM_* settings; explicit arguments win.

    Example:
        llm = get_llm()
        llm = get_llm(provider="anthropic", temperature=0.2)
    """
    from config import get_llm_settings

    settings = get_llm_settings()

    provider = (provider or settings.provider).strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)

    api_keys = {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
        "deepseek": settings.deepseek_api_key,
    }
    api_key = kwargs.pop("api_key", None) or api_keys.get(provider)

    defaults = {
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
    for key, value in defaults.items():
        kwargs.setdefault(key, value)

    if provider == "openai":
        return OpenAILLM(model=model, api_key=api_key, base_url=kwargs.pop("base_url", None), **kwargs)
    if provider == "anthropic":
        return AnthropicLLM(model=model, api_key=api_key, **kwargs)
    if provider == "deepseek":
        return DeepSeekLLM(model=model, api_key=api_key, base_url=kwargs.pop("base_url", None), **kwargs)
    raise ValueError(f"Unsupported LLM provider: {provider}")
