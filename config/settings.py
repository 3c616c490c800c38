"""
Settings Configuration
Pydantic-validated settings, one class per concern.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SearchSettings(BaseSettings):
    """Search provider settings"""
    provider: str = Field(default="tavily", description="Search provider: tavily")
    tavily_api_key: Optional[str] = Field(default=None, description="Tavily API Key")
    search_depth: str = Field(default="basic", description="Tavily search depth: basic, advanced")
    max_results_per_query: int = Field(default=5, description="Max hits requested per query")
    lookback_days: int = Field(default=365, description="Hits dated before this window are dropped")
    keep_undated: bool = Field(default=True, description="Keep hits with no derivable publication date")

    class Config:
        env_prefix = "SEARCH_"


class LLMSettings(BaseSettings):
    """LLM settings"""
    provider: str = Field(default="openai", description="LLM provider: openai, anthropic, deepseek")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when unset)")
    temperature: float = Field(default=0.0, description="Sampling temperature")
    max_tokens: int = Field(default=1024, description="Max generated tokens")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API Key")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API Key")

    class Config:
        env_prefix = "LLM_"


class StorageSettings(BaseSettings):
    """Storage settings"""
    backend: str = Field(default="sqlite", description="Store backend: sqlite, memory")
    sqlite_path: str = Field(default="./data/regwatch.db", description="SQLite database file")

    class Config:
        env_prefix = "STORAGE_"


class PipelineSettings(BaseSettings):
    """Pipeline run settings"""
    request_timeout: float = Field(default=60.0, description="Timeout (seconds) for each external call")
    title_max_length: int = Field(default=100, description="Verified update title length")
    content_max_chars: int = Field(default=6000, description="Article content chars embedded in prompts")

    class Config:
        env_prefix = "PIPELINE_"


class Settings(BaseSettings):
    """Root settings aggregating every section"""

    search: SearchSettings = Field(default_factory=SearchSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, reading config/.env first when it exists"""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            search=SearchSettings(),
            llm=LLMSettings(),
            storage=StorageSettings(),
            pipeline=PipelineSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Cached global settings"""
    return Settings.load_from_env_file()


def get_search_settings() -> SearchSettings:
    return get_settings().search


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_storage_settings() -> StorageSettings:
    return get_settings().storage


def get_pipeline_settings() -> PipelineSettings:
    return get_settings().pipeline
