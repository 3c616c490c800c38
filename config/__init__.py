"""
Configuration Management Module
Environment-driven settings for search, LLM, storage and pipeline runs.
"""
from .settings import (
    LLMSettings,
    PipelineSettings,
    SearchSettings,
    Settings,
    StorageSettings,
    get_llm_settings,
    get_pipeline_settings,
    get_search_settings,
    get_settings,
    get_storage_settings,
)

__all__ = [
    "LLMSettings",
    "PipelineSettings",
    "SearchSettings",
    "Settings",
    "StorageSettings",
    "get_llm_settings",
    "get_pipeline_settings",
    "get_search_settings",
    "get_settings",
    "get_storage_settings",
]
