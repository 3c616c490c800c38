"""
Scrapers Module
External search provider and primary-source fetch collaborators.
"""
from .base import BaseSearchProvider
from .tavily_scraper import TavilySearchProvider
from .primary_source import (
    PrimarySourceFetcher,
    extract_last_updated,
    extract_table_entries,
    html_to_text,
)

__all__ = [
    "BaseSearchProvider",
    "TavilySearchProvider",
    "PrimarySourceFetcher",
    "extract_last_updated",
    "extract_table_entries",
    "html_to_text",
]
