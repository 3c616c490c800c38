"""
Base Search Provider
Abstract base for external article search providers.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar
import asyncio
import logging

from config import get_settings


logger = logging.getLogger(__name__)

R = TypeVar("R")


class BaseSearchProvider(ABC):
    """
    Search provider contract.

    ``search`` returns raw hit dicts shaped like
    ``{url, title?, content?, published_date?, source?}``; callers must
    tolerate missing optional fields.
    """

    def __init__(self):
        self.settings = get_settings()

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name"""
        pass

    @abstractmethod
    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        **options: Any,
    ) -> List[Dict[str, Any]]:
        """
        Search for articles.

        Args:
            query: search string
            max_results: maximum hits to return
            **options: provider specific options (include_domains, days)

        Returns:
            Raw hit dicts
        """
        pass

    def is_configured(self) -> bool:
        """Whether credentials needed by the provider are present."""
        return True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Release provider resources (no-op by default)."""
        return None

    async def _run_blocking(self, func: Callable[..., R], *args, **kwargs) -> R:
        """Run a blocking SDK call in the default thread pool."""
        return await asyncio.to_thread(func, *args, **kwargs)

    def _log_search(self, query: str, count: int):
        logger.info(f"[{self.name}] Search '{query}' returned {count} results")

    def _log_error(self, message: str, error: Exception):
        logger.error(f"[{self.name}] {message}: {error}")
