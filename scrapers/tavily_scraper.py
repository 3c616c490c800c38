"""
Tavily Search Provider
News search through the Tavily API.
"""
from typing import Any, Dict, List, Optional
import logging

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from utils.exceptions import ConfigurationError, SearchError
from .base import BaseSearchProvider


logger = logging.getLogger(__name__)


class TavilySearchProvider(BaseSearchProvider):
    """
    Tavily search provider.

    Uses the synchronous ``TavilyClient`` in a worker thread. Transient
    failures are retried with exponential backoff before surfacing as
    ``SearchError``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        search_depth: Optional[str] = None,
        client: Any = None,
    ):
        super().__init__()
        search_settings = self.settings.search
        self.api_key = api_key or search_settings.tavily_api_key
        self.search_depth = search_depth or search_settings.search_depth
        self.default_days = search_settings.lookback_days
        self.default_max_results = search_settings.max_results_per_query
        self._client = client

    @property
    def name(self) -> str:
        return "Tavily"

    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("Missing SEARCH_TAVILY_API_KEY")
            from tavily import TavilyClient
            self._client = TavilyClient(api_key=self.api_key)
        return self._client

    @retry(
        retry=retry_if_exception_type(SearchError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        **options: Any,
    ) -> List[Dict[str, Any]]:
        client = self._get_client()

        params: Dict[str, Any] = {
            "query": query,
            "search_depth": self.search_depth,
            "topic": "news",
            "days": int(options.get("days") or self.default_days),
            "max_results": int(max_results or self.default_max_results),
            "include_answer": False,
            "include_raw_content": True,
        }
        include_domains = [
            str(d).replace("https://", "").replace("http://", "").strip("/")
            for d in (options.get("include_domains") or [])
            if str(d or "").strip()
        ]
        if include_domains:
            params["include_domains"] = include_domains

        try:
            response = await self._run_blocking(client.search, **params)
        except Exception as exc:
            self._log_error(f"Search '{query}' failed", exc)
            raise SearchError(f"Tavily search failed: {exc}", source=self.name, query=query) from exc

        results = (response or {}).get("results") or []
        hits = [dict(item) for item in results if isinstance(item, dict) and item.get("url")]
        self._log_search(query, len(hits))
        return hits
