"""HTTP implementation of the search provider interface."""

import logging
from typing import Any, List, Optional

import httpx
from cachetools import TTLCache
from pydantic import BaseModel, Field, ValidationError

from ...domain.ports.search_provider import SearchHit, SearchUnavailableError

logger = logging.getLogger(__name__)


class HttpSearchConfig(BaseModel):
    """Configuration for the HTTP search adapter."""

    base_url: str = Field(..., description="Base URL of the search service")
    api_key: Optional[str] = Field(default=None, description="Bearer token, if required")
    search_path: str = Field(default="/search", description="Path of the search endpoint")
    timeout: float = Field(default=15.0, description="Request timeout in seconds")
    max_results: int = Field(default=10, description="Results requested per query")
    cache_ttl: int = Field(default=900, description="Cache TTL in seconds")
    cache_maxsize: int = Field(default=500, description="Maximum cache size")


class HttpSearchAdapter:
    """Queries a JSON search service for evidence.

    Expects ``POST {search_path}`` with ``{"query", "assets", "max_results"}``
    and a response that is either a list of hits or ``{"results": [...]}``.
    """

    def __init__(self, config: HttpSearchConfig, provider_name: str = "HttpSearch"):
        """Initialize the adapter.

        Args:
            config: Adapter configuration
            provider_name: Name of the provider
        """
        self._config = config
        self._name = provider_name
        self._client: Optional[httpx.AsyncClient] = None
        self._cache = TTLCache(maxsize=config.cache_maxsize, ttl=config.cache_ttl)

    async def initialize(self) -> None:
        """Create the HTTP client."""
        try:
            headers = {"Content-Type": "application/json"}
            if self._config.api_key:
                headers["Authorization"] = f"Bearer {self._config.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                headers=headers,
            )
        except Exception as e:
            self._client = None
            raise ConnectionError(f"Failed to initialize search provider: {e}")

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._cache.clear()

    async def search(self, claim_text: str, asset_symbols: List[str]) -> List[SearchHit]:
        """Search the remote service, serving repeats from the cache."""
        if not self._client:
            raise RuntimeError("Provider not initialized")

        cache_key = f"search:{claim_text}:{','.join(sorted(asset_symbols))}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            response = await self._client.post(
                self._config.search_path,
                json={
                    "query": claim_text,
                    "assets": asset_symbols,
                    "max_results": self._config.max_results,
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise SearchUnavailableError(f"Search service returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise SearchUnavailableError(f"Search service unreachable: {e}") from e

        hits = self._parse_hits(payload)
        self._cache[cache_key] = hits
        return hits

    @staticmethod
    def _parse_hits(payload: Any) -> List[SearchHit]:
        raw_hits = payload.get("results", []) if isinstance(payload, dict) else payload
        hits = []
        for raw in raw_hits if isinstance(raw_hits, list) else []:
            if not isinstance(raw, dict):
                continue
            try:
                hits.append(SearchHit.model_validate(raw))
            except ValidationError as e:
                logger.debug(f"Skipping malformed search hit: {e.errors()[0]['msg']}")
        return hits

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return self._name

    @property
    def is_available(self) -> bool:
        """Check if the client is open."""
        return self._client is not None
