"""Factory for creating and managing search providers."""

import logging
from typing import Dict, Optional, Type

from ...domain.ports.search_provider import SearchProvider
from ..config import Settings
from .corpus_search_adapter import CorpusSearchAdapter
from .http_search_adapter import HttpSearchAdapter, HttpSearchConfig

logger = logging.getLogger(__name__)


class SearchProviderFactory:
    """Factory for creating and managing search providers.

    This factory maintains a registry of available search backends
    and handles their lifecycle (initialization, shutdown).
    """

    def __init__(self):
        """Initialize the factory."""
        self._provider_registry: Dict[str, Type] = {}
        self._active_providers: Dict[str, SearchProvider] = {}

        # Register default providers
        self.register_provider("http", HttpSearchAdapter)
        self.register_provider("corpus", CorpusSearchAdapter)

    def register_provider(self, name: str, provider_class: Type) -> None:
        """Register a new search provider class.

        Args:
            name: Unique identifier for the provider
            provider_class: The provider class to register
        """
        if name in self._provider_registry:
            raise ValueError(f"Provider {name} already registered")
        self._provider_registry[name] = provider_class

    async def create_provider(self, name: str, **config) -> SearchProvider:
        """Create and initialize a new search provider instance.

        Args:
            name: Name of the provider to create
            **config: Provider-specific configuration

        Returns:
            Initialized provider instance

        Raises:
            ValueError: If provider not found
            RuntimeError: If initialization fails
        """
        if name not in self._provider_registry:
            raise ValueError(f"Provider {name} not registered")

        provider = self._provider_registry[name](**config)
        try:
            await provider.initialize()
        except Exception as e:
            raise RuntimeError(f"Failed to initialize provider {name}: {e}") from e
        self._active_providers[name] = provider
        return provider

    async def create_default(self, settings: Settings) -> SearchProvider:
        """HTTP search when a URL is configured, the local corpus otherwise."""
        if settings.search_url:
            config = HttpSearchConfig(base_url=settings.search_url, api_key=settings.search_api_key)
            try:
                return await self.create_provider("http", config=config)
            except RuntimeError as e:
                logger.warning(f"⚠️ {e}; falling back to the local corpus")

        provider = await self.create_provider("corpus")
        if settings.corpus_path:
            provider.load_json(settings.corpus_path)
        return provider

    def get_provider(self, name: str) -> Optional[SearchProvider]:
        """Get an active provider instance by name."""
        return self._active_providers.get(name)

    @property
    def available_providers(self) -> Dict[str, bool]:
        """Get dictionary of registered providers and whether they are active."""
        return {
            name: name in self._active_providers and self._active_providers[name].is_available
            for name in self._provider_registry
        }

    async def shutdown(self) -> None:
        """Shutdown all active providers."""
        for name, provider in list(self._active_providers.items()):
            try:
                await provider.shutdown()
            except Exception as e:
                logger.error(f"❌ Error shutting down search provider {name}: {e}")
        self._active_providers.clear()
