"""Factory for creating and managing completion providers."""

import logging
from typing import Dict, Optional, Type

from ...domain.ports.completion_provider import CompletionProvider
from ..config import Settings
from .chatgpt_adapter import ChatGPTCompletionAdapter, ChatGPTConfig
from .rule_based_provider import RuleBasedCompletionProvider

logger = logging.getLogger(__name__)


class CompletionProviderFactory:
    """Factory for creating and managing completion providers."""

    def __init__(self):
        """Initialize the factory."""
        self._providers: Dict[str, Type] = {}
        self._instances: Dict[str, CompletionProvider] = {}

        # Register default providers
        self.register_provider("chatgpt", ChatGPTCompletionAdapter)
        self.register_provider("rule_based", RuleBasedCompletionProvider)

    def register_provider(self, name: str, provider_class: Type) -> None:
        """Register a new completion provider.

        Args:
            name: Provider name
            provider_class: Provider class

        Raises:
            ValueError: If the name is already registered
        """
        if name in self._providers:
            raise ValueError(f"Provider '{name}' already registered")
        self._providers[name] = provider_class

    async def create_provider(self, name: str, **kwargs) -> CompletionProvider:
        """Create and initialize a provider instance, reusing an existing one.

        Args:
            name: Provider name
            **kwargs: Provider constructor arguments

        Returns:
            Initialized provider instance

        Raises:
            ValueError: If provider not found
            RuntimeError: If initialization fails
        """
        if name not in self._providers:
            raise ValueError(f"Provider '{name}' not found")

        if name not in self._instances:
            provider = self._providers[name](**kwargs)
            try:
                await provider.initialize()
            except Exception as e:
                raise RuntimeError(f"Failed to initialize provider {name}: {e}") from e
            self._instances[name] = provider

        return self._instances[name]

    async def create_default(self, settings: Settings) -> CompletionProvider:
        """Model-backed provider when configured, rule-based otherwise."""
        if settings.openai_api_key:
            config = ChatGPTConfig(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                base_url=settings.openai_base_url,
                timeout=settings.retry.timeout,
            )
            try:
                return await self.create_provider("chatgpt", config=config)
            except RuntimeError as e:
                logger.warning(f"⚠️ {e}; falling back to rule-based completions")
        return await self.create_provider("rule_based")

    def get_provider(self, name: str) -> Optional[CompletionProvider]:
        """Get an existing provider instance.

        Args:
            name: Provider name

        Returns:
            Provider instance if exists, None otherwise
        """
        return self._instances.get(name)

    @property
    def available_providers(self) -> Dict[str, bool]:
        """Get dictionary of registered providers and whether they are active."""
        return {
            name: name in self._instances and self._instances[name].is_available
            for name in self._providers
        }

    async def shutdown(self) -> None:
        """Shutdown all provider instances."""
        for provider in self._instances.values():
            await provider.shutdown()
        self._instances.clear()
