"""Port interface for LLM completion providers."""

from typing import Protocol


class CompletionError(ConnectionError):
    """A completion request failed at the transport or API level."""


class CompletionProvider(Protocol):
    """Protocol for text completion providers.

    Output is untrusted text that is expected to contain JSON, possibly
    wrapped in markdown code fences.
    """

    async def initialize(self) -> None:
        """Initialize the provider."""
        ...

    async def shutdown(self) -> None:
        """Clean up resources."""
        ...

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Complete a prompt and return the raw response text.

        Raises:
            CompletionError: If the provider cannot produce a response
        """
        ...

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        ...

    @property
    def model_name(self) -> str:
        """Get the model identifier recorded on verdicts."""
        ...

    @property
    def is_available(self) -> bool:
        """Check if the provider is initialized and usable."""
        ...
