"""ChatGPT implementation of the completion provider interface."""

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from ...domain.ports.completion_provider import CompletionError

logger = logging.getLogger(__name__)


class ChatGPTConfig(BaseModel):
    """Configuration for ChatGPT adapter."""

    api_key: str = Field(..., description="OpenAI API key")
    model: str = Field(default="gpt-4o-mini", description="Chat model to use")
    temperature: float = Field(default=0.1, description="Temperature for responses")
    max_tokens: int = Field(default=2000, description="Maximum tokens per response")
    timeout: float = Field(default=60.0, description="API timeout in seconds")
    base_url: Optional[str] = Field(default=None, description="Override for OpenAI-compatible endpoints")


class ChatGPTCompletionAdapter:
    """ChatGPT implementation of the completion provider interface.

    Retries are left to the caller; the client is created with retries off so
    backoff happens in one place.
    """

    def __init__(self, config: Optional[ChatGPTConfig] = None):
        """Initialize the adapter."""
        self._config = config or ChatGPTConfig(api_key="")
        self._client: Optional[AsyncOpenAI] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the OpenAI client."""
        if not self._config.api_key:
            raise ConnectionError("Failed to initialize ChatGPT provider: OPENAI_API_KEY is not set")
        try:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                max_retries=0,
            )
            self._initialized = True
            logger.info(f"✅ ChatGPT provider ready (model={self._config.model})")
        except Exception as e:
            self._initialized = False
            self._client = None
            raise ConnectionError(f"Failed to initialize ChatGPT provider: {e}")

    async def shutdown(self) -> None:
        """Close the OpenAI client."""
        if self._client is not None:
            await self._client.close()
        self._client = None
        self._initialized = False

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a chat completion request and return the message text."""
        if not self._client:
            raise RuntimeError("Provider not initialized")

        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise CompletionError(f"ChatGPT request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise CompletionError("ChatGPT returned an empty response")
        return content

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return "ChatGPT"

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._config.model

    @property
    def is_available(self) -> bool:
        """Check if the provider is initialized."""
        return self._initialized and self._client is not None
