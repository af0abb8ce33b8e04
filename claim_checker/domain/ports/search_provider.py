"""Port interface for evidence search backends."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models.common import parse_timestamp


class SearchUnavailableError(ConnectionError):
    """The search backend could not be reached."""


class SearchHit(BaseModel):
    """A raw search result, before grading."""

    url: str = Field(..., min_length=1, validation_alias=AliasChoices("url", "link"))
    publisher: Optional[str] = Field(None, validation_alias=AliasChoices("publisher", "source", "site"))
    excerpt: str = Field("", validation_alias=AliasChoices("excerpt", "snippet", "content", "summary"))
    published_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("published_at", "publishedAt", "date")
    )
    title: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("published_at", mode="before")
    @classmethod
    def _parse_published(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("excerpt", mode="before")
    @classmethod
    def _default_excerpt(cls, value: Any) -> str:
        return "" if value is None else str(value)


class SearchProvider(Protocol):
    """Protocol for evidence search backends."""

    async def initialize(self) -> None:
        """Initialize the backend."""
        ...

    async def shutdown(self) -> None:
        """Clean up resources."""
        ...

    async def search(self, claim_text: str, asset_symbols: List[str]) -> List[SearchHit]:
        """Find material related to a claim.

        Raises:
            SearchUnavailableError: If the backend cannot be reached
        """
        ...

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        ...

    @property
    def is_available(self) -> bool:
        """Check if the backend is initialized."""
        ...
