"""Domain models for sources and ingested content items."""

import hashlib
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import ensure_utc, new_id, utc_now


class SourceType(str, Enum):
    """Kinds of entity that publish content."""

    PUBLISHER = "publisher"
    X_HANDLE = "x_handle"
    TELEGRAM = "telegram"
    YOUTUBE = "youtube"
    REDDIT = "reddit"
    BLOG = "blog"
    EXCHANGE = "exchange"
    REGULATOR = "regulator"
    UNKNOWN = "unknown"


class ItemType(str, Enum):
    """Kinds of ingested content."""

    ARTICLE = "article"
    TWEET = "tweet"
    RELEASE = "release"
    FILING = "filing"
    ONCHAIN_ALERT = "onchain_alert"
    ANNOUNCEMENT = "announcement"
    OTHER = "other"


class Source(BaseModel):
    """A publisher, handle or regulator that content is attributed to."""

    id: str = Field(default_factory=new_id, description="Source identifier")
    type: SourceType = Field(default=SourceType.UNKNOWN, description="Kind of source")
    handle_or_domain: str = Field(..., description="Handle (e.g. @whale_alert) or domain (e.g. coindesk.com)")
    display_name: str = Field(..., description="Human readable name")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form source metadata")
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        """Pydantic model configuration."""
        frozen = True


def compute_content_hash(raw_text: str, title: Optional[str] = None) -> str:
    """Hash the normalized title and body of a content item."""
    normalized = re.sub(r"\s+", " ", f"{title or ''}\n{raw_text}").strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class Item(BaseModel):
    """A unit of ingested content. Immutable once created."""

    id: str = Field(default_factory=new_id, description="Item identifier")
    source_id: str = Field(..., description="Source this item was published by")
    raw_text: str = Field(..., description="Raw content body")
    title: Optional[str] = Field(None, description="Headline, if any")
    url: Optional[str] = Field(None, description="Canonical URL, if any")
    published_at: Optional[datetime] = Field(None, description="When the source published it")
    ingested_at: datetime = Field(default_factory=utc_now, description="When the pipeline received it")
    content_hash: str = Field("", description="Dedup key over normalized title and body")
    item_type: ItemType = Field(default=ItemType.ARTICLE, description="Kind of content")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic model configuration."""
        frozen = True
        json_schema_extra = {
            "example": {
                "source_id": "2f0c7b8e-6a1d-4c55-9a43-1f1f0f1f0f1f",
                "title": "Protocol drained in $45 million exploit",
                "raw_text": "Attackers drained $45 million from the lending protocol...",
                "url": "https://www.theblock.co/post/123",
                "item_type": "article",
            }
        }

    @field_validator("published_at", "ingested_at", mode="after")
    @classmethod
    def _normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="before")
    @classmethod
    def _fill_content_hash(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("content_hash"):
            data = {**data, "content_hash": compute_content_hash(data.get("raw_text", ""), data.get("title"))}
        return data
