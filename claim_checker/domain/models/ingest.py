"""Input payloads for feeding content into the pipeline."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .common import parse_timestamp
from .item import Item, ItemType, Source


class IngestItem(BaseModel):
    """Content as delivered by a collector, referencing its source by handle or id."""

    source: str = Field(..., description="Source handle/domain or source id")
    raw_text: str = Field(..., description="Raw content body")
    title: Optional[str] = None
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    item_type: ItemType = Field(default=ItemType.ARTICLE)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("published_at", mode="before")
    @classmethod
    def _parse_published_at(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    def to_item(self, source_id: str) -> Item:
        return Item(
            source_id=source_id,
            raw_text=self.raw_text,
            title=self.title,
            url=self.url,
            published_at=self.published_at,
            item_type=self.item_type,
            metadata=self.metadata,
        )


class IngestBatch(BaseModel):
    """Sources to register and items to run through the pipeline."""

    sources: List[Source] = Field(default_factory=list)
    items: List[IngestItem] = Field(default_factory=list)
