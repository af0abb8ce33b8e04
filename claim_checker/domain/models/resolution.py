"""Domain models for ground-truth resolution."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .common import ensure_utc, new_id, utc_now


class ResolutionOutcome(str, Enum):
    """Ground-truth outcome of a claim."""

    TRUE = "true"
    FALSE = "false"
    PARTIALLY_TRUE = "partially_true"
    UNRESOLVED = "unresolved"  # Deadline passed without a determinable answer

    @property
    def numeric(self) -> float:
        return {"true": 1.0, "false": 0.0}.get(self.value, 0.5)


class Resolution(BaseModel):
    """Terminal ground-truth record. At most one per claim."""

    id: str = Field(default_factory=new_id)
    claim_id: str = Field(..., description="Resolved claim")
    outcome: ResolutionOutcome
    resolved_at: datetime = Field(default_factory=utc_now)
    evidence_url: Optional[str] = Field(None, description="Evidence backing the outcome")
    notes: str = Field("", description="How the outcome was determined")
    resolved_by: str = Field("auto", description="'auto' for engine decisions, 'manual' for ground-truth input")

    @field_validator("resolved_at", mode="after")
    @classmethod
    def _normalize_time(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    class Config:
        """Pydantic model configuration."""
        frozen = True


class RecheckSchedule(BaseModel):
    """When a reviewed claim should next be re-verified."""

    claim_id: str
    next_run_at: datetime
    attempts: int = Field(0, ge=0, description="Re-checks already performed")
    last_run_at: Optional[datetime] = None

    @field_validator("next_run_at", "last_run_at", mode="after")
    @classmethod
    def _normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    class Config:
        """Pydantic model configuration."""
        frozen = True
