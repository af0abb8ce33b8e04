"""Domain models for claim and source credibility scores."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .common import new_id, utc_now
from .resolution import ResolutionOutcome


class CredibilitySignal(BaseModel):
    """One resolved claim's contribution to its source's history."""

    claim_id: str
    source_id: str
    outcome: ResolutionOutcome
    accuracy: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="1 correct, 0.5 partial, 0 wrong; None when unresolved"
    )
    verdict_agreement: Optional[bool] = Field(None, description="Whether the last verdict matched the outcome")
    evidence_strength: float = Field(0.0, ge=0.0, le=1.0)
    primary_share: float = Field(0.0, ge=0.0, le=1.0, description="Share of A/B-grade evidence")
    recorded_at: datetime = Field(default_factory=utc_now)

    class Config:
        """Pydantic model configuration."""
        frozen = True


class ClaimScore(BaseModel):
    """Deterministic score of a single resolved claim."""

    claim_id: str
    accuracy_score: float = Field(..., ge=0.0, le=1.0)
    timeliness_score: float = Field(..., ge=0.0, le=1.0)
    evidence_discipline_score: float = Field(..., ge=0.0, le=1.0)
    final_score: float = Field(..., ge=0.0, le=1.0)
    score_version: str
    computed_at: datetime = Field(default_factory=utc_now)

    class Config:
        """Pydantic model configuration."""
        frozen = True


class ConfidenceInterval(BaseModel):
    """Interval around a 0-100 score."""

    lower: float = Field(..., ge=0.0, le=100.0)
    upper: float = Field(..., ge=0.0, le=100.0)

    @property
    def width(self) -> float:
        return self.upper - self.lower


class SourceScore(BaseModel):
    """Versioned point-in-time credibility snapshot of a source."""

    id: str = Field(default_factory=new_id)
    source_id: str
    track_record: float = Field(..., ge=0.0, le=100.0, description="Shrinkage-adjusted accuracy")
    method_discipline: float = Field(..., ge=0.0, le=100.0, description="Evidentiary rigor")
    sample_size: int = Field(..., ge=0, description="Resolved claims with a determinable outcome")
    confidence_interval: ConfidenceInterval
    score_version: str
    computed_at: datetime = Field(default_factory=utc_now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic model configuration."""
        frozen = True
