"""Domain models for verdicts."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .common import clamp_unit, new_id, utc_now


class VerdictLabel(str, Enum):
    """Analyst conclusion for a claim."""

    VERIFIED = "verified"
    PLAUSIBLE_UNVERIFIED = "plausible_unverified"
    SPECULATIVE = "speculative"
    MISLEADING = "misleading"

    @classmethod
    def coerce(cls, value: Any) -> "VerdictLabel":
        """Map an untrusted value onto a label, defaulting to speculative."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.SPECULATIVE


class VerdictNarrative(BaseModel):
    """Validated model output for verdict synthesis.

    Only the narrative fields are taken at face value; the numeric fields are
    parsed so disagreements can be recorded, never trusted as the verdict.
    """

    verdict_label: Optional[VerdictLabel] = Field(
        None, validation_alias=AliasChoices("verdict_label", "verdictLabel", "label", "verdict")
    )
    probability_true: Optional[float] = Field(
        None, validation_alias=AliasChoices("probability_true", "probabilityTrue")
    )
    reasoning_summary: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("reasoning_summary", "reasoningSummary", "reasoning")
    )
    invalidation_triggers: List[str] = Field(
        ..., min_length=1, validation_alias=AliasChoices("invalidation_triggers", "invalidationTriggers", "invalidation_trigger")
    )
    key_evidence_urls: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_evidence_urls", "keyEvidenceUrls", "key_evidence")
    )

    @field_validator("verdict_label", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> Optional[VerdictLabel]:
        if value is None:
            return None
        return VerdictLabel.coerce(value)

    @field_validator("probability_true", mode="before")
    @classmethod
    def _clamp_probability(cls, value: Any) -> Optional[float]:
        if value is None:
            return None
        return clamp_unit(value)

    @field_validator("reasoning_summary", mode="before")
    @classmethod
    def _strip_reasoning(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("invalidation_triggers", "key_evidence_urls", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return []
        return [str(entry).strip() for entry in value if str(entry).strip()]


class Verdict(BaseModel):
    """Conclusion for a claim at a point in time. Append-only."""

    id: str = Field(default_factory=new_id)
    claim_id: str = Field(..., description="Claim the verdict is about")
    label: VerdictLabel = Field(default=VerdictLabel.SPECULATIVE)
    probability_true: float = Field(..., ge=0.0, le=1.0)
    evidence_strength: float = Field(..., ge=0.0, le=1.0)
    key_evidence_ids: List[str] = Field(default_factory=list)
    key_evidence_urls: List[str] = Field(default_factory=list)
    reasoning_summary: str = Field(..., min_length=1)
    invalidation_triggers: List[str] = Field(..., min_length=1, description="What new evidence would overturn this verdict")
    model: str = Field("rule-based", description="Model or provider that wrote the narrative")
    prompt_version: str = Field(..., description="Prompt/policy version")
    created_at: datetime = Field(default_factory=utc_now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        """Pydantic model configuration."""
        frozen = True
        json_schema_extra = {
            "example": {
                "claim_id": "8f14e45f-ceea-467a-9f8e-1c1d9c0e0a11",
                "label": "verified",
                "probability_true": 0.94,
                "evidence_strength": 0.94,
                "reasoning_summary": "Two on-chain records and an official post-mortem confirm the drain.",
                "invalidation_triggers": ["Protocol team retracts the post-mortem"],
                "prompt_version": "verdict-v1.1",
            }
        }
