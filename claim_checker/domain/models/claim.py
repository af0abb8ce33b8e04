"""Domain models for extracted claims."""

import hashlib
import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .common import clamp_unit, ensure_utc, new_id, parse_timestamp, utc_now


class ClaimType(str, Enum):
    """Closed taxonomy of crypto claims."""

    FILING_SUBMITTED = "filing_submitted"
    FILING_APPROVED_OR_DENIED = "filing_approved_or_denied"
    REGULATORY_ACTION = "regulatory_action"
    LISTING_ANNOUNCED = "listing_announced"
    LISTING_LIVE = "listing_live"
    DELISTING_ANNOUNCED = "delisting_announced"
    TRADING_HALT = "trading_halt"
    MAINNET_LAUNCH = "mainnet_launch"
    TESTNET_LAUNCH = "testnet_launch"
    UPGRADE_RELEASED = "upgrade_released"
    EXPLOIT_OR_HACK = "exploit_or_hack"
    AUDIT_RESULT = "audit_result"
    PARTNERSHIP_ANNOUNCED = "partnership_announced"
    INVESTMENT_OR_ACQUISITION = "investment_or_acquisition"
    LARGE_TRANSFER_OR_WHALE = "large_transfer_or_whale"
    MINT_OR_BURN = "mint_or_burn"
    WALLET_ATTRIBUTION = "wallet_attribution"
    PRICE_PREDICTION = "price_prediction"
    TIMELINE_PREDICTION = "timeline_prediction"
    RUMOR = "rumor"
    MISC_CLAIM = "misc_claim"

    @classmethod
    def coerce(cls, value: Any) -> "ClaimType":
        """Map an untrusted value onto the taxonomy, defaulting to misc_claim."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MISC_CLAIM


class ResolutionType(str, Enum):
    """How a claim's truth becomes known."""

    IMMEDIATE = "immediate"  # Verifiable now
    SCHEDULED = "scheduled"  # Verifiable at a known deadline
    INDEFINITE = "indefinite"  # No natural resolution point


class ClaimStatus(str, Enum):
    """Claim lifecycle status. Only advances forward."""

    UNREVIEWED = "unreviewed"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)


_STATUS_ORDER = [ClaimStatus.UNREVIEWED, ClaimStatus.REVIEWED, ClaimStatus.RESOLVED]


class ReviewState(str, Enum):
    """Sub-status tracked while a claim is reviewed."""

    PENDING_RECHECK = "pending_recheck"
    SETTLED_INDEFINITE = "settled_indefinite"


class InvalidTransitionError(ValueError):
    """Raised when a claim status change would move backward or skip a state."""


def claim_fingerprint(claim_text: str) -> str:
    """Stable key for one assertion within an item."""
    normalized = re.sub(r"\s+", " ", claim_text).strip().lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


class ClaimCandidate(BaseModel):
    """A claim as proposed by the extractor, before it is persisted.

    This is the validation boundary for model output: both snake_case and
    camelCase keys are accepted, scores are clamped and unknown enum values
    are coerced to safe defaults.
    """

    claim_text: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("claim_text", "claimText", "claim", "text"),
    )
    claim_type: ClaimType = Field(
        default=ClaimType.MISC_CLAIM,
        validation_alias=AliasChoices("claim_type", "claimType", "type"),
    )
    asset_symbols: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("asset_symbols", "assetSymbols", "assets"),
    )
    asserted_at: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("asserted_at", "assertedAt")
    )
    resolution_type: ResolutionType = Field(
        default=ResolutionType.INDEFINITE,
        validation_alias=AliasChoices("resolution_type", "resolutionType"),
    )
    resolve_by: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("resolve_by", "resolveBy")
    )
    falsifiability_score: float = Field(
        0.5, validation_alias=AliasChoices("falsifiability_score", "falsifiabilityScore")
    )
    llm_confidence: float = Field(
        0.5, validation_alias=AliasChoices("llm_confidence", "llmConfidence", "confidence")
    )
    notes: Optional[str] = None

    @field_validator("claim_text", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("claim_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> ClaimType:
        return ClaimType.coerce(value)

    @field_validator("resolution_type", mode="before")
    @classmethod
    def _coerce_resolution_type(cls, value: Any) -> ResolutionType:
        try:
            return ResolutionType(str(value).strip().lower())
        except ValueError:
            return ResolutionType.INDEFINITE

    @field_validator("asset_symbols", mode="before")
    @classmethod
    def _normalize_symbols(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = re.split(r"[,\s]+", value)
        if not isinstance(value, (list, tuple)):
            return []
        symbols = []
        for symbol in value:
            cleaned = str(symbol).strip().lstrip("$").upper()
            if cleaned and cleaned not in symbols:
                symbols.append(cleaned)
        return symbols

    @field_validator("asserted_at", "resolve_by", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)

    @field_validator("falsifiability_score", "llm_confidence", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        return clamp_unit(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _stringify_notes(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class Claim(BaseModel):
    """An atomic, falsifiable assertion extracted from one item."""

    id: str = Field(default_factory=new_id, description="Claim identifier")
    source_id: str = Field(..., description="Source of the originating item")
    item_id: str = Field(..., description="Item the claim was extracted from")
    claim_text: str = Field(..., description="The assertion itself")
    claim_type: ClaimType = Field(default=ClaimType.MISC_CLAIM)
    asset_symbols: List[str] = Field(default_factory=list)
    asserted_at: datetime = Field(default_factory=utc_now, description="When the source made the assertion")
    resolution_type: ResolutionType = Field(default=ResolutionType.INDEFINITE)
    resolve_by: Optional[datetime] = Field(None, description="Deadline for scheduled claims")
    falsifiability_score: float = Field(0.5, ge=0.0, le=1.0)
    llm_confidence: float = Field(0.5, ge=0.0, le=1.0)
    status: ClaimStatus = Field(default=ClaimStatus.UNREVIEWED)
    review_state: Optional[ReviewState] = Field(None, description="Sub-status while reviewed")
    corrects_claim_id: Optional[str] = Field(None, description="Resolved claim this record corrects")
    fingerprint: str = Field("", description="Dedup key of the assertion within its item")
    created_at: datetime = Field(default_factory=utc_now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("asserted_at", "resolve_by", "created_at", mode="after")
    @classmethod
    def _normalize_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    class Config:
        """Pydantic model configuration."""
        frozen = True

    @classmethod
    def from_candidate(cls, candidate: ClaimCandidate, item_id: str, source_id: str, default_asserted_at: datetime) -> "Claim":
        metadata: Dict[str, Any] = {}
        if candidate.notes:
            metadata["notes"] = candidate.notes
        return cls(
            source_id=source_id,
            item_id=item_id,
            claim_text=candidate.claim_text,
            claim_type=candidate.claim_type,
            asset_symbols=list(candidate.asset_symbols),
            asserted_at=candidate.asserted_at or default_asserted_at,
            resolution_type=candidate.resolution_type,
            resolve_by=candidate.resolve_by,
            falsifiability_score=candidate.falsifiability_score,
            llm_confidence=candidate.llm_confidence,
            fingerprint=claim_fingerprint(candidate.claim_text),
            metadata=metadata,
        )

    def advance_to(self, status: ClaimStatus, review_state: Optional[ReviewState] = None) -> "Claim":
        """Return a copy moved forward to ``status``.

        Raises:
            InvalidTransitionError: If the move is backward or leaves a resolved claim
        """
        if self.status == ClaimStatus.RESOLVED:
            raise InvalidTransitionError(f"Claim {self.id} is resolved and cannot change status")
        if status.rank < self.status.rank:
            raise InvalidTransitionError(
                f"Claim {self.id} cannot move from {self.status.value} to {status.value}"
            )
        if status.rank - self.status.rank > 1:
            raise InvalidTransitionError(
                f"Claim {self.id} cannot skip from {self.status.value} to {status.value}"
            )
        state = review_state if status == ClaimStatus.REVIEWED else None
        return self.model_copy(update={"status": status, "review_state": state})

    def with_metadata(self, **values: Any) -> "Claim":
        """Return a copy with ``values`` merged into metadata."""
        return self.model_copy(update={"metadata": {**self.metadata, **values}})
