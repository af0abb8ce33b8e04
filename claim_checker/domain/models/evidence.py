"""Domain models for graded evidence."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .common import new_id, utc_now


class EvidenceGrade(str, Enum):
    """The evidence ladder, A strongest."""

    A = "A"  # Primary or authoritative: regulator, official channel, on-chain data
    B = "B"  # Reputable secondary outlet citing a primary source
    C = "C"  # Aggregator or unsourced secondary reporting
    D = "D"  # Anonymous, influencer or rumor-tier

    @property
    def weight(self) -> int:
        return {"A": 4, "B": 3, "C": 2, "D": 1}[self.value]

    @property
    def is_strong(self) -> bool:
        return self in (EvidenceGrade.A, EvidenceGrade.B)


class EvidenceStance(str, Enum):
    """Position a piece of evidence takes on a claim."""

    SUPPORTS = "supports"
    CONTRADICTS = "contradicts"
    MENTIONS = "mentions"


class EvidenceCandidate(BaseModel):
    """Graded evidence produced by the retriever, not yet attached to storage."""

    url: str = Field(..., description="Location of the material")
    publisher: str = Field(..., description="Publisher or domain")
    excerpt: str = Field("", description="Relevant excerpt")
    stance: EvidenceStance = Field(..., description="Position on the claim")
    grade: EvidenceGrade = Field(..., description="Evidence ladder grade")
    primary_flag: bool = Field(False, description="Canonical citation for the claim")
    published_at: Optional[datetime] = None
    retrieved_at: datetime = Field(default_factory=utc_now)

    class Config:
        """Pydantic model configuration."""
        frozen = True


class EvidenceItem(EvidenceCandidate):
    """Evidence persisted against a claim. Append-only within a round."""

    id: str = Field(default_factory=new_id)
    claim_id: str = Field(..., description="Claim this evidence is about")
    verification_round: int = Field(1, ge=1, description="Verification run that collected it")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_candidate(cls, candidate: EvidenceCandidate, claim_id: str, verification_round: int = 1) -> "EvidenceItem":
        return cls(claim_id=claim_id, verification_round=verification_round, **candidate.model_dump())
