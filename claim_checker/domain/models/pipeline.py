"""Domain models describing pipeline runs."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .common import new_id, utc_now


class PipelineEventType(str, Enum):
    """Notifications emitted while the pipeline runs."""

    ITEM_INGESTED = "item_ingested"
    CLAIMS_EXTRACTED = "claims_extracted"
    EVIDENCE_COLLECTED = "evidence_collected"
    VERDICT_CREATED = "verdict_created"
    CLAIM_RESOLVED = "claim_resolved"
    SCORES_UPDATED = "scores_updated"
    HUMAN_REVIEW_REQUIRED = "human_review_required"


class PipelineEvent(BaseModel):
    """A single pipeline notification."""

    type: PipelineEventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class RunKind(str, Enum):
    """Kinds of batch run."""

    INGEST = "ingest"
    RECHECK = "recheck"
    RESCORE = "rescore"


class UnitFailure(BaseModel):
    """A unit of work that failed and was skipped."""

    unit_id: str = Field(..., description="Item or claim identifier")
    stage: str = Field(..., description="Stage that failed")
    error: str = Field(..., description="Error description")


class BatchSummary(BaseModel):
    """Outcome of one batch run."""

    run_id: str = Field(default_factory=new_id)
    kind: RunKind
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    processed: int = 0
    skipped_duplicates: int = 0
    failed: int = 0
    claims_created: int = 0
    verdicts_created: int = 0
    resolutions_created: int = 0
    scores_created: int = 0
    failures: List[UnitFailure] = Field(default_factory=list)
    aborted: bool = Field(False, description="Storage became unreachable and the run stopped early")
    skipped: bool = Field(False, description="Another run of the same kind was in progress")


class PipelineStatus(BaseModel):
    """Run status exposed to schedulers and dashboards."""

    is_running: bool = False
    last_run_at: Optional[datetime] = None
    items_processed: int = 0
    claims_extracted: int = 0
    verdicts_created: int = 0
    last_summary: Optional[BatchSummary] = None


class StorageStats(BaseModel):
    """Entity counts reported by storage."""

    sources: int = 0
    items: int = 0
    claims: int = 0
    claims_by_status: Dict[str, int] = Field(default_factory=dict)
    evidence: int = 0
    verdicts: int = 0
    resolutions: int = 0
    source_scores: int = 0
