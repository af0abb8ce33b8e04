"""Claim read and correction endpoints."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...domain.models.claim import Claim, ClaimStatus, ClaimType, InvalidTransitionError, ResolutionType
from ...domain.models.evidence import EvidenceItem
from ...domain.models.resolution import RecheckSchedule, Resolution, ResolutionOutcome
from ...domain.models.score import ClaimScore
from ...domain.models.verdict import Verdict
from ...domain.ports.storage_provider import ConflictError, EntityNotFoundError
from ...domain.services.pipeline_orchestrator import PipelineOrchestrator
from ...infrastructure.dependencies import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])


class ClaimDetail(BaseModel):
    """A claim with its evidence, verdict log and resolution."""

    claim: Claim
    evidence: List[EvidenceItem] = Field(default_factory=list)
    current_verdict: Optional[Verdict] = None
    verdict_history: List[Verdict] = Field(default_factory=list, description="Oldest first")
    resolution: Optional[Resolution] = None
    recheck: Optional[RecheckSchedule] = None
    score: Optional[ClaimScore] = None


class ResolutionRequest(BaseModel):
    """Request model for recording ground truth."""

    outcome: ResolutionOutcome
    evidence_url: Optional[str] = None
    notes: str = ""


class CorrectionRequest(BaseModel):
    """Request model for correcting a claim."""

    reason: str = Field(..., min_length=1, description="Why the claim is being corrected")
    claim_text: Optional[str] = None
    claim_type: Optional[ClaimType] = None
    resolution_type: Optional[ResolutionType] = None
    resolve_by: Optional[datetime] = None


class CorrectionResponse(BaseModel):
    """Response model for a correction."""

    claim: Claim
    verdict: Verdict


@router.get("", response_model=List[Claim])
async def list_claims(
    source_id: Optional[str] = None,
    status: Optional[ClaimStatus] = None,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> List[Claim]:
    """List claims, optionally filtered by source and status."""
    return await orchestrator.storage.list_claims(source_id=source_id, status=status)


@router.get("/{claim_id}", response_model=ClaimDetail)
async def get_claim(
    claim_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> ClaimDetail:
    """Claim detail with evidence and the full verdict history."""
    storage = orchestrator.storage
    try:
        claim = await storage.get_claim(claim_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ClaimDetail(
        claim=claim,
        evidence=await storage.list_evidence(claim_id),
        current_verdict=await storage.get_current_verdict(claim_id),
        verdict_history=await storage.get_verdict_history(claim_id),
        resolution=await storage.get_resolution(claim_id),
        recheck=await storage.get_recheck(claim_id),
        score=await storage.get_claim_score(claim_id),
    )


@router.post("/{claim_id}/resolution", response_model=Resolution)
async def resolve_claim(
    claim_id: str,
    request: ResolutionRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> Resolution:
    """Record explicit ground truth for a reviewed claim."""
    try:
        return await orchestrator.record_resolution(
            claim_id, request.outcome, request.evidence_url, request.notes
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidTransitionError, ConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{claim_id}/corrections", response_model=CorrectionResponse)
async def correct_claim(
    claim_id: str,
    request: CorrectionRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> CorrectionResponse:
    """Correct a claim by appending a verdict, or by a new claim when it is resolved."""
    try:
        claim, verdict = await orchestrator.correct_claim(
            claim_id,
            request.reason,
            claim_text=request.claim_text,
            claim_type=request.claim_type,
            resolution_type=request.resolution_type,
            resolve_by=request.resolve_by,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidTransitionError, ConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"📝 claim={claim_id} corrected as claim={claim.id}: {request.reason}")
    return CorrectionResponse(claim=claim, verdict=verdict)
