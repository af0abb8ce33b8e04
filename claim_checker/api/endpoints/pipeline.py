"""Pipeline run endpoints."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...domain.models.ingest import IngestBatch
from ...domain.models.pipeline import BatchSummary, PipelineStatus
from ...domain.services.pipeline_orchestrator import PipelineOrchestrator
from ...infrastructure.dependencies import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


class RecheckRequest(BaseModel):
    """Request model for a re-check run."""

    now: Optional[datetime] = Field(None, description="Evaluate schedules as of this time")


@router.get("/status", response_model=PipelineStatus)
async def status(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)) -> PipelineStatus:
    """Current run status and cumulative counts."""
    return orchestrator.get_status()


@router.post("/runs", response_model=BatchSummary)
async def run_batch(
    batch: IngestBatch,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> BatchSummary:
    """Register sources and run a batch of items through the pipeline."""
    logger.info(f"📥 Ingest request: {len(batch.sources)} sources, {len(batch.items)} items")
    return await orchestrator.ingest(batch)


@router.post("/rechecks", response_model=BatchSummary)
async def run_rechecks(
    request: Optional[RecheckRequest] = None,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> BatchSummary:
    """Re-verify claims whose re-check time has come."""
    return await orchestrator.run_recheck_batch(request.now if request else None)


@router.post("/rescore", response_model=BatchSummary)
async def rescore(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)) -> BatchSummary:
    """Append a fresh credibility snapshot for every source."""
    return await orchestrator.rescore_sources()
