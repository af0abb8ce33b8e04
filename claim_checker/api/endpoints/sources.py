"""Source credibility endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...domain.models.item import Source
from ...domain.models.score import SourceScore
from ...domain.ports.storage_provider import EntityNotFoundError
from ...domain.services.pipeline_orchestrator import PipelineOrchestrator
from ...infrastructure.dependencies import get_orchestrator

router = APIRouter(prefix="/sources", tags=["sources"])


class SourceScoreResponse(BaseModel):
    """Current credibility snapshot of a source, with its history."""

    source: Source
    current: Optional[SourceScore] = None
    explanation: Optional[str] = None
    history: List[SourceScore] = Field(default_factory=list)


@router.get("", response_model=List[Source])
async def list_sources(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)) -> List[Source]:
    """List all known sources."""
    return await orchestrator.storage.list_sources()


@router.get("/{source_id}/score", response_model=SourceScoreResponse)
async def source_score(
    source_id: str,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> SourceScoreResponse:
    """Latest score of a source; empty until the first rescore run."""
    storage = orchestrator.storage
    try:
        source = await storage.get_source(source_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    current = await storage.get_current_source_score(source_id)
    return SourceScoreResponse(
        source=source,
        current=current,
        explanation=orchestrator.scorer.explain(current) if current else None,
        history=await storage.get_source_score_history(source_id),
    )
