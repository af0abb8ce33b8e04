"""Health check and statistics endpoints."""

from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...domain.models.pipeline import StorageStats
from ...domain.services.pipeline_orchestrator import PipelineOrchestrator
from ...infrastructure.dependencies import ServiceContainer, get_container, get_orchestrator

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str = "0.1.0"
    completion_providers: Dict[str, bool] = Field(default_factory=dict)
    search_providers: Dict[str, bool] = Field(default_factory=dict)


@router.get("/health", response_model=HealthResponse)
async def health_check(container: ServiceContainer = Depends(get_container)) -> HealthResponse:
    """Check the health of all service components.

    Returns:
        Service status and which providers are active
    """
    providers = container.provider_status()
    return HealthResponse(
        status="healthy" if container.is_initialized else "starting",
        completion_providers=providers["completion_providers"],
        search_providers=providers["search_providers"],
    )


@router.get("/stats", response_model=StorageStats)
async def stats(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)) -> StorageStats:
    """Entity counts across the store."""
    return await orchestrator.get_stats()
