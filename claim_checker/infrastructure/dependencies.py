"""Dependency injection configuration for hexagonal architecture."""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import Request

from ..domain.ports.storage_provider import StorageProvider
from ..domain.services.claim_extractor import ClaimExtractor
from ..domain.services.credibility_scorer import CredibilityScorer
from ..domain.services.evidence_retriever import EvidenceRetriever
from ..domain.services.pipeline_orchestrator import PipelineOrchestrator
from ..domain.services.resolution_engine import ResolutionEngine
from ..domain.services.verdict_synthesizer import VerdictSynthesizer
from .ai.factory import CompletionProviderFactory
from .config import Settings
from .search.factory import SearchProviderFactory
from .storage.memory_storage import InMemoryStorage

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Service container for dependency injection.

    Storage is injected so callers can supply a durable backend; the
    in-memory store is used when none is given.
    """

    def __init__(self, settings: Optional[Settings] = None, storage: Optional[StorageProvider] = None):
        self._settings = settings or Settings.from_env()
        self._storage = storage or InMemoryStorage()
        self._completion_factory = CompletionProviderFactory()
        self._search_factory = SearchProviderFactory()
        self._services: Dict[str, Any] = {}
        self._initialized = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create providers and wire the pipeline services."""
        if self._initialized:
            return

        logger.info("🔧 Setting up service container...")
        settings = self._settings

        completion = await self._completion_factory.create_default(settings)
        fallback = None
        if completion.provider_name != "RuleBased":
            fallback = await self._completion_factory.create_provider("rule_based")
        logger.info(f"✅ Completion provider ready: {completion.provider_name} ({completion.model_name})")

        search = await self._search_factory.create_default(settings)
        logger.info(f"✅ Search provider ready: {search.provider_name}")

        scorer = CredibilityScorer(settings.scoring)
        extractor = ClaimExtractor(completion, fallback_provider=fallback, retry_policy=settings.retry)
        retriever = EvidenceRetriever(search, grading_rules=settings.grading, retry_policy=settings.retry)
        synthesizer = VerdictSynthesizer(completion, policy=settings.verdict, retry_policy=settings.retry)
        engine = ResolutionEngine(self._storage, scorer, settings.resolution)
        orchestrator = PipelineOrchestrator(
            storage=self._storage,
            extractor=extractor,
            retriever=retriever,
            synthesizer=synthesizer,
            resolution_engine=engine,
            scorer=scorer,
            policy=settings.pipeline,
        )

        self._services = {
            "storage": self._storage,
            "completion_provider": completion,
            "search_provider": search,
            "claim_extractor": extractor,
            "evidence_retriever": retriever,
            "verdict_synthesizer": synthesizer,
            "credibility_scorer": scorer,
            "resolution_engine": engine,
            "pipeline_orchestrator": orchestrator,
        }
        self._initialized = True
        logger.info("✅ Service container setup completed")

    def get(self, service_name: str) -> Any:
        """Get a service by name.

        Args:
            service_name: Name of the service

        Returns:
            Service instance

        Raises:
            KeyError: If service not found
        """
        if service_name not in self._services:
            raise KeyError(f"Service '{service_name}' not found")
        return self._services[service_name]

    def get_orchestrator(self) -> PipelineOrchestrator:
        """Get the pipeline orchestrator."""
        return self.get("pipeline_orchestrator")

    def provider_status(self) -> Dict[str, Dict[str, bool]]:
        """Registered providers per kind and whether each is active."""
        return {
            "completion_providers": self._completion_factory.available_providers,
            "search_providers": self._search_factory.available_providers,
        }

    async def shutdown(self) -> None:
        """Shutdown all providers created by the container."""
        await self._completion_factory.shutdown()
        await self._search_factory.shutdown()
        self._services.clear()
        self._initialized = False
        logger.info("🛑 Service container shut down")


# Global service container instance
@lru_cache()
def get_service_container() -> ServiceContainer:
    """Get global service container instance."""
    return ServiceContainer()


# Convenience functions for FastAPI dependency injection
def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency for the application's service container."""
    return request.app.state.container


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    """FastAPI dependency for the pipeline orchestrator."""
    return get_container(request).get_orchestrator()
