"""FastAPI application for the Claim Checker service."""

import contextlib
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..infrastructure.config import env_log_level
from ..infrastructure.dependencies import ServiceContainer, get_service_container
from .endpoints import claims, health, pipeline, sources

# Configure logging
logging.basicConfig(
    level=env_log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application around a service container.

    Args:
        container: Container to serve; the global one is used when omitted

    Returns:
        Configured FastAPI application
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: wire providers and services
        await app.state.container.initialize()
        yield  # Application runs here
        # Shutdown: cleanup providers
        await app.state.container.shutdown()

    app = FastAPI(
        title="Claim Checker API",
        description="Crypto claim verification and source credibility scoring",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.container = container or get_service_container()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router)
    app.include_router(pipeline.router)
    app.include_router(claims.router)
    app.include_router(sources.router)
    return app


app = create_app()
