"""FastAPI application configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from ..application.dtos import StatusDTO
from .dependencies import ServiceContainer, get_container, set_container
from .routers import events, verification


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    if container is not None:
        set_container(container)
    container = get_container()
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await container.start()
        try:
            yield
        finally:
            await container.stop()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Wallet ownership verification through micro-payment intents",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(verification.router, prefix="/api/v1")
    app.include_router(events.router)
    app.mount("/metrics", make_asgi_app())

    @app.get("/status", response_model=StatusDTO)
    async def listener_status() -> StatusDTO:
        """Liveness probe for the chain listener."""
        return StatusDTO(message="Listener is running and monitoring transactions.")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
        }

    return app
