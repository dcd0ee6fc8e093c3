"""FastAPI application entry point for the Sentinel orchestrator."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.error_handler import global_exception_handler
from src.api.middleware.logging import StructuredLoggingMiddleware
from src.api.routes.analysis import router as analysis_router
from src.api.routes.health import router as health_router
from src.config import settings
from src.domains.fraud.backend import HttpScoringBackend
from src.domains.fraud.config import EngineConfig
from src.domains.fraud.exceptions import EngineError
from src.domains.fraud.orchestrator import Orchestrator
from src.domains.fraud.registry import build_registry
from src.domains.fraud.tenants import InMemoryTenantDirectory
from src.shared.logging import setup_logging

logger = structlog.get_logger()

# Track app start time for uptime calculation
APP_START_TIME: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the engine on startup, drain it on shutdown."""
    global APP_START_TIME
    APP_START_TIME = time.time()
    setup_logging(settings.log_level)

    logger.info(
        "sentinel_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    config = EngineConfig.from_settings(settings)
    backend = HttpScoringBackend(config.backend) if config.backend.configured else None
    if backend is None:
        logger.info("scoring_backend_not_configured", mode="fallback")

    registry = build_registry(config, backend=backend)
    tenants = InMemoryTenantDirectory(default_thresholds=config.thresholds)
    orchestrator = Orchestrator(registry, tenants, config)
    app.state.orchestrator = orchestrator

    yield

    await orchestrator.drain_insights()
    if backend is not None:
        await backend.aclose()
    logger.info("sentinel_shutting_down")


app = FastAPI(
    title="Sentinel Orchestrator",
    description="Multi-module fraud risk orchestration service",
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Structured logging middleware
app.add_middleware(StructuredLoggingMiddleware)

# Exception handlers; specific types are listed so they are answered without re-raising
app.add_exception_handler(EngineError, global_exception_handler)
app.add_exception_handler(ValueError, global_exception_handler)
app.add_exception_handler(LookupError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Register routers
app.include_router(health_router)
app.include_router(analysis_router)


def get_uptime() -> int:
    """Get application uptime in seconds."""
    if APP_START_TIME == 0.0:
        return 0
    return int(time.time() - APP_START_TIME)
