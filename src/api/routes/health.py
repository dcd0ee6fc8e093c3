"""Liveness and evaluator health endpoints."""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_orchestrator
from src.config import settings
from src.domains.fraud.orchestrator import Orchestrator

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    from src.main import get_uptime

    return {
        "status": "healthy",
        "version": settings.app_version,
        "uptime_seconds": get_uptime(),
    }


@router.get("/health/live")
async def live() -> dict:
    return {"status": "alive"}


@router.get("/api/v1/health/agents")
async def agent_health(
    tenant_id: str = Query(..., min_length=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),  # noqa: B008
) -> dict:
    statuses = await orchestrator.check_agent_health(tenant_id)
    return {
        "tenant_id": tenant_id,
        "healthy": all(s.healthy for s in statuses),
        "agents": [s.model_dump(mode="json") for s in statuses],
    }
