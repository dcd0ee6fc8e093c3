"""Transaction analysis, insight broadcast and evaluator catalogue endpoints."""

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.dependencies import get_orchestrator
from src.domains.fraud.models import (
    Insight,
    ModuleType,
    OrchestrationRequest,
    OrchestratorVerdict,
    TransactionContext,
)
from src.domains.fraud.orchestrator import Orchestrator

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1", tags=["analysis"])

MAX_BATCH_SIZE = 100


class BatchAnalysisRequest(BaseModel):
    tenant_id: str
    transactions: list[TransactionContext]
    modules: list[ModuleType] | None = None


@router.post("/analysis/transaction")
async def analyze_transaction(
    request: OrchestrationRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),  # noqa: B008
) -> OrchestratorVerdict:
    return await orchestrator.orchestrate(request)


@router.post("/analysis/batch")
async def analyze_batch(
    request: BatchAnalysisRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),  # noqa: B008
) -> dict:
    if not request.transactions:
        raise ValueError("Batch must contain at least one transaction")
    if len(request.transactions) > MAX_BATCH_SIZE:
        raise ValueError(f"Batch size cannot exceed {MAX_BATCH_SIZE} transactions")

    logger.info(
        "batch_analysis_requested",
        tenant_id=request.tenant_id,
        count=len(request.transactions),
    )
    verdicts = await orchestrator.orchestrate_batch(
        request.tenant_id, request.transactions, modules=request.modules
    )
    return {
        "count": len(verdicts),
        "results": [v.model_dump(mode="json") for v in verdicts],
    }


@router.post("/analysis/insights", status_code=202)
async def broadcast_insight(
    insight: Insight,
    orchestrator: Orchestrator = Depends(get_orchestrator),  # noqa: B008
) -> dict:
    await orchestrator.broadcast_insight(insight)
    return {"status": "accepted", "insight_id": insight.insight_id}


@router.get("/modules/{module}/agents")
async def module_agents(
    module: ModuleType,
    orchestrator: Orchestrator = Depends(get_orchestrator),  # noqa: B008
) -> dict:
    agents = orchestrator.get_agents_by_module(module)
    return {
        "module": module.value,
        "agents": [a.model_dump(mode="json") for a in agents],
    }
