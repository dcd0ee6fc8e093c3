"""Multi-module risk orchestration: fan out, contain failures, fold one verdict."""

import asyncio
import time
import uuid
from collections.abc import Sequence

import structlog

from .aggregation import (
    aggregate_score,
    build_explanation,
    classify_risk_level,
    rank_risk_factors,
    recommend_action,
)
from .config import EngineConfig, default_config
from .evaluators.base import Evaluator
from .modules.base import DetectionModule
from .models import (
    AgentHealthStatus,
    AnalysisContext,
    EvaluatorDescriptor,
    Insight,
    ModuleResult,
    ModuleType,
    OrchestrationRequest,
    OrchestratorVerdict,
    TransactionContext,
)
from .registry import ModuleRegistry
from .tenants import TenantDirectory, TenantProfile

logger = structlog.get_logger()

INTERNAL_ERROR_MESSAGE = "Analysis failed due to an internal error."
CANCELLED_MESSAGE = "Analysis was cancelled before completion."


class Orchestrator:
    """Runs a tenant's detection modules for one transaction and folds the results.

    Pipeline per call:
    1. Resolve correlation id (generated if absent)
    2. Read the tenant profile once; intersect enabled modules with any
       requested subset (requested-but-disabled modules are dropped)
    3. Build one AnalysisContext shared by every module of this call
    4. Fan out under a semaphore (max_concurrent_modules, default 5)
    5. Contain each module failure as a failed ModuleResult
    6. Fold: weighted score, critical boost, risk level, action, ranked
       factors, explanation
    Orchestration-level faults and deadline expiry return a failed verdict.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        tenants: TenantDirectory,
        config: EngineConfig | None = None,
    ) -> None:
        self._registry = registry
        self._tenants = tenants
        self._config = config or default_config
        self._background: set[asyncio.Task] = set()
        logger.info(
            "orchestrator_initialized",
            module_count=len(registry),
            max_concurrent_modules=self._config.orchestration.max_concurrent_modules,
        )

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    async def orchestrate(self, request: OrchestrationRequest) -> OrchestratorVerdict:
        correlation_id = request.correlation_id or uuid.uuid4().hex
        start = time.perf_counter()

        with structlog.contextvars.bound_contextvars(
            correlation_id=correlation_id, tenant_id=request.tenant_id
        ):
            logger.info(
                "orchestration_started",
                transaction_id=request.transaction.transaction_id,
                requested_modules=[m.value for m in request.modules or []],
            )

            deadline = asyncio.timeout(request.timeout_seconds)
            try:
                async with deadline:
                    verdict, insights = await self._run(request, correlation_id, start)
            except TimeoutError:
                if deadline.expired():
                    logger.info("orchestration_cancelled", elapsed_ms=_elapsed_ms(start))
                    return self._failed_verdict(correlation_id, CANCELLED_MESSAGE, start)
                logger.exception("orchestration_failed")
                return self._failed_verdict(correlation_id, INTERNAL_ERROR_MESSAGE, start)
            except Exception:
                logger.exception("orchestration_failed")
                return self._failed_verdict(correlation_id, INTERNAL_ERROR_MESSAGE, start)

            self._dispatch_insights(insights)

            logger.info(
                "orchestration_completed",
                transaction_id=request.transaction.transaction_id,
                aggregated_score=verdict.aggregated_score,
                risk_level=verdict.risk_level.value,
                recommended_action=verdict.recommended_action.value,
                modules=[m.value for m in verdict.modules_invoked],
                elapsed_ms=verdict.elapsed_ms,
            )
            return verdict

    async def orchestrate_batch(
        self,
        tenant_id: str,
        transactions: Sequence[TransactionContext],
        modules: list[ModuleType] | None = None,
    ) -> list[OrchestratorVerdict]:
        """Orchestrate several transactions, at most ``batch_concurrency`` at a time."""
        semaphore = asyncio.Semaphore(self._config.orchestration.batch_concurrency)

        async def _one(transaction: TransactionContext) -> OrchestratorVerdict:
            async with semaphore:
                return await self.orchestrate(
                    OrchestrationRequest(
                        tenant_id=tenant_id, transaction=transaction, modules=modules
                    )
                )

        return list(await asyncio.gather(*(_one(t) for t in transactions)))

    async def broadcast_insight(self, insight: Insight) -> None:
        """Deliver to every module except the source; stragglers are discarded."""
        targets = {
            module.module_type: module
            for module in self._registry
            if module.module_type != insight.source_module
        }
        if not targets:
            return

        logger.debug(
            "insight_broadcast",
            insight_type=insight.insight_type,
            source_module=insight.source_module.value,
            target_count=len(targets),
        )
        tasks = {
            asyncio.create_task(self._deliver(module, insight)): module_type
            for module_type, module in targets.items()
        }
        _, pending = await asyncio.wait(
            tasks, timeout=self._config.orchestration.insight_delivery_timeout_seconds
        )
        for task in pending:
            task.cancel()
            logger.warning(
                "insight_delivery_timed_out",
                module=tasks[task].value,
                insight_id=insight.insight_id,
            )

    async def drain_insights(self) -> None:
        """Wait for background insight broadcasts started by ``orchestrate``."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def get_agents_by_module(self, module_type: ModuleType) -> list[EvaluatorDescriptor]:
        module = self._registry.get(module_type)
        if module is None:
            return []
        return [evaluator.descriptor() for evaluator in module.evaluators]

    async def get_enabled_agents(self, tenant_id: str) -> list[Evaluator]:
        enabled = await self._tenants.get_enabled_modules(tenant_id)
        return [
            evaluator
            for module in self._registry
            if module.module_type in enabled
            for evaluator in module.evaluators
        ]

    async def check_agent_health(self, tenant_id: str) -> list[AgentHealthStatus]:
        agents = await self.get_enabled_agents(tenant_id)
        return list(await asyncio.gather(*(_probe(agent) for agent in agents)))

    # -- internals -----------------------------------------------------------

    async def _run(
        self,
        request: OrchestrationRequest,
        correlation_id: str,
        start: float,
    ) -> tuple[OrchestratorVerdict, list[Insight]]:
        profile = await self._tenants.get_profile(request.tenant_id)
        module_types = self._resolve_modules(profile, request.modules)

        context = AnalysisContext(
            correlation_id=correlation_id,
            tenant_id=request.tenant_id,
            transaction=request.transaction,
            shared=dict(request.context or {}),
        )

        executed = await self._execute_modules(module_types, context)
        results = [result for _, result in executed]
        verdict = self._fold(correlation_id, results, profile, start)

        insights = [
            insight
            for module, result in executed
            for insight in module.derive_insights(result, context)
        ]
        return verdict, insights

    def _resolve_modules(
        self, profile: TenantProfile, requested: list[ModuleType] | None
    ) -> list[ModuleType]:
        selected = set(profile.enabled_modules)
        if requested:
            dropped = set(requested) - selected
            if dropped:
                logger.info(
                    "requested_modules_not_enabled",
                    modules=sorted(m.value for m in dropped),
                )
            selected &= set(requested)
        # Declaration order keeps the fold input stable across calls
        return [m for m in ModuleType if m in selected]

    async def _execute_modules(
        self, module_types: list[ModuleType], context: AnalysisContext
    ) -> list[tuple[DetectionModule, ModuleResult]]:
        semaphore = asyncio.Semaphore(self._config.orchestration.max_concurrent_modules)

        modules: list[DetectionModule] = []
        for module_type in module_types:
            module = self._registry.get(module_type)
            if module is None:
                logger.warning("module_not_registered", module=module_type.value)
                continue
            modules.append(module)

        async def _run_module(module: DetectionModule) -> ModuleResult:
            async with semaphore:
                start = time.perf_counter()
                try:
                    return await module.analyze(context)
                except Exception as exc:
                    logger.exception("module_failed", module=module.module_type.value)
                    return ModuleResult(
                        module=module.module_type,
                        success=False,
                        error=str(exc),
                        elapsed_ms=_elapsed_ms(start),
                    )

        results = await asyncio.gather(*(_run_module(m) for m in modules))
        return list(zip(modules, results, strict=True))

    def _fold(
        self,
        correlation_id: str,
        results: list[ModuleResult],
        profile: TenantProfile,
        start: float,
    ) -> OrchestratorVerdict:
        settings = self._config.orchestration
        successful = [r for r in results if r.success]
        all_factors = [f for r in successful for f in r.risk_factors]

        # The reported score is the one classified
        score = round(aggregate_score(results, settings), 4)
        level = classify_risk_level(score, profile.thresholds)
        action = recommend_action(level, all_factors, settings.critical_factor_codes)
        ranked = rank_risk_factors(all_factors, settings.max_ranked_factors)

        failed = [r.module.value for r in results if not r.success]
        if failed:
            logger.warning("modules_degraded", failed_modules=failed)

        return OrchestratorVerdict(
            correlation_id=correlation_id,
            success=True,
            aggregated_score=score,
            risk_level=level,
            recommended_action=action,
            evaluator_results=[e for r in results for e in r.evaluator_results],
            module_results=results,
            modules_invoked=[r.module for r in results],
            risk_factors=ranked,
            explanation=build_explanation(
                score, ranked, results, settings.explanation_top_factors
            ),
            elapsed_ms=_elapsed_ms(start),
        )

    def _failed_verdict(
        self, correlation_id: str, message: str, start: float
    ) -> OrchestratorVerdict:
        return OrchestratorVerdict(
            correlation_id=correlation_id,
            success=False,
            error=message,
            elapsed_ms=_elapsed_ms(start),
        )

    def _dispatch_insights(self, insights: list[Insight]) -> None:
        for insight in insights:
            task = asyncio.create_task(self.broadcast_insight(insight))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _deliver(self, module: DetectionModule, insight: Insight) -> None:
        try:
            await module.handle_insight(insight)
        except Exception:
            logger.exception(
                "insight_delivery_failed",
                module=module.module_type.value,
                insight_id=insight.insight_id,
            )


async def _probe(agent: Evaluator) -> AgentHealthStatus:
    start = time.perf_counter()
    healthy = await agent.is_healthy()
    return AgentHealthStatus(
        evaluator_id=agent.evaluator_id,
        name=agent.name,
        module=agent.module,
        healthy=healthy,
        response_time_ms=_elapsed_ms(start),
    )


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
