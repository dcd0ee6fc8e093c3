"""Base class for detection modules: a domain-scoped bundle of evaluators."""

import asyncio
import random
import time
from abc import ABC
from collections import deque
from itertools import chain

import structlog

from ..backend import ScoringBackend
from ..config import EngineConfig
from ..evaluators.base import Evaluator
from ..exceptions import EvaluatorProcessingError
from ..models import (
    AnalysisContext,
    EvaluatorResult,
    Insight,
    ModuleResult,
    ModuleType,
    TransactionChannel,
    TransactionContext,
)

logger = structlog.get_logger()


class DetectionModule(ABC):
    """Fans a transaction out to its evaluators and folds their results.

    Fold rules:
    - score = max over successful evaluators (one strong signal dominates)
    - confidence = mean over successful evaluators, 0.0 if none succeeded
    - risk factors = concatenation in evaluator order (deduplicated later,
      once, by the orchestrator)
    - explanation = evaluator explanations joined with a space
    """

    module_type: ModuleType
    name: str
    evaluator_classes: tuple[type[Evaluator], ...] = ()
    # None means the module applies to every channel
    applicable_channels: frozenset[TransactionChannel] | None = None
    # Risk factor code -> insight type broadcast to the other modules
    insight_types: dict[str, str] = {}
    recent_insight_limit: int = 100

    def __init__(self, evaluators: list[Evaluator]) -> None:
        self._evaluators = list(evaluators)
        self._recent_insights: deque[Insight] = deque(maxlen=self.recent_insight_limit)
        logger.info(
            "module_initialized",
            module=self.module_type.value,
            evaluator_count=len(self._evaluators),
        )

    @classmethod
    def build(
        cls,
        config: EngineConfig,
        backend: ScoringBackend | None = None,
        rng: random.Random | None = None,
    ) -> "DetectionModule":
        return cls(
            [klass(config=config, backend=backend, rng=rng) for klass in cls.evaluator_classes]
        )

    @property
    def evaluators(self) -> list[Evaluator]:
        return list(self._evaluators)

    @property
    def recent_insights(self) -> list[Insight]:
        return list(self._recent_insights)

    def is_applicable(self, transaction: TransactionContext) -> bool:
        return self.applicable_channels is None or transaction.channel in self.applicable_channels

    async def analyze(self, context: AnalysisContext) -> ModuleResult:
        start = time.perf_counter()

        if not self.is_applicable(context.transaction):
            logger.debug(
                "module_not_applicable",
                module=self.module_type.value,
                channel=context.transaction.channel.value,
            )
            return ModuleResult(
                module=self.module_type,
                success=True,
                score=0.0,
                confidence=1.0,
                explanation=self._not_applicable_explanation(),
            )

        try:
            results = await asyncio.gather(
                *(self._run_evaluator(evaluator, context) for evaluator in self._evaluators)
            )
            return self._fold(list(results), _elapsed_ms(start))
        except Exception as exc:
            logger.exception("module_analysis_failed", module=self.module_type.value)
            return ModuleResult(
                module=self.module_type,
                success=False,
                error=str(exc),
                elapsed_ms=_elapsed_ms(start),
            )

    async def handle_insight(self, insight: Insight) -> None:
        """Retain an insight from another module for later correlation."""
        self._recent_insights.append(insight)
        logger.debug(
            "insight_received",
            module=self.module_type.value,
            insight_type=insight.insight_type,
            source_module=insight.source_module.value,
        )

    def derive_insights(self, result: ModuleResult, context: AnalysisContext) -> list[Insight]:
        """Insights worth sharing with the other modules, one per qualifying code."""
        if not result.success or not self.insight_types:
            return []

        insights: list[Insight] = []
        seen: set[str] = set()
        for factor in result.risk_factors:
            insight_type = self.insight_types.get(factor.code)
            if insight_type is None or factor.code in seen:
                continue
            seen.add(factor.code)
            insights.append(
                Insight(
                    source_evaluator_id=factor.source,
                    source_module=self.module_type,
                    insight_type=insight_type,
                    confidence=result.confidence,
                    data={
                        "risk_factor_code": factor.code,
                        "transaction_id": context.transaction.transaction_id,
                        "contribution": factor.contribution,
                    },
                    correlation_id=context.correlation_id,
                )
            )
        return insights

    async def _run_evaluator(
        self, evaluator: Evaluator, context: AnalysisContext
    ) -> EvaluatorResult:
        start = time.perf_counter()
        try:
            return await evaluator.evaluate(
                context.transaction, context.shared, context.correlation_id
            )
        except EvaluatorProcessingError as exc:
            logger.warning(
                "evaluator_failed",
                module=self.module_type.value,
                evaluator_id=exc.evaluator_id,
                error=exc.reason,
            )
            error = exc.message
        except Exception as exc:
            logger.exception(
                "evaluator_error",
                module=self.module_type.value,
                evaluator_id=evaluator.evaluator_id,
            )
            error = str(exc)

        return EvaluatorResult(
            evaluator_id=evaluator.evaluator_id,
            module=self.module_type,
            success=False,
            error=error,
            elapsed_ms=_elapsed_ms(start),
        )

    def _fold(self, results: list[EvaluatorResult], elapsed_ms: float) -> ModuleResult:
        successful = [r for r in results if r.success]

        score = max((r.score for r in successful), default=0.0)
        confidence = (
            sum(r.confidence for r in successful) / len(successful) if successful else 0.0
        )

        return ModuleResult(
            module=self.module_type,
            success=True,
            score=score,
            confidence=min(confidence, 1.0),
            risk_factors=list(chain.from_iterable(r.risk_factors for r in successful)),
            explanation=" ".join(r.explanation for r in successful if r.explanation),
            elapsed_ms=elapsed_ms,
            evaluator_results=results,
        )

    def _not_applicable_explanation(self) -> str:
        channels = "/".join(sorted(c.value.upper() for c in self.applicable_channels or ()))
        return f"Transaction not via {channels} channel - not applicable"


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
