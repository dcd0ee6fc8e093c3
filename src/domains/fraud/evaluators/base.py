"""Abstract base class for fraud evaluators (specialist agents)."""

import asyncio
import random
import time
from abc import ABC
from datetime import UTC
from typing import Any

import structlog

from ..backend import ScoringBackend
from ..config import EngineConfig, default_config
from ..models import (
    AgentLevel,
    EvaluatorDescriptor,
    EvaluatorResult,
    ModuleType,
    RiskFactor,
    RiskFactorCode,
    TransactionChannel,
    TransactionContext,
)

logger = structlog.get_logger()

HIGH_AMOUNT_THRESHOLD = 1_000_000
DIGITAL_CHANNELS = frozenset({TransactionChannel.MOBILE, TransactionChannel.WEB})


class Evaluator(ABC):
    """Base class for all evaluators.

    An evaluator scores one transaction in one of two modes, chosen by
    configuration presence: a scoring backend plus a remote agent id for this
    evaluator selects remote mode, anything else runs the local fallback
    heuristic. Recoverable problems are reported inside the returned
    ``EvaluatorResult``; unrecoverable backend failures raise
    ``EvaluatorProcessingError`` for the owning module to contain.
    """

    evaluator_id: str
    name: str
    module: ModuleType
    level: AgentLevel = AgentLevel.SPECIALIST

    def __init__(
        self,
        config: EngineConfig | None = None,
        backend: ScoringBackend | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or default_config
        self._backend = backend
        self._rng = rng or random.Random()

    @property
    def remote_agent_id(self) -> str:
        return self._config.backend.agent_id_for(self.evaluator_id)

    @property
    def mode(self) -> str:
        return "remote" if self._backend is not None and self.remote_agent_id else "fallback"

    def descriptor(self) -> EvaluatorDescriptor:
        return EvaluatorDescriptor(
            evaluator_id=self.evaluator_id,
            name=self.name,
            level=self.level,
            module=self.module,
            mode=self.mode,
        )

    async def evaluate(
        self,
        transaction: TransactionContext,
        shared_context: dict[str, Any],
        correlation_id: str | None = None,
    ) -> EvaluatorResult:
        logger.debug(
            "evaluator_processing",
            evaluator_id=self.evaluator_id,
            transaction_id=transaction.transaction_id,
            mode=self.mode,
        )
        if self.mode == "fallback":
            return await self._run_fallback(transaction)
        return await self._invoke_backend(transaction, shared_context, correlation_id)

    async def is_healthy(self) -> bool:
        """Reachability of the scoring backend. Fallback mode is always healthy."""
        if self.mode == "fallback":
            return True
        try:
            return await self._backend.health_check()
        except Exception:
            logger.warning("evaluator_health_check_error", evaluator_id=self.evaluator_id)
            return False

    # -- remote mode ---------------------------------------------------------

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze the following transaction for fraud indicators:\n\n"
            f"Amount: {transaction.amount} {transaction.currency}\n"
            f"Channel: {transaction.channel.value}\n"
            f"Time: {transaction.timestamp:%Y-%m-%d %H:%M:%S} UTC\n\n"
            "Provide risk score (0-1), confidence (0-1), risk factors, and explanation."
        )

    async def _invoke_backend(
        self,
        transaction: TransactionContext,
        shared_context: dict[str, Any],
        correlation_id: str | None,
    ) -> EvaluatorResult:
        start = time.perf_counter()
        context = dict(shared_context)
        if correlation_id:
            context["correlation_id"] = correlation_id

        response = await self._backend.score(
            self.evaluator_id,
            self.remote_agent_id,
            self.build_prompt(transaction),
            context,
        )
        elapsed_ms = _elapsed_ms(start)

        if response is None:
            return EvaluatorResult(
                evaluator_id=self.evaluator_id,
                module=self.module,
                success=False,
                error="Empty response from agent backend",
                elapsed_ms=elapsed_ms,
            )

        factors = [
            f if f.source else f.model_copy(update={"source": self.evaluator_id})
            for f in response.risk_factors or []
        ]
        return EvaluatorResult(
            evaluator_id=self.evaluator_id,
            module=self.module,
            success=True,
            score=response.risk_score,
            confidence=response.confidence,
            risk_factors=factors,
            explanation=response.explanation,
            reasoning_chain=response.reasoning_chain,
            elapsed_ms=elapsed_ms,
        )

    # -- fallback mode -------------------------------------------------------

    def _rng_for(self, transaction: TransactionContext) -> random.Random:
        """Seeded runs derive the generator from the input so output is reproducible."""
        seed = self._config.fallback.seed
        if seed is None:
            return self._rng
        return random.Random(f"{seed}:{self.evaluator_id}:{transaction.transaction_id}")

    def _chance(self, rng: random.Random, threshold: float) -> bool:
        if not self._config.fallback.randomized_signals:
            return False
        return rng.random() > threshold

    async def _run_fallback(self, transaction: TransactionContext) -> EvaluatorResult:
        start = time.perf_counter()
        rng = self._rng_for(transaction)
        fallback = self._config.fallback

        if fallback.max_latency_ms > 0:
            delay_ms = rng.randint(fallback.min_latency_ms, fallback.max_latency_ms)
            await asyncio.sleep(delay_ms / 1000)

        factors = self.fallback_factors(transaction, rng)
        score = self.fallback_score(factors)

        return EvaluatorResult(
            evaluator_id=self.evaluator_id,
            module=self.module,
            success=True,
            score=score,
            confidence=fallback.confidence,
            risk_factors=factors,
            explanation=self.fallback_explanation(factors, score),
            elapsed_ms=_elapsed_ms(start),
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        """Structural heuristics shared by detector evaluators."""
        factors: list[RiskFactor] = []

        if transaction.amount > HIGH_AMOUNT_THRESHOLD:
            factors.append(
                self._factor(
                    RiskFactorCode.HIGH_AMOUNT_FOR_CUSTOMER,
                    f"Transaction amount ({transaction.amount:,.0f} {transaction.currency}) "
                    "exceeds typical threshold",
                    weight=0.3,
                    contribution=0.15,
                    amount=transaction.amount,
                    threshold=HIGH_AMOUNT_THRESHOLD,
                )
            )

        hour = _utc_hour(transaction)
        if hour < 6 or hour > 22:
            factors.append(
                self._factor(
                    RiskFactorCode.UNUSUAL_TRANSACTION_TIME,
                    "Transaction initiated during unusual hours",
                    weight=0.2,
                    contribution=0.1,
                    hour=hour,
                )
            )

        if transaction.channel in DIGITAL_CHANNELS and not transaction.device_fingerprint:
            factors.append(
                self._factor(
                    RiskFactorCode.MISSING_DEVICE_FINGERPRINT,
                    "Digital channel transaction without a device fingerprint",
                    weight=0.2,
                    contribution=0.08,
                    channel=transaction.channel.value,
                )
            )

        return factors

    def fallback_score(self, factors: list[RiskFactor]) -> float:
        """Detector scoring: additive over contributions on a 0.1 floor."""
        if not factors:
            return 0.1
        return min(sum(f.contribution for f in factors) + 0.1, 1.0)

    def fallback_explanation(self, factors: list[RiskFactor], score: float) -> str:
        if not factors:
            return f"{self.name}: No significant risk indicators detected."
        top = max(factors, key=lambda f: f.contribution)
        return f"{self.name}: Risk score {score:.0%}. Primary concern: {top.description}"

    def _factor(
        self,
        code: str,
        description: str,
        weight: float,
        contribution: float,
        **details: Any,
    ) -> RiskFactor:
        """Convenience: build a risk factor attributed to this evaluator."""
        return RiskFactor(
            code=code,
            description=description,
            weight=weight,
            contribution=contribution,
            source=self.evaluator_id,
            details=details or None,
        )


def _utc_hour(transaction: TransactionContext) -> int:
    ts = transaction.timestamp
    if ts.tzinfo is not None:
        ts = ts.astimezone(UTC)
    return ts.hour


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
