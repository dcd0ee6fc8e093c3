"""Orchestration engine configuration with sensible defaults."""

import os
from dataclasses import dataclass, field

from .models import EvaluatorId, RiskFactorCode


@dataclass
class RiskThresholds:
    medium: float = 0.5
    high: float = 0.7
    critical: float = 0.9

    def __post_init__(self) -> None:
        if not 0.0 <= self.medium <= self.high <= self.critical <= 1.0:
            raise ValueError(
                "risk thresholds must satisfy 0 <= medium <= high <= critical <= 1, "
                f"got {self.medium}/{self.high}/{self.critical}"
            )


@dataclass
class OrchestrationSettings:
    max_concurrent_modules: int = 5
    max_ranked_factors: int = 10
    explanation_top_factors: int = 3
    critical_boost_threshold: float = 0.9
    critical_boost_factor: float = 0.9
    critical_factor_codes: frozenset[str] = frozenset(
        {
            RiskFactorCode.MULE_NETWORK_INDICATOR,
            RiskFactorCode.SYNTHETIC_IDENTITY_INDICATOR,
        }
    )
    insight_delivery_timeout_seconds: float = 2.0
    batch_concurrency: int = 10


@dataclass
class FallbackSettings:
    """Local heuristic used when no scoring backend is configured."""

    randomized_signals: bool = True
    seed: int | None = None
    confidence: float = 0.85
    min_latency_ms: int = 50
    max_latency_ms: int = 200


@dataclass
class BackendSettings:
    endpoint: str = ""
    project_name: str = ""
    api_key: str = ""
    timeout_seconds: float = 30.0
    health_timeout_seconds: float = 5.0
    # Remote agent id per evaluator; an evaluator without one runs the fallback
    agent_ids: dict[str, str] = field(default_factory=dict)

    @property
    def configured(self) -> bool:
        return bool(self.endpoint)

    def agent_id_for(self, evaluator_id: str) -> str:
        return self.agent_ids.get(str(evaluator_id), "")


@dataclass
class EngineConfig:
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    orchestration: OrchestrationSettings = field(default_factory=OrchestrationSettings)
    fallback: FallbackSettings = field(default_factory=FallbackSettings)
    backend: BackendSettings = field(default_factory=BackendSettings)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load config with env var overrides. Env vars use ENGINE_ prefix."""
        config = cls()

        # Threshold overrides, rebuilt so the ordering check runs
        config.thresholds = RiskThresholds(
            medium=float(os.getenv("ENGINE_MEDIUM_THRESHOLD") or config.thresholds.medium),
            high=float(os.getenv("ENGINE_HIGH_THRESHOLD") or config.thresholds.high),
            critical=float(os.getenv("ENGINE_CRITICAL_THRESHOLD") or config.thresholds.critical),
        )

        # Orchestration overrides
        if v := os.getenv("ENGINE_MAX_CONCURRENT_MODULES"):
            config.orchestration.max_concurrent_modules = int(v)
        if v := os.getenv("ENGINE_INSIGHT_TIMEOUT_SECONDS"):
            config.orchestration.insight_delivery_timeout_seconds = float(v)
        if v := os.getenv("ENGINE_BATCH_CONCURRENCY"):
            config.orchestration.batch_concurrency = int(v)

        # Fallback overrides
        if v := os.getenv("ENGINE_RANDOMIZED_SIGNALS"):
            config.fallback.randomized_signals = v.lower() in ("1", "true", "yes")
        if v := os.getenv("ENGINE_FALLBACK_SEED"):
            config.fallback.seed = int(v)

        return config

    @classmethod
    def from_settings(cls, settings) -> "EngineConfig":
        """Build engine config from application settings, then apply env overrides."""
        config = cls.from_env()
        config.backend = BackendSettings(
            endpoint=settings.scoring_backend_endpoint,
            project_name=settings.scoring_backend_project,
            api_key=settings.scoring_backend_api_key,
            timeout_seconds=settings.scoring_backend_timeout_seconds,
            agent_ids={
                str(EvaluatorId(key)): value
                for key, value in settings.remote_agent_ids.items()
                if value
            },
        )
        if settings.fallback_seed is not None:
            config.fallback.seed = settings.fallback_seed
        return config


# Module-level default instance
default_config = EngineConfig()
