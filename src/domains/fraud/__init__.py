"""Fraud detection domain: multi-module risk orchestration."""

from .backend import HttpScoringBackend, ScoringBackend
from .config import EngineConfig
from .models import (
    Insight,
    ModuleType,
    OrchestrationRequest,
    OrchestratorVerdict,
    RiskFactor,
    TransactionContext,
)
from .orchestrator import Orchestrator
from .registry import ModuleRegistry, build_registry
from .tenants import InMemoryTenantDirectory, TenantDirectory, TenantProfile

__all__ = [
    "EngineConfig",
    "HttpScoringBackend",
    "InMemoryTenantDirectory",
    "Insight",
    "ModuleRegistry",
    "ModuleType",
    "OrchestrationRequest",
    "Orchestrator",
    "OrchestratorVerdict",
    "RiskFactor",
    "ScoringBackend",
    "TenantDirectory",
    "TenantProfile",
    "TransactionContext",
    "build_registry",
]
