"""Shared test fixtures for the Sentinel orchestrator tests."""

from datetime import UTC, datetime

import pytest

from src.domains.fraud.config import EngineConfig, FallbackSettings
from src.domains.fraud.models import TransactionChannel, TransactionContext
from src.domains.fraud.orchestrator import Orchestrator
from src.domains.fraud.registry import build_registry
from src.domains.fraud.tenants import InMemoryTenantDirectory


MIDDAY = datetime(2026, 1, 15, 14, 0, 0, tzinfo=UTC)
NIGHT = datetime(2026, 1, 15, 2, 0, 0, tzinfo=UTC)


def deterministic_config() -> EngineConfig:
    """Fallback heuristics only: no random-gated factors, no simulated latency."""
    return EngineConfig(
        fallback=FallbackSettings(
            randomized_signals=False,
            seed=7,
            min_latency_ms=0,
            max_latency_ms=0,
        )
    )


def make_transaction(**overrides) -> TransactionContext:
    defaults = {
        "transaction_id": "txn-1",
        "amount": 25_000.0,
        "currency": "NGN",
        "channel": TransactionChannel.MOBILE,
        "timestamp": MIDDAY,
        "source_account": "0123456789",
        "destination_account": "9876543210",
        "device_fingerprint": "device-abc",
    }
    defaults.update(overrides)
    return TransactionContext(**defaults)


@pytest.fixture
def engine_config() -> EngineConfig:
    return deterministic_config()


@pytest.fixture
def transaction() -> TransactionContext:
    return make_transaction()


@pytest.fixture
def registry(engine_config):
    return build_registry(engine_config)


@pytest.fixture
def orchestrator(registry, engine_config) -> Orchestrator:
    return Orchestrator(registry, InMemoryTenantDirectory(), engine_config)
