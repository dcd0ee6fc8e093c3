"""Unit tests for evaluator fallback heuristics and remote mode."""

import random
from unittest.mock import AsyncMock

import pytest

from src.domains.fraud.backend import BackendScore
from src.domains.fraud.config import BackendSettings, EngineConfig, FallbackSettings
from src.domains.fraud.evaluators import (
    EVALUATOR_CLASSES,
    BehaviorProfiler,
    MuleHunter,
    RiskScorer,
    SyntheticDetector,
    TerminalMonitor,
    TransactionAnalyzer,
)
from src.domains.fraud.exceptions import EvaluatorProcessingError
from src.domains.fraud.models import RiskFactor, TransactionChannel
from tests.conftest import NIGHT, deterministic_config, make_transaction


def _codes(result) -> list[str]:
    return [f.code for f in result.risk_factors]


class TestTransactionAnalyzer:
    @pytest.mark.asyncio
    async def test_quiet_transaction(self):
        evaluator = TransactionAnalyzer(config=deterministic_config())
        result = await evaluator.evaluate(make_transaction(), {})

        assert result.success is True
        assert result.score == pytest.approx(0.1)
        assert result.confidence == 0.85
        assert result.risk_factors == []
        assert result.explanation == "Transaction Analyzer: No significant risk indicators detected."

    @pytest.mark.asyncio
    async def test_large_night_transfer_without_device(self):
        evaluator = TransactionAnalyzer(config=deterministic_config())
        txn = make_transaction(
            amount=5_000_000, timestamp=NIGHT, device_fingerprint=None
        )
        result = await evaluator.evaluate(txn, {})

        assert _codes(result) == ["RF001", "RF002", "RF009", "RF003"]
        assert result.score == pytest.approx(0.55)
        assert all(f.source == "AGT-TXN-001" for f in result.risk_factors)
        assert result.explanation.startswith("Transaction Analyzer: Risk score 55%.")
        assert "exceeds typical threshold" in result.explanation

    @pytest.mark.asyncio
    async def test_velocity_only_above_threshold(self):
        evaluator = TransactionAnalyzer(config=deterministic_config())
        result = await evaluator.evaluate(make_transaction(amount=600_000), {})
        assert _codes(result) == ["RF003"]

    @pytest.mark.asyncio
    async def test_missing_device_only_flags_digital_channels(self):
        evaluator = TransactionAnalyzer(config=deterministic_config())
        branch = make_transaction(channel=TransactionChannel.BRANCH, device_fingerprint=None)
        web = make_transaction(channel=TransactionChannel.WEB, device_fingerprint=None)

        assert _codes(await evaluator.evaluate(branch, {})) == []
        assert _codes(await evaluator.evaluate(web, {})) == ["RF009"]


class TestRiskScorer:
    @pytest.mark.asyncio
    async def test_composite_baseline(self):
        evaluator = RiskScorer(config=deterministic_config())
        result = await evaluator.evaluate(make_transaction(), {})
        assert result.score == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_composite_blends_weight_and_contribution(self):
        evaluator = RiskScorer(config=deterministic_config())
        txn = make_transaction(amount=5_000_000, timestamp=NIGHT, device_fingerprint=None)
        result = await evaluator.evaluate(txn, {})

        # base 0.33, weighted 0.081
        assert _codes(result) == ["RF001", "RF002", "RF009"]
        assert result.score == pytest.approx(0.2055)

    def test_detector_and_composite_forms_differ(self):
        factors = [
            RiskFactor(code="RF001", description="x", weight=0.3, contribution=0.15),
            RiskFactor(code="RF002", description="y", weight=0.2, contribution=0.1),
        ]
        config = deterministic_config()
        assert TransactionAnalyzer(config=config).fallback_score(factors) == pytest.approx(0.35)
        assert RiskScorer(config=config).fallback_score(factors) == pytest.approx(0.1575)


class TestPOSEvaluators:
    @pytest.mark.asyncio
    async def test_round_cash_out_flagged(self):
        evaluator = MuleHunter(config=deterministic_config())
        txn = make_transaction(amount=150_000, channel=TransactionChannel.POS)
        result = await evaluator.evaluate(txn, {})

        assert _codes(result) == ["RF102"]
        assert result.risk_factors[0].contribution == pytest.approx(0.12)
        assert result.score == pytest.approx(0.22)

    @pytest.mark.parametrize("amount", [95_000, 155_500])
    @pytest.mark.asyncio
    async def test_non_cash_out_amounts(self, amount):
        evaluator = MuleHunter(config=deterministic_config())
        txn = make_transaction(amount=amount, channel=TransactionChannel.POS)
        assert _codes(await evaluator.evaluate(txn, {})) == []

    @pytest.mark.asyncio
    async def test_terminal_monitor_quiet_without_random_signals(self):
        evaluator = TerminalMonitor(config=deterministic_config())
        txn = make_transaction(channel=TransactionChannel.POS, latitude=6.45, longitude=3.39)
        result = await evaluator.evaluate(txn, {})
        assert result.score == pytest.approx(0.1)


class TestRandomizedSignals:
    def _always_config(self) -> EngineConfig:
        return EngineConfig(
            fallback=FallbackSettings(randomized_signals=True, min_latency_ms=0, max_latency_ms=0)
        )

    @pytest.mark.asyncio
    async def test_gated_factors_fire_when_draw_exceeds_threshold(self):
        rng = random.Random()
        rng.random = lambda: 0.999  # every gate passes
        detector = SyntheticDetector(config=self._always_config(), rng=rng)
        result = await detector.evaluate(make_transaction(), {})

        assert _codes(result) == ["RF200", "RF203", "RF202"]
        assert result.score == pytest.approx(0.68)

    @pytest.mark.asyncio
    async def test_gated_factors_silent_on_low_draw(self):
        rng = random.Random()
        rng.random = lambda: 0.0
        profiler = BehaviorProfiler(config=self._always_config(), rng=rng)
        result = await profiler.evaluate(make_transaction(), {})
        assert result.risk_factors == []

    @pytest.mark.asyncio
    async def test_seeded_output_is_reproducible(self):
        config = EngineConfig(
            fallback=FallbackSettings(seed=42, min_latency_ms=0, max_latency_ms=0)
        )
        txn = make_transaction(transaction_id="txn-seeded", channel=TransactionChannel.POS)

        first = await MuleHunter(config=config).evaluate(txn, {})
        second = await MuleHunter(config=config).evaluate(txn, {})

        assert _codes(first) == _codes(second)
        assert first.score == second.score


class TestRemoteMode:
    def _remote_config(self) -> EngineConfig:
        config = deterministic_config()
        config.backend = BackendSettings(
            endpoint="http://agents.test",
            project_name="sentinel",
            agent_ids={"AGT-TXN-001": "asst-analyzer"},
        )
        return config

    def test_mode_selection(self):
        config = self._remote_config()
        backend = AsyncMock()

        assert TransactionAnalyzer(config=config, backend=backend).mode == "remote"
        assert BehaviorProfiler(config=config, backend=backend).mode == "fallback"
        assert TransactionAnalyzer(config=config).mode == "fallback"

    @pytest.mark.asyncio
    async def test_backend_result_mapped_and_attributed(self):
        backend = AsyncMock()
        backend.score.return_value = BackendScore(
            risk_score=0.72,
            confidence=0.9,
            risk_factors=[
                RiskFactor(code="RF006", description="Geo anomaly", weight=0.3, contribution=0.2)
            ],
            explanation="Unusual location",
        )
        evaluator = TransactionAnalyzer(config=self._remote_config(), backend=backend)

        result = await evaluator.evaluate(make_transaction(), {"k": "v"}, correlation_id="corr-1")

        assert result.success is True
        assert result.score == 0.72
        assert result.confidence == 0.9
        assert result.risk_factors[0].source == "AGT-TXN-001"
        evaluator_id, agent_id, prompt, context = backend.score.await_args.args
        assert evaluator_id == "AGT-TXN-001"
        assert agent_id == "asst-analyzer"
        assert "[MASKED]" in prompt
        assert "0123456789" not in prompt
        assert context == {"k": "v", "correlation_id": "corr-1"}

    @pytest.mark.asyncio
    async def test_empty_backend_response_is_failed_result(self):
        backend = AsyncMock()
        backend.score.return_value = None
        evaluator = TransactionAnalyzer(config=self._remote_config(), backend=backend)

        result = await evaluator.evaluate(make_transaction(), {})

        assert result.success is False
        assert result.error == "Empty response from agent backend"

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self):
        backend = AsyncMock()
        backend.score.side_effect = EvaluatorProcessingError("AGT-TXN-001", "Agent processing timed out")
        evaluator = TransactionAnalyzer(config=self._remote_config(), backend=backend)

        with pytest.raises(EvaluatorProcessingError):
            await evaluator.evaluate(make_transaction(), {})

    @pytest.mark.asyncio
    async def test_health(self):
        backend = AsyncMock()
        backend.health_check.side_effect = RuntimeError("boom")
        remote = TransactionAnalyzer(config=self._remote_config(), backend=backend)
        fallback = RiskScorer(config=self._remote_config(), backend=backend)

        assert await remote.is_healthy() is False
        assert await fallback.is_healthy() is True


def test_evaluator_catalogue():
    ids = [cls.evaluator_id for cls in EVALUATOR_CLASSES]
    assert ids == [
        "AGT-TXN-001",
        "AGT-TXN-002",
        "AGT-TXN-003",
        "AGT-POS-001",
        "AGT-POS-003",
        "AGT-IDN-002",
    ]
    descriptor = MuleHunter(config=deterministic_config()).descriptor()
    assert descriptor.module == "pos_agent_shield"
    assert descriptor.mode == "fallback"
