"""Unit tests for detection module fan-out, failure containment and folding."""

from unittest.mock import AsyncMock, Mock

import pytest

from src.domains.fraud.exceptions import EvaluatorProcessingError
from src.domains.fraud.models import (
    AnalysisContext,
    EvaluatorResult,
    Insight,
    ModuleType,
    RiskFactor,
    TransactionChannel,
)
from src.domains.fraud.modules import (
    IdentityFortressModule,
    POSAgentShieldModule,
    TransactionSentinelModule,
)
from tests.conftest import NIGHT, deterministic_config, make_transaction


def _context(**overrides) -> AnalysisContext:
    return AnalysisContext(
        correlation_id="corr-1",
        tenant_id="tenant-1",
        transaction=make_transaction(**overrides),
    )


def _stub_evaluator(evaluator_id: str, score: float = 0.0, confidence: float = 0.85, factors=None, error=None):
    evaluator = AsyncMock()
    evaluator.evaluator_id = evaluator_id
    if error is not None:
        evaluator.evaluate.side_effect = error
    else:
        evaluator.evaluate.return_value = EvaluatorResult(
            evaluator_id=evaluator_id,
            module=ModuleType.TRANSACTION_SENTINEL,
            success=True,
            score=score,
            confidence=confidence,
            risk_factors=factors or [],
            explanation=f"{evaluator_id} done",
        )
    return evaluator


class TestTransactionSentinel:
    @pytest.mark.asyncio
    async def test_large_night_transfer_folds_to_max(self):
        module = TransactionSentinelModule.build(deterministic_config())
        ctx = _context(amount=5_000_000, timestamp=NIGHT, device_fingerprint=None)

        result = await module.analyze(ctx)

        assert result.success is True
        assert result.score == pytest.approx(0.55)
        assert result.confidence == pytest.approx(0.85)
        assert len(result.evaluator_results) == 3
        sources = {f.source for f in result.risk_factors}
        assert sources == {"AGT-TXN-001", "AGT-TXN-003"}

    @pytest.mark.asyncio
    async def test_evaluators_receive_shared_context(self):
        analyzer = _stub_evaluator("AGT-TXN-001", score=0.2)
        module = TransactionSentinelModule([analyzer])
        ctx = _context()
        ctx.shared["prior_alerts"] = 2

        await module.analyze(ctx)

        args = analyzer.evaluate.await_args.args
        assert args[1] is ctx.shared
        assert args[2] == "corr-1"


class TestFailureContainment:
    @pytest.mark.asyncio
    async def test_partial_failure_keeps_successful_results(self):
        factor = RiskFactor(code="RF001", description="High", weight=0.3, contribution=0.15)
        module = TransactionSentinelModule(
            [
                _stub_evaluator("AGT-TXN-001", score=0.6, confidence=0.9, factors=[factor]),
                _stub_evaluator("AGT-TXN-002", error=RuntimeError("socket closed")),
                _stub_evaluator(
                    "AGT-TXN-003",
                    error=EvaluatorProcessingError("AGT-TXN-003", "Agent processing timed out"),
                ),
            ]
        )

        result = await module.analyze(_context())

        assert result.success is True
        assert result.score == 0.6
        assert result.confidence == 0.9
        assert [f.code for f in result.risk_factors] == ["RF001"]
        failed = [r for r in result.evaluator_results if not r.success]
        assert [r.evaluator_id for r in failed] == ["AGT-TXN-002", "AGT-TXN-003"]
        assert failed[0].error == "socket closed"
        assert failed[1].error == "Agent 'AGT-TXN-003' processing failed: Agent processing timed out"

    @pytest.mark.asyncio
    async def test_all_evaluators_failing_abstains(self):
        module = TransactionSentinelModule(
            [_stub_evaluator("AGT-TXN-001", error=RuntimeError("down"))]
        )

        result = await module.analyze(_context())

        assert result.success is True
        assert result.score == 0.0
        assert result.confidence == 0.0
        assert result.risk_factors == []

    @pytest.mark.asyncio
    async def test_module_fault_reported_as_failed_result(self, monkeypatch):
        module = TransactionSentinelModule([_stub_evaluator("AGT-TXN-001", score=0.4)])
        monkeypatch.setattr(module, "_fold", Mock(side_effect=RuntimeError("fold exploded")))

        result = await module.analyze(_context())

        assert result.success is False
        assert result.error == "fold exploded"
        assert result.module == ModuleType.TRANSACTION_SENTINEL
        assert result.score == 0.0
        assert result.risk_factors == []

    @pytest.mark.asyncio
    async def test_fold_mean_confidence_max_score(self):
        module = TransactionSentinelModule(
            [
                _stub_evaluator("AGT-TXN-001", score=0.3, confidence=0.6),
                _stub_evaluator("AGT-TXN-002", score=0.7, confidence=1.0),
            ]
        )
        result = await module.analyze(_context())

        assert result.score == 0.7
        assert result.confidence == pytest.approx(0.8)
        assert result.explanation == "AGT-TXN-001 done AGT-TXN-002 done"


class TestApplicability:
    @pytest.mark.parametrize("channel", [TransactionChannel.WEB, TransactionChannel.MOBILE, TransactionChannel.NIP])
    @pytest.mark.asyncio
    async def test_pos_shield_not_applicable_off_pos(self, channel):
        module = POSAgentShieldModule.build(deterministic_config())
        result = await module.analyze(_context(channel=channel))

        assert result.success is True
        assert result.score == 0.0
        assert result.confidence == 1.0
        assert result.risk_factors == []
        assert result.evaluator_results == []
        assert result.explanation == "Transaction not via AGENT/POS channel - not applicable"

    @pytest.mark.asyncio
    async def test_pos_shield_runs_on_pos(self):
        module = POSAgentShieldModule.build(deterministic_config())
        result = await module.analyze(_context(amount=150_000, channel=TransactionChannel.POS))

        assert result.score == pytest.approx(0.22)
        assert [f.code for f in result.risk_factors] == ["RF102"]


class TestInsights:
    @pytest.mark.asyncio
    async def test_handle_insight_is_bounded(self):
        module = IdentityFortressModule.build(deterministic_config())
        for i in range(module.recent_insight_limit + 5):
            await module.handle_insight(
                Insight(
                    insight_id=f"ins-{i}",
                    source_evaluator_id="AGT-POS-003",
                    source_module=ModuleType.POS_AGENT_SHIELD,
                    insight_type="mule_network_detected",
                )
            )

        recent = module.recent_insights
        assert len(recent) == module.recent_insight_limit
        assert recent[0].insight_id == "ins-5"

    def test_derive_insights_for_configured_codes(self):
        module = POSAgentShieldModule.build(deterministic_config())
        mule = RiskFactor(
            code="RF105", description="Mule", weight=0.5, contribution=0.3, source="AGT-POS-003"
        )
        cash_out = RiskFactor(code="RF102", description="Cash out", weight=0.25, contribution=0.12)
        result = module._fold(
            [
                EvaluatorResult(
                    evaluator_id="AGT-POS-003",
                    success=True,
                    score=0.5,
                    confidence=0.85,
                    risk_factors=[mule, cash_out],
                )
            ],
            elapsed_ms=1.0,
        )

        insights = module.derive_insights(result, _context(channel=TransactionChannel.POS))

        assert len(insights) == 1
        assert insights[0].insight_type == "mule_network_detected"
        assert insights[0].source_module == ModuleType.POS_AGENT_SHIELD
        assert insights[0].source_evaluator_id == "AGT-POS-003"
        assert insights[0].correlation_id == "corr-1"

    def test_transaction_sentinel_emits_no_insights(self):
        module = TransactionSentinelModule.build(deterministic_config())
        result = module._fold([], elapsed_ms=0.0)
        assert module.derive_insights(result, _context()) == []
