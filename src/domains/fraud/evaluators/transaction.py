"""Transaction monitoring evaluators: pattern analysis, behavior, composite scoring."""

import random

from ..models import (
    EvaluatorId,
    ModuleType,
    RiskFactor,
    RiskFactorCode,
    TransactionContext,
)
from .base import Evaluator

VELOCITY_AMOUNT_THRESHOLD = 500_000


class TransactionAnalyzer(Evaluator):
    """Amount anomalies, velocity and time-of-day patterns."""

    evaluator_id = EvaluatorId.TRANSACTION_ANALYZER
    name = "Transaction Analyzer"
    module = ModuleType.TRANSACTION_SENTINEL

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze the following transaction for fraud indicators:\n\n"
            "Transaction Details:\n"
            f"- Amount: {transaction.amount} {transaction.currency}\n"
            f"- Channel: {transaction.channel.value}\n"
            f"- Time: {transaction.timestamp:%Y-%m-%d %H:%M:%S} UTC\n"
            "- Source Account: [MASKED]\n"
            "- Destination Account: [MASKED]\n\n"
            "Device/Session:\n"
            f"- Device Fingerprint: {transaction.device_fingerprint or 'Not provided'}\n"
            f"- IP Address: {transaction.ip_address or 'Not provided'}\n"
            f"- User Agent: {transaction.user_agent or 'Not provided'}\n\n"
            "Analyze for:\n"
            "1. Amount anomalies compared to typical patterns\n"
            "2. Velocity patterns (frequency of transactions)\n"
            "3. Time-of-day anomalies\n"
            "4. Channel switching patterns\n\n"
            "Provide risk score (0-1), confidence (0-1), risk factors, and explanation."
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        factors = super().fallback_factors(transaction, rng)

        if transaction.amount > VELOCITY_AMOUNT_THRESHOLD:
            factors.append(
                self._factor(
                    RiskFactorCode.VELOCITY_THRESHOLD_EXCEEDED,
                    "Multiple high-value transactions detected in short timeframe",
                    weight=0.25,
                    contribution=0.12,
                )
            )

        if self._chance(rng, 0.7):
            factors.append(
                self._factor(
                    RiskFactorCode.FIRST_TIME_RECIPIENT,
                    "First transaction to this beneficiary",
                    weight=0.15,
                    contribution=0.08,
                )
            )

        return factors


class BehaviorProfiler(Evaluator):
    """Deviation from the customer's established behavior and session profile."""

    evaluator_id = EvaluatorId.BEHAVIOR_PROFILER
    name = "Behavior Profiler"
    module = ModuleType.TRANSACTION_SENTINEL

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze customer behavior for this transaction:\n\n"
            f"Transaction: {transaction.amount} {transaction.currency} "
            f"via {transaction.channel.value}\n\n"
            "Evaluate:\n"
            "1. Deviation from established behavior patterns\n"
            "2. Session anomalies\n"
            "3. Navigation patterns\n"
            "4. Geographic behavior consistency\n\n"
            "Provide behavioral risk assessment."
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        factors: list[RiskFactor] = []

        if transaction.device_fingerprint and self._chance(rng, 0.8):
            factors.append(
                self._factor(
                    RiskFactorCode.DEVICE_CHANGED,
                    "Transaction from previously unseen device",
                    weight=0.2,
                    contribution=0.1,
                )
            )

        if self._chance(rng, 0.85):
            factors.append(
                self._factor(
                    RiskFactorCode.SESSION_ANOMALY,
                    "Session behavior deviates from customer profile",
                    weight=0.15,
                    contribution=0.08,
                )
            )

        return factors


class RiskScorer(Evaluator):
    """Composite scorer: blends contribution with weighted contribution."""

    evaluator_id = EvaluatorId.RISK_SCORER
    name = "Risk Scorer"
    module = ModuleType.TRANSACTION_SENTINEL

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Calculate composite risk score for transaction:\n\n"
            f"Amount: {transaction.amount} {transaction.currency}\n"
            f"Channel: {transaction.channel.value}\n"
            f"Time: {transaction.timestamp.isoformat()}\n\n"
            "Consider all available signals and provide:\n"
            "1. Final composite risk score\n"
            "2. Confidence level\n"
            "3. Key contributing factors\n"
            "4. Recommended action threshold"
        )

    def fallback_score(self, factors: list[RiskFactor]) -> float:
        if not factors:
            return 0.05
        base_score = sum(f.contribution for f in factors)
        weighted_score = sum(f.weight * f.contribution for f in factors)
        return min((base_score + weighted_score) / 2, 1.0)
