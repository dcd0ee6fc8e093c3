"""POS terminal and agent-network evaluators."""

import random

from ..models import (
    EvaluatorId,
    ModuleType,
    RiskFactor,
    RiskFactorCode,
    TransactionContext,
)
from .base import Evaluator

CASH_OUT_MIN_AMOUNT = 100_000
CASH_OUT_ROUND_UNIT = 10_000


class TerminalMonitor(Evaluator):
    """Terminal integrity, skimming and location consistency."""

    evaluator_id = EvaluatorId.TERMINAL_MONITOR
    name = "Terminal Monitor"
    module = ModuleType.POS_AGENT_SHIELD

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze POS terminal behavior for this transaction:\n\n"
            f"Transaction: {transaction.amount} {transaction.currency}\n"
            f"Channel: {transaction.channel.value}\n"
            f"Device: {transaction.device_fingerprint or 'Unknown'}\n"
            f"Location: ({transaction.latitude}, {transaction.longitude})\n\n"
            "Evaluate:\n"
            "1. Terminal integrity indicators\n"
            "2. Card harvesting patterns (high BIN diversity)\n"
            "3. Location consistency with registered terminal\n"
            "4. Transaction velocity for this terminal\n"
            "5. Signs of skimming or cloning\n\n"
            "Provide terminal risk assessment."
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        factors: list[RiskFactor] = []

        if transaction.latitude is not None and self._chance(rng, 0.9):
            factors.append(
                self._factor(
                    RiskFactorCode.TERMINAL_LOCATION_MISMATCH,
                    "Terminal transaction location differs from registered location",
                    weight=0.35,
                    contribution=0.18,
                    latitude=transaction.latitude,
                    longitude=transaction.longitude,
                )
            )

        if self._chance(rng, 0.95):
            factors.append(
                self._factor(
                    RiskFactorCode.HIGH_BIN_DIVERSITY_TERMINAL,
                    "Terminal showing unusually high card BIN diversity",
                    weight=0.4,
                    contribution=0.2,
                )
            )

        return factors


class MuleHunter(Evaluator):
    """Mule networks, coordinated cash-out and ransom payment patterns."""

    evaluator_id = EvaluatorId.MULE_HUNTER
    name = "Mule Hunter"
    module = ModuleType.POS_AGENT_SHIELD

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze transaction for mule network indicators:\n\n"
            f"Transaction: {transaction.amount} {transaction.currency}\n"
            f"Channel: {transaction.channel.value}\n"
            f"Time: {transaction.timestamp.isoformat()}\n\n"
            "Evaluate for:\n"
            "1. Mule account patterns (rapid in/out, round amounts)\n"
            "2. Coordinated cash-out signatures\n"
            "3. Kidnap ransom payment patterns\n"
            "4. Money laundering layering patterns\n"
            "5. New account + high volume indicators\n\n"
            "Provide mule network risk assessment."
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        factors: list[RiskFactor] = []

        if (
            transaction.amount >= CASH_OUT_MIN_AMOUNT
            and transaction.amount % CASH_OUT_ROUND_UNIT == 0
        ):
            factors.append(
                self._factor(
                    RiskFactorCode.SUSPICIOUS_CASH_OUT_PATTERN,
                    "Round amount transaction consistent with cash-out pattern",
                    weight=0.25,
                    contribution=0.12,
                    amount=transaction.amount,
                )
            )

        if self._chance(rng, 0.97):
            factors.append(
                self._factor(
                    RiskFactorCode.MULE_NETWORK_INDICATOR,
                    "Transaction matches known mule network patterns",
                    weight=0.5,
                    contribution=0.3,
                )
            )

        return factors
