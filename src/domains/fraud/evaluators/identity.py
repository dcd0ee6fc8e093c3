"""Identity evaluators: synthetic identity and account-linkage detection."""

import random

from ..models import (
    EvaluatorId,
    ModuleType,
    RiskFactor,
    RiskFactorCode,
    TransactionContext,
)
from .base import Evaluator


class SyntheticDetector(Evaluator):
    evaluator_id = EvaluatorId.SYNTHETIC_DETECTOR
    name = "Synthetic Identity Detector"
    module = ModuleType.IDENTITY_FORTRESS

    def build_prompt(self, transaction: TransactionContext) -> str:
        return (
            "Analyze identity indicators for synthetic identity risk:\n\n"
            f"Transaction: {transaction.amount} {transaction.currency}\n"
            "Customer ID: [MASKED]\n"
            f"Device: {transaction.device_fingerprint or 'Unknown'}\n\n"
            "Evaluate for:\n"
            "1. Synthetic identity patterns (mismatched data points)\n"
            "2. Credit nurturing behavior (slow buildup before bust-out)\n"
            "3. Thin-file risk indicators\n"
            "4. Device linked to multiple identities\n"
            "5. BVN/NIN graph anomalies\n"
            "6. Recent SIM swap on associated phone number\n\n"
            "Provide synthetic identity risk assessment."
        )

    def fallback_factors(
        self, transaction: TransactionContext, rng: random.Random
    ) -> list[RiskFactor]:
        factors: list[RiskFactor] = []

        if self._chance(rng, 0.95):
            factors.append(
                self._factor(
                    RiskFactorCode.SYNTHETIC_IDENTITY_INDICATOR,
                    "Identity data points show inconsistencies typical of synthetic identities",
                    weight=0.45,
                    contribution=0.25,
                )
            )

        if transaction.device_fingerprint and self._chance(rng, 0.9):
            factors.append(
                self._factor(
                    RiskFactorCode.DEVICE_LINKED_TO_MULTIPLE_ACCOUNTS,
                    "Device fingerprint associated with multiple customer accounts",
                    weight=0.3,
                    contribution=0.15,
                    device_fingerprint=transaction.device_fingerprint,
                )
            )

        if self._chance(rng, 0.92):
            factors.append(
                self._factor(
                    RiskFactorCode.RECENT_SIM_SWAP,
                    "Recent SIM swap detected on associated phone number",
                    weight=0.35,
                    contribution=0.18,
                )
            )

        return factors
