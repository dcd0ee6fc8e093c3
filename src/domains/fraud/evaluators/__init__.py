"""Fraud evaluators package.

Exports EVALUATOR_CLASSES (every concrete evaluator in registry order) and
the individual evaluator classes for direct use.
"""

from .base import Evaluator
from .identity import SyntheticDetector
from .pos import MuleHunter, TerminalMonitor
from .transaction import BehaviorProfiler, RiskScorer, TransactionAnalyzer

EVALUATOR_CLASSES: list[type[Evaluator]] = [
    # Transaction Sentinel
    TransactionAnalyzer,
    BehaviorProfiler,
    RiskScorer,
    # POS/Agent Shield
    TerminalMonitor,
    MuleHunter,
    # Identity Fortress
    SyntheticDetector,
]

__all__ = [
    "EVALUATOR_CLASSES",
    "Evaluator",
    "TransactionAnalyzer",
    "BehaviorProfiler",
    "RiskScorer",
    "TerminalMonitor",
    "MuleHunter",
    "SyntheticDetector",
]
