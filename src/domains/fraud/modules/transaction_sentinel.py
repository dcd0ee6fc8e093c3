"""Transaction Sentinel: real-time transaction monitoring across all channels."""

from ..evaluators import BehaviorProfiler, RiskScorer, TransactionAnalyzer
from ..models import ModuleType
from .base import DetectionModule


class TransactionSentinelModule(DetectionModule):
    module_type = ModuleType.TRANSACTION_SENTINEL
    name = "Transaction Sentinel"
    evaluator_classes = (TransactionAnalyzer, BehaviorProfiler, RiskScorer)
