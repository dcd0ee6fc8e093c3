"""POS/Agent Shield: terminal and agent-network fraud, skipped for other channels."""

from ..evaluators import MuleHunter, TerminalMonitor
from ..models import ModuleType, RiskFactorCode, TransactionChannel
from .base import DetectionModule


class POSAgentShieldModule(DetectionModule):
    module_type = ModuleType.POS_AGENT_SHIELD
    name = "POS/Agent Shield"
    evaluator_classes = (TerminalMonitor, MuleHunter)
    applicable_channels = frozenset({TransactionChannel.POS, TransactionChannel.AGENT})
    insight_types = {RiskFactorCode.MULE_NETWORK_INDICATOR: "mule_network_detected"}
