"""Detection modules package.

Exports MODULE_CLASSES (every concrete module in evaluation order) and the
individual module classes for direct use.
"""

from .base import DetectionModule
from .identity_fortress import IdentityFortressModule
from .pos_agent_shield import POSAgentShieldModule
from .transaction_sentinel import TransactionSentinelModule

MODULE_CLASSES: list[type[DetectionModule]] = [
    TransactionSentinelModule,
    POSAgentShieldModule,
    IdentityFortressModule,
]

__all__ = [
    "MODULE_CLASSES",
    "DetectionModule",
    "IdentityFortressModule",
    "POSAgentShieldModule",
    "TransactionSentinelModule",
]
