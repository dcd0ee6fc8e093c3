"""Identity Fortress: synthetic identity and account-linkage detection."""

from ..evaluators import SyntheticDetector
from ..models import ModuleType, RiskFactorCode
from .base import DetectionModule


class IdentityFortressModule(DetectionModule):
    module_type = ModuleType.IDENTITY_FORTRESS
    name = "Identity Fortress"
    evaluator_classes = (SyntheticDetector,)
    insight_types = {RiskFactorCode.SYNTHETIC_IDENTITY_INDICATOR: "synthetic_identity_detected"}
