"""Pydantic models for the fraud orchestration domain."""

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModuleType(StrEnum):
    TRANSACTION_SENTINEL = "transaction_sentinel"
    POS_AGENT_SHIELD = "pos_agent_shield"
    IDENTITY_FORTRESS = "identity_fortress"
    INSIDER_THREAT = "insider_threat"
    NETWORK_INTELLIGENCE = "network_intelligence"
    INVESTIGATION_ASSISTANT = "investigation_assistant"


class AgentLevel(StrEnum):
    ORCHESTRATION = "orchestration"
    DOMAIN = "domain"
    SPECIALIST = "specialist"
    UTILITY = "utility"


class TransactionChannel(StrEnum):
    NIP = "nip"  # interbank wire-transfer rail
    USSD = "ussd"
    MOBILE = "mobile"
    WEB = "web"
    POS = "pos"
    ATM = "atm"
    BRANCH = "branch"
    AGENT = "agent"


class RiskLevel(StrEnum):
    """Ordered by severity, not alphabetically: LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_LEVEL_RANK[self]

    def __lt__(self, other):
        if isinstance(other, RiskLevel):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, RiskLevel):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, RiskLevel):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, RiskLevel):
            return self.rank >= other.rank
        return NotImplemented


_RISK_LEVEL_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class RecommendedAction(StrEnum):
    APPROVE = "approve"
    CHALLENGE = "challenge"  # step-up authentication
    REVIEW = "review"  # manual review
    BLOCK = "block"
    ALERT = "alert"  # allow but alert


class RiskFactorCode(StrEnum):
    # Transaction
    HIGH_AMOUNT_FOR_CUSTOMER = "RF001"
    UNUSUAL_TRANSACTION_TIME = "RF002"
    VELOCITY_THRESHOLD_EXCEEDED = "RF003"
    FIRST_TIME_RECIPIENT = "RF004"
    HIGH_RISK_COUNTRY = "RF005"
    GEOGRAPHIC_ANOMALY = "RF006"
    DEVICE_CHANGED = "RF007"
    SESSION_ANOMALY = "RF008"
    MISSING_DEVICE_FINGERPRINT = "RF009"
    # POS / agent network
    AGENT_HIGH_RISK_SCORE = "RF100"
    TERMINAL_LOCATION_MISMATCH = "RF101"
    SUSPICIOUS_CASH_OUT_PATTERN = "RF102"
    HIGH_BIN_DIVERSITY_TERMINAL = "RF103"
    NEW_AGENT_HIGH_VOLUME = "RF104"
    MULE_NETWORK_INDICATOR = "RF105"
    # Identity
    SYNTHETIC_IDENTITY_INDICATOR = "RF200"
    BVN_MISMATCH = "RF201"
    RECENT_SIM_SWAP = "RF202"
    DEVICE_LINKED_TO_MULTIPLE_ACCOUNTS = "RF203"
    THIN_FILE_HIGH_RISK = "RF204"


class EvaluatorId(StrEnum):
    TRANSACTION_ANALYZER = "AGT-TXN-001"
    BEHAVIOR_PROFILER = "AGT-TXN-002"
    RISK_SCORER = "AGT-TXN-003"
    TERMINAL_MONITOR = "AGT-POS-001"
    MULE_HUNTER = "AGT-POS-003"
    SYNTHETIC_DETECTOR = "AGT-IDN-002"


class TransactionContext(BaseModel):
    """Immutable transaction under evaluation, shared by every evaluator."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    amount: float = Field(ge=0)
    currency: str = "NGN"
    channel: TransactionChannel
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source_account: str
    destination_account: str
    customer_id: str | None = None
    beneficiary_name: str | None = None
    device_fingerprint: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    user_agent: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    transaction_type: str | None = None
    narration: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class RiskFactor(BaseModel):
    """One atomic finding. ``code`` is the identity used for deduplication."""

    model_config = ConfigDict(frozen=True)

    code: str
    description: str
    weight: float = Field(ge=0.0, le=1.0)
    # Per-invocation contributions are in [0, 1]; merged ranked factors carry sums
    contribution: float = Field(ge=0.0)
    source: str = ""
    details: dict[str, Any] | None = None


class EvaluatorResult(BaseModel):
    evaluator_id: str
    module: ModuleType | None = None
    success: bool
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    # 0.0 means the evaluator abstained, not "zero risk with certainty"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    explanation: str | None = None
    reasoning_chain: str | None = None
    elapsed_ms: float = 0.0
    error: str | None = None


class ModuleResult(BaseModel):
    module: ModuleType
    success: bool
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    explanation: str = ""
    elapsed_ms: float = 0.0
    error: str | None = None
    evaluator_results: list[EvaluatorResult] = Field(default_factory=list)


class Insight(BaseModel):
    """Cross-module signal. Never alters the verdict of the call that produced it."""

    insight_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source_evaluator_id: str
    source_module: ModuleType
    insight_type: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    data: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AnalysisContext(BaseModel):
    """Per-call context handed to every module. ``shared`` is exclusive to one call."""

    correlation_id: str
    tenant_id: str
    transaction: TransactionContext
    shared: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class OrchestrationRequest(BaseModel):
    tenant_id: str
    transaction: TransactionContext
    modules: list[ModuleType] | None = None
    correlation_id: str | None = None
    context: dict[str, Any] | None = None
    timeout_seconds: float | None = Field(default=None, gt=0)


class OrchestratorVerdict(BaseModel):
    correlation_id: str
    success: bool
    aggregated_score: float = Field(default=0.0, ge=0.0, le=1.0)
    risk_level: RiskLevel = RiskLevel.LOW
    recommended_action: RecommendedAction = RecommendedAction.APPROVE
    evaluator_results: list[EvaluatorResult] = Field(default_factory=list)
    module_results: list[ModuleResult] = Field(default_factory=list)
    modules_invoked: list[ModuleType] = Field(default_factory=list)
    risk_factors: list[RiskFactor] = Field(default_factory=list)
    explanation: str | None = None
    elapsed_ms: float = 0.0
    error: str | None = None


class EvaluatorDescriptor(BaseModel):
    evaluator_id: str
    name: str
    level: AgentLevel
    module: ModuleType
    mode: str  # "remote" | "fallback"


class AgentHealthStatus(BaseModel):
    evaluator_id: str
    name: str
    module: ModuleType
    healthy: bool
    response_time_ms: float
    error: str | None = None
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
