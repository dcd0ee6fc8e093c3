"""Exceptions raised by the orchestration engine."""


class EngineError(Exception):
    """Base class for engine errors carrying a stable error code."""

    error_code: str = "ENGINE_ERROR"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EvaluatorProcessingError(EngineError):
    """An evaluator could not produce a result (timeout, transport, bad payload)."""

    error_code = "AGENT_PROCESSING_ERROR"
    status_code = 502

    def __init__(self, evaluator_id: str, message: str) -> None:
        super().__init__(f"Agent '{evaluator_id}' processing failed: {message}")
        self.evaluator_id = evaluator_id
        self.reason = message


class TenantLookupError(EngineError):
    """Tenant configuration could not be read.

    Raised by ``TenantDirectory`` implementations backed by an external store
    when ``get_profile`` cannot reach it. The orchestrator turns it into a
    failed verdict with a generic message.
    """

    error_code = "TENANT_LOOKUP_ERROR"
    status_code = 503

    def __init__(self, tenant_id: str, message: str = "tenant configuration unavailable") -> None:
        super().__init__(f"Tenant '{tenant_id}': {message}")
        self.tenant_id = tenant_id
