"""External scoring backend used by evaluators in remote mode.

The backend is an opaque scoring function: it receives a free-text prompt and
a context map and returns a score, a confidence, risk factors and an
explanation. Transport details stay here so evaluators only see
``BackendScore`` or an ``EvaluatorProcessingError``.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError

from .config import BackendSettings
from .exceptions import EvaluatorProcessingError
from .models import RiskFactor

logger = structlog.get_logger()


class BackendScore(BaseModel):
    risk_score: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    risk_factors: list[RiskFactor] | None = None
    explanation: str | None = None
    reasoning_chain: str | None = None


class ScoringBackend(ABC):
    @abstractmethod
    async def score(
        self,
        evaluator_id: str,
        agent_id: str,
        prompt: str,
        context: dict[str, Any],
    ) -> BackendScore | None:
        """Score one prompt. Returns None when the backend answered with no body."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Reachability probe. Never raises."""
        ...


class HttpScoringBackend(ScoringBackend):
    """Calls a hosted agent runtime over HTTP with a bounded timeout."""

    def __init__(
        self,
        settings: BackendSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds),
        )
        self._owns_client = client is None

    @property
    def _headers(self) -> dict[str, str]:
        return {"api-key": self._settings.api_key}

    async def score(
        self,
        evaluator_id: str,
        agent_id: str,
        prompt: str,
        context: dict[str, Any],
    ) -> BackendScore | None:
        url = (
            f"{self._settings.endpoint.rstrip('/')}/projects/"
            f"{self._settings.project_name}/agents/run"
        )
        body = {
            "agent_id": agent_id,
            "messages": [{"role": "user", "content": prompt}],
            "context": context,
        }
        logger.debug("backend_invoke", evaluator_id=evaluator_id, agent_id=agent_id)

        try:
            response = await self._client.post(
                url,
                json=body,
                headers=self._headers,
                timeout=self._settings.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            raise EvaluatorProcessingError(evaluator_id, "Agent processing timed out") from exc
        except httpx.HTTPError as exc:
            raise EvaluatorProcessingError(
                evaluator_id, f"Failed to invoke agent: {exc}"
            ) from exc

        if response.is_error:
            raise EvaluatorProcessingError(
                evaluator_id,
                f"Agent backend returned {response.status_code}: {response.text[:200]}",
            )

        if not response.content or response.content.strip() == b"null":
            return None

        try:
            return BackendScore.model_validate_json(response.content)
        except ValidationError as exc:
            raise EvaluatorProcessingError(
                evaluator_id, f"Malformed agent response: {exc.error_count()} error(s)"
            ) from exc

    async def health_check(self) -> bool:
        try:
            response = await self._client.get(
                f"{self._settings.endpoint.rstrip('/')}/health",
                headers=self._headers,
                timeout=min(self._settings.health_timeout_seconds, 5.0),
            )
        except httpx.HTTPError:
            logger.warning("backend_health_check_failed", endpoint=self._settings.endpoint)
            return False
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
