"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "sentinel-orchestrator"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    # Hosted agent runtime; empty endpoint keeps every evaluator on its fallback
    scoring_backend_endpoint: str = ""
    scoring_backend_project: str = ""
    scoring_backend_api_key: str = ""
    scoring_backend_timeout_seconds: float = 30.0

    # Evaluator id (e.g. AGT-TXN-001) -> remote agent id, as JSON in the env
    remote_agent_ids: dict[str, str] = {}

    fallback_seed: int | None = None

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
