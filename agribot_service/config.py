"""
Environment-backed settings, read once at startup.
"""
import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

DEFAULT_GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_COMPLETION_MODEL = "llama-3.3-70b-versatile"
DEFAULT_TIMEOUT_SECONDS = 30.0


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    groq_api_key: str
    api_endpoint: str
    groq_base_url: str = DEFAULT_GROQ_BASE_URL
    completion_model: str = DEFAULT_COMPLETION_MODEL
    upstream_timeout: float = DEFAULT_TIMEOUT_SECONDS
    log_json: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment.

        Raises ConfigurationError if the completion credential or the
        inference endpoint is missing, so the service never starts sending
        unauthenticated or malformed upstream requests.
        """
        groq_api_key = (os.getenv("GROQ_API_KEY") or "").strip()
        api_endpoint = (os.getenv("API_ENDPOINT") or "").strip()

        missing = [
            name for name, value in
            (("GROQ_API_KEY", groq_api_key), ("API_ENDPOINT", api_endpoint))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        try:
            timeout = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
        except ValueError as e:
            raise ConfigurationError(f"UPSTREAM_TIMEOUT_SECONDS is not a number: {e}") from e
        if timeout <= 0:
            raise ConfigurationError("UPSTREAM_TIMEOUT_SECONDS must be positive")

        return cls(
            groq_api_key=groq_api_key,
            api_endpoint=api_endpoint.rstrip("/"),
            groq_base_url=os.getenv("GROQ_BASE_URL", DEFAULT_GROQ_BASE_URL).rstrip("/"),
            completion_model=os.getenv("COMPLETION_MODEL", DEFAULT_COMPLETION_MODEL),
            upstream_timeout=timeout,
            log_json=_env_bool("LOG_JSON", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=cors_origins_from_env(),
        )


def cors_origins_from_env() -> List[str]:
    return _env_list("CORS_ORIGINS", ["http://localhost:3000"])
