"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - The upstream endpoint comes from the environment (never hardcoded in core/services)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for every setting: works out-of-the-box against the public DeepWiki MCP
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Upstream MCP
    upstream_url: str = "https://mcp.deepwiki.com/sse"
    upstream_timeout_seconds: float = 300
    upstream_connect_timeout_seconds: float = 10

    @field_validator("upstream_url")
    @classmethod
    def require_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("upstream_url must be an http(s) URL")
        return v

    # Local methods
    flowgram_base_url: str = "http://flowgram.ai"

    # Streaming — None means no deadline (disconnect is the only stop signal)
    stream_deadline_seconds: float | None = None

    # API
    cors_origins: list[str] = ["*"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
