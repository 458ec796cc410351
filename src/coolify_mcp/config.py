"""Centralized configuration for coolify-mcp using Pydantic Settings."""

from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coolify_mcp.search.engine import DEFAULT_SEARCH_LIMIT, DOCS_FETCH_TIMEOUT_SECONDS, DOCS_FULL_URL
from coolify_mcp.search.parser import DOCS_BASE_URL


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Values come from the process environment or a local ``.env`` file. The
    Coolify connection fields default to empty so the docs search can be
    exercised without a server; the CLI refuses to start without them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Coolify API
    coolify_base_url: str = Field(default="", description="Coolify instance URL, e.g. https://coolify.example.com")
    coolify_access_token: str = Field(default="", description="Coolify API token (Keys & Tokens > API tokens)")
    http_timeout: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices("coolify_http_timeout", "http_timeout"),
        description="Coolify API request timeout in seconds",
    )

    # Documentation search
    docs_full_url: str = Field(default=DOCS_FULL_URL, description="URL of the llms-full.txt documentation bundle")
    docs_base_url: str = Field(default=DOCS_BASE_URL, description="Site root used to build documentation links")
    docs_fetch_timeout: float = Field(
        default=DOCS_FETCH_TIMEOUT_SECONDS, gt=0, description="Documentation download timeout in seconds"
    )
    docs_search_limit: int = Field(
        default=DEFAULT_SEARCH_LIMIT, ge=1, le=50, description="Default number of documentation hits returned"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs on stderr")

    # Server settings
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport to serve")
    mcp_host: str = Field(default="127.0.0.1", description="MCP server host (http transport)")
    mcp_port: int = Field(default=15005, ge=1, le=65535, description="MCP server port (http transport)")

    @model_validator(mode="after")
    def _check_base_url(self) -> "Settings":
        base_url = self.coolify_base_url.strip()
        if base_url and not base_url.startswith(("http://", "https://")):
            raise ValueError(f"COOLIFY_BASE_URL must start with http:// or https://, got '{base_url}'")
        self.coolify_base_url = base_url
        return self

    def get_api_base_url(self) -> str:
        """Return the REST API root, e.g. ``https://coolify.example.com/api/v1``."""
        return f"{self.coolify_base_url.rstrip('/')}/api/v1"

    def missing_connection_settings(self) -> list[str]:
        """Return the names of unset required Coolify connection variables."""
        missing = []
        if not self.coolify_base_url:
            missing.append("COOLIFY_BASE_URL")
        if not self.coolify_access_token:
            missing.append("COOLIFY_ACCESS_TOKEN")
        return missing
