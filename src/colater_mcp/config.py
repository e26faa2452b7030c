"""Colater configuration management.

Configuration sources (in priority order):
1. Environment variables (COLATER_ prefix, ``__`` for nesting)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = Path.home() / ".colater"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class DatabaseConfig(BaseModel):
    """Database configuration."""

    # Any SQLAlchemy async URL, e.g. postgresql+asyncpg://
    url: str = "sqlite+aiosqlite:///./colater.db"
    echo: bool = False


class AuthConfig(BaseModel):
    """Legacy identity-token verification.

    Identity tokens are JWTs. Either a shared secret (HS*) or a JWKS URL
    (RS*/ES*, e.g. Firebase securetoken certs) must be set for the legacy
    path to accept anything.
    """

    jwt_secret: str | None = None
    jwks_url: str | None = None
    audience: str | None = None
    issuer: str | None = None
    algorithms: list[str] = Field(default_factory=lambda: ["RS256"])


class VoiceConfig(BaseModel):
    """Brand voice validation model."""

    api_key: str | None = None
    model: str = "gemini-2.5-flash"


class CacheConfig(BaseModel):
    """Local tool-result cache used by the stdio server."""

    enabled: bool = True
    ttl: int = Field(default=300, ge=0)  # seconds
    directory: Path = CONFIG_DIR / "cache"


class ClientConfig(BaseModel):
    """Upstream Colater API used by the stdio server."""

    api_key: str | None = None
    endpoint_url: str = "https://colater.ai/api"
    default_brand_id: str | None = None
    timeout: float = 30.0
    max_retries: int = Field(default=2, ge=0)


class Settings(BaseSettings):
    """Colater settings."""

    model_config = SettingsConfigDict(
        env_prefix="COLATER_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    voice: VoiceConfig = Field(default_factory=VoiceConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)

    # Bound on every data-store / model call made while serving a tool call
    upstream_timeout: float = Field(default=10.0, gt=0)

    # Brand used by tool calls that omit brandId (server side)
    default_brand_id: str | None = None

    log_level: Literal["debug", "info", "warning", "error"] = "info"
    json_logs: bool = False

    docs_base_url: str = "https://docs.colater.ai/mcp/errors"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # File values arrive as init kwargs; environment must win over them
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. COLATER_CONFIG_FILE environment variable
    2. ./config.yaml
    3. ~/.colater/config.yaml
    """
    config_paths = [
        os.environ.get("COLATER_CONFIG_FILE"),
        Path("config.yaml"),
        CONFIG_DIR / "config.yaml",
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


def _apply_shortcuts(settings: Settings) -> Settings:
    """Honor the flat env vars the stdio client has always accepted."""
    api_key = os.environ.get("COLATER_API_KEY")
    if api_key:
        settings.client.api_key = api_key
    log_level = os.environ.get("COLATER_MCP_LOG_LEVEL")
    if log_level:
        level = log_level.lower()
        if level == "warn":
            level = "warning"
        if level in ("debug", "info", "warning", "error"):
            settings.log_level = level
    return settings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()

    # Environment variables override file values via pydantic-settings
    return _apply_shortcuts(Settings(**file_config))
