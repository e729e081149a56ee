"""Settings for the mint registry service.

Runtime values come from ``MINT_``-prefixed environment variables (and
``.env`` files). Deployment requirements, such as which variables must be
present, live in YAML templates under ``config_dir``: ``settings.base.yaml``
is always read and ``settings.<profile>.yaml`` is layered over it.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./mint_registry.db"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:9002",
    "https://enb-onchain-summer.vercel.app",
)
BASE_TEMPLATE = "settings.base.yaml"


def load_yaml_config(config_path: str | Path) -> dict[str, Any]:
    """
    Read one YAML template into a mapping.

    An empty file yields an empty mapping.

    Raises:
        ConfigurationError: the file is absent or is not valid YAML
    """
    path = Path(config_path)
    try:
        content = yaml.safe_load(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    return content or {}


class DatabasePoolSettings(BaseModel):
    """Pool sizing for server databases; ignored for SQLite."""

    model_config = ConfigDict(extra="forbid")

    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    timeout: float = Field(default=30.0, gt=0, description="Seconds to wait for a connection")
    recycle_seconds: int = Field(default=1800, ge=0, description="0 disables recycling")
    pre_ping: bool = True


class RateLimitSettings(BaseModel):
    """Request budget applied per client to the public API."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    requests_per_window: int = Field(default=100, ge=1)
    window_seconds: int = Field(default=900, ge=1)
    limit_by: str = "ip"
    path_prefix: str = "/api/"
    exempt_paths: list[str] = Field(default_factory=lambda: ["/api/health"])

    @field_validator("limit_by")
    @classmethod
    def _validate_limit_by(cls, value: str) -> str:
        key = value.strip().lower()
        if key not in ("ip", "endpoint"):
            raise ValueError("limit_by must be 'ip' or 'endpoint'")
        return key


class ServiceConfiguration(BaseModel):
    """Deployment requirements merged from the YAML templates."""

    version: int = Field(default=1, ge=1)
    environment: str = "development"
    required_env: list[str] = Field(default_factory=list)

    @field_validator("environment")
    @classmethod
    def _lowercase_environment(cls, value: str) -> str:
        return value.lower()


class GlobalSettings(BaseSettings):
    """Process settings read from ``MINT_*`` variables; nested keys use ``__``."""

    model_config = SettingsConfigDict(
        env_prefix="MINT_",
        env_nested_delimiter="__",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"
    config_profile: str | None = None
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)
    database_url: str | None = None
    database: DatabasePoolSettings = DatabasePoolSettings()
    config_dir: Path = Path("config")
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS)
    )
    rate_limit: RateLimitSettings = RateLimitSettings()
    # Honour X-Forwarded-For only when a proxy we control sets it.
    trust_forwarded_for: bool = False
    max_body_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    @field_validator("environment", "config_profile")
    @classmethod
    def _lowercase_names(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip().lower()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _uppercase_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> list[str]:
        """Accept ``"https://a, https://b"`` as well as a list."""

        if value is None:
            return []
        items = value.split(",") if isinstance(value, str) else value
        if not isinstance(items, list | tuple | set):
            raise ValueError("cors_origins must be a comma-separated string or a list")
        return [str(item).strip() for item in items if str(item).strip()]

    @field_validator("config_dir")
    @classmethod
    def _expand_config_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def profile(self) -> str:
        """Template profile: ``config_profile`` when set, else ``environment``."""

        return self.config_profile or self.environment

    @property
    def resolved_database_url(self) -> str:
        return self.database_url or DEFAULT_DATABASE_URL


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively layer ``override`` over ``base``, returning a new mapping."""

    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


@lru_cache(maxsize=8)
def _read_service_configuration(config_dir: str, profile: str) -> ServiceConfiguration:
    directory = Path(config_dir)
    base_path = directory / BASE_TEMPLATE
    if not base_path.is_file():
        raise ConfigurationError(
            f"Missing base configuration template at '{base_path}'; "
            "every deployment needs shared defaults."
        )

    layered = load_yaml_config(base_path)
    profile_path = directory / f"settings.{profile}.yaml"
    if profile_path.is_file():
        layered = _merge(layered, load_yaml_config(profile_path))
    else:
        logger.debug("Profile '%s' has no template; using base defaults only", profile)
    layered.setdefault("environment", profile)

    try:
        return ServiceConfiguration.model_validate(layered)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Template for profile '{profile}' is invalid: {exc}") from exc


def get_service_configuration(
    settings: GlobalSettings | None = None,
    *,
    reload: bool = False,
) -> ServiceConfiguration:
    """Merged templates for the active profile, cached per directory and profile."""

    settings = settings or get_settings()
    if reload:
        _read_service_configuration.cache_clear()
    return _read_service_configuration(str(settings.config_dir), settings.profile)


def ensure_runtime_configuration(settings: GlobalSettings | None = None) -> GlobalSettings:
    """
    Check the active profile's ``required_env`` against the process environment.

    Called once at startup so a misconfigured deployment fails before serving.

    Raises:
        ConfigurationError: templates are missing or invalid, or variables are unset
    """
    settings = settings or get_settings()
    required = get_service_configuration(settings, reload=True).required_env

    unset = sorted({name for name in required if not os.environ.get(name)})
    if unset:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(unset)}. "
            f"Profile '{settings.profile}' expects them to be set."
        )
    return settings


@lru_cache(maxsize=1)
def _cached_settings() -> GlobalSettings:
    return GlobalSettings()


def get_settings(*, reload: bool = False) -> GlobalSettings:
    """Process-wide settings; ``reload=True`` re-reads the environment."""

    if reload:
        _cached_settings.cache_clear()
    return _cached_settings()
