"""Settings for the ftcli command-line client.

Settings are read from a YAML file and may be overridden by ``FTCLI_<KEY>``
environment variables. The file is looked up in this order:

1. an explicit ``path`` argument (the ``--config`` flag)
2. ``FTCLI_CONFIG_PATH``
3. ``~/.config/ftcli/config.yml``
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from omegaconf import OmegaConf
from pydantic import BaseModel, Field, ValidationError, field_validator

from .client import DEFAULT_ENDPOINT, HOURLY_LIMIT_HEADER
from .errors import ConfigurationError

ENV_PREFIX = "FTCLI_"
CONFIG_PATH_ENV = "FTCLI_CONFIG_PATH"
REQUIRED_KEYS = ("client_id", "client_secret")
LIST_KEYS = frozenset({"scopes", "rate_limit_headers"})


def default_config_path() -> Path:
    return Path.home() / ".config" / "ftcli" / "config.yml"


def _load_file(location: Path) -> dict[str, Any]:
    raw_config = OmegaConf.load(location)
    config = OmegaConf.to_container(raw_config, resolve=True)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {location}")
    return {str(key).lower(): value for key, value in config.items()}


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in Settings.model_fields:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if not value:
            continue
        if name in LIST_KEYS:
            overrides[name] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            overrides[name] = value
    return overrides


class Settings(BaseModel):
    """Validated ftcli configuration."""

    client_id: str = Field(description="OAuth2 application UID")
    client_secret: str = Field(description="OAuth2 application secret")
    api_endpoint: str = Field(DEFAULT_ENDPOINT, description="Base URL of the REST API")
    token_endpoint: str = Field(
        "https://api.intra.42.fr/oauth/token", description="OAuth2 token URL"
    )
    scopes: list[str] = Field(default_factory=lambda: ["public"])
    rate_limit_headers: list[str] = Field(
        default_factory=lambda: [HOURLY_LIMIT_HEADER],
        description="Remaining-quota headers that signal an exhausted quota at 0",
    )
    timeout: float = Field(30.0, gt=0, description="Transport timeout in seconds")

    @field_validator("api_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_file(
        cls, path: Path | str | None = None, environ: dict[str, str] | None = None
    ) -> Settings:
        """Load settings from YAML, then apply environment overrides.

        A missing default config file is tolerated when the environment
        provides every required key; an explicitly requested file must exist.
        """
        env = dict(os.environ if environ is None else environ)

        explicit = path or env.get(CONFIG_PATH_ENV)
        location = Path(explicit).expanduser() if explicit else default_config_path()

        values: dict[str, Any] = {}
        if location.is_file():
            values = _load_file(location)
        elif explicit:
            raise ConfigurationError(f"Config file not found: {location}")

        values.update(_env_overrides(env))

        missing = [key for key in REQUIRED_KEYS if not values.get(key)]
        if missing:
            joined = ", ".join(missing)
            raise ConfigurationError(f"{joined} is required but not set in {location}")

        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {location}: {exc}") from exc
