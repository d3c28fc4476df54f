# -*- coding: utf-8 -*-
"""Gateway settings: optional YAML file, ``.env`` and environment variables."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

_ENV_RE = re.compile(r"\$\{([^}]+)\}")

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_CIPHERS = {"x25519", "legacy"}

# env var -> settings field
_ENV_OVERRIDES: Dict[str, str] = {
    "ARCIUM_API_URL": "api_url",
    "ARCIUM_API_KEY": "api_key",
    "ARCIUM_REQUEST_TIMEOUT": "request_timeout",
    "ARCIUM_POLL_INTERVAL": "poll_interval",
    "ARCIUM_POLL_TIMEOUT": "poll_timeout",
    "ARCIUM_PAYLOAD_CIPHER": "payload_cipher",
    "GATEWAY_AUTH_TOKENS": "auth_tokens",
    "CORS_ORIGINS": "cors_origins",
    "LOG_LEVEL": "log_level",
}


def _expand_env(value: str, env: Mapping[str, str]) -> str:
    """Replace ${VAR} patterns with environment variable values."""
    return _ENV_RE.sub(lambda match: env.get(match.group(1), ""), value)


def _walk_expand(obj: Any, env: Mapping[str, str]) -> Any:
    if isinstance(obj, str):
        return _expand_env(obj, env)
    if isinstance(obj, dict):
        return {k: _walk_expand(v, env) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_expand(i, env) for i in obj]
    return obj


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class GatewaySettings(BaseModel):
    """Runtime configuration for the gateway and its Arcium client."""

    api_url: str = "https://api.arcium.com"
    api_key: str = ""
    request_timeout: float = 30.0
    poll_interval: float = 5.0
    poll_timeout: float = 300.0
    payload_cipher: str = "x25519"
    auth_tokens: List[str] = Field(default_factory=list)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("api_url must not be empty")
        return v

    @field_validator("request_timeout", "poll_interval", "poll_timeout")
    @classmethod
    def _check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts and intervals must be positive")
        return v

    @field_validator("payload_cipher")
    @classmethod
    def _check_cipher(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _VALID_CIPHERS:
            raise ValueError(f"payload_cipher must be one of {sorted(_VALID_CIPHERS)}")
        return v

    @field_validator("auth_tokens", "cors_origins", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> Any:
        if v is None:
            return []
        return _split_csv(v)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")
        return v

    @model_validator(mode="after")
    def _check_poll_window(self) -> "GatewaySettings":
        if self.poll_interval > self.poll_timeout:
            raise ValueError("poll_interval must not exceed poll_timeout")
        return self


def _read_config_file(path: Path, env: Mapping[str, str]) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    # Allow both a flat file and one nested under an "arcium" key.
    section = raw.get("arcium", raw)
    return _walk_expand(section, env)


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GatewaySettings:
    """Build settings from an optional YAML file overlaid with env vars.

    ``config_path`` defaults to ``ARCIUM_CONFIG_FILE``. Environment variables
    always win over values read from the file.
    """
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    path = config_path or env.get("ARCIUM_CONFIG_FILE")
    if path:
        config_file = Path(path).expanduser()
        if config_file.exists():
            data.update(_read_config_file(config_file, env))
        else:
            logger.warning("Config file not found, using environment only: %s", config_file)

    for var, field_name in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value is not None and value != "":
            data[field_name] = value

    return GatewaySettings(**data)
