"""Configuration utilities for the harness.

This module loads harness configuration with the following rules:
- Primary source: `litmus_config.json` in the working directory.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("litmus_config.json")
logger = logging.getLogger(__name__)

_LOG_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    startup_timeout: float = Field(default=10.0, gt=0)
    shutdown_timeout: float = Field(default=5.0, gt=0)
    log_level: str = "warning"

    @field_validator("host")
    @classmethod
    def host_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("server.host must be a non-empty string")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = str(v).strip().lower()
        if level not in _LOG_LEVELS:
            raise ValueError(f"server.log_level must be one of {sorted(_LOG_LEVELS)}")
        return level


class ClientConfig(BaseModel):
    timeout: float = Field(default=5.0, gt=0)
    max_redirects: int = Field(default=10, ge=0)


class TlsConfig(BaseModel):
    common_name: str = "localhost"
    valid_days: int = Field(default=1, gt=0)


class HarnessConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    tls: TlsConfig = Field(default_factory=TlsConfig)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> HarnessConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) litmus_config.json in the working directory
    4) Defaults
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: str) -> str:
        return str(_env(env_key) or _read_config_file(file_key) or _base(base_key, default)).strip()

    host = _pick("LITMUS_SERVER_HOST", "server.host", "server.host", "127.0.0.1")
    startup_timeout = _pick("LITMUS_STARTUP_TIMEOUT", "server.startup_timeout", "server.startup_timeout", "10.0")
    shutdown_timeout = _pick("LITMUS_SHUTDOWN_TIMEOUT", "server.shutdown_timeout", "server.shutdown_timeout", "5.0")
    log_level = _pick("LITMUS_SERVER_LOG_LEVEL", "server.log_level", "server.log_level", "warning")
    client_timeout = _pick("LITMUS_CLIENT_TIMEOUT", "client.timeout", "client.timeout", "5.0")
    max_redirects = _pick("LITMUS_MAX_REDIRECTS", "client.max_redirects", "client.max_redirects", "10")
    common_name = _pick("LITMUS_TLS_COMMON_NAME", "tls.common_name", "tls.common_name", "localhost")
    valid_days = _pick("LITMUS_TLS_VALID_DAYS", "tls.valid_days", "tls.valid_days", "1")

    try:
        return HarnessConfig(
            server=ServerConfig(
                host=host,
                startup_timeout=startup_timeout,
                shutdown_timeout=shutdown_timeout,
                log_level=log_level,
            ),
            client=ClientConfig(timeout=client_timeout, max_redirects=max_redirects),
            tls=TlsConfig(common_name=common_name, valid_days=valid_days),
        )
    except PydanticValidationError as e:
        logger.error("Invalid harness configuration: %s", e)
        raise


__all__ = [
    "HarnessConfig",
    "ServerConfig",
    "ClientConfig",
    "TlsConfig",
    "load_config",
]
