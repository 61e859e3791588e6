"""Configuration loading from a YAML file with LOGLAG_* environment overrides.

Precedence, lowest to highest: dataclass defaults, ``config.yaml`` (or the
file named by ``LOGLAG_CONFIG``), ``LOGLAG_*`` environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from loglag.models.config import (
    DEFAULT_NAMESPACE_PREFIX,
    APIConfig,
    ClusterConfig,
    LogConfig,
    LogLagConfig,
    LokiConfig,
    PollConfig,
    default_kubeconfig_path,
)

DEFAULT_CONFIG_PATH = "config.yaml"


class ConfigError(Exception):
    """Raised when configuration cannot be read or is invalid. Always fatal."""


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"LOGLAG_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigError(f"LOGLAG_{key} must be an integer, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    raw = _env(key, str(default))
    try:
        val = float(raw)
    except ValueError as exc:
        raise ConfigError(f"LOGLAG_{key} must be a number, got {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_address(name: str, value: str, schemes: tuple[str, ...]) -> str:
    if not value:
        raise ConfigError(f"{name} is required")
    parsed = urlparse(value)
    if parsed.scheme not in schemes or not parsed.netloc:
        raise ConfigError(f"{name} must be a {'/'.join(schemes)} URL, got {value!r}")
    return value.rstrip("/")


def read_config_file(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read the YAML config file into a flat dict.

    Raises:
        ConfigError: if the file is missing, unreadable, or not a mapping.
    """
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Failed to open config file {config_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {config_path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(path: str | os.PathLike[str] | None = None) -> LogLagConfig:
    """Load configuration from the YAML file, then apply LOGLAG_* overrides."""
    if path is None:
        path = _env("CONFIG", DEFAULT_CONFIG_PATH)
    data = read_config_file(path)

    def file_value(key: str, default: Any) -> str:
        value = data.get(key)
        # Empty values in the file fall back to defaults, as with a missing key.
        if value is None or value == "":
            return str(default)
        return str(value)

    def file_int(key: str, default: int) -> int:
        raw = file_value(key, default)
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc

    def file_float(key: str, default: float) -> float:
        raw = file_value(key, default)
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigError(f"{key} must be a number, got {raw!r}") from exc

    return LogLagConfig(
        cluster=ClusterConfig(
            kubeconfig_path=_env("KUBECONFIG_PATH", file_value("kubeconfig_path", default_kubeconfig_path())),
            namespace_prefix=_env("NAMESPACE_PREFIX", file_value("namespace_prefix", DEFAULT_NAMESPACE_PREFIX)),
        ),
        loki=LokiConfig(
            address=_validate_address(
                "loki_address",
                _env("LOKI_ADDRESS", file_value("loki_address", "")),
                ("http", "https"),
            ),
            websocket_address=_validate_address(
                "loki_websocket_address",
                _env("LOKI_WEBSOCKET_ADDRESS", file_value("loki_websocket_address", "")),
                ("ws", "wss"),
            ),
            delay_for_seconds=_env_int("DELAY_FOR", file_int("delay_for", 0), min_val=0, max_val=5),
            probe_timeout_seconds=_env_float("PROBE_TIMEOUT", file_float("probe_timeout", 30.0), min_val=1.0),
        ),
        poll=PollConfig(
            interval_seconds=_env_int("POLL_INTERVAL", file_int("poll_interval", 10), min_val=0),
            listing_retries=_env_int("LISTING_RETRIES", file_int("listing_retries", 0), min_val=0, max_val=10),
            listing_backoff_seconds=_env_float(
                "LISTING_BACKOFF", file_float("listing_backoff", 1.0), min_val=0.0
            ),
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", file_value("api_enabled", "true").lower() in ("true", "1", "yes")),
            port=_env_int("API_PORT", file_int("api_port", 8080), min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", file_value("log_level", "info"))),
        ),
    )
