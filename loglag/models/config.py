"""Configuration data structures."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_NAMESPACE_PREFIX = "logger-ns"


def default_kubeconfig_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


@dataclass
class ClusterConfig:
    """Kubernetes access and namespace selection."""

    kubeconfig_path: str = field(default_factory=default_kubeconfig_path)
    namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX


@dataclass
class LokiConfig:
    """Loki endpoints and tail query parameters."""

    address: str = ""
    websocket_address: str = ""
    delay_for_seconds: int = 0
    probe_timeout_seconds: float = 30.0


@dataclass
class PollConfig:
    """Poll loop cadence and listing retry policy."""

    interval_seconds: int = 10
    listing_retries: int = 0
    listing_backoff_seconds: float = 1.0


@dataclass
class APIConfig:
    """Status API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class LogLagConfig:
    """Top-level loglag configuration."""

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    loki: LokiConfig = field(default_factory=LokiConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
