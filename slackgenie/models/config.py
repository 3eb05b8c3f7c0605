"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class SlackConfig:
    """Notification endpoint configuration."""

    webhook_url: str = ""
    cluster_name: str = ""


@dataclass
class DebounceConfig:
    """Alert de-duplication configuration."""

    window: str = "10m"
    sweep_interval: str = "5m"


@dataclass
class ControllerConfig:
    """Pod watch and reconcile worker configuration."""

    watch_namespace: str = ""
    max_concurrent_reconciles: int = 4


@dataclass
class APIConfig:
    """Health and metrics endpoint configuration."""

    port: int = 8081


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class SlackGenieConfig:
    """Top-level slackgenie configuration."""

    slack: SlackConfig = field(default_factory=SlackConfig)
    debounce: DebounceConfig = field(default_factory=DebounceConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
