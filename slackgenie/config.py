"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from slackgenie.models.config import (
    APIConfig,
    ControllerConfig,
    DebounceConfig,
    LogConfig,
    SlackConfig,
    SlackGenieConfig,
)

_DURATION_RE = re.compile(r"^([0-9]+)(s|m|h|d)$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"SLACKGENIE_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_duration(value: str) -> str:
    match = _DURATION_RE.match(value)
    if not match or int(match.group(1)) == 0:
        raise ValueError(f"Invalid duration format: {value}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def parse_duration(value: str) -> float:
    """Convert a duration string such as ``10m`` or ``2h`` to seconds."""
    match = _DURATION_RE.match(_validate_duration(value))
    assert match is not None
    return float(int(match.group(1)) * _UNIT_SECONDS[match.group(2)])


def load_config() -> SlackGenieConfig:
    """Load configuration from SLACKGENIE_* environment variables.

    The webhook URL also honours the bare ``SLACK_WEBHOOK_URL`` variable,
    which is what the deployment manifests inject from the webhook secret.
    """
    return SlackGenieConfig(
        slack=SlackConfig(
            webhook_url=_env("SLACK_WEBHOOK_URL", os.environ.get("SLACK_WEBHOOK_URL", "")),
            cluster_name=_env("CLUSTER_NAME", ""),
        ),
        debounce=DebounceConfig(
            window=_validate_duration(_env("DEBOUNCE_WINDOW", "10m")),
            sweep_interval=_validate_duration(_env("SWEEP_INTERVAL", "5m")),
        ),
        controller=ControllerConfig(
            watch_namespace=_env("WATCH_NAMESPACE", ""),
            max_concurrent_reconciles=_env_int("MAX_CONCURRENT_RECONCILES", 4, min_val=1, max_val=64),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8081, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
