"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubeincident.models.config import (
    AgentConfig,
    APIConfig,
    ControllerConfig,
    LogConfig,
    NotificationConfig,
    QueueConfig,
    StoreConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEINCIDENT_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> AgentConfig:
    """Load configuration from KUBEINCIDENT_* environment variables."""
    return AgentConfig(
        cluster_name=_env("CLUSTER_NAME", ""),
        controller=ControllerConfig(
            watch_namespace=_env("WATCH_NAMESPACE", ""),
            max_concurrent_reconciles=_env_int("MAX_CONCURRENT_RECONCILES", 4, min_val=1, max_val=64),
            requeue_delay_seconds=_env_float("REQUEUE_DELAY_SECONDS", 5.0, min_val=0.1),
            watch_timeout_seconds=_env_int("WATCH_TIMEOUT_SECONDS", 300, min_val=30, max_val=3600),
        ),
        queue=QueueConfig(
            max_size=_env_int("QUEUE_MAX_SIZE", 1000, min_val=10),
            workers=_env_int("QUEUE_WORKERS", 2, min_val=1, max_val=32),
            max_retries=_env_int("QUEUE_MAX_RETRIES", 3, min_val=0, max_val=10),
        ),
        store=StoreConfig(
            max_events_per_incident=_env_int("MAX_EVENTS_PER_INCIDENT", 200, min_val=1),
            log_tail_lines=_env_int("LOG_TAIL_LINES", 100, min_val=1, max_val=5000),
        ),
        notifications=NotificationConfig(
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF", ""),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
