"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ControllerConfig:
    """Pod watch and reconciliation configuration."""

    watch_namespace: str = ""  # empty watches all namespaces
    max_concurrent_reconciles: int = 4
    requeue_delay_seconds: float = 5.0
    watch_timeout_seconds: int = 300


@dataclass
class QueueConfig:
    """Work queue configuration."""

    max_size: int = 1000
    workers: int = 2
    max_retries: int = 3


@dataclass
class StoreConfig:
    """Incident store configuration."""

    max_events_per_incident: int = 200
    log_tail_lines: int = 100


@dataclass
class NotificationConfig:
    """Notification system configuration."""

    webhook_secret_ref: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class AgentConfig:
    """Top-level kubeincident configuration."""

    cluster_name: str = ""
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
