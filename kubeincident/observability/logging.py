"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from kubeincident.models.workload import PodIdentity


def setup_logging(level: str = "info", cluster: str = "") -> None:
    """Configure structlog for JSON output to stderr.

    When *cluster* is set it is attached to every log line through the
    contextvars processor.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    if cluster:
        structlog.contextvars.bind_contextvars(cluster=cluster)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def pod_logger(base: structlog.stdlib.BoundLogger, identity: PodIdentity) -> structlog.stdlib.BoundLogger:
    """Return a child of *base* bound to a single pod identity.

    Each reconciliation pass gets its own child so that concurrent passes
    never share per-call logging state.
    """
    return base.bind(namespace=identity.namespace, pod=identity.name)
