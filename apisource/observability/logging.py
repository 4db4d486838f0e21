"""Structured logging configuration using structlog.

Events are rendered as JSON lines on stderr by default; ``console`` gives a
coloured, human-readable layout for local runs against a kubeconfig.
"""

from __future__ import annotations

import logging
import sys

import structlog

# stdlib loggers of the HTTP and Kubernetes clients; they log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "kubernetes_asyncio", "aiohttp.access")


def setup_logging(level: str = "info", fmt: str = "json") -> None:
    """Configure structlog output to stderr at *level* in *fmt* (json | console)."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer: structlog.typing.Processor
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    client_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(client_level)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
