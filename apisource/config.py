"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from apisource.events.selflink import UnsafeKindGuesser
from apisource.models.config import (
    ApiSourceConfig,
    EventMode,
    LogConfig,
    MetricsConfig,
    ResourceConfig,
    SinkConfig,
    SourceConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"APISOURCE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> list[str]:
    return [item.strip() for item in _env(key).split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    valid = {"json", "console"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log format: {value}. Must be one of {valid}")
    return value.lower()


def _validate_mode(value: str) -> EventMode:
    for mode in EventMode:
        if value.lower() == mode.value.lower():
            return mode
    raise ValueError(f"Invalid event mode: {value}. Must be one of {[m.value for m in EventMode]}")


def parse_resource(value: str) -> ResourceConfig:
    """Parse ``apiVersion:Kind[:plural]`` into a ResourceConfig.

    The plural defaults to the guessed resource name for the kind.
    """
    parts = value.split(":")
    if len(parts) not in (2, 3) or not all(parts):
        raise ValueError(f"Invalid resource: {value!r}. Expected apiVersion:Kind[:plural]")
    api_version, kind = parts[0], parts[1]
    plural = parts[2] if len(parts) == 3 else UnsafeKindGuesser().guess_resource(kind)
    return ResourceConfig(api_version=api_version, kind=kind, plural=plural)


def load_config() -> ApiSourceConfig:
    """Load configuration from APISOURCE_* environment variables."""
    namespace = _env("NAMESPACE", "default")
    return ApiSourceConfig(
        source=SourceConfig(
            name=_env("NAME", "apiserversource"),
            namespace=namespace,
            source=_env("SOURCE", "https://kubernetes.default.svc"),
            mode=_validate_mode(_env("MODE", EventMode.REFERENCE.value)),
            resources=[parse_resource(item) for item in _env_list("RESOURCES")],
            namespaces=_env_list("NAMESPACES") or [namespace],
            all_namespaces=_env_bool("ALL_NAMESPACES", False),
            label_selector=_env("LABEL_SELECTOR", ""),
        ),
        sink=SinkConfig(
            uri=_env("SINK_URI", ""),
            timeout_seconds=_env_float("SINK_TIMEOUT", 10.0, min_val=1.0, max_val=60.0),
        ),
        metrics=MetricsConfig(
            enabled=_env_bool("METRICS_ENABLED", True),
            port=_env_int("METRICS_PORT", 9090, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
