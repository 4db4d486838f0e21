"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class EventMode(StrEnum):
    """Payload carried by emitted events."""

    REFERENCE = "Reference"
    RESOURCE = "Resource"


@dataclass(frozen=True)
class ResourceConfig:
    """A resource type to watch."""

    api_version: str
    kind: str
    plural: str

    @property
    def group(self) -> str:
        """API group; empty for the core group."""
        if "/" not in self.api_version:
            return ""
        return self.api_version.split("/", 1)[0]

    @property
    def version(self) -> str:
        return self.api_version.rsplit("/", 1)[-1]


@dataclass
class SourceConfig:
    """Identity of this source and what it watches."""

    name: str = "apiserversource"
    namespace: str = "default"
    source: str = "https://kubernetes.default.svc"
    mode: EventMode = EventMode.REFERENCE
    resources: list[ResourceConfig] = field(default_factory=list)
    namespaces: list[str] = field(default_factory=list)
    all_namespaces: bool = False
    label_selector: str = ""

    @property
    def ref(self) -> bool:
        return self.mode == EventMode.REFERENCE


@dataclass
class SinkConfig:
    """Event sink configuration."""

    uri: str = ""
    timeout_seconds: float = 10.0


@dataclass
class MetricsConfig:
    """Prometheus exporter configuration."""

    enabled: bool = True
    port: int = 9090


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class ApiSourceConfig:
    """Top-level apisource configuration."""

    source: SourceConfig = field(default_factory=SourceConfig)
    sink: SinkConfig = field(default_factory=SinkConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
