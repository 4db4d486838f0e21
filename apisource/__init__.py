"""apisource -- Kubernetes API server change events as CloudEvents."""

__version__ = "0.1.0"
