"""Logging, metrics and tracing for apisource."""
