"""Event sinks.

Exports:
    EventSink -- Abstract base for every sink implementation.
    HTTPSink  -- CloudEvents HTTP binary-mode sink honouring the retry policy.
"""

from apisource.sink.base import EventSink
from apisource.sink.http import HTTPSink

__all__ = ["EventSink", "HTTPSink"]
