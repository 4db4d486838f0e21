"""CloudEvents HTTP sink.

Posts events in binary content mode: attributes travel as ``ce-*`` headers
and the JSON data is the request body.  Failed attempts are retried as the
event's RetryPolicy describes.
"""

from __future__ import annotations

import asyncio
import time

import httpx
import structlog

from apisource.models.context import DeliveryContext
from apisource.models.events import EventEnvelope
from apisource.observability.metrics import delivery_attempts_total, event_delivery_seconds
from apisource.observability.tracing import delivery_span
from apisource.sink.base import EventSink

_log = structlog.get_logger(component="sink.http")

_RETRYABLE_STATUS = frozenset({404, 408, 409, 429})


def is_retryable(status_code: int) -> bool:
    """True for responses worth another attempt."""
    return status_code in _RETRYABLE_STATUS or status_code >= 500


class HTTPSink(EventSink):
    """Delivers events by POSTing them to a configurable URL.

    Args:
        url:       Sink endpoint.
        timeout:   Per-attempt HTTP timeout in seconds. Defaults to 10.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("Sink url must not be empty")
        self._url = url
        self._timeout = timeout
        self._transport = transport

    @property
    def sink_name(self) -> str:
        return "http"

    async def send(self, context: DeliveryContext, event: EventEnvelope) -> bool:
        """POST *event*, retrying per ``context.retry``.

        Returns True on a 2xx response, False once attempts are exhausted or
        the sink answered with a non-retryable status.
        """
        tag = context.metric_tag
        started = time.monotonic()
        with delivery_span(context.span, event) as span:
            success, status_code = await self._deliver(context, event)
            if status_code is not None:
                span.set_attribute("http.response.status_code", status_code)
        event_delivery_seconds.labels(
            namespace=tag.namespace,
            name=tag.name,
            resource_group=tag.resource_group,
        ).observe(time.monotonic() - started)
        return success

    async def _deliver(self, context: DeliveryContext, event: EventEnvelope) -> tuple[bool, int | None]:
        policy = context.retry
        attempts = max(policy.max_attempts, 1)
        status_code: int | None = None

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            for attempt in range(1, attempts + 1):
                if attempt > 1:
                    await asyncio.sleep(policy.backoff(attempt - 1))
                try:
                    response = await client.post(
                        self._url,
                        content=event.data or b"",
                        headers=event.binary_headers(),
                    )
                except httpx.TimeoutException:
                    delivery_attempts_total.labels(status_code="timeout").inc()
                    _log.warning("sink_request_timeout", event_id=event.id, url=self._url, attempt=attempt)
                    continue
                except httpx.HTTPError as exc:
                    delivery_attempts_total.labels(status_code="error").inc()
                    _log.warning("sink_http_error", event_id=event.id, error=str(exc), attempt=attempt)
                    continue

                status_code = response.status_code
                delivery_attempts_total.labels(status_code=str(status_code)).inc()
                if response.is_success:
                    return True, status_code
                _log.warning(
                    "sink_non_2xx_response",
                    status_code=status_code,
                    body=response.text[:200],
                    event_id=event.id,
                    attempt=attempt,
                )
                if not is_retryable(status_code):
                    return False, status_code

        _log.warning("sink_retries_exhausted", event_id=event.id, attempts=attempts)
        return False, status_code
