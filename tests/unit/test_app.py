"""Tests for the application lifecycle helpers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from apisource.app import ApiSourceApp, _ComponentError
from apisource.models.config import ApiSourceConfig, SinkConfig

from tests.factories import RecordingSink


async def test_stop_before_start_is_safe() -> None:
    app = ApiSourceApp()
    await app.stop()
    assert app.running is False


async def test_empty_sink_url_is_a_component_error() -> None:
    app = ApiSourceApp(config=ApiSourceConfig(sink=SinkConfig(uri="")))
    app._log = structlog.get_logger()

    with pytest.raises(_ComponentError) as exc_info:
        app._start_sink()
    assert exc_info.value.component == "sink"


async def test_no_resources_is_a_component_error() -> None:
    app = ApiSourceApp(config=ApiSourceConfig())
    app._log = structlog.get_logger()
    app._sink = RecordingSink()
    app._start_delegate()

    with pytest.raises(_ComponentError) as exc_info:
        await app._start_watchers()
    assert exc_info.value.component == "watchers"


async def test_requested_shutdown_runs_once_and_is_awaited() -> None:
    app = ApiSourceApp()
    app._running = True
    app._log = structlog.get_logger()
    client = MagicMock(close=AsyncMock())
    app._k8s_client = client

    app.request_shutdown()
    app.request_shutdown()
    await app.wait_stopped()

    client.close.assert_awaited_once()
    assert app._k8s_client is None
    assert app.running is False


async def test_wait_stopped_without_request_returns() -> None:
    app = ApiSourceApp()
    await app.wait_stopped()
    assert app.running is False
