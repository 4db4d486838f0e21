"""Shared fixtures for apisource tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from tests.factories import RecordingSink, RecordingTransport


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def transport_factory() -> Callable[[list[int | Exception]], RecordingTransport]:
    return RecordingTransport
