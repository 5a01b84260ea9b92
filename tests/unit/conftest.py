"""Fixtures shared by the unit tests.

Astarte instances are built from raw bodies, with their Kubernetes API clients
replaced by mocks; the custom objects API is an in-memory store so that status
writes can be inspected.
"""

import copy
import logging
from types import SimpleNamespace
from typing import Any, Dict
from unittest.mock import AsyncMock, patch

import pytest

from astarte_operator.resources.astarte import Astarte
from astarte_operator.types.settings import Settings

from fakes import FakeCustomObjectsApi, astarte_body


@pytest.fixture(autouse=True)
def kopf_calls():
    """Record events and skip owner references, which need a live body."""
    with patch("kopf.event") as event, patch("kopf.adopt") as adopt:
        yield SimpleNamespace(event=event, adopt=adopt)


@pytest.fixture
def settings():
    return Settings(
        status_update_retry_attempts=3,
        status_update_retry_backoff_seconds=0,
        status_update_retry_backoff_factor=2.0,
    )


@pytest.fixture
def make_astarte(settings):
    """Factory of Astarte instances backed by mocked API clients."""

    def _make(body: Dict[str, Any] = None, **spec: Any) -> Astarte:
        body = body or astarte_body(**spec)
        astarte = Astarte.from_body(copy.deepcopy(body), logger=logging.getLogger("test"))
        astarte.conf = settings
        astarte.sensor = None
        astarte.custom_objects_api = FakeCustomObjectsApi(body)
        astarte.apps_v1_api = AsyncMock()
        astarte.core_v1_api = AsyncMock()
        astarte.batch_v1_api = AsyncMock()
        astarte.scheduling_v1_api = AsyncMock()
        return astarte

    return _make
