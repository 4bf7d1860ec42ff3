from __future__ import annotations

import json
import logging

import pytest

from switchyard.application import SwitchyardApp
from switchyard.config import AppConfig
from switchyard.context import Context
from switchyard.observability import Observability, ObservabilityConfig
from switchyard.responses import Response
from switchyard.testing import TestClient

LOGGER = "switchyard.observability"


def _events(caplog: pytest.LogCaptureFixture) -> list[dict[str, object]]:
    return [json.loads(record.getMessage()) for record in caplog.records if record.name == LOGGER]


def test_request_lifecycle_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER)
    observability = Observability(ObservabilityConfig(opentelemetry_enabled=False))

    context = observability.on_request_start(Context(method="GET", path="/items"))
    response = observability.on_request_success(context, Response(status=201))

    assert response.status == 201
    events = _events(caplog)
    assert [event["event"] for event in events] == ["request.start", "request.success"]
    assert events[0]["method"] == "GET"
    assert events[1]["path"] == "/items"
    assert events[1]["status"] == 201
    assert "duration_ms" in events[1]


def test_request_error_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER)
    observability = Observability()

    context = observability.on_request_start(Context(method="POST", path="/fail"))
    observability.on_request_error(context, RuntimeError("boom"), status_code=500)

    error = _events(caplog)[-1]
    assert error["event"] == "request.error"
    assert error["error"] == "RuntimeError"
    assert error["detail"] == "boom"
    assert error["status"] == 500


def test_disabled_observability_is_silent(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER)
    observability = Observability(ObservabilityConfig(enabled=False))

    assert not observability.enabled
    context = observability.on_request_start(Context(method="GET", path="/"))
    assert context is None
    response = Response()
    assert observability.on_request_success(context, response) is response
    observability.on_request_error(context, RuntimeError("ignored"))
    assert observability.on_websocket_open("/ws") is None
    assert _events(caplog) == []


def test_log_events_can_be_turned_off(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER)
    observability = Observability(ObservabilityConfig(log_events=False))

    context = observability.on_request_start(Context(method="GET", path="/"))
    assert context is not None
    observability.on_request_success(context, Response())
    assert _events(caplog) == []


@pytest.mark.asyncio
async def test_app_reports_websocket_sessions(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=LOGGER)
    app = SwitchyardApp(AppConfig(observability=ObservabilityConfig(opentelemetry_enabled=False)))
    app.websocket("/feed", message=lambda ws, payload: None)

    async with TestClient(app) as client:
        await client.websocket("/feed", ["tick"])

    names = [event["event"] for event in _events(caplog)]
    assert names == ["request.start", "request.success", "websocket.open", "websocket.close"]
    assert _events(caplog)[-1]["code"] == 1000
