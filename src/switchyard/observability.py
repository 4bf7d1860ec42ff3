"""Observability integration for Switchyard services."""

from __future__ import annotations

import json
import logging
import time
from contextlib import ExitStack
from typing import TYPE_CHECKING, Any, Mapping

import msgspec
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

if TYPE_CHECKING:
    from .context import Context
    from .responses import Response


class RequestObservabilityConfig(msgspec.Struct, frozen=True):
    """HTTP request tracing configuration."""

    span_name: str = "switchyard.request"


class WebSocketObservabilityConfig(msgspec.Struct, frozen=True):
    """WebSocket session tracing configuration."""

    span_name: str = "switchyard.websocket"


class ObservabilityConfig(msgspec.Struct, frozen=True):
    """Top-level observability configuration."""

    enabled: bool = True
    opentelemetry_enabled: bool = True
    opentelemetry_tracer: str = "switchyard"
    log_events: bool = True
    request: RequestObservabilityConfig = RequestObservabilityConfig()
    websocket: WebSocketObservabilityConfig = WebSocketObservabilityConfig()


class _ObservationContext:
    __slots__ = ("log_fields", "span", "stack", "start")

    def __init__(
        self,
        *,
        start: float,
        stack: ExitStack | None,
        span: Any | None,
        log_fields: Mapping[str, Any] | None = None,
    ) -> None:
        self.start = start
        self.stack = stack
        self.span = span
        self.log_fields = dict(log_fields or {})

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.start) * 1000.0, 3)

    def close(self, error: BaseException | None = None) -> None:
        if self.stack is None:
            return
        if error is None:
            self.stack.__exit__(None, None, None)
        else:
            self.stack.__exit__(type(error), error, error.__traceback__)


class Observability:
    """Coordinate tracing and structured event logging."""

    def __init__(self, config: ObservabilityConfig | None = None) -> None:
        self.config = config or ObservabilityConfig()
        self._logger = logging.getLogger("switchyard.observability")
        self._tracer = None
        if self.config.enabled and self.config.opentelemetry_enabled:
            self._tracer = trace.get_tracer(self.config.opentelemetry_tracer)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _log(self, context: _ObservationContext | None, event: str, extra: Mapping[str, Any] | None = None) -> None:
        if not self.config.log_events:
            return
        payload: dict[str, Any] = {"event": event}
        if context is not None:
            payload.update(context.log_fields)
        if extra:
            for key, value in extra.items():
                if value is not None:
                    payload[key] = value
        self._logger.info(json.dumps(payload, separators=(",", ":")))

    def _start(
        self,
        span_name: str,
        *,
        kind: SpanKind,
        attributes: Mapping[str, Any],
        log_fields: Mapping[str, Any],
    ) -> _ObservationContext | None:
        if not self.enabled:
            return None
        stack: ExitStack | None = None
        span = None
        if self._tracer is not None:
            stack = ExitStack()
            span = stack.enter_context(self._tracer.start_as_current_span(span_name, kind=kind))
            for key, value in attributes.items():
                span.set_attribute(key, value)
        return _ObservationContext(start=time.perf_counter(), stack=stack, span=span, log_fields=log_fields)

    @staticmethod
    def _record_error(span: Any | None, error: BaseException) -> None:
        if span is None:
            return
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, description=str(error)))

    # ------------------------------------------------------------------ http
    def on_request_start(self, ctx: "Context") -> _ObservationContext | None:
        context = self._start(
            self.config.request.span_name,
            kind=SpanKind.SERVER,
            attributes={"http.method": ctx.method, "http.target": ctx.path},
            log_fields={"method": ctx.method, "path": ctx.path},
        )
        if context is not None:
            self._log(context, "request.start")
        return context

    def on_request_success(self, context: _ObservationContext | None, response: "Response") -> "Response":
        if context is None:
            return response
        if context.span is not None:
            context.span.set_attribute("http.status_code", response.status)
            context.span.set_status(Status(StatusCode.OK))
        self._log(context, "request.success", {"status": response.status, "duration_ms": context.elapsed_ms()})
        context.close()
        return response

    def on_request_error(
        self,
        context: _ObservationContext | None,
        error: BaseException,
        *,
        status_code: int | None = None,
    ) -> None:
        if context is None:
            return
        if context.span is not None and status_code is not None:
            context.span.set_attribute("http.status_code", status_code)
        self._record_error(context.span, error)
        self._log(
            context,
            "request.error",
            {
                "status": status_code,
                "error": type(error).__name__,
                "detail": str(error),
                "duration_ms": context.elapsed_ms(),
            },
        )
        context.close(error)

    # ------------------------------------------------------------------ websocket
    def on_websocket_open(self, path: str) -> _ObservationContext | None:
        context = self._start(
            self.config.websocket.span_name,
            kind=SpanKind.SERVER,
            attributes={"websocket.path": path},
            log_fields={"path": path},
        )
        if context is not None:
            self._log(context, "websocket.open")
        return context

    def on_websocket_close(self, context: _ObservationContext | None, *, code: int | None = None) -> None:
        if context is None:
            return
        if context.span is not None:
            if code is not None:
                context.span.set_attribute("websocket.close_code", code)
            context.span.set_status(Status(StatusCode.OK))
        self._log(context, "websocket.close", {"code": code, "duration_ms": context.elapsed_ms()})
        context.close()

    def on_websocket_error(self, context: _ObservationContext | None, error: BaseException) -> None:
        if context is None:
            return
        self._record_error(context.span, error)
        self._log(
            context,
            "websocket.error",
            {"error": type(error).__name__, "detail": str(error), "duration_ms": context.elapsed_ms()},
        )
        context.close(error)


__all__ = [
    "Observability",
    "ObservabilityConfig",
    "RequestObservabilityConfig",
    "WebSocketObservabilityConfig",
]
