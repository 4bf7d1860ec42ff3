"""Application core."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping

import msgspec

from .config import AppConfig
from .context import Context, UpgradeTransport
from .dispatcher import Dispatcher, Handler
from .exceptions import HTTPError
from .http import Status, is_client_error, is_server_error
from .middleware import Hook
from .observability import Observability
from .responses import Response, exception_to_response
from .websockets import ASGIWebSocketTransport, WebSocketDisconnect, WebSocketHandlers

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[Mapping[str, Any]]]
Send = Callable[[Mapping[str, Any]], Awaitable[None]]


class SwitchyardApp:
    """Central application object."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        dispatcher: Dispatcher | None = None,
        observability: Observability | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.dispatcher = dispatcher or Dispatcher()
        self.observability = observability or Observability(self.config.observability)
        self._startup_hooks: list[Callable[[], Awaitable[None] | None]] = []
        self._shutdown_hooks: list[Callable[[], Awaitable[None] | None]] = []

    # ------------------------------------------------------------------ routing
    def route(self, path: str, *, methods: Iterable[str]) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            for method in methods:
                self.dispatcher.register(method, path, func)
            return func

        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("GET",))

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("POST",))

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("PUT",))

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("PATCH",))

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("DELETE",))

    def options(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("OPTIONS",))

    def any(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, methods=("ANY",))

    def websocket(
        self,
        path: str,
        handlers: WebSocketHandlers | None = None,
        *,
        upgrade: Callable[..., Any] | None = None,
        open: Callable[..., Any] | None = None,
        message: Callable[..., Any] | None = None,
        close: Callable[..., Any] | None = None,
    ) -> WebSocketHandlers:
        """Register WebSocket ``handlers`` (or the individual callbacks) for ``path``."""

        if handlers is None:
            handlers = WebSocketHandlers(upgrade=upgrade, open=open, message=message, close=close)
        elif any(callback is not None for callback in (upgrade, open, message, close)):
            raise ValueError("Pass either a WebSocketHandlers instance or individual callbacks, not both")
        self.dispatcher.register_websocket(path, handlers)
        return handlers

    # ------------------------------------------------------------------ middleware
    def before(self, hook: Hook) -> Hook:
        return self.dispatcher.middleware.before(hook)

    def after(self, hook: Hook) -> Hook:
        return self.dispatcher.middleware.after(hook)

    # ------------------------------------------------------------------ lifecycle
    def on_startup(self, func: Callable[[], Awaitable[None] | None]) -> Callable[[], Awaitable[None] | None]:
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[[], Awaitable[None] | None]) -> Callable[[], Awaitable[None] | None]:
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # ------------------------------------------------------------------ request handling
    async def dispatch(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_string: str | None = None,
        body: bytes | None = None,
        transport: UpgradeTransport | None = None,
    ) -> Response:
        ctx = Context(
            method=method,
            path=path,
            headers=headers,
            query_string=query_string,
            body=body,
            transport=transport,
        )
        observation = self.observability.on_request_start(ctx)
        try:
            response = await self.dispatcher.handle(ctx)
        except HTTPError as exc:
            response = exception_to_response(exc)
            if ctx.method == "HEAD":
                response = response.without_body()
        except Exception as exc:
            status = getattr(exc, "status", None)
            status_code = int(status) if isinstance(status, int) else int(Status.INTERNAL_SERVER_ERROR)
            self.observability.on_request_error(observation, exc, status_code=status_code)
            raise
        return self.observability.on_request_success(observation, response)

    # ------------------------------------------------------------------ interface adapters
    async def __call__(self, scope: Mapping[str, Any], receive: Receive, send: Send) -> None:
        scope_type = scope.get("type")
        if scope_type == "http":
            await self._handle_http(scope, receive, send)
            return
        if scope_type == "websocket":
            await self._handle_websocket(scope, receive, send)
            return
        raise RuntimeError("SwitchyardApp only supports HTTP and WebSocket scopes")

    async def _handle_http(self, scope: Mapping[str, Any], receive: Receive, send: Send) -> None:
        headers = _decode_headers(scope.get("headers", []))
        try:
            body = await self._read_body(headers, receive)
        except HTTPError as exc:
            response = exception_to_response(exc)
            if str(scope["method"]).upper() == "HEAD":
                response = response.without_body()
            await _send_response(response, send)
            return
        response = await self.dispatch(
            scope["method"],
            scope["path"],
            headers=headers,
            query_string=(scope.get("query_string") or b"").decode("latin-1"),
            body=body,
        )
        await _send_response(response, send)

    async def _read_body(self, headers: Mapping[str, str], receive: Receive) -> bytes:
        max_body_bytes = self.config.max_request_body_bytes
        if max_body_bytes is not None:
            content_length = headers.get("content-length")
            if content_length:
                try:
                    declared_length = int(content_length)
                except ValueError:
                    raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_content_length"}) from None
                if declared_length < 0:
                    raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_content_length"})
                if declared_length > max_body_bytes:
                    raise HTTPError(Status.PAYLOAD_TOO_LARGE, {"detail": "request_body_too_large"})
        buffer = bytearray()
        while True:
            message = await receive()
            message_type = message.get("type")
            if message_type == "http.disconnect":
                break
            if message_type != "http.request":
                continue
            chunk = message.get("body", b"")
            if chunk:
                if max_body_bytes is not None and len(buffer) + len(chunk) > max_body_bytes:
                    raise HTTPError(Status.PAYLOAD_TOO_LARGE, {"detail": "request_body_too_large"})
                buffer.extend(chunk)
            if not message.get("more_body", False):
                break
        return bytes(buffer)

    async def _handle_websocket(self, scope: Mapping[str, Any], receive: Receive, send: Send) -> None:
        initial = await receive()
        message_type = initial.get("type")
        if message_type == "websocket.disconnect":
            return
        if message_type != "websocket.connect":
            await send({"type": "websocket.close", "code": 4400})
            return

        transport = ASGIWebSocketTransport(scope, receive, send)
        response = await self.dispatch(
            "GET",
            scope.get("path", ""),
            headers=_decode_headers(scope.get("headers", [])),
            query_string=(scope.get("query_string") or b"").decode("latin-1"),
            transport=transport,
        )
        websocket = transport.connection
        if websocket is None:
            code = _status_to_websocket_close(response.status)
            logger.debug("websocket handshake on %s refused with %s", scope.get("path"), response.status)
            await send({"type": "websocket.close", "code": code})
            return

        events = self.dispatcher.handle_websocket(websocket)
        observation = self.observability.on_websocket_open(websocket.path)
        close_code: int | None = None
        error: Exception | None = None
        try:
            await websocket.accept()
            await events.open()
            while not websocket.closed:
                try:
                    frame = await websocket.receive()
                except WebSocketDisconnect as exc:
                    close_code = exc.code
                    break
                if frame.get("type") != "websocket.receive":
                    continue
                text = frame.get("text")
                await events.message(text if text is not None else bytes(frame.get("bytes") or b""))
        except Exception as exc:
            error = exc
        # close runs once per opened session, even after a failing handler
        try:
            await events.close()
        except Exception as exc:
            if error is None:
                error = exc
            else:
                logger.exception("websocket close handler failed on %s", websocket.path)
        if error is not None:
            self.observability.on_websocket_error(observation, error)
            await websocket.close(code=1011)
            raise error
        self.observability.on_websocket_close(observation, code=close_code)
        if not websocket.closed:
            await websocket.close()


class Switchyard(SwitchyardApp):
    """Convenience subclass exposing configuration helpers."""

    @classmethod
    def from_config(cls, config: AppConfig | Mapping[str, Any]) -> "Switchyard":
        if isinstance(config, AppConfig):
            return cls(config=config)
        return cls(config=msgspec.convert(config, type=AppConfig))


def _decode_headers(raw: Iterable[tuple[bytes, bytes]]) -> dict[str, str]:
    return {key.decode("latin-1").lower(): value.decode("latin-1") for key, value in raw}


async def _send_response(response: Response, send: Send) -> None:
    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in response.headers],
        }
    )
    await send({"type": "http.response.body", "body": response.body})


def _status_to_websocket_close(status: int | Status) -> int:
    code = int(status)
    mapping = {
        400: 4400,
        401: 4401,
        403: 4403,
        404: 4404,
    }
    if code in mapping:
        return mapping[code]
    if is_client_error(code):
        return 4400
    if is_server_error(code):
        return 1011
    return 1008


__all__ = ["Switchyard", "SwitchyardApp"]
