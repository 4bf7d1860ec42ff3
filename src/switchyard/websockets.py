"""WebSocket utilities."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar, cast

import msgspec

from .context import Context
from .serialization import json_decode, json_encode

T = TypeVar("T")

Receive = Callable[[], Awaitable[Mapping[str, Any]]]
Send = Callable[[Mapping[str, Any]], Awaitable[None]]


class WebSocketDisconnect(Exception):
    """Raised when the client disconnects from the WebSocket."""

    def __init__(self, code: int | None = None, reason: str | None = None) -> None:
        message = "WebSocket disconnected"
        if code is not None:
            message = f"{message} ({code})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.code = code
        self.reason = reason


@dataclass(slots=True, frozen=True)
class WebSocketHandlers:
    """Callbacks for one WebSocket path; a missing callback is a no-op.

    ``upgrade`` runs on the HTTP :class:`Context` before the handshake and may
    lock it to refuse the upgrade. ``open``, ``message`` and ``close`` run on
    the live connection.
    """

    upgrade: Callable[[Context], Awaitable[Context] | Context] | None = None
    open: Callable[["WebSocket"], Awaitable[None] | None] | None = None
    message: Callable[["WebSocket", str | bytes], Awaitable[None] | None] | None = None
    close: Callable[["WebSocket"], Awaitable[None] | None] | None = None


@dataclass(slots=True, frozen=True)
class SocketData:
    """Links a live connection back to the HTTP exchange that opened it."""

    ctx: Context

    @property
    def path(self) -> str:
        return self.ctx.path


@dataclass(slots=True, frozen=True)
class WebSocketEvents:
    open: Callable[[], Awaitable[None]]
    message: Callable[[str | bytes], Awaitable[None]]
    close: Callable[[], Awaitable[None]]


class WebSocket:
    """Asynchronous helper around the ASGI WebSocket interface."""

    def __init__(
        self,
        *,
        scope: Mapping[str, Any],
        receive: Receive,
        send: Send,
        data: SocketData,
    ) -> None:
        self.scope = scope
        self._receive = receive
        self._send = send
        self.data = data
        self._accepted = False
        self._closed = False
        self.subprotocols: tuple[str, ...] = tuple(scope.get("subprotocols") or ())

    @property
    def path(self) -> str:
        return self.data.path

    @property
    def accepted(self) -> bool:
        return self._accepted

    @property
    def closed(self) -> bool:
        return self._closed

    async def accept(
        self,
        *,
        subprotocol: str | None = None,
        headers: Iterable[tuple[str, str]] | None = None,
    ) -> None:
        if self._accepted:
            return
        message: dict[str, Any] = {"type": "websocket.accept"}
        if subprotocol is not None:
            message["subprotocol"] = subprotocol
        if headers:
            message["headers"] = [(k.encode("latin-1"), v.encode("latin-1")) for k, v in headers]
        await self._send(message)
        self._accepted = True

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        if self._closed:
            return
        payload: dict[str, Any] = {"type": "websocket.close", "code": code}
        if reason:
            payload["reason"] = reason
        await self._send(payload)
        self._closed = True

    async def receive(self) -> Mapping[str, Any]:
        message = await self._receive()
        if message.get("type") == "websocket.disconnect":
            self._closed = True
            raise WebSocketDisconnect(
                code=cast(int | None, message.get("code")),
                reason=cast(str | None, message.get("reason")),
            )
        return message

    async def receive_text(self) -> str:
        message = await self.receive()
        text = message.get("text")
        if text is None:
            raise TypeError("Expected text WebSocket frame")
        return cast(str, text)

    async def receive_bytes(self) -> bytes:
        message = await self.receive()
        data = message.get("bytes")
        if data is None:
            raise TypeError("Expected binary WebSocket frame")
        return bytes(cast(bytes | bytearray | memoryview, data))

    async def receive_json(self, type: type[T] | None = None) -> T | Any:
        message = await self.receive()
        text = message.get("text")
        if text is not None:
            payload = json_decode(text.encode("utf-8"))
        else:
            payload = json_decode(cast(bytes, message.get("bytes") or b""))
        if type is None:
            return payload
        return msgspec.convert(payload, type=type)

    async def send_text(self, data: str) -> None:
        await self._ensure_ready()
        await self._send({"type": "websocket.send", "text": data})

    async def send_bytes(self, data: bytes | bytearray | memoryview) -> None:
        await self._ensure_ready()
        await self._send({"type": "websocket.send", "bytes": bytes(data)})

    async def send_json(self, data: Any) -> None:
        await self._ensure_ready()
        await self._send({"type": "websocket.send", "text": json_encode(data).decode("utf-8")})

    async def _ensure_ready(self) -> None:
        if self._closed:
            raise RuntimeError("WebSocket connection is closed")
        if not self._accepted:
            await self.accept()


class ASGIWebSocketTransport:
    """Upgrade primitive backed by an ASGI ``websocket`` scope.

    The ASGI server has already performed the byte-level handshake, so the
    upgrade only binds the session data to a :class:`WebSocket`; accepting the
    socket is left to the caller. A connection can be upgraded once.
    """

    def __init__(self, scope: Mapping[str, Any], receive: Receive, send: Send) -> None:
        self._scope = scope
        self._receive = receive
        self._send = send
        self.connection: WebSocket | None = None

    def upgrade(self, ctx: Context, data: SocketData) -> bool:
        if self.connection is not None:
            return False
        self.connection = WebSocket(scope=self._scope, receive=self._receive, send=self._send, data=data)
        return True


__all__ = [
    "ASGIWebSocketTransport",
    "SocketData",
    "WebSocket",
    "WebSocketDisconnect",
    "WebSocketEvents",
    "WebSocketHandlers",
]
