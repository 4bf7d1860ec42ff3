"""Route registration, HTTP dispatch and the WebSocket lifecycle."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable

from .context import Context
from .exceptions import DispatchError, UpgradeError
from .http import ANY, ROUTABLE_METHODS, WS, Status, normalize_method
from .middleware import Middleware, resolve_context
from .responses import EmptyResponse, Response
from .routing import RouteTable
from .websockets import SocketData, WebSocket, WebSocketEvents, WebSocketHandlers

logger = logging.getLogger(__name__)

Handler = Callable[[Context], Awaitable[Context] | Context]

UPGRADE_HEADER_INVALID = "Upgrade header is invalid"


def _options_ok(ctx: Context) -> Context:
    return ctx.send_text("ok")


class Dispatcher:
    """Turns registered handlers into routes and drives each exchange through them."""

    def __init__(self, routes: RouteTable | None = None, middleware: Middleware | None = None) -> None:
        self.routes = routes or RouteTable()
        self.middleware = middleware or Middleware()

    # ------------------------------------------------------------------ registration
    def register(self, method: str, path: str, handler: Handler) -> None:
        """Store ``handler`` for ``method`` at ``path``; last registration wins.

        Every concrete verb also installs an ``OPTIONS`` responder at ``path``
        replying ``"ok"``. ``ANY`` registers a catch-all without one.
        """

        method = normalize_method(method)
        if method not in ROUTABLE_METHODS:
            raise ValueError(f"Cannot register HTTP handler for method {method!r}")
        if method == ANY:
            self.routes.any(path, handler)
            logger.debug("registered %s %s", method, path)
            return
        self.routes.on(method, path, handler)
        if method != "OPTIONS":
            self.routes.on("OPTIONS", path, _options_ok)
        logger.debug("registered %s %s", method, path)

    def register_websocket(self, path: str, handlers: WebSocketHandlers) -> None:
        """Store ``handlers`` under ``WS`` and bridge ``GET path`` to the upgrade."""

        self.routes.ws(path, handlers)

        async def upgrade_bridge(ctx: Context) -> Context:
            data = SocketData(ctx=ctx)
            if handlers.upgrade is not None:
                ctx = await resolve_context(handlers.upgrade(ctx), handlers.upgrade)
            if ctx.is_locked():
                logger.debug("upgrade on %s abandoned by upgrade hook", ctx.path)
                return ctx
            if (ctx.header("upgrade") or "").lower() != "websocket":
                logger.debug("rejected upgrade on %s: invalid Upgrade header", ctx.path)
                return ctx.send_text(UPGRADE_HEADER_INVALID, status=int(Status.BAD_REQUEST)).force_send()
            if not ctx.upgrade(data):
                raise UpgradeError(ctx.path)
            return ctx

        self.routes.on("GET", path, upgrade_bridge)
        logger.debug("registered websocket %s", path)

    # ------------------------------------------------------------------ websocket events
    def handle_websocket(self, connection: WebSocket) -> WebSocketEvents:
        """Resolve the handler set for ``connection`` and bind its lifecycle events."""

        path = connection.data.path
        match = self.routes.find(WS, path)
        if match.handler is None:
            raise DispatchError(f'No WebSocket handlers registered for path "{path}"')
        handlers: WebSocketHandlers = match.handler

        async def open() -> None:
            if handlers.open is not None:
                await _settle(handlers.open(connection))

        async def message(payload: str | bytes) -> None:
            if handlers.message is not None:
                await _settle(handlers.message(connection, payload))

        async def close() -> None:
            if handlers.close is not None:
                await _settle(handlers.close(connection))

        return WebSocketEvents(open=open, message=message, close=close)

    # ------------------------------------------------------------------ http
    async def handle(self, ctx: Context) -> Response:
        method = ctx.method
        if method == WS:
            raise DispatchError("WebSocket method called on HTTP route handler")
        if method == "HEAD":
            method = "GET"

        match = self.routes.find(method, ctx.path)
        if match.handler is None:
            logger.debug("no route for %s %s", ctx.method, ctx.path)
            return Response(status=int(Status.NOT_FOUND))

        ctx.params = dict(match.params)

        ctx = await self.middleware.run_before(ctx)
        if not ctx.is_locked():
            ctx = await resolve_context(match.handler(ctx), match.handler)
        if not ctx.is_locked():
            ctx = await self.middleware.run_after(ctx)

        response = ctx.res if ctx.res is not None else EmptyResponse()
        if ctx.method == "HEAD":
            response = response.without_body()
        ctx.res = response
        return response


async def _settle(result: Awaitable[Any] | Any) -> None:
    if inspect.isawaitable(result):
        await result


__all__ = ["Dispatcher", "Handler", "UPGRADE_HEADER_INVALID"]
