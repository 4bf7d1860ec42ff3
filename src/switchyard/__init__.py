"""Switchyard request-dispatch engine for HTTP and WebSocket handlers."""

from .application import Switchyard, SwitchyardApp
from .config import AppConfig
from .context import Context, UpgradeTransport
from .dispatcher import Dispatcher
from .exceptions import DispatchError, HTTPError, SwitchyardError, UpgradeError
from .middleware import Middleware
from .observability import Observability, ObservabilityConfig
from .responses import EmptyResponse, JSONResponse, PlainTextResponse, Response
from .routing import Route, RouteMatch, RouteTable
from .testing import TestClient
from .websockets import SocketData, WebSocket, WebSocketDisconnect, WebSocketEvents, WebSocketHandlers

__all__ = [
    "AppConfig",
    "Context",
    "DispatchError",
    "Dispatcher",
    "EmptyResponse",
    "HTTPError",
    "JSONResponse",
    "Middleware",
    "Observability",
    "ObservabilityConfig",
    "PlainTextResponse",
    "Response",
    "Route",
    "RouteMatch",
    "RouteTable",
    "SocketData",
    "Switchyard",
    "SwitchyardApp",
    "SwitchyardError",
    "TestClient",
    "UpgradeError",
    "UpgradeTransport",
    "WebSocket",
    "WebSocketDisconnect",
    "WebSocketEvents",
    "WebSocketHandlers",
]
