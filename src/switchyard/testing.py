"""Testing helpers."""

from __future__ import annotations

from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from .application import SwitchyardApp
from .context import UpgradeTransport
from .responses import Response
from .serialization import json_encode


class TestClient:
    """Async test client that executes requests in-process."""

    __test__ = False

    def __init__(self, app: SwitchyardApp) -> None:
        self.app = app

    async def __aenter__(self) -> "TestClient":
        await self.app.startup()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.app.shutdown()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        body: bytes | None = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        transport: UpgradeTransport | None = None,
    ) -> Response:
        payload = body or b""
        request_headers = dict(headers or {})
        if json is not None:
            payload = json_encode(json)
            request_headers.setdefault("content-type", "application/json")
        return await self.app.dispatch(
            method,
            path,
            headers=request_headers,
            query_string=urlencode(query or {}, doseq=True),
            body=payload,
            transport=transport,
        )

    async def get(self, path: str, **kwargs: Any) -> Response:
        return await self.request("GET", path, **kwargs)

    async def head(self, path: str, **kwargs: Any) -> Response:
        return await self.request("HEAD", path, **kwargs)

    async def options(self, path: str, **kwargs: Any) -> Response:
        return await self.request("OPTIONS", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Response:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Response:
        return await self.request("DELETE", path, **kwargs)

    async def websocket(
        self,
        path: str,
        messages: Iterable[str | bytes] = (),
        *,
        headers: Mapping[str, str] | None = None,
        query_string: str = "",
    ) -> list[dict[str, Any]]:
        """Drive one WebSocket session through the ASGI interface.

        ``messages`` are delivered as client frames after the connection is
        established, followed by a normal disconnect. Returns every ASGI
        message the application sent.
        """

        request_headers = {"upgrade": "websocket", "connection": "upgrade"}
        request_headers.update({k.lower(): v for k, v in (headers or {}).items()})
        incoming: list[dict[str, Any]] = [{"type": "websocket.connect"}]
        for item in messages:
            if isinstance(item, str):
                incoming.append({"type": "websocket.receive", "text": item})
            else:
                incoming.append({"type": "websocket.receive", "bytes": bytes(item)})
        sent: list[dict[str, Any]] = []

        async def receive() -> Mapping[str, Any]:
            if incoming:
                return incoming.pop(0)
            return {"type": "websocket.disconnect", "code": 1000}

        async def send(message: Mapping[str, Any]) -> None:
            sent.append(dict(message))

        scope = {
            "type": "websocket",
            "path": path,
            "query_string": query_string.encode("latin-1"),
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in request_headers.items()],
            "subprotocols": [],
        }
        await self.app(scope, receive, send)
        return sent
