"""Per-exchange request context."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Any, Iterable, Mapping, MutableMapping, Protocol, TypeVar, get_type_hints
from urllib.parse import parse_qsl

import msgspec

from .http import Status, normalize_method
from .responses import EmptyResponse, JSONResponse, PlainTextResponse, Response
from .serialization import json_decode

if TYPE_CHECKING:
    from .websockets import SocketData

T = TypeVar("T")


class UpgradeTransport(Protocol):
    """Transport primitive able to promote an HTTP exchange to a WebSocket."""

    def upgrade(self, ctx: "Context", data: "SocketData") -> bool:  # pragma: no cover - protocol
        ...


@lru_cache(maxsize=None)
def _model_type_hints(model: type[Any]) -> Mapping[str, Any]:
    return get_type_hints(model)


class Context:
    """Mutable, single-owner record of one in-flight HTTP exchange.

    ``method`` keeps the method the client sent (``HEAD`` stays ``HEAD`` even
    though it is routed as ``GET``). Once :meth:`force_send` locks the context
    no further pipeline stage runs and ``res`` is sent as-is.
    """

    __slots__ = (
        "_body",
        "_json_cache",
        "_locked",
        "_query_params",
        "_raw_query",
        "extra",
        "headers",
        "method",
        "params",
        "path",
        "res",
        "transport",
    )

    def __init__(
        self,
        *,
        method: str,
        path: str,
        headers: Mapping[str, str] | None = None,
        query_string: str | None = None,
        body: bytes | None = None,
        transport: UpgradeTransport | None = None,
    ) -> None:
        self.method = normalize_method(method)
        self.path = path
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self.params: MutableMapping[str, str] = {}
        self.res: Response | None = None
        self.extra: MutableMapping[str, Any] = {}
        self.transport = transport
        self._raw_query = query_string or ""
        self._body = body or b""
        self._json_cache: Any = msgspec.UNSET
        self._query_params: MutableMapping[str, list[str]] | None = None
        self._locked = False

    def __repr__(self) -> str:
        return f"Context(method={self.method!r}, path={self.path!r}, locked={self._locked})"

    # ------------------------------------------------------------------ request access
    @property
    def query_params(self) -> MutableMapping[str, list[str]]:
        if self._query_params is None:
            parsed: MutableMapping[str, list[str]] = {}
            for key, value in parse_qsl(self._raw_query, keep_blank_values=True):
                parsed.setdefault(key, []).append(value)
            self._query_params = parsed
        return self._query_params

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def query(self, model: type[T]) -> T:
        """Decode query parameters into ``model`` using msgspec."""

        hints = _model_type_hints(model)
        converted: dict[str, Any] = {}
        for key, values in self.query_params.items():
            if not values or key not in hints:
                continue
            converted[key] = values[-1]
        return msgspec.convert(converted, type=model, strict=False)

    async def json(self, model: type[T] | None = None) -> T | Any:
        """Decode the JSON body using :mod:`msgspec`."""

        if self._json_cache is msgspec.UNSET:
            if not self._body:
                self._json_cache = None
            else:
                self._json_cache = json_decode(self._body)
        if model is None:
            return self._json_cache
        return msgspec.convert(self._json_cache, type=model)

    def text(self) -> str:
        return self._body.decode()

    def body(self) -> bytes:
        return self._body

    # ------------------------------------------------------------------ response helpers
    def send(self, response: Response) -> "Context":
        self.res = response
        return self

    def send_text(
        self,
        text: str,
        *,
        status: int = int(Status.OK),
        headers: Iterable[tuple[str, str]] | None = None,
    ) -> "Context":
        return self.send(PlainTextResponse(text, status=status, headers=headers))

    def send_json(
        self,
        data: Any,
        *,
        status: int = int(Status.OK),
        headers: Iterable[tuple[str, str]] | None = None,
    ) -> "Context":
        return self.send(JSONResponse(data, status=status, headers=headers))

    def send_raw(
        self,
        body: bytes,
        *,
        status: int = int(Status.OK),
        headers: Iterable[tuple[str, str]] | None = None,
    ) -> "Context":
        return self.send(Response(status=status, headers=tuple(headers or ()), body=bytes(body)))

    def send_empty(
        self,
        *,
        status: int = int(Status.NO_CONTENT),
        headers: Iterable[tuple[str, str]] | None = None,
    ) -> "Context":
        return self.send(EmptyResponse(status, headers=headers))

    # ------------------------------------------------------------------ lifecycle
    def force_send(self) -> "Context":
        """Lock the context so the current response is sent immediately."""

        self._locked = True
        return self

    def is_locked(self) -> bool:
        return self._locked

    def upgrade(self, data: "SocketData") -> bool:
        """Ask the transport to promote this exchange; ``False`` when it cannot."""

        if self.transport is None:
            return False
        return bool(self.transport.upgrade(self, data))


__all__ = ["Context", "UpgradeTransport"]
