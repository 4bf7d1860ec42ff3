"""Response primitives."""

from __future__ import annotations

from typing import Any, Iterable

import msgspec
from msgspec import structs

from .exceptions import HTTPError
from .http import Status, reason_phrase
from .serialization import json_encode

Headers = tuple[tuple[str, str], ...]


class Response(msgspec.Struct, frozen=True):
    """Immutable response payload."""

    status: int = int(Status.OK)
    headers: Headers = ()
    body: bytes = b""
    reason: str | None = None

    @property
    def status_text(self) -> str:
        """Return the explicit reason phrase or the standard one for ``status``."""

        if self.reason is not None:
            return self.reason
        return reason_phrase(self.status)

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return default

    def with_headers(self, headers: Iterable[tuple[str, str]]) -> "Response":
        """Return a new response with ``headers`` appended."""

        return structs.replace(self, headers=self.headers + tuple(headers))

    def without_body(self) -> "Response":
        """Return a copy carrying the same status, reason and headers but no body."""

        return structs.replace(self, body=b"")


def PlainTextResponse(
    text: str,
    *,
    status: int = int(Status.OK),
    headers: Iterable[tuple[str, str]] | None = None,
) -> Response:
    """Create a plain text response."""

    default_headers = (("content-type", "text/plain; charset=utf-8"),)
    combined = default_headers + tuple(headers or ())
    return Response(status=status, headers=combined, body=text.encode("utf-8"))


def JSONResponse(
    data: Any,
    *,
    status: int = int(Status.OK),
    headers: Iterable[tuple[str, str]] | None = None,
) -> Response:
    """Create a JSON response encoded via :mod:`msgspec`."""

    default_headers = (("content-type", "application/json"),)
    combined = default_headers + tuple(headers or ())
    return Response(status=status, headers=combined, body=json_encode(data))


def EmptyResponse(
    status: int = int(Status.NO_CONTENT),
    *,
    headers: Iterable[tuple[str, str]] | None = None,
) -> Response:
    """Create a response without a body."""

    return Response(status=status, headers=tuple(headers or ()))


def exception_to_response(exc: HTTPError) -> Response:
    return Response(
        status=exc.status,
        headers=(("content-type", "application/json"),),
        body=exc.to_response_body(),
    )


__all__ = [
    "EmptyResponse",
    "JSONResponse",
    "PlainTextResponse",
    "Response",
    "exception_to_response",
]
