"""HTTP utilities, status code helpers and verb constants."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus as _HTTPStatus


class Status(IntEnum):
    """Enumeration of the HTTP status codes used within the framework."""

    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    PAYLOAD_TOO_LARGE = 413
    INTERNAL_SERVER_ERROR = 500


WIRE_METHODS: tuple[str, ...] = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
)

# Internal registry keys; never seen on the wire.
ANY = "ANY"
WS = "WS"

ROUTABLE_METHODS: frozenset[str] = frozenset(WIRE_METHODS) | {ANY}


def normalize_method(method: str) -> str:
    """Return ``method`` upper-cased and stripped."""

    return method.strip().upper()


def ensure_status(status: int | Status) -> int:
    """Normalize ``status`` to an ``int`` and ensure it is within the HTTP range."""

    code = int(status)
    if code < 100 or code > 599:
        raise ValueError(f"Invalid HTTP status code: {status}")
    return code


def reason_phrase(status: int | Status) -> str:
    """Return the HTTP reason phrase for ``status`` if known."""

    try:
        code = ensure_status(status)
    except ValueError:
        return "Unknown Status"
    try:
        return _HTTPStatus(code).phrase
    except ValueError:  # pragma: no cover - non-standard status codes
        return "Unknown Status"


def is_client_error(status: int | Status) -> bool:
    """Return ``True`` if ``status`` is a 4xx code."""

    code = ensure_status(status)
    return 400 <= code < 500


def is_server_error(status: int | Status) -> bool:
    """Return ``True`` if ``status`` is a 5xx code."""

    code = ensure_status(status)
    return 500 <= code < 600


__all__ = [
    "ANY",
    "ROUTABLE_METHODS",
    "Status",
    "WIRE_METHODS",
    "WS",
    "ensure_status",
    "is_client_error",
    "is_server_error",
    "normalize_method",
    "reason_phrase",
]
