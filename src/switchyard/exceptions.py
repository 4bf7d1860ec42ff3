"""Framework exception types."""

from __future__ import annotations

from typing import Any

from .serialization import json_encode


class SwitchyardError(Exception):
    """Base error type."""


class HTTPError(SwitchyardError):
    """Structured HTTP error that is msgspec serializable."""

    def __init__(self, status: int, detail: Any) -> None:
        super().__init__(status, detail)
        self.status = status
        self.detail = detail

    def to_response_body(self) -> bytes:
        return json_encode({"error": {"status": self.status, "detail": self.detail}})


class DispatchError(SwitchyardError):
    """Raised when the dispatcher is driven in a way it never supports.

    These indicate an integration bug (for example dispatching the ``WS``
    pseudo-verb over HTTP) rather than a request-level condition.
    """


class UpgradeError(SwitchyardError):
    """Raised when the transport refuses an otherwise valid WebSocket upgrade."""

    def __init__(self, path: str) -> None:
        super().__init__(f'Unable to upgrade request on path "{path}"')
        self.path = path
