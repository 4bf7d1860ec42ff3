"""Application configuration objects."""

from __future__ import annotations

from msgspec import Struct

from .observability import ObservabilityConfig


class AppConfig(Struct, frozen=True):
    """Typed configuration for a :class:`~switchyard.application.SwitchyardApp` instance."""

    name: str = "switchyard"
    max_request_body_bytes: int | None = 1_048_576
    observability: ObservabilityConfig = ObservabilityConfig()
