"""Shared encoder contract."""

from typing import Any, Protocol

from core.request_types import EncodedBody, Transform


class BodyEncoder(Protocol):
    """Encode a template body with at most one mutation applied."""

    def encode(self, body: Any, transform: Transform | None) -> EncodedBody: ...
