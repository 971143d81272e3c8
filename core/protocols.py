"""Shared protocol definitions."""

from collections.abc import Callable
from typing import Protocol

import httpx

from core.request_types import Transform

# Receives every constructed request and owns it afterwards.
RequestConsumer = Callable[[httpx.Request], None]


class MutationLogger(Protocol):
    """Protocol for the logging sink injected into the assembler."""

    def log_request(self, transform: Transform, request: httpx.Request) -> None: ...
    def log_skipped(self, transform: Transform, error: Exception) -> None: ...
    def log_warning(self, message: str) -> None: ...
    def log_error(self, message: str) -> None: ...
