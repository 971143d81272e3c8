"""Shared logging utilities."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx

from core.request_types import Transform

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "mutator.log"
BODY_PREVIEW_LIMIT = 4096


def describe_request(request: httpx.Request) -> dict[str, Any]:
    """Summarize a constructed request as JSON-serializable data."""
    content = request.content
    return {
        "method": request.method,
        "url": str(request.url),
        "headers": [[key, value] for key, value in _header_items(request.headers)],
        "content_length": request.headers.get("content-length"),
        "content_type": request.headers.get("content-type"),
        "body": content.decode("utf-8", errors="replace"),
    }


def write_request_log(
    transform: Transform,
    request: httpx.Request,
    *,
    log_root: Path = LOG_ROOT,
) -> Path:
    """Write a single constructed request log entry."""
    described = describe_request(request)
    described["headers"] = _redact_headers(_header_items(request.headers))
    if len(described["body"]) > BODY_PREVIEW_LIMIT:
        described["body"] = described["body"][:BODY_PREVIEW_LIMIT] + "..."
    payload = {
        "timestamp": _utc_now(),
        "part": transform.part.value,
        "key": transform.key,
        "value": transform.value,
        "request": described,
    }
    return _write_json(log_root / "requests" / transform.part.value, payload)


def write_cli_log(
    level: str,
    message: str,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    CLI_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with CLI_LOG_FILE.open("a") as f:
        f.write(line)


class FileLogger:
    """MutationLogger writing to the rolling log, plus JSON request logs if enabled."""

    def __init__(self, *, log_requests: bool = False, log_root: Path = LOG_ROOT) -> None:
        self._log_requests = log_requests
        self._log_root = log_root

    def log_request(self, transform: Transform, request: httpx.Request) -> None:
        if self._log_requests:
            write_request_log(transform, request, log_root=self._log_root)

    def log_skipped(self, transform: Transform, error: Exception) -> None:
        write_cli_log(
            "WARNING",
            f"Could not create request for fuzzing: {error}",
            part=transform.part.value,
            key=transform.key,
        )

    def log_warning(self, message: str) -> None:
        write_cli_log("WARNING", message)

    def log_error(self, message: str) -> None:
        write_cli_log("ERROR", message)


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _header_items(headers: httpx.Headers) -> list[tuple[str, str]]:
    """Header pairs with their original casing."""
    return [(key.decode(headers.encoding), value.decode(headers.encoding)) for key, value in headers.raw]


def _redact_headers(headers: list[tuple[str, str]]) -> list[list[str]]:
    """Redact sensitive headers, keeping duplicates and order."""
    redacted = []
    for key, value in headers:
        name = key.lower()
        if "key" in name or "authorization" in name or name in ("cookie", "set-cookie"):
            redacted.append([key, _mask(value)])
        else:
            redacted.append([key, value])
    return redacted


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
