"""Pytest configuration and shared fixtures."""

import pytest

from core.request_types import JSONBody, NormalizedRequest, Transform


class RecordingLogger:
    """MutationLogger that keeps everything it is told."""

    def __init__(self):
        self.requests = []
        self.skipped = []
        self.warnings = []
        self.errors = []

    def log_request(self, transform: Transform, request) -> None:
        self.requests.append((transform, request))

    def log_skipped(self, transform: Transform, error: Exception) -> None:
        self.skipped.append((transform, error))

    def log_warning(self, message: str) -> None:
        self.warnings.append(message)

    def log_error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Keep the rolling CLI log out of the working directory."""
    monkeypatch.setattr("ui.log_utils.CLI_LOG_FILE", tmp_path / "logs" / "mutator.log")
    return tmp_path / "logs"


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def json_template():
    return NormalizedRequest(
        scheme="https",
        host="api.example.com",
        path="/v1/users",
        method="POST",
        headers={
            "Content-Type": ["application/json"],
            "X-Trace": ["a", "b"],
        },
        cookies={"a": ["1"], "b": ["2"]},
        query_values={"page": ["1"], "sort": ["asc", "desc"]},
        body=JSONBody({"user": {"name": "alice"}, "id": 7}),
    )
