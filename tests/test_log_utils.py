import json
from io import StringIO

import httpx
from rich.console import Console

from core.exceptions import PathParseError
from core.request_types import Part, Transform
from ui import log_utils
from ui.console import ConsoleReporter
from ui.log_utils import FileLogger, describe_request, write_cli_log, write_request_log

TRANSFORM = Transform(Part.HEADERS, "X-Api-Key", "<probe>")


def _request(body: bytes = b'{"a":1}') -> httpx.Request:
    return httpx.Request(
        "POST",
        "https://example.com/items?q=1",
        headers=[
            ("X-Api-Key", "sk-1234567890abcdef"),
            ("Authorization", "short"),
            ("X-Trace", "a"),
            ("X-Trace", "b"),
            ("Content-Type", "application/json"),
        ],
        content=body,
    )


def test_describe_request():
    described = describe_request(_request())

    assert described["method"] == "POST"
    assert described["url"] == "https://example.com/items?q=1"
    assert ["X-Trace", "a"] in described["headers"]
    assert ["X-Trace", "b"] in described["headers"]
    assert described["content_length"] == "7"
    assert described["content_type"] == "application/json"
    assert described["body"] == '{"a":1}'


def test_write_request_log_redacts_and_truncates(tmp_path):
    body = b"x" * (log_utils.BODY_PREVIEW_LIMIT + 10)
    path = write_request_log(TRANSFORM, _request(body), log_root=tmp_path)

    assert path.parent == tmp_path / "requests" / "headers"
    entry = json.loads(path.read_text())
    assert entry["part"] == "headers"
    assert entry["key"] == "X-Api-Key"
    assert entry["value"] == "<probe>"
    headers = entry["request"]["headers"]
    assert ["X-Api-Key", "sk-123...cdef"] in headers
    assert ["Authorization", "***"] in headers
    assert headers.count(["X-Trace", "a"]) == 1
    assert entry["request"]["body"].endswith("...")
    assert len(entry["request"]["body"]) == log_utils.BODY_PREVIEW_LIMIT + 3


def test_write_cli_log(isolated_logs):
    write_cli_log("WARNING", "something odd", part="body", key="a.b")
    line = (isolated_logs / "mutator.log").read_text()
    assert "WARNING: something odd part=body key=a.b" in line


def test_file_logger(tmp_path, isolated_logs):
    logger = FileLogger(log_requests=True, log_root=tmp_path / "out")
    logger.log_request(TRANSFORM, _request())
    logger.log_skipped(Transform(Part.BODY, "a..b", "x"), PathParseError("bad path"))
    logger.log_error("upstream down")

    assert len(list((tmp_path / "out" / "requests" / "headers").iterdir())) == 1
    lines = (isolated_logs / "mutator.log").read_text().splitlines()
    assert "Could not create request for fuzzing: bad path part=body key=a..b" in lines[0]
    assert "ERROR: upstream down" in lines[1]


def test_file_logger_without_request_logs(tmp_path):
    FileLogger(log_root=tmp_path).log_request(TRANSFORM, _request())
    assert not (tmp_path / "requests").exists()


class TestConsoleReporter:
    def _reporter(self):
        out = StringIO()
        return ConsoleReporter(out=Console(file=out, width=200, color_system=None)), out

    def test_counts_and_summary(self):
        reporter, out = self._reporter()
        reporter.log_request(TRANSFORM, _request())
        reporter.log_request(Transform(Part.BODY, "a", "x"), _request())
        reporter.log_skipped(Transform(Part.BODY, "a..b", "x"), PathParseError("bad path"))

        text = out.getvalue()
        assert "POST https://example.com/items?q=1  [headers] X-Api-Key" in text
        assert "Skipped [body] a..b: bad path" in text

        summary = reporter.summary()
        assert summary.row_count == 2
        assert list(summary.columns[0].cells) == ["body", "headers"]
        assert list(summary.columns[1].cells) == ["1", "1"]
        assert list(summary.columns[2].cells) == ["1", "0"]

    def test_markup_in_messages_is_escaped(self):
        reporter, out = self._reporter()
        reporter.log_error("value [bold]x[/bold]")
        assert "[ERROR] value [bold]x[/bold]" in out.getvalue()


def test_cookie_headers_are_redacted(tmp_path):
    request = httpx.Request(
        "GET",
        "https://example.com/",
        headers=[("Cookie", "session=0123456789abcdef"), ("Set-Cookie", "id=1")],
    )
    path = write_request_log(Transform(Part.COOKIES, "session", "x"), request, log_root=tmp_path)
    entry = json.loads(path.read_text())
    headers = entry["request"]["headers"]
    assert ["Cookie", "sessio...cdef"] in headers
    assert ["Set-Cookie", "***"] in headers
