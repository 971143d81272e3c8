"""CLI entry point for request-mutator."""

import sys
from datetime import datetime
from pathlib import Path

import httpx
from rich.console import Console

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import RequestBuildError, TemplateError
from core.normalize import parse_raw_request, template_from_json
from core.protocols import MutationLogger
from core.request_types import NormalizedRequest
from services.assembler import RequestAssembler
from services.upstream import RequestCollector, UpstreamSender
from ui.console import ConsoleReporter
from ui.log_utils import FileLogger, write_cli_log

console = Console()

RUN_FLAGS = ("--send", "--log")


def main():
    """Main CLI entry point."""
    config = load_config()
    args = sys.argv[1:]

    if not args or args[0] in ("--help", "-h"):
        _print_help()
        return

    if args[0] == "--config":
        console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
        return

    if args[0] == "--serve":
        _serve(config)
        return

    unknown = [flag for flag in args[1:] if flag not in RUN_FLAGS]
    if unknown:
        console.print(f"[red][ERROR][/red] Unknown option: {unknown[0]}")
        sys.exit(2)

    reporter = ConsoleReporter(log_requests="--log" in args)
    template_path = Path(args[0])
    try:
        template = load_template(template_path, config, reporter)
    except (OSError, TemplateError) as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    start_time = datetime.now()
    write_cli_log("STARTUP", "Expansion started", template=template_path)
    try:
        emitted = _run(template, config, reporter, send="--send" in args)
    except RequestBuildError as e:
        reporter.log_error(str(e))
        sys.exit(1)
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Expansion finished", duration=str(duration))

    console.print(reporter.summary())
    console.print(f"[bold]{emitted}[/bold] requests constructed")


def load_template(path: Path, config: Config, logger: MutationLogger) -> NormalizedRequest:
    """Load a JSON template or a raw HTTP request file."""
    if path.suffix == ".json":
        return template_from_json(path.read_text(), logger)
    return parse_raw_request(path.read_bytes(), scheme=config.template.default_scheme)


def _run(template: NormalizedRequest, config: Config, reporter: ConsoleReporter, *, send: bool) -> int:
    assembler = RequestAssembler(config.analyzer, reporter)
    if not send:
        return assembler.analyze(template, RequestCollector())

    with httpx.Client(timeout=config.sender.timeout, verify=config.sender.verify_tls) as client:
        sender = UpstreamSender(client, reporter)
        return assembler.analyze(template, sender)


def _serve(config: Config) -> None:
    import uvicorn

    app = create_app(config, FileLogger())
    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)
    console.print(f"[bold]Listening on[/bold] http://{config.server.host}:{config.server.port}")
    write_cli_log("STARTUP", "Server started", port=config.server.port)
    try:
        server.run()
    finally:
        write_cli_log("SHUTDOWN", "Server stopped")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Request Mutator[/bold cyan]

Expands one template request into one request per mutation point.

[bold]Usage:[/bold]
    request-mutator TEMPLATE           Print every constructed request (dry run)
    request-mutator TEMPLATE --send    Send every constructed request
    request-mutator TEMPLATE --log     Also write each request to logs/requests/
    request-mutator --serve            Start the HTTP expansion service
    request-mutator --config           Show config location
    request-mutator --help             Show this help

[bold]Templates:[/bold]
    *.json      JSON template (scheme, host, path, method, headers, cookies,
                query, and one of multipart / form / json / xml / raw)
    otherwise   Raw HTTP/1.x request as saved by an intercepting proxy
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
