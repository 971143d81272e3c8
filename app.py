"""FastAPI application factory."""

from fastapi import FastAPI, Request

from api.handlers import handle_expand
from core.config import Config
from core.protocols import MutationLogger


def create_app(config: Config, logger: MutationLogger) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Request Mutator", version="0.1.0")

    @app.post("/v1/requests/expand")
    async def expand_requests(request: Request):
        return await handle_expand(request, config, logger)

    return app
