"""FastAPI route handlers."""

import httpx
from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from core.config import AnalyzerOptions, Config
from core.exceptions import RequestBuildError, TemplateError
from core.normalize import RequestTemplate
from core.protocols import MutationLogger
from core.request_types import NormalizedRequest, Part, Transform
from core.transform import TransformProducer
from services.assembler import RequestAssembler
from services.upstream import RequestCollector
from ui.log_utils import describe_request

MAX_BODY_SIZE = 10 * 1024 * 1024  # 10MB


class TransformModel(BaseModel):
    part: Part
    key: str
    value: str


class ExpandRequest(BaseModel):
    """Body of POST /v1/requests/expand.

    Without explicit transforms the mutation sequence is produced from the
    options (or the configured defaults).
    """

    template: RequestTemplate
    options: AnalyzerOptions | None = None
    transforms: list[TransformModel] | None = None


async def handle_expand(
    request: Request,
    config: Config,
    logger: MutationLogger,
) -> Response:
    """Handle /v1/requests/expand: return every constructed request as JSON."""
    raw_body = await request.body()
    if len(raw_body) > MAX_BODY_SIZE:
        return JSONResponse({"error": "Request body too large"}, status_code=413)

    try:
        payload = ExpandRequest.model_validate_json(raw_body)
        template = payload.template.to_request(logger)
    except ValidationError as e:
        return JSONResponse({"error": f"Invalid request: {e}"}, status_code=400)
    except TemplateError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    options = payload.options or config.analyzer
    explicit = None
    if payload.transforms is not None:
        explicit = [Transform(t.part, t.key, t.value) for t in payload.transforms]

    try:
        requests, transforms = await run_in_threadpool(_expand, template, options, explicit, logger)
    except RequestBuildError as e:
        logger.log_error(str(e))
        return JSONResponse({"error": str(e)}, status_code=422)

    return JSONResponse(
        {
            "requests": [describe_request(r) for r in requests],
            "emitted": len(requests),
            "skipped": len(transforms) - len(requests),
        }
    )


def _expand(
    template: NormalizedRequest,
    options: AnalyzerOptions,
    transforms: list[Transform] | None,
    logger: MutationLogger,
) -> tuple[list[httpx.Request], list[Transform]]:
    """Produce and assemble every request; runs in the worker threadpool."""
    if transforms is None:
        transforms = TransformProducer(options).create(template)
    collector = RequestCollector()
    RequestAssembler(options, logger).emit(template, transforms, collector)
    return collector.requests, transforms
