"""Assemble concrete requests from a template and a mutation sequence."""

import re
from collections.abc import Iterable

import httpx

from core.config import AnalyzerOptions
from core.encoders import BodyEncoder, default_encoders, encoder_for
from core.exceptions import MutationError, PartMutationError, RequestBuildError
from core.parts import mutate_path, mutate_values
from core.protocols import MutationLogger, RequestConsumer
from core.request_types import EncodedBody, NormalizedRequest, Part, Transform, keys_match
from core.transform import TransformProducer

# RFC 9110 token characters.
_METHOD_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class RequestAssembler:
    """Build one request per mutation and hand each to a consumer.

    Mutations are processed strictly in order. A mutation that cannot be
    applied is logged and skipped; a template that cannot form a request at
    all raises RequestBuildError and stops the sequence.
    """

    def __init__(
        self,
        options: AnalyzerOptions,
        logger: MutationLogger,
        producer: TransformProducer | None = None,
        encoders: dict[type, BodyEncoder] | None = None,
    ) -> None:
        self._logger = logger
        self._producer = producer or TransformProducer(options)
        self._encoders = encoders or default_encoders()

    def analyze(self, template: NormalizedRequest, consumer: RequestConsumer) -> int:
        """Mutate every field the options allow; return the number of requests emitted."""
        return self.emit(template, self._producer.create(template), consumer)

    def emit(
        self,
        template: NormalizedRequest,
        transforms: Iterable[Transform],
        consumer: RequestConsumer,
    ) -> int:
        """Build and emit one request per transform, in order."""
        emitted = 0
        for transform in transforms:
            try:
                request = self.build(template, transform)
            except MutationError as e:
                self._logger.log_skipped(transform, e)
                continue
            self._logger.log_request(transform, request)
            consumer(request)
            emitted += 1
        return emitted

    def build(self, template: NormalizedRequest, transform: Transform) -> httpx.Request:
        """Build the request for a single transform."""
        encoded = self._encode_body(template, transform)
        url = self._url(template, transform)

        header_items = [
            (key, value)
            for key, values in mutate_values(template.headers, Part.HEADERS, transform).items()
            for value in values
        ]
        try:
            headers = httpx.Headers(header_items, encoding="utf-8")
        except UnicodeEncodeError as e:
            raise PartMutationError(
                f"could not encode headers: {e}",
                part=transform.part.value,
                key=transform.key,
            ) from e
        if encoded is not None:
            self._set_body_headers(template, headers, encoded, transform)

        cookies = mutate_values(template.cookies, Part.COOKIES, transform)
        cookie_header = "; ".join(
            f"{name}={value}" for name, values in cookies.items() for value in values
        )
        if cookie_header and not transform.targets(Part.HEADERS, "Cookie"):
            headers["Cookie"] = cookie_header

        query = mutate_values(template.query_values, Part.QUERY_VALUES, transform)
        try:
            return httpx.Request(
                template.method,
                url,
                params=[(key, value) for key, values in query.items() for value in values],
                headers=headers,
                content=encoded.content if encoded is not None else None,
            )
        except (httpx.InvalidURL, UnicodeEncodeError) as e:
            raise PartMutationError(
                f"could not build mutated request: {e}",
                part=transform.part.value,
                key=transform.key,
            ) from e

    def _encode_body(self, template: NormalizedRequest, transform: Transform) -> EncodedBody | None:
        encoder = encoder_for(template.body, self._encoders)
        if encoder is None:
            return None
        return encoder.encode(template.body, transform)

    def _url(self, template: NormalizedRequest, transform: Transform) -> httpx.URL:
        if not _METHOD_TOKEN.match(template.method):
            raise RequestBuildError(f"invalid method {template.method!r}")
        base = f"{template.scheme}://{template.host}"
        try:
            url = httpx.URL(base + template.path)
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"invalid request URL {base + template.path!r}: {e}") from e
        if transform.part is not Part.PATH:
            return url

        path = mutate_path(template.path, transform)
        try:
            return httpx.URL(base + path)
        except httpx.InvalidURL as e:
            raise PartMutationError(
                f"mutated path is not a valid URL: {e}",
                part=transform.part.value,
                key=transform.key,
            ) from e

    @staticmethod
    def _set_body_headers(
        template: NormalizedRequest,
        headers: httpx.Headers,
        encoded: EncodedBody,
        transform: Transform,
    ) -> None:
        # A header targeted by the mutation keeps its mutated value.
        if not transform.targets(Part.HEADERS, "Content-Length"):
            explicit = any(keys_match(key, "Content-Length") for key in template.headers)
            if not (explicit and encoded.length):
                headers["Content-Length"] = str(encoded.length)
        if encoded.content_type and not transform.targets(Part.HEADERS, "Content-Type"):
            headers["Content-Type"] = encoded.content_type


def analyze_request(
    template: NormalizedRequest,
    options: AnalyzerOptions,
    consumer: RequestConsumer,
    logger: MutationLogger,
) -> int:
    """Emit every mutated request for a template; see RequestAssembler.analyze."""
    return RequestAssembler(options, logger).analyze(template, consumer)
