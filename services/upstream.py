"""Consumers that deliver or keep constructed requests."""

import httpx

from core.protocols import MutationLogger


class RequestCollector:
    """Keep every constructed request in emission order."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> None:
        self.requests.append(request)


class UpstreamSender:
    """Send each constructed request and record the response status.

    Responses are not analyzed; a request that fails in transport is logged
    and recorded as None.
    """

    def __init__(self, client: httpx.Client, logger: MutationLogger) -> None:
        self._client = client
        self._logger = logger
        self.statuses: list[int | None] = []

    def __call__(self, request: httpx.Request) -> None:
        try:
            response = self._client.send(request)
        except httpx.TimeoutException:
            self._logger.log_error(f"Upstream timeout: {request.method} {request.url}")
            self.statuses.append(None)
            return
        except httpx.RequestError as e:
            self._logger.log_error(f"Upstream connection error: {request.method} {request.url}: {e}")
            self.statuses.append(None)
            return
        response.close()
        self.statuses.append(response.status_code)
