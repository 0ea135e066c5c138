"""
API Middleware: Cross-Cutting Concerns

Provides:
- CorsMiddleware: Access-Control headers for browser clients
- LatencyMiddleware: per-endpoint request latency histogram
"""

from __future__ import annotations

from typing import Optional

from topicmesh.api.router import Handler, Request, Response
from topicmesh.observability.metrics import PipelineMetrics


class CorsMiddleware:
    """Adds Access-Control headers to every response."""

    __slots__ = ("_origin", "_methods")

    def __init__(self, origin: str = "*", methods: tuple[str, ...] = ("GET",)) -> None:
        self._origin = origin
        self._methods = methods

    async def __call__(self, request: Request, handler: Handler) -> Response:
        response = await handler(request)
        response.headers["Access-Control-Allow-Origin"] = self._origin
        response.headers["Access-Control-Allow-Methods"] = ", ".join(self._methods)
        return response


class LatencyMiddleware:
    """
    Records handler latency.

    Labels by the first path segment ("view", "topic", ...) so that
    record IDs in the path do not explode label cardinality.
    """

    __slots__ = ("_metrics",)

    def __init__(self, metrics: Optional[PipelineMetrics] = None) -> None:
        self._metrics = metrics or PipelineMetrics.register()

    async def __call__(self, request: Request, handler: Handler) -> Response:
        endpoint = request.path.strip("/").split("/", 1)[0] or "root"
        with self._metrics.query_latency.time(endpoint=endpoint):
            return await handler(request)
