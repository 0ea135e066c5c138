"""
HTTP Router: Request Routing and Handler Dispatch

Transport-agnostic routing for the query surface. Any server (or a test)
builds a Request, awaits ``dispatch`` and writes the Response back.

Supports:
- Path parameter extraction ("/view/{urn}/{count}/json")
- Query string parsing
- Middleware chain
- Method-based dispatch
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Sequence
from urllib.parse import parse_qs, unquote, urlparse

from topicmesh.core.errors import ErrorCode, TopicMeshError

logger = logging.getLogger(__name__)

# Error code -> HTTP status; anything unlisted is a server error
_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.CORPUS_RECORD_NOT_FOUND: 404,
    ErrorCode.CORPUS_INSUFFICIENT_SIZE: 400,
    ErrorCode.QUERY_INVALID_K: 400,
    ErrorCode.QUERY_INVALID_DIMENSION: 400,
    ErrorCode.CONFIG_UNKNOWN_METRIC: 400,
    ErrorCode.CONFIG_INVALID: 400,
}


@dataclass
class Request:
    """HTTP request representation."""
    method: str
    path: str
    query_params: dict[str, list[str]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    path_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw(
        cls,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        body: bytes = b"",
    ) -> Request:
        """Parse request from raw HTTP data."""
        parsed = urlparse(url)
        return cls(
            method=method.upper(),
            path=parsed.path,
            query_params=parse_qs(parsed.query),
            headers={k.lower(): v for k, v in (headers or {}).items()},
            body=body,
        )

    def json(self) -> Any:
        """Parse body as JSON."""
        if not self.body:
            return None
        return json.loads(self.body)

    def query(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first query parameter value."""
        values = self.query_params.get(key, [])
        return values[0] if values else default

    def header(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get header value (case-insensitive)."""
        return self.headers.get(key.lower(), default)

    def int_param(self, name: str) -> Optional[int]:
        """Path parameter as int, None when missing or not an integer."""
        try:
            return int(self.path_params[name])
        except (KeyError, ValueError):
            return None


@dataclass
class Response:
    """HTTP response representation."""
    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(
        cls,
        data: Any,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> Response:
        """Create JSON response."""
        body = json.dumps(data, default=str).encode()
        h = dict(headers or {})
        h["content-type"] = "application/json"
        return cls(status=status, body=body, headers=h)

    @classmethod
    def text(cls, content: str, status: int = 200) -> Response:
        """Create plain-text response."""
        return cls(
            status=status,
            body=content.encode("utf-8"),
            headers={"content-type": "text/plain; charset=utf-8"},
        )

    @classmethod
    def error(cls, message: str, status: int = 400, code: str = "BAD_REQUEST") -> Response:
        """Create error response."""
        return cls.json({"error": message, "code": code}, status=status)

    @classmethod
    def from_error(cls, error: TopicMeshError) -> Response:
        """Map a package error to its HTTP status."""
        status = _STATUS_BY_CODE.get(error.code, 500)
        return cls.error(error.message, status=status, code=error.code.name)

    @classmethod
    def not_found(cls) -> Response:
        return cls.error("Not found", status=404, code="NOT_FOUND")

    @classmethod
    def method_not_allowed(cls) -> Response:
        return cls.error("Method not allowed", status=405, code="METHOD_NOT_ALLOWED")

    def json_body(self) -> Any:
        """Decode a JSON body; used by callers and tests."""
        return json.loads(self.body)


# Handler function signature
Handler = Callable[[Request], Awaitable[Response]]

# Middleware function signature
Middleware = Callable[[Request, Handler], Awaitable[Response]]


@dataclass
class Route:
    """Route definition."""
    method: str
    pattern: re.Pattern
    handler: Handler
    param_names: list[str]

    @classmethod
    def create(cls, method: str, path: str, handler: Handler) -> Route:
        """Compile "{name}" segments into named groups."""
        param_names: list[str] = []

        def replace_param(match: re.Match) -> str:
            param_names.append(match.group(1))
            return r"(?P<" + match.group(1) + r">[^/]+)"

        pattern_str = "^" + re.sub(r"\{(\w+)\}", replace_param, path) + "$"
        return cls(
            method=method.upper(),
            pattern=re.compile(pattern_str),
            handler=handler,
            param_names=param_names,
        )

    def match(self, method: str, path: str) -> Optional[dict[str, str]]:
        if method.upper() != self.method:
            return None
        match = self.pattern.match(path)
        if not match:
            return None
        return {k: unquote(v) for k, v in match.groupdict().items()}


class TopicMeshRouter:
    """
    HTTP request router.

    Usage:
        router = TopicMeshRouter()

        @router.get("/view/{urn}/{count}/json")
        async def view(request: Request) -> Response:
            urn = request.path_params["urn"]
            ...

        response = await router.dispatch(Request.from_raw("GET", url))
    """

    __slots__ = ("_routes", "_middleware", "_prefix")

    def __init__(self, prefix: str = "") -> None:
        self._routes: list[Route] = []
        self._middleware: list[Middleware] = []
        self._prefix = prefix

    def route(
        self,
        path: str,
        methods: Sequence[str] = ("GET",),
    ) -> Callable[[Handler], Handler]:
        """Register route decorator."""
        def decorator(handler: Handler) -> Handler:
            for method in methods:
                self._routes.append(Route.create(method, self._prefix + path, handler))
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, ["GET"])

    def add(self, path: str, handler: Handler, methods: Sequence[str] = ("GET",)) -> None:
        """Register a bound handler without the decorator form."""
        self.route(path, methods)(handler)

    def use(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)

    def include(self, router: TopicMeshRouter) -> None:
        """Include routes from another router."""
        self._routes.extend(router._routes)

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    async def dispatch(self, request: Request) -> Response:
        """Route request to handler."""
        handler: Optional[Handler] = None
        for route in self._routes:
            params = route.match(request.method, request.path)
            if params is not None:
                request.path_params = params
                handler = route.handler
                break

        if handler is None:
            if any(route.pattern.match(request.path) for route in self._routes):
                return Response.method_not_allowed()
            return Response.not_found()

        final_handler = handler
        for mw in reversed(self._middleware):
            final_handler = _wrap_middleware(mw, final_handler)

        try:
            return await final_handler(request)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return Response.error(str(e), status=500, code=ErrorCode.INTERNAL_ERROR.name)


def _wrap_middleware(middleware: Middleware, handler: Handler) -> Handler:
    async def wrapped(request: Request) -> Response:
        return await middleware(request, handler)
    return wrapped
