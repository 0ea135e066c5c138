"""
API module: Routing, middleware and request handlers.
"""

from topicmesh.api.router import Request, Response, Route, TopicMeshRouter
from topicmesh.api.middleware import CorsMiddleware, LatencyMiddleware
from topicmesh.api.handlers import DivergenceHandler, RetrievalHandler, build_router

__all__ = [
    "Request",
    "Response",
    "Route",
    "TopicMeshRouter",
    "CorsMiddleware",
    "LatencyMiddleware",
    "RetrievalHandler",
    "DivergenceHandler",
    "build_router",
]
