"""
API Handlers: Request Processing Logic

Implements:
- RetrievalHandler: nearest neighbors of one record, top records of a topic
- DivergenceHandler: in-memory divergence listing, sharded CSV export

Endpoints:
- GET /view/{urn}/{count}/json
- GET /topic/{topic}/{count}
- GET /divergenceJS
- GET /divergenceCSV
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from topicmesh.api.middleware import CorsMiddleware, LatencyMiddleware
from topicmesh.api.router import Request, Response, TopicMeshRouter
from topicmesh.core import constants as C
from topicmesh.core.config import TopicMeshConfig
from topicmesh.core.errors import QueryError
from topicmesh.core.types import Record
from topicmesh.index.topk import select_nearest, select_top_dimension
from topicmesh.observability.logging import StructuredLogger
from topicmesh.observability.metrics import PipelineMetrics
from topicmesh.pairwise.engine import PairwiseEngine
from topicmesh.pairwise.orchestrator import ExportOrchestrator
from topicmesh.storage.corpus import Corpus
from topicmesh.storage.protocols import VectorStoreProtocol

_log = StructuredLogger(__name__)


def _count_param(request: Request) -> Optional[int]:
    count = request.int_param("count")
    if count is None or count < 0:
        return None
    return count


def _view_item(record: Record, rank: int, distance: str) -> dict[str, Any]:
    return {"id": record.id, "rank": rank, "distance": distance, "text": record.text}


class RetrievalHandler:
    """
    Handler for single-query requests.

    Endpoints:
    - GET /view/{urn}/{count}/json: count nearest records to ``urn``
    - GET /topic/{topic}/{count}: count records with the largest weight
      on a 1-based topic
    """

    __slots__ = ("_store", "_config")

    def __init__(self, store: VectorStoreProtocol, config: TopicMeshConfig) -> None:
        self._store = store
        self._config = config

    async def view_json(self, request: Request) -> Response:
        """
        Nearest neighbors as JSON.

        Response:
            {
                "urn": "query id",
                "text": "query text",
                "items": [
                    {"id": "...", "rank": 0, "distance": "0", "text": "..."},
                    {"id": "...", "rank": 1, "distance": "0.40", "text": "..."}
                ]
            }
        """
        urn = request.path_params["urn"]
        count = _count_param(request)
        if count is None:
            return Response.from_error(QueryError.invalid_k(request.path_params["count"]))

        found = self._store.get(urn)
        if found.is_err():
            return Response.from_error(found.error)
        query = found.unwrap()

        # The query always holds rank 0; neighbors come from the other records
        items = [_view_item(query, 0, C.SELF_DISTANCE_LABEL)]
        if count > 0:
            others = (r for r in self._store.iterate() if r.id != query.id)
            result = select_nearest(query.vector, others, count - 1, self._config.metric)
            if result.is_err():
                return Response.from_error(result.error)
            for neighbor in result.unwrap():
                items.append(_view_item(
                    neighbor.record,
                    neighbor.rank + 1,
                    f"{neighbor.distance:.{C.RESPONSE_DISTANCE_DIGITS}f}",
                ))
        return Response.json({"urn": urn, "text": query.text, "items": items})

    async def topic(self, request: Request) -> Response:
        """
        Top records of one topic as plain text.

        One block per rank, blocks separated by a blank line:
            Rank 1:
            <id>
            Topic<t>: <weight * dim_weight> percent
            <text>
        """
        topic = request.int_param("topic")
        count = _count_param(request)
        if count is None:
            return Response.from_error(QueryError.invalid_k(request.path_params["count"]))
        total = self._store.dimension
        if topic is None or topic < 1 or topic > total:
            return Response.from_error(QueryError.invalid_dimension((topic or 0) - 1, total))

        result = select_top_dimension(
            self._store.iterate(), topic - 1, count, total_dimensions=total,
        )
        if result.is_err():
            return Response.from_error(result.error)

        blocks = [
            "\n".join((
                f"Rank {hit.rank + 1}:",
                hit.record.id,
                f"Topic{topic}: {hit.value * self._config.dim_weight:.{C.TOPIC_VALUE_DIGITS}f} percent",
                hit.record.text,
            ))
            for hit in result.unwrap()
        ]
        return Response.text("\n\n".join(blocks))


class DivergenceHandler:
    """
    Handler for whole-corpus pairwise requests.

    Endpoints:
    - GET /divergenceJS: every pair below the threshold, as JSON
    - GET /divergenceCSV: sharded CSV export, returns the run summary
    """

    __slots__ = ("_store", "_config", "_orchestrator", "_metrics")

    def __init__(
        self,
        store: VectorStoreProtocol,
        config: TopicMeshConfig,
        orchestrator: Optional[ExportOrchestrator] = None,
        metrics: Optional[PipelineMetrics] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._metrics = metrics or PipelineMetrics.register()
        self._orchestrator = orchestrator or ExportOrchestrator(config, metrics=self._metrics)

    async def divergence_json(self, request: Request) -> Response:
        """Response: [{"source": id, "target": id, "jsd": score}, ...]"""
        corpus = Corpus.from_store(self._store)
        engine = PairwiseEngine(
            corpus,
            metric=self._config.pairwise_metric,
            threshold=self._config.threshold,
            metrics=self._metrics,
        )
        loop = asyncio.get_running_loop()
        edges = await loop.run_in_executor(None, engine.compute_edges)
        _log.info("Divergence listing computed", records=len(corpus), edges=len(edges))
        return Response.json([edge.to_dict() for edge in edges])

    async def divergence_csv(self, request: Request) -> Response:
        """
        Run the sharded export.

        Status:
            200 every partition succeeded
            207 some partitions failed; their output is listed as partial
            500 nothing usable was written (ID map or every partition failed)
        """
        corpus = Corpus.from_store(self._store)
        result = await self._orchestrator.run_async(corpus)
        if result.is_err():
            return Response.from_error(result.error)

        summary = result.unwrap()
        if summary.succeeded:
            status = 200
        elif summary.partial:
            status = 207
        else:
            status = 500
        return Response.json(summary.to_dict(), status=status)


def build_router(
    store: VectorStoreProtocol,
    config: Optional[TopicMeshConfig] = None,
    orchestrator: Optional[ExportOrchestrator] = None,
    metrics: Optional[PipelineMetrics] = None,
) -> TopicMeshRouter:
    """Wire handlers and middleware onto a router."""
    config = config or TopicMeshConfig()
    metrics = metrics or PipelineMetrics.register()
    retrieval = RetrievalHandler(store, config)
    divergence = DivergenceHandler(store, config, orchestrator=orchestrator, metrics=metrics)

    router = TopicMeshRouter()
    router.use(CorsMiddleware())
    router.use(LatencyMiddleware(metrics))
    router.add("/view/{urn}/{count}/json", retrieval.view_json)
    router.add("/topic/{topic}/{count}", retrieval.topic)
    router.add("/divergenceJS", divergence.divergence_json)
    router.add("/divergenceCSV", divergence.divergence_csv)
    return router
