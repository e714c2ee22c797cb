"""Route handlers for the provisioning API.

Registration endpoints answer with ``text/plain`` messages, which is what the
registration form displays to the operator:

- POST /persistency/api/saveConfig: persist a descriptor (upsert).
- POST /persistency/api/configureCluster: persist and provision one descriptor.
- POST /api/loadAllClusters: run a sweep over the whole config store.
- GET /persistency/api/clusters: list stored descriptors, passwords redacted.

Health check endpoints provide:
- /health/live: Liveness probe (basic health check)
- /health/ready: Readiness probe (checks the dashboard and metrics backends)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from clusterconf.errors import PersistenceError
from clusterconf.logging import get_logger
from clusterconf.server.models import ClusterDescriptorRequest

if TYPE_CHECKING:
    from clusterconf.descriptor import ClusterDescriptor
    from clusterconf.health import HealthChecker
    from clusterconf.orchestrator import BatchOrchestrator

logger = get_logger(__name__)

SAVED_MESSAGE = "Cluster configuration saved successfully"
CONFIG_NOT_FOUND_MESSAGE = "Configuration file not found"


def create_routes(
    orchestrator: BatchOrchestrator,
    health_checker: HealthChecker | None = None,
) -> APIRouter:
    """Create the API router.

    Args:
        orchestrator: Orchestrator owning the config store and the pipeline.
        health_checker: Optional checker for the readiness probe. Without one
            the readiness probe always reports healthy.

    Returns:
        An APIRouter with all routes configured.
    """
    router = APIRouter()
    store = orchestrator.store

    def _to_descriptor(request: ClusterDescriptorRequest) -> ClusterDescriptor:
        try:
            return request.to_descriptor()
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @router.post("/persistency/api/saveConfig", response_class=PlainTextResponse)
    async def save_config(request: ClusterDescriptorRequest) -> PlainTextResponse:
        """Insert or replace a descriptor in the config store."""
        descriptor = _to_descriptor(request)
        try:
            store.upsert(descriptor)
        except PersistenceError as e:
            logger.error("Error saving cluster configuration: %s", e)
            return PlainTextResponse(f"Error saving cluster configuration: {e}", status_code=500)
        return PlainTextResponse(SAVED_MESSAGE)

    @router.post("/persistency/api/configureCluster", response_class=PlainTextResponse)
    async def configure_cluster(request: ClusterDescriptorRequest) -> PlainTextResponse:
        """Persist a descriptor and provision it right away."""
        descriptor = _to_descriptor(request)
        try:
            outcome = await orchestrator.configure_one(descriptor)
        except PersistenceError as e:
            logger.error("Error saving cluster %s: %s", descriptor.identity, e)
            return PlainTextResponse(
                f"Error configuring cluster {descriptor.identity}: {e}", status_code=500
            )
        status_code = 200 if outcome.success else 500
        return PlainTextResponse(outcome.message, status_code=status_code)

    @router.post("/api/loadAllClusters", response_class=PlainTextResponse)
    async def load_all_clusters() -> PlainTextResponse:
        """Provision every distinct descriptor in the config store."""
        if not store.exists():
            return PlainTextResponse(CONFIG_NOT_FOUND_MESSAGE, status_code=404)
        result = await orchestrator.run_sweep()
        return PlainTextResponse(result.message, status_code=200 if result.success else 500)

    @router.get("/persistency/api/clusters")
    async def list_clusters() -> list[dict[str, Any]]:
        """List stored descriptors with passwords redacted.

        Raises:
            HTTPException: 500 if the config store cannot be read.
        """
        try:
            descriptors = store.load()
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e)) from e
        return [d.to_dict(redact=True) for d in descriptors]

    @router.get("/health/live")
    async def health_live() -> dict[str, Any]:
        """Liveness probe endpoint.

        Does not check external dependencies.
        """
        if health_checker is not None:
            return health_checker.check_liveness().to_dict()
        return {"status": "healthy", "checks": {}}

    @router.get("/health/ready")
    async def health_ready() -> JSONResponse:
        """Readiness probe endpoint.

        Checks the dashboard and metrics backends through the gateway. Answers
        503 when every backend is down.

        Example response:
            {
                "status": "degraded",
                "timestamp": 1706472123.456,
                "checks": {
                    "dashboard": {"status": "up", "latency_ms": 12.5},
                    "metrics": {"status": "down", "latency_ms": 3.1, "error": "HTTP 503"}
                }
            }
        """
        if health_checker is None:
            return JSONResponse({"status": "healthy", "checks": {}})
        result = await health_checker.check_readiness()
        status_code = 503 if result.status == "unhealthy" else 200
        return JSONResponse(result.to_dict(), status_code=status_code)

    return router


__all__ = ["CONFIG_NOT_FOUND_MESSAGE", "SAVED_MESSAGE", "create_routes"]
