"""FastAPI application factory for the provisioning API.

The application owns the lifecycle of two resources through its lifespan:

- the optional ``StartupSweep``, started once the server accepts requests and
  cancelled on shutdown if it is still pending;
- the shared ``RequestExecutor``, whose HTTP client is closed on shutdown.

CORS is open to any origin because the registration form is served from a
different origin than this API.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clusterconf.logging import get_logger
from clusterconf.server.routes import create_routes

if TYPE_CHECKING:
    from clusterconf.health import HealthChecker
    from clusterconf.http_executor import RequestExecutor
    from clusterconf.orchestrator import BatchOrchestrator, StartupSweep

logger = get_logger(__name__)


def create_app(
    orchestrator: BatchOrchestrator,
    *,
    health_checker: HealthChecker | None = None,
    executor: RequestExecutor | None = None,
    startup_sweep: StartupSweep | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        orchestrator: Orchestrator serving the registration endpoints.
        health_checker: Optional checker for the readiness probe.
        executor: Optional executor to close on shutdown.
        startup_sweep: Optional sweep to run in the background after startup.

    Returns:
        A configured FastAPI application. ``app.state.startup_sweep`` holds the
        sweep so callers can await it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if startup_sweep is not None:
            startup_sweep.start()
        try:
            yield
        finally:
            if startup_sweep is not None:
                await startup_sweep.cancel()
            if executor is not None:
                await executor.close()
            logger.info("Provisioning API shut down")

    app = FastAPI(
        title="Cluster Configuration Service",
        description="Registers clusters and wires them into the monitoring stack",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.startup_sweep = startup_sweep
    app.include_router(create_routes(orchestrator, health_checker))

    return app


__all__ = ["create_app"]
