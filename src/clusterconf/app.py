"""Core application runner for the cluster configuration service.

This module parses the command line, bootstraps dependencies and serves the
FastAPI application with uvicorn until the process is stopped.
"""

from __future__ import annotations

import uvicorn

from clusterconf.bootstrap import bootstrap, create_app_from_context
from clusterconf.cli import parse_args
from clusterconf.logging import get_logger

logger = get_logger(__name__)


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Optional list of command-line arguments.

    Returns:
        Exit code for the application.
    """
    parsed = parse_args(args)

    context = bootstrap(parsed)
    if context is None:
        # Bootstrap failed (logged internally)
        return 1

    config = context.config
    app = create_app_from_context(context)

    logger.info("Starting server on %s:%s", config.server_host, config.server_port)
    uvicorn.run(
        app,
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        access_log=False,
        log_config=None,
    )
    return 0


__all__ = ["main"]
