"""Bootstrap and dependency wiring for the cluster configuration service.

This module provides the startup and initialization logic, including:
- Configuration loading with CLI overrides
- Logging setup
- Gateway URL validation
- Container creation and FastAPI application assembly

The bootstrap module acts as the composition root, wiring together all
dependencies before the server starts.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from clusterconf.config import Config, load_config
from clusterconf.container import ClusterConfContainer, create_container
from clusterconf.http_executor import Gateway
from clusterconf.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)


class BootstrapContext:
    """Container for all bootstrapped dependencies."""

    def __init__(self, config: Config, container: ClusterConfContainer) -> None:
        """Initialize the bootstrap context.

        Args:
            config: Application configuration.
            container: DI container built from ``config``.
        """
        self.config = config
        self.container = container


def apply_cli_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    """Apply CLI argument overrides to the configuration.

    Args:
        config: Base configuration loaded from environment.
        parsed: Parsed command-line arguments.

    Returns:
        New Config instance with CLI overrides applied.
    """
    overrides: dict[str, Any] = {}

    if parsed.config_dir:
        overrides["config_dir"] = parsed.config_dir
    if parsed.admin_user:
        overrides["dashboard_admin_user"] = parsed.admin_user
    if parsed.admin_password:
        overrides["dashboard_admin_password"] = parsed.admin_password
    if parsed.host:
        overrides["server_host"] = parsed.host
    if parsed.port:
        overrides["server_port"] = parsed.port
    if parsed.gateway_url:
        overrides["gateway_url"] = parsed.gateway_url.rstrip("/")
    if parsed.log_level:
        overrides["log_level"] = parsed.log_level

    if overrides:
        return replace(config, **overrides)
    return config


def bootstrap(parsed: argparse.Namespace) -> BootstrapContext | None:
    """Bootstrap the application with all dependencies.

    Args:
        parsed: Parsed command-line arguments.

    Returns:
        BootstrapContext with the configured container, or None if the
        configuration is unusable (logged).
    """
    config = load_config(parsed.env_file)
    config = apply_cli_overrides(config, parsed)

    setup_logging(config.log_level, json_format=config.log_json)

    try:
        Gateway.from_url(config.gateway_url)
    except ValueError as e:
        logger.error("Invalid gateway URL: %s", e, extra={"gateway_url": config.gateway_url})
        return None

    logger.info(
        "Using config file %s and gateway %s", config.config_file, config.gateway_url
    )
    return BootstrapContext(config=config, container=create_container(config))


def create_app_from_context(context: BootstrapContext) -> FastAPI:
    """Create the FastAPI application from a bootstrap context.

    Args:
        context: Bootstrap context with the configured container.

    Returns:
        FastAPI application with the startup sweep attached when enabled.
    """
    from clusterconf.server import create_app

    container = context.container
    startup_sweep = container.startup_sweep()
    if startup_sweep is None:
        logger.info("Startup sweep disabled")

    return create_app(
        container.services.orchestrator(),
        health_checker=container.services.health_checker(),
        executor=container.clients.executor(),
        startup_sweep=startup_sweep,
    )


__all__ = [
    "BootstrapContext",
    "apply_cli_overrides",
    "bootstrap",
    "create_app_from_context",
]
