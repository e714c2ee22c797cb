"""Dependency Injection container for the cluster configuration service.

This module provides a centralized dependency injection container using the
dependency-injector library. Every component is a singleton for the lifetime
of the process: the API key cache and the shared HTTP client only work if
there is exactly one of each.

Usage:
    # Production setup
    container = create_container(config)
    orchestrator = container.services.orchestrator()

    # Test setup with a fake executor
    container = create_container(config)
    container.clients.executor.override(providers.Object(fake_executor))
    orchestrator = container.services.orchestrator()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from dependency_injector import containers, providers

from clusterconf.api_keys import ApiKeyManager
from clusterconf.health import HealthChecker
from clusterconf.http_executor import Gateway, RequestExecutor
from clusterconf.orchestrator import BatchOrchestrator, StartupSweep
from clusterconf.pipeline import StepPipeline
from clusterconf.store import ConfigStore

if TYPE_CHECKING:
    from clusterconf.config import Config


def create_executor(config: Config) -> RequestExecutor:
    """Create the shared request executor with the configured timeout."""
    return RequestExecutor(timeout=httpx.Timeout(config.request_timeout, connect=10.0))


def create_gateway(config: Config) -> Gateway:
    """Create the gateway descriptor from the configured URL.

    Raises:
        ValueError: If the gateway URL has no host.
    """
    return Gateway.from_url(config.gateway_url)


def create_store(config: Config) -> ConfigStore:
    return ConfigStore(config.config_file)


def create_key_manager(
    config: Config, executor: RequestExecutor, gateway: Gateway
) -> ApiKeyManager:
    return ApiKeyManager(
        executor,
        gateway,
        admin_user=config.dashboard_admin_user,
        admin_password=config.dashboard_admin_password,
    )


def create_pipeline(
    config: Config,
    executor: RequestExecutor,
    gateway: Gateway,
    key_manager: ApiKeyManager,
) -> StepPipeline:
    return StepPipeline(
        executor,
        gateway,
        key_manager,
        datasource_type=config.datasource_type,
    )


def create_health_checker(config: Config) -> HealthChecker:
    return HealthChecker(config.gateway_url, timeout=config.health_check_timeout)


def create_startup_sweep(
    config: Config, orchestrator: BatchOrchestrator
) -> StartupSweep | None:
    """Create the startup sweep, or None when it is disabled."""
    if not config.startup_sweep_enabled:
        return None
    return StartupSweep(orchestrator, delay=config.startup_sweep_delay)


class ClientsContainer(containers.DeclarativeContainer):
    """Container for outbound HTTP plumbing (executor and gateway)."""

    config: providers.Dependency[Config] = providers.Dependency()

    executor = providers.Singleton(create_executor, config)
    gateway = providers.Singleton(create_gateway, config)


class ServicesContainer(containers.DeclarativeContainer):
    """Container for the store and the provisioning services."""

    config: providers.Dependency[Config] = providers.Dependency()
    clients = providers.DependenciesContainer()

    store = providers.Singleton(create_store, config)
    key_manager = providers.Singleton(
        create_key_manager, config, clients.executor, clients.gateway
    )
    pipeline = providers.Singleton(
        create_pipeline, config, clients.executor, clients.gateway, key_manager
    )
    orchestrator = providers.Singleton(BatchOrchestrator, store, pipeline, key_manager)
    health_checker = providers.Singleton(create_health_checker, config)


class ClusterConfContainer(containers.DeclarativeContainer):
    """Main dependency injection container.

    ClusterConfContainer
    ├── config (Config)
    ├── clients (ClientsContainer)
    │   ├── executor
    │   └── gateway
    ├── services (ServicesContainer)
    │   ├── store
    │   ├── key_manager
    │   ├── pipeline
    │   ├── orchestrator
    │   └── health_checker
    └── startup_sweep
    """

    config: providers.Dependency[Config] = providers.Dependency()

    clients = providers.Container(
        ClientsContainer,
        config=config,
    )

    services = providers.Container(
        ServicesContainer,
        config=config,
        clients=clients,
    )

    startup_sweep = providers.Singleton(create_startup_sweep, config, services.orchestrator)


def create_container(config: Config | None = None) -> ClusterConfContainer:
    """Create and configure the main DI container.

    Args:
        config: Optional configuration. If not provided, loads from environment.

    Returns:
        Fully configured ClusterConfContainer ready for use.
    """
    from clusterconf.config import load_config

    if config is None:
        config = load_config()

    container = ClusterConfContainer()
    container.config.override(providers.Object(config))
    return container


__all__ = [
    "ClientsContainer",
    "ClusterConfContainer",
    "ServicesContainer",
    "create_container",
    "create_executor",
    "create_gateway",
    "create_health_checker",
    "create_key_manager",
    "create_pipeline",
    "create_startup_sweep",
    "create_store",
]
