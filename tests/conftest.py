"""Shared pytest fixtures for clusterconf tests.

Fixtures build the provisioning stack on top of ``FakeExecutor`` and a config
store in ``tmp_path``; individual tests script the executor's responses.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from clusterconf.api_keys import ApiKeyManager
from clusterconf.http_executor import Gateway
from clusterconf.orchestrator import BatchOrchestrator
from clusterconf.pipeline import StepPipeline
from clusterconf.store import ConfigStore
from tests.helpers import make_gateway
from tests.mocks import FakeExecutor


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def gateway() -> Gateway:
    return make_gateway()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "clusters.json"


@pytest.fixture
def store(store_path: Path) -> ConfigStore:
    return ConfigStore(store_path)


@pytest.fixture
def key_manager(fake_executor: FakeExecutor, gateway: Gateway) -> ApiKeyManager:
    return ApiKeyManager(
        fake_executor,  # type: ignore[arg-type]
        gateway,
        admin_user="admin",
        admin_password="admin-secret",
    )


@pytest.fixture
def pipeline(
    fake_executor: FakeExecutor, gateway: Gateway, key_manager: ApiKeyManager
) -> StepPipeline:
    return StepPipeline(fake_executor, gateway, key_manager)  # type: ignore[arg-type]


@pytest.fixture
def orchestrator(
    store: ConfigStore, pipeline: StepPipeline, key_manager: ApiKeyManager
) -> BatchOrchestrator:
    return BatchOrchestrator(store, pipeline, key_manager)


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Restore root and package logger state after tests that call setup_logging."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    package_level = logging.getLogger("clusterconf").level
    httpx_level = logging.getLogger("httpx").level
    yield
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    logging.getLogger("clusterconf").setLevel(package_level)
    logging.getLogger("httpx").setLevel(httpx_level)
