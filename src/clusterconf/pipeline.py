"""Per-descriptor provisioning pipeline.

``StepPipeline.run`` wires one cluster into the monitoring stack by running
these stages strictly in order:

1. ``DATASOURCE``: create the dashboard datasource, using the alias's API key.
2. ``CLUSTER_MONITOR``: register the cluster with the cluster-monitor API.
3. ``SYNC_GATEWAY``: register the Sync Gateway, when the descriptor has one.
4. ``METRICS_REGISTRATION``: register the cluster with the metrics backend.
5. ``METRICS_RELOAD``: make the metrics backend pick up the registration.

Resetting the API keys happens once per batch and is owned by
``BatchOrchestrator``, not by the pipeline.

A stage that fails aborts the remaining stages of that descriptor. Two
conflicts count as success because the desired state already exists: an
existing datasource and an already registered cluster.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from clusterconf.api_keys import ApiKeyManager
from clusterconf.descriptor import ClusterDescriptor
from clusterconf.errors import ConflictError, ConflictKind, ProvisioningError
from clusterconf.http_executor import (
    Gateway,
    RequestExecutor,
    basic_auth_header,
    bearer_auth_header,
)
from clusterconf.logging import get_logger

logger = get_logger(__name__)

DATASOURCES_PATH = "/grafana/api/datasources"
CLUSTER_MONITOR_PATH = "/couchbase/api/v1/clusters"
SYNC_GATEWAY_PATH = "/config/api/v1/sgw/add"
METRICS_CLUSTERS_PATH = "/config/api/v1/clusters/add"
METRICS_RELOAD_PATH = "/prometheus/-/reload"

SUCCESS_MESSAGE = "Cluster successfully configured"


class Stage(Enum):
    """Pipeline stages in execution order."""

    DATASOURCE = "datasource"
    CLUSTER_MONITOR = "cluster_monitor"
    SYNC_GATEWAY = "sync_gateway"
    METRICS_REGISTRATION = "metrics_registration"
    METRICS_RELOAD = "metrics_reload"


@dataclass(frozen=True)
class ProvisionOutcome:
    """Verdict for one descriptor.

    Attributes:
        identity: ``host:port`` of the descriptor.
        success: Whether every stage succeeded.
        message: Human-readable summary; names the descriptor on failure.
        completed_stages: Stages that finished before the pipeline stopped.
        failed_stage: The stage that failed, if any.
    """

    identity: str
    success: bool
    message: str
    completed_stages: tuple[Stage, ...] = field(default_factory=tuple)
    failed_stage: Stage | None = None

    @classmethod
    def failed(cls, descriptor: ClusterDescriptor, error: BaseException | str) -> ProvisionOutcome:
        """Outcome for a descriptor that failed before any stage ran."""
        return cls(
            identity=descriptor.identity,
            success=False,
            message=f"Error configuring cluster {descriptor.identity}: {error}",
        )


def _metrics_config(port: int | None) -> dict[str, int] | None:
    return None if port is None else {"metricsPort": port}


StageStep = Callable[[ClusterDescriptor], Awaitable[None]]


class StepPipeline:
    """Runs the provisioning stages for one descriptor at a time.

    The pipeline holds no per-descriptor state; the descriptor is passed to
    every stage, so one instance serves all concurrent runs of a batch.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        gateway: Gateway,
        key_manager: ApiKeyManager,
        datasource_type: str = "couchbase-datasource",
    ) -> None:
        self._executor = executor
        self._gateway = gateway
        self._key_manager = key_manager
        self._datasource_type = datasource_type

    def _stages(self) -> list[tuple[Stage, StageStep]]:
        return [
            (Stage.DATASOURCE, self.add_datasource),
            (Stage.CLUSTER_MONITOR, self.register_cluster),
            (Stage.SYNC_GATEWAY, self.register_sync_gateway),
            (Stage.METRICS_REGISTRATION, self.register_metrics),
            (Stage.METRICS_RELOAD, self.reload_metrics),
        ]

    async def run(self, descriptor: ClusterDescriptor) -> ProvisionOutcome:
        """Provision one descriptor.

        Never raises for provisioning failures; they are reported in the
        returned outcome.
        """
        completed: list[Stage] = []
        for stage, step in self._stages():
            ctx_logger = logger.with_context(
                cluster=descriptor.identity, alias=descriptor.display_alias, stage=stage.value
            )
            ctx_logger.debug("Starting stage")
            try:
                await step(descriptor)
            except ProvisioningError as e:
                message = f"Error configuring cluster {descriptor.identity}: {stage.value} failed: {e}"
                ctx_logger.error("Stage failed: %s", e)
                return ProvisionOutcome(
                    identity=descriptor.identity,
                    success=False,
                    message=message,
                    completed_stages=tuple(completed),
                    failed_stage=stage,
                )
            completed.append(stage)

        logger.info(
            "Cluster %s configured",
            descriptor.identity,
            extra={"cluster": descriptor.identity, "alias": descriptor.display_alias},
        )
        return ProvisionOutcome(
            identity=descriptor.identity,
            success=True,
            message=SUCCESS_MESSAGE,
            completed_stages=tuple(completed),
        )

    async def _post(self, path: str, body: Any, headers: dict[str, str] | None = None) -> None:
        await self._executor.execute(self._gateway.request("POST", path, headers), body)

    async def add_datasource(self, descriptor: ClusterDescriptor) -> None:
        """Create the dashboard datasource named after the descriptor's alias."""
        alias = descriptor.display_alias
        key = await self._key_manager.create_or_get_key(alias)

        scheme = "https" if descriptor.use_tls else "http"
        body = {
            "name": alias,
            "type": self._datasource_type,
            "access": "proxy",
            "url": f"{scheme}://{descriptor.hostname}:{descriptor.effective_dashboard_port}",
            "basicAuth": True,
            "basicAuthUser": descriptor.server_username,
            "secureJsonData": {"basicAuthPassword": descriptor.server_password},
        }
        try:
            await self._post(DATASOURCES_PATH, body, {"Authorization": bearer_auth_header(key)})
        except ConflictError as e:
            if e.kind is not ConflictKind.DATASOURCE_EXISTS:
                raise
            logger.info(
                "Datasource '%s' already exists",
                alias,
                extra={"cluster": descriptor.identity, "stage": Stage.DATASOURCE.value},
            )

    async def register_cluster(self, descriptor: ClusterDescriptor) -> None:
        """Register the cluster with the cluster-monitor API."""
        body = {
            "host": descriptor.identity,
            "user": descriptor.server_username,
            "password": descriptor.server_password,
        }
        auth = basic_auth_header(descriptor.monitor_username, descriptor.monitor_password)
        try:
            await self._post(CLUSTER_MONITOR_PATH, body, {"Authorization": auth})
        except ConflictError as e:
            if e.kind is not ConflictKind.CLUSTER_ALREADY_REGISTERED:
                raise
            logger.info(
                "Cluster already registered with the cluster monitor",
                extra={"cluster": descriptor.identity, "stage": Stage.CLUSTER_MONITOR.value},
            )

    async def register_sync_gateway(self, descriptor: ClusterDescriptor) -> None:
        """Register the descriptor's Sync Gateway; no-op without one."""
        sgw = descriptor.sync_gateway
        if sgw is None:
            return
        body = {
            "hostname": sgw.hostname,
            "SgwConfig": {"username": sgw.username, "password": sgw.password},
            "metricsConfig": _metrics_config(sgw.metrics_port),
        }
        await self._post(SYNC_GATEWAY_PATH, body)

    async def register_metrics(self, descriptor: ClusterDescriptor) -> None:
        """Register the cluster as a scrape target of the metrics backend."""
        body = {
            "hostname": descriptor.hostname,
            "couchbaseConfig": {
                "username": descriptor.server_username,
                "password": descriptor.server_password,
                "managementPort": descriptor.management_port,
                "useTLS": descriptor.use_tls,
            },
            "metricsConfig": _metrics_config(descriptor.metrics_port),
        }
        await self._post(METRICS_CLUSTERS_PATH, body)

    async def reload_metrics(self, descriptor: ClusterDescriptor) -> None:
        """Trigger a configuration reload of the metrics backend."""
        await self._post(METRICS_RELOAD_PATH, None)


__all__ = [
    "CLUSTER_MONITOR_PATH",
    "DATASOURCES_PATH",
    "METRICS_CLUSTERS_PATH",
    "METRICS_RELOAD_PATH",
    "SUCCESS_MESSAGE",
    "SYNC_GATEWAY_PATH",
    "ProvisionOutcome",
    "Stage",
    "StepPipeline",
]
