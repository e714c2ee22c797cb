"""Test helper functions for clusterconf tests.

These helpers build descriptors and configuration with sensible defaults while
allowing customization.

Usage
=====

Import and use helpers directly in tests::

    from tests.helpers import make_config, make_descriptor, write_store

    def test_example(tmp_path):
        descriptor = make_descriptor(hostname="db2.example.com", alias="db2")
        write_store(tmp_path / "clusters.json", [descriptor])
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Any

from clusterconf.config import Config
from clusterconf.descriptor import ClusterDescriptor, SyncGatewayConfig
from clusterconf.http_executor import Gateway


def make_descriptor(
    hostname: str = "db1.example.com",
    management_port: int = 8091,
    alias: str = "db1",
    sgw_hostname: str | None = None,
    **overrides: Any,
) -> ClusterDescriptor:
    """Create a ClusterDescriptor for tests.

    Args:
        hostname: Cluster host.
        management_port: Management port.
        alias: Display alias.
        sgw_hostname: When set, attach a Sync Gateway on this host.
        **overrides: Any other ClusterDescriptor field.

    Returns:
        A ClusterDescriptor instance.
    """
    descriptor = ClusterDescriptor(
        hostname=hostname,
        management_port=management_port,
        server_username="Administrator",
        server_password="password",
        monitor_username="monitor",
        monitor_password="monitor-secret",
        alias=alias,
    )
    if sgw_hostname is not None:
        overrides.setdefault(
            "sync_gateway",
            SyncGatewayConfig(hostname=sgw_hostname, username="sgw", password="sgw-secret"),
        )
    return replace(descriptor, **overrides) if overrides else descriptor


def make_descriptor_dict(**overrides: Any) -> dict[str, Any]:
    """Create the camelCase JSON document of a descriptor, as the form posts it."""
    data: dict[str, Any] = {
        "hostname": "db1.example.com",
        "managementPort": 8091,
        "serverUsername": "Administrator",
        "serverPassword": "password",
        "cbmmUsername": "monitor",
        "cbmmPassword": "monitor-secret",
        "alias": "db1",
        "prometheusPort": "",
        "useTLS": False,
    }
    data.update(overrides)
    return data


def make_config(config_dir: Path | None = None, **overrides: Any) -> Config:
    """Create a Config for tests.

    The startup sweep is disabled unless explicitly enabled, so tests using the
    FastAPI app do not trigger background provisioning.
    """
    overrides.setdefault("startup_sweep_enabled", False)
    if config_dir is not None:
        overrides["config_dir"] = config_dir
    return Config(**overrides)


def make_gateway() -> Gateway:
    return Gateway(host="gateway.test", port=8080)


def write_store(path: Path, entries: list[ClusterDescriptor | dict[str, Any]]) -> None:
    """Write a clusters.json document, accepting descriptors or raw dicts."""
    payload = [e.to_dict() if isinstance(e, ClusterDescriptor) else e for e in entries]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
