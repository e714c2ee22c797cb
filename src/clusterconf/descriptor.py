"""Cluster descriptor data model.

A ``ClusterDescriptor`` is the registration record of one cluster: where it
lives, how to authenticate against it, and which monitoring options to wire
up. Descriptors are immutable values; the pipeline passes them explicitly to
every stage.

The JSON representation uses the camelCase keys stored in ``clusters.json``
and posted by the registration form, e.g.::

    {
        "hostname": "db1.example.com",
        "managementPort": 8091,
        "serverUsername": "Administrator",
        "serverPassword": "password",
        "cbmmUsername": "admin",
        "cbmmPassword": "secret",
        "alias": "prod-db1",
        "prometheusPort": "",
        "useTLS": false,
        "doSGW": true,
        "sgwHostname": "sgw1.example.com",
        "sgwUsername": "sgw",
        "sgwPassword": "sgwpass",
        "sgwPrometheusPort": 4986
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Port the dashboard datasource targets when a descriptor does not name one
DEFAULT_DASHBOARD_PORT = 8093

REDACTED = "********"

IdentityKey = tuple[str, int]


def _parse_optional_port(value: Any, field_name: str) -> int | None:
    """Parse an optional port; ``None`` and blank strings mean "not set"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _parse_port(value, field_name)


def _parse_port(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer port, got {value!r}")
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer port, got {value!r}") from None
    if not 1 <= port <= 65535:
        raise ValueError(f"{field_name} must be between 1 and 65535, got {port}")
    return port


def _parse_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _parse_flag(value: Any) -> bool:
    """Parse a boolean flag stored either as a JSON boolean or as a string."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


@dataclass(frozen=True)
class SyncGatewayConfig:
    """Sync Gateway attached to a cluster."""

    hostname: str
    username: str = ""
    password: str = ""
    metrics_port: int | None = None


@dataclass(frozen=True)
class ClusterDescriptor:
    """Registration record for one cluster.

    Attributes:
        hostname: Host of the cluster's management endpoint. Part of the identity.
        management_port: Management port. Part of the identity.
        server_username: Cluster administrator user.
        server_password: Cluster administrator password.
        monitor_username: Basic-auth user for the cluster-monitor API.
        monitor_password: Basic-auth password for the cluster-monitor API.
        alias: Display name, used as datasource and API key name.
        dashboard_port: Port the dashboard datasource connects to.
        metrics_port: Optional metrics exporter port.
        sync_gateway: Optional Sync Gateway registration.
        use_tls: Whether the metrics backend should scrape over TLS.
    """

    hostname: str
    management_port: int
    server_username: str = ""
    server_password: str = ""
    monitor_username: str = ""
    monitor_password: str = ""
    alias: str = ""
    dashboard_port: int | None = None
    metrics_port: int | None = None
    sync_gateway: SyncGatewayConfig | None = None
    use_tls: bool = False

    @property
    def identity_key(self) -> IdentityKey:
        """Composite key that is unique within the config store."""
        return (self.hostname, self.management_port)

    @property
    def identity(self) -> str:
        """Identity key rendered as ``host:port``."""
        return f"{self.hostname}:{self.management_port}"

    @property
    def display_alias(self) -> str:
        """Alias, or the identity when no alias was given."""
        return self.alias or self.identity

    @property
    def effective_dashboard_port(self) -> int:
        return self.dashboard_port if self.dashboard_port is not None else DEFAULT_DASHBOARD_PORT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClusterDescriptor:
        """Build a descriptor from its JSON representation.

        Unknown keys are ignored.

        Raises:
            ValueError: If a required field is missing or a field has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Cluster descriptor must be an object, got {type(data).__name__}")

        hostname = _parse_str(data, "hostname").strip()
        if not hostname:
            raise ValueError("hostname is required")
        if data.get("managementPort") in (None, ""):
            raise ValueError("managementPort is required")

        sync_gateway = None
        if _parse_flag(data.get("doSGW")):
            sgw_hostname = _parse_str(data, "sgwHostname").strip()
            if not sgw_hostname:
                raise ValueError("sgwHostname is required when doSGW is set")
            sync_gateway = SyncGatewayConfig(
                hostname=sgw_hostname,
                username=_parse_str(data, "sgwUsername"),
                password=_parse_str(data, "sgwPassword"),
                metrics_port=_parse_optional_port(data.get("sgwPrometheusPort"), "sgwPrometheusPort"),
            )

        return cls(
            hostname=hostname,
            management_port=_parse_port(data["managementPort"], "managementPort"),
            server_username=_parse_str(data, "serverUsername"),
            server_password=_parse_str(data, "serverPassword"),
            monitor_username=_parse_str(data, "cbmmUsername"),
            monitor_password=_parse_str(data, "cbmmPassword"),
            alias=_parse_str(data, "alias").strip(),
            dashboard_port=_parse_optional_port(data.get("grafanaPort"), "grafanaPort"),
            metrics_port=_parse_optional_port(data.get("prometheusPort"), "prometheusPort"),
            sync_gateway=sync_gateway,
            use_tls=_parse_flag(data.get("useTLS")),
        )

    def to_dict(self, redact: bool = False) -> dict[str, Any]:
        """Serialize to the JSON representation stored in ``clusters.json``.

        Args:
            redact: Replace passwords with a placeholder (for API output and logs).
        """

        def secret(value: str) -> str:
            return REDACTED if redact and value else value

        data: dict[str, Any] = {
            "hostname": self.hostname,
            "managementPort": self.management_port,
            "serverUsername": self.server_username,
            "serverPassword": secret(self.server_password),
            "cbmmUsername": self.monitor_username,
            "cbmmPassword": secret(self.monitor_password),
            "alias": self.alias,
            "grafanaPort": self.dashboard_port,
            "prometheusPort": self.metrics_port,
            "useTLS": self.use_tls,
            "doSGW": self.sync_gateway is not None,
        }
        if self.sync_gateway is not None:
            data.update(
                {
                    "sgwHostname": self.sync_gateway.hostname,
                    "sgwUsername": self.sync_gateway.username,
                    "sgwPassword": secret(self.sync_gateway.password),
                    "sgwPrometheusPort": self.sync_gateway.metrics_port,
                }
            )
        return data


__all__ = [
    "DEFAULT_DASHBOARD_PORT",
    "ClusterDescriptor",
    "IdentityKey",
    "SyncGatewayConfig",
]
