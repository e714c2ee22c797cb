"""Pydantic request models for the registration endpoints.

The registration form posts the same camelCase document that is stored in
``clusters.json``. Ports arrive either as numbers or as strings (possibly
blank), so the model accepts both and leaves range checks to
``ClusterDescriptor.from_dict``. Explicit nulls are accepted for the optional
fields and read as empty or unset.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from clusterconf.descriptor import ClusterDescriptor

# NOTE: Update this list when adding new models to this module.
__all__: list[str] = [
    "ClusterDescriptorRequest",
]

PortValue = int | str | None


class ClusterDescriptorRequest(BaseModel):
    """Body of ``saveConfig`` and ``configureCluster``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    hostname: str
    management_port: int | str = Field(alias="managementPort")
    server_username: str | None = Field(default="", alias="serverUsername")
    server_password: str | None = Field(default="", alias="serverPassword")
    cbmm_username: str | None = Field(default="", alias="cbmmUsername")
    cbmm_password: str | None = Field(default="", alias="cbmmPassword")
    alias: str | None = ""
    grafana_port: PortValue = Field(default=None, alias="grafanaPort")
    prometheus_port: PortValue = Field(default=None, alias="prometheusPort")
    use_tls: bool | None = Field(default=False, alias="useTLS")
    do_sgw: bool | None = Field(default=False, alias="doSGW")
    sgw_hostname: str | None = Field(default="", alias="sgwHostname")
    sgw_username: str | None = Field(default="", alias="sgwUsername")
    sgw_password: str | None = Field(default="", alias="sgwPassword")
    sgw_prometheus_port: PortValue = Field(default=None, alias="sgwPrometheusPort")

    def to_descriptor(self) -> ClusterDescriptor:
        """Convert to the domain model.

        Raises:
            ValueError: If the document is structurally valid but describes an
                invalid cluster (bad port, missing Sync Gateway host).
        """
        data: dict[str, Any] = self.model_dump(by_alias=True)
        return ClusterDescriptor.from_dict(data)
