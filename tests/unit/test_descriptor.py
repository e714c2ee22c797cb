"""Tests for the cluster descriptor model."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from clusterconf.descriptor import (
    DEFAULT_DASHBOARD_PORT,
    REDACTED,
    ClusterDescriptor,
    SyncGatewayConfig,
)
from tests.helpers import make_descriptor, make_descriptor_dict


class TestIdentity:
    """Tests for identity and alias derivation."""

    def test_identity_key_is_host_and_port(self) -> None:
        descriptor = make_descriptor(hostname="db1", management_port=18091)
        assert descriptor.identity_key == ("db1", 18091)
        assert descriptor.identity == "db1:18091"

    def test_display_alias_defaults_to_identity(self) -> None:
        descriptor = make_descriptor(hostname="db1", management_port=8091, alias="")
        assert descriptor.display_alias == "db1:8091"

    def test_display_alias_uses_alias_when_set(self) -> None:
        assert make_descriptor(alias="prod").display_alias == "prod"

    def test_effective_dashboard_port_default(self) -> None:
        assert make_descriptor().effective_dashboard_port == DEFAULT_DASHBOARD_PORT

    def test_effective_dashboard_port_override(self) -> None:
        assert make_descriptor(dashboard_port=9000).effective_dashboard_port == 9000

    def test_descriptor_is_immutable(self) -> None:
        descriptor = make_descriptor()
        with pytest.raises(FrozenInstanceError):
            descriptor.alias = "other"  # type: ignore[misc]


class TestFromDict:
    """Tests for ClusterDescriptor.from_dict."""

    def test_parses_full_document(self) -> None:
        data = make_descriptor_dict(
            grafanaPort="9093",
            prometheusPort=9091,
            useTLS=True,
            doSGW=True,
            sgwHostname="sgw1",
            sgwUsername="sgw",
            sgwPassword="sgw-secret",
            sgwPrometheusPort="4986",
        )

        descriptor = ClusterDescriptor.from_dict(data)

        assert descriptor.hostname == "db1.example.com"
        assert descriptor.management_port == 8091
        assert descriptor.monitor_username == "monitor"
        assert descriptor.dashboard_port == 9093
        assert descriptor.metrics_port == 9091
        assert descriptor.use_tls is True
        assert descriptor.sync_gateway == SyncGatewayConfig(
            hostname="sgw1", username="sgw", password="sgw-secret", metrics_port=4986
        )

    def test_blank_optional_ports_are_unset(self) -> None:
        descriptor = ClusterDescriptor.from_dict(make_descriptor_dict(prometheusPort=""))
        assert descriptor.metrics_port is None
        assert descriptor.dashboard_port is None

    def test_management_port_as_string(self) -> None:
        descriptor = ClusterDescriptor.from_dict(make_descriptor_dict(managementPort="8091"))
        assert descriptor.management_port == 8091

    def test_sync_gateway_ignored_without_flag(self) -> None:
        descriptor = ClusterDescriptor.from_dict(
            make_descriptor_dict(doSGW=False, sgwHostname="sgw1")
        )
        assert descriptor.sync_gateway is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(True, True), (False, False), ("true", True), ("false", False), ("0", False), (None, False)],
    )
    def test_use_tls_flag_values(self, value: object, expected: bool) -> None:
        descriptor = ClusterDescriptor.from_dict(make_descriptor_dict(useTLS=value))
        assert descriptor.use_tls is expected

    def test_sync_gateway_flag_as_string(self) -> None:
        disabled = ClusterDescriptor.from_dict(make_descriptor_dict(doSGW="false", sgwHostname="sgw1"))
        enabled = ClusterDescriptor.from_dict(make_descriptor_dict(doSGW="true", sgwHostname="sgw1"))

        assert disabled.sync_gateway is None
        assert enabled.sync_gateway == SyncGatewayConfig(hostname="sgw1")

    def test_unknown_keys_are_ignored(self) -> None:
        descriptor = ClusterDescriptor.from_dict(make_descriptor_dict(somethingElse=1))
        assert descriptor.hostname == "db1.example.com"

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"hostname": ""}, "hostname is required"),
            ({"managementPort": None}, "managementPort is required"),
            ({"managementPort": "abc"}, "managementPort must be an integer"),
            ({"managementPort": 70000}, "between 1 and 65535"),
            ({"doSGW": True, "sgwHostname": ""}, "sgwHostname is required"),
            ({"serverUsername": 5}, "serverUsername must be a string"),
        ],
    )
    def test_invalid_documents(self, overrides: dict[str, object], message: str) -> None:
        with pytest.raises(ValueError, match=message):
            ClusterDescriptor.from_dict(make_descriptor_dict(**overrides))

    def test_rejects_non_object(self) -> None:
        with pytest.raises(ValueError, match="must be an object"):
            ClusterDescriptor.from_dict(["db1"])  # type: ignore[arg-type]


class TestToDict:
    """Tests for ClusterDescriptor.to_dict."""

    def test_round_trips_through_from_dict(self) -> None:
        descriptor = make_descriptor(sgw_hostname="sgw1", metrics_port=9091)
        assert ClusterDescriptor.from_dict(descriptor.to_dict()) == descriptor

    def test_redacts_passwords(self) -> None:
        data = make_descriptor(sgw_hostname="sgw1").to_dict(redact=True)

        assert data["serverPassword"] == REDACTED
        assert data["cbmmPassword"] == REDACTED
        assert data["sgwPassword"] == REDACTED
        assert data["serverUsername"] == "Administrator"

    def test_empty_passwords_stay_empty_when_redacted(self) -> None:
        data = make_descriptor(monitor_password="").to_dict(redact=True)
        assert data["cbmmPassword"] == ""

    def test_no_sync_gateway_keys_without_gateway(self) -> None:
        data = make_descriptor().to_dict()
        assert data["doSGW"] is False
        assert "sgwHostname" not in data
