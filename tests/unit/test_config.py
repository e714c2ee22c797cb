"""Tests for configuration module."""

import logging
from dataclasses import FrozenInstanceError
from pathlib import Path
from unittest.mock import patch

import pytest

from clusterconf.config import (
    MAX_PORT,
    MIN_PORT,
    VALID_LOG_LEVELS,
    Config,
    _normalize_gateway_url,
    _parse_bool,
    _parse_non_negative_float,
    _parse_port,
    _parse_positive_float,
    _validate_log_level,
    load_config,
)


class TestConfig:
    """Tests for Config dataclass."""

    def test_defaults(self) -> None:
        config = Config()
        assert config.config_dir == Path("./config")
        assert config.gateway_url == "http://localhost:8080"
        assert config.dashboard_admin_user == "admin"
        assert config.server_port == 3300
        assert config.startup_sweep_enabled is True
        assert config.startup_sweep_delay == 2.0
        assert config.log_level == "INFO"
        assert config.log_json is False

    def test_config_file_is_inside_config_dir(self) -> None:
        config = Config(config_dir=Path("/etc/clusters"))
        assert config.config_file == Path("/etc/clusters/clusters.json")

    def test_frozen(self) -> None:
        config = Config()
        with pytest.raises(FrozenInstanceError):
            config.server_port = 1  # type: ignore[misc]


class TestParsers:
    """Tests for the value parsing helpers."""

    def test_parse_port_valid(self) -> None:
        assert _parse_port("8080", "PORT", 3300) == 8080

    @pytest.mark.parametrize("value", ["abc", str(MIN_PORT - 1), str(MAX_PORT + 1)])
    def test_parse_port_invalid_uses_default(
        self, value: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            assert _parse_port(value, "PORT", 3300) == 3300
        assert "PORT" in caplog.text

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("1", True), ("YES", True), ("false", False), ("", False)],
    )
    def test_parse_bool(self, value: str, expected: bool) -> None:
        assert _parse_bool(value) is expected

    def test_parse_non_negative_float(self) -> None:
        assert _parse_non_negative_float("0", "X", 2.0) == 0.0
        assert _parse_non_negative_float("-1", "X", 2.0) == 2.0
        assert _parse_non_negative_float("abc", "X", 2.0) == 2.0

    def test_parse_positive_float_rejects_zero(self) -> None:
        assert _parse_positive_float("0", "X", 30.0) == 30.0
        assert _parse_positive_float("12.5", "X", 30.0) == 12.5

    def test_validate_log_level(self) -> None:
        assert "DEBUG" in VALID_LOG_LEVELS
        assert _validate_log_level("debug") == "DEBUG"
        assert _validate_log_level("LOUD") == "INFO"

    def test_normalize_gateway_url(self) -> None:
        default = "http://localhost:8080"
        assert _normalize_gateway_url("http://gw:9000/", default) == "http://gw:9000"
        assert _normalize_gateway_url("gw:9000", default) == default


class TestLoadConfig:
    """Tests for load_config."""

    def test_reads_environment(self, tmp_path: Path) -> None:
        env = {
            "CLUSTERCONF_CONFIG_DIR": str(tmp_path),
            "CLUSTERCONF_GATEWAY_URL": "https://gw.example.com:8443/",
            "CLUSTERCONF_DASHBOARD_ADMIN_USER": "root",
            "CLUSTERCONF_DASHBOARD_ADMIN_PASSWORD": "pw",
            "CLUSTERCONF_PORT": "4000",
            "CLUSTERCONF_STARTUP_SWEEP_ENABLED": "false",
            "CLUSTERCONF_STARTUP_SWEEP_DELAY": "0",
            "CLUSTERCONF_LOG_LEVEL": "debug",
            "CLUSTERCONF_LOG_JSON": "true",
        }
        with patch.dict("os.environ", env, clear=True):
            config = load_config(tmp_path / "missing.env")

        assert config.config_dir == tmp_path
        assert config.gateway_url == "https://gw.example.com:8443"
        assert config.dashboard_admin_user == "root"
        assert config.dashboard_admin_password == "pw"
        assert config.server_port == 4000
        assert config.startup_sweep_enabled is False
        assert config.startup_sweep_delay == 0.0
        assert config.log_level == "DEBUG"
        assert config.log_json is True

    def test_invalid_values_fall_back_to_defaults(self, tmp_path: Path) -> None:
        env = {
            "CLUSTERCONF_PORT": "not-a-port",
            "CLUSTERCONF_REQUEST_TIMEOUT": "-5",
            "CLUSTERCONF_GATEWAY_URL": "ftp://gw",
        }
        with patch.dict("os.environ", env, clear=True):
            config = load_config(tmp_path / "missing.env")

        defaults = Config()
        assert config.server_port == defaults.server_port
        assert config.request_timeout == defaults.request_timeout
        assert config.gateway_url == defaults.gateway_url

    def test_reads_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("CLUSTERCONF_DATASOURCE_TYPE=custom-datasource\n", encoding="utf-8")

        with patch.dict("os.environ", {}, clear=True):
            config = load_config(env_file)

        assert config.datasource_type == "custom-datasource"
