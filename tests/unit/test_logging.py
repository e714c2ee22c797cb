"""Tests for logging configuration."""

from __future__ import annotations

import json
import logging

import pytest

from clusterconf.logging import (
    ClusterConfLogger,
    ContextAdapter,
    JSONFormatter,
    StructuredFormatter,
    get_logger,
    setup_logging,
)


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="clusterconf.pipeline",
        level=logging.INFO,
        pathname="pipeline.py",
        lineno=1,
        msg="Stage %s done",
        args=("reload",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_includes_level_component_and_message(self) -> None:
        output = StructuredFormatter().format(_record())

        assert "[INFO    ]" in output
        assert "[pipeline    ]" in output
        assert output.endswith("Stage reload done")

    def test_includes_context_fields(self) -> None:
        output = StructuredFormatter().format(_record(cluster="db1:8091", stage="datasource"))
        assert "[cluster=db1:8091 stage=datasource]" in output


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_outputs_json_with_context(self) -> None:
        output = JSONFormatter().format(
            _record(cluster="db1:8091", alias="prod", status="failure", failures=["db1:8091"])
        )

        data = json.loads(output)
        assert data["level"] == "INFO"
        assert data["component"] == "pipeline"
        assert data["message"] == "Stage reload done"
        assert data["cluster"] == "db1:8091"
        assert data["alias"] == "prod"
        assert data["failures"] == ["db1:8091"]

    def test_omits_missing_context(self) -> None:
        data = json.loads(JSONFormatter().format(_record()))
        assert "cluster" not in data


class TestLoggers:
    """Tests for get_logger and context adapters."""

    def test_get_logger_returns_custom_class(self) -> None:
        assert isinstance(get_logger("clusterconf.test_logging"), ClusterConfLogger)

    def test_with_context_adds_extra(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = get_logger("clusterconf.test_context").with_context(cluster="db1:8091")
        assert isinstance(adapter, ContextAdapter)

        with caplog.at_level(logging.INFO, logger="clusterconf.test_context"):
            adapter.info("hello", extra={"stage": "reload"})

        [record] = caplog.records
        assert record.cluster == "db1:8091"  # type: ignore[attr-defined]
        assert record.stage == "reload"  # type: ignore[attr-defined]


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.mark.usefixtures("restore_logging")
    def test_installs_single_handler(self) -> None:
        setup_logging("DEBUG")
        setup_logging("DEBUG")

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert logging.getLogger("clusterconf").level == logging.DEBUG

    @pytest.mark.usefixtures("restore_logging")
    def test_json_format(self) -> None:
        setup_logging("INFO", json_format=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    @pytest.mark.usefixtures("restore_logging")
    def test_quiets_httpx_request_logs(self) -> None:
        setup_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
