"""Tests for the structured logging system (routing_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from pathlib import Path

from routing_kernel.exceptions import AssemblyLoadError, MalformedRuleError
from routing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class InvoicePaid:
    pass


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "routing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("resolved", extra={"mapping_count": 7, "atomic": True})

        record = _parse_log(stream)
        assert record["mapping_count"] == 7
        assert record["atomic"] is True

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(config_source="app.config", section="bus", rule_position=2)
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["config_source"] == "app.config"
        assert record["section"] == "bus"
        assert record["rule_position"] == 2

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "config_source" not in record
        assert "rule_position" not in record

    def test_classes_and_paths_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "mapped", extra={"message_type": InvoicePaid, "source": Path("conf/app.config")}
        )

        record = _parse_log(stream)
        assert record["message_type"] == f"{__name__}.InvoicePaid"
        assert record["source"] == "conf/app.config"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Routing kernel exceptions carry a .code attribute."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise MalformedRuleError(3, "billing_messages", "", "the 'endpoint' value is empty")
        except MalformedRuleError:
            get_logger("test").error("rule_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "MALFORMED_RULE"
        assert record["exc_type"] == "MalformedRuleError"
        assert record["exc_position"] == 3
        assert record["exc_target"] == "billing_messages"
        assert record["exc_reason"] == "the 'endpoint' value is empty"

    def test_other_values_fall_back_to_str(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("odd_value", extra={"endpoints": frozenset({"billing"})})

        record = _parse_log(stream)
        assert record["endpoints"] == "frozenset({'billing'})"

    def test_nested_cause_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise AssemblyLoadError("no_such_messages", ModuleNotFoundError("No module named 'no_such_messages'"))
        except AssemblyLoadError:
            get_logger("test").error("assembly_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ASSEMBLY_LOAD_FAILED"
        assert record["exc_assembly_name"] == "no_such_messages"
        assert record["exc_underlying_cause"].startswith("ModuleNotFoundError: ")

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        # default level is INFO, so the debug record is dropped
        logs = _parse_all_logs(stream)
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", section="bus")
        assert LogContext.get_all() == {"correlation_id": "x", "section": "bus"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(section="outer")
        with LogContext.bind(section="inner"):
            assert LogContext.get_all()["section"] == "inner"
        assert LogContext.get_all()["section"] == "outer"

    def test_bind_restores_none(self):
        assert "rule_position" not in LogContext.get_all()
        with LogContext.bind(rule_position=0):
            assert LogContext.get_all()["rule_position"] == 0
        assert "rule_position" not in LogContext.get_all()

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(section="bus", tenant="acme"):
            assert LogContext.get_all() == {"section": "bus"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            config_source="app.config",
            section="bus",
            rule_position=4,
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 4
        assert ctx["rule_position"] == 4


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert logging.getLogger("routing_kernel").handlers == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("resolver").name == "routing_kernel.resolver"

    def test_logger_hierarchy(self):
        """Child loggers inherit the routing_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "routing_kernel.deep.nested.module"
