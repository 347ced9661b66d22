"""
Structured logger tests — JSON and human formatters, context fields.
"""

import json
import logging
import sys

import pytest

from hataraku.core.structured_logger import (
    HumanFormatter,
    StructuredFormatter,
    TraceIDFilter,
    setup_structured_logging,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord("hataraku.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestStructuredFormatter:

    def test_json_line_with_context(self):
        record = make_record(trace_id="task_abc", agent_name="bot", tool_name="")
        entry = json.loads(StructuredFormatter().format(record))
        assert entry["message"] == "hello"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "hataraku.test"
        assert entry["trace_id"] == "task_abc"
        assert entry["agent_name"] == "bot"
        # Empty context fields are left out
        assert "tool_name" not in entry

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        entry = json.loads(StructuredFormatter().format(record))
        assert "ValueError: bad" in entry["exception"]


class TestHumanFormatter:

    def test_trace_id_prefix(self):
        line = HumanFormatter().format(make_record(trace_id="task_1"))
        assert line.endswith("hataraku.test: [task_1] hello")

    def test_no_trace_id(self):
        line = HumanFormatter().format(make_record())
        assert line.endswith("[INFO] hataraku.test: hello")


class TestTraceIDFilter:

    def test_fills_missing_fields(self):
        record = make_record(trace_id="keep")
        assert TraceIDFilter(agent_name="default-agent").filter(record)
        assert record.trace_id == "keep"
        assert record.agent_name == "default-agent"
        assert record.tool_name == ""


class TestSetup:

    def test_json_mode_from_env(self, monkeypatch, restore_root_logger):
        monkeypatch.setenv("HATARAKU_LOG_FORMAT", "json")
        handler = setup_structured_logging(level="debug")
        assert isinstance(handler.formatter, StructuredFormatter)
        assert restore_root_logger.handlers == [handler]
        assert restore_root_logger.level == logging.DEBUG

    def test_human_mode_default(self, monkeypatch, restore_root_logger):
        monkeypatch.delenv("HATARAKU_LOG_FORMAT", raising=False)
        handler = setup_structured_logging()
        assert isinstance(handler.formatter, HumanFormatter)
        assert restore_root_logger.level == logging.WARNING
