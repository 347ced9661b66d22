"""
Structured Logger — JSON or human-readable log output with trace IDs.

Modules log through the standard ``logging.getLogger(__name__)``; the agent
attaches ``trace_id`` (the task id) and ``agent_name`` via ``extra=``. Two
output modes:

- **JSON mode** (`HATARAKU_LOG_FORMAT=json`): each line is a JSON object.
- **Human mode** (default): traditional format with `[trace_id]` prefix.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

CONTEXT_FIELDS = ("trace_id", "agent_name", "tool_name", "provider_name")


# ── JSON formatter ──────────────────────────────────────────────────

class StructuredFormatter(logging.Formatter):
    """Emits each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for ctx_field in CONTEXT_FIELDS:
            val = getattr(record, ctx_field, "")
            if val:
                entry[ctx_field] = val

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


# ── Human-readable formatter (with trace_id) ───────────────────────

class HumanFormatter(logging.Formatter):
    """Traditional format with optional [trace_id] prefix."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None):
        super().__init__(
            fmt=fmt or "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt=datefmt or "%H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        text = super().formatMessage(record)
        trace_id = getattr(record, "trace_id", "")
        if not trace_id:
            return text
        # Insert the prefix right before the message part
        message = record.message
        if text.endswith(message):
            return f"{text[:len(text) - len(message)]}[{trace_id}] {message}"
        return f"[{trace_id}] {text}"


# ── TraceIDFilter ───────────────────────────────────────────────────

class TraceIDFilter(logging.Filter):
    """Gives every record the context fields, defaulting to empty strings."""

    def __init__(self, **defaults: str):
        super().__init__()
        self.defaults = {name: defaults.get(name, "") for name in CONTEXT_FIELDS}

    def filter(self, record: logging.LogRecord) -> bool:
        for name, default in self.defaults.items():
            if not getattr(record, name, ""):
                setattr(record, name, default)
        return True


# ── Module-level setup function ─────────────────────────────────────

def setup_structured_logging(
    json_mode: Optional[bool] = None,
    level: str = "WARNING",
) -> logging.Handler:
    """
    Configure the root logger for structured output.

    Parameters
    ----------
    json_mode : bool or None
        If None, auto-detect from ``HATARAKU_LOG_FORMAT`` env var
        (set to ``"json"`` to enable JSON mode).
    level : str
        Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).

    Returns the installed handler.
    """
    if json_mode is None:
        json_mode = os.getenv("HATARAKU_LOG_FORMAT", "").lower() == "json"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))

    # Remove existing handlers
    root.handlers.clear()

    handler = logging.StreamHandler()
    if json_mode:
        handler.setFormatter(StructuredFormatter(datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(HumanFormatter())

    handler.addFilter(TraceIDFilter())

    root.addHandler(handler)
    return handler
