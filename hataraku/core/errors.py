"""
Error taxonomy — structured error codes and recovery hints.

Every error raised by the framework maps to a unique code (E1xxx–E4xxx),
a human-readable message and a recovery hint. Tool errors never leave the
task loop; they are converted to tool-result text for the model.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ── Error codes ─────────────────────────────────────────────────────

class ErrorCode(Enum):
    # Provider errors (E1xxx)
    PROVIDER_NOT_SUPPORTED = "E1001"

    # Tool errors (E2xxx)
    TOOL_EXECUTION_FAILED = "E2001"
    TOOL_NOT_FOUND = "E2003"
    TOOL_INITIALIZATION_FAILED = "E2006"

    # Agent errors (E3xxx)
    AGENT_MAX_TURNS = "E3001"
    AGENT_NO_COMPLETION = "E3005"
    AGENT_SCHEMA_VALIDATION = "E3007"

    # Config errors (E4xxx)
    CONFIG_INVALID_VALUE = "E4002"
    CONFIG_FILE_NOT_FOUND = "E4003"
    CONFIG_STREAMING_SCHEMA = "E4004"


_HINTS: dict[ErrorCode, str] = {
    ErrorCode.PROVIDER_NOT_SUPPORTED: "Use one of the registered providers or pass a provider instance.",
    ErrorCode.TOOL_EXECUTION_FAILED: "Check the tool's input parameters and try again.",
    ErrorCode.TOOL_NOT_FOUND: "Check the names of the tools registered on the agent.",
    ErrorCode.TOOL_INITIALIZATION_FAILED: "The tool stays registered; fix its setup and call initialize() on a new agent.",
    ErrorCode.AGENT_MAX_TURNS: "Increase max_turns in config or break the task into smaller steps.",
    ErrorCode.AGENT_NO_COMPLETION: "The model produced neither a tool call nor attempt_completion. Retry or rephrase the task.",
    ErrorCode.AGENT_SCHEMA_VALIDATION: "Loosen the output schema or make the task description more explicit.",
    ErrorCode.CONFIG_INVALID_VALUE: "Check the model descriptor: provider name and model id are both required.",
    ErrorCode.CONFIG_FILE_NOT_FOUND: "Verify the config file path or omit it to use defaults.",
    ErrorCode.CONFIG_STREAMING_SCHEMA: "Either drop output_schema or set stream=False.",
}


class HatarakuError(Exception):
    """Base class for every error raised by the framework."""

    code: ErrorCode = ErrorCode.AGENT_NO_COMPLETION

    def __init__(self, message: str, *, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def recovery_hint(self) -> str:
        return _HINTS.get(self.code, "")

    def full_message(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.recovery_hint:
            parts.append(f"Hint: {self.recovery_hint}")
        return "\n".join(parts)


class InvalidConfiguration(HatarakuError):
    """Agent or config could not be resolved. Raised before any network call."""
    code = ErrorCode.CONFIG_INVALID_VALUE

    def __init__(self, detail: str, *, code: Optional[ErrorCode] = None):
        super().__init__(f"Invalid agent configuration: {detail}", code=code)
        self.detail = detail


class ToolInitializationFailure(HatarakuError):
    """A single tool's setup hook failed. Reported, never raised by initialize()."""
    code = ErrorCode.TOOL_INITIALIZATION_FAILED

    def __init__(self, tool_name: str, original: BaseException):
        super().__init__(f"Tool '{tool_name}' failed to initialize: {original}")
        self.tool_name = tool_name
        self.original = original


class ToolExecutionFailure(HatarakuError):
    """A tool call failed. Absorbed by the task loop and shown to the model."""
    code = ErrorCode.TOOL_EXECUTION_FAILED

    def __init__(self, tool_name: str, message: str, *, code: Optional[ErrorCode] = None):
        super().__init__(message, code=code)
        self.tool_name = tool_name


class NoCompletionFound(HatarakuError):
    code = ErrorCode.AGENT_NO_COMPLETION

    def __init__(self, response_text: str = ""):
        super().__init__("No attempt_completion with result tag found in response")
        self.response_text = response_text


class TurnBudgetExceeded(HatarakuError):
    code = ErrorCode.AGENT_MAX_TURNS

    def __init__(self, max_turns: int):
        super().__init__(
            f"Task did not complete within {max_turns} turns. "
            "Stopping to prevent infinite loops."
        )
        self.max_turns = max_turns


class SchemaValidationFailed(HatarakuError):
    code = ErrorCode.AGENT_SCHEMA_VALIDATION

    def __init__(self, detail: str, content: str = "", errors: Optional[list[Any]] = None):
        super().__init__(f"Output failed schema validation: {detail}")
        self.content = content
        self.errors = errors or []


class StreamingSchemaUnsupported(HatarakuError):
    code = ErrorCode.CONFIG_STREAMING_SCHEMA

    def __init__(self):
        super().__init__("Output schemas are not supported with streaming responses")
