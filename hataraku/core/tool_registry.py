"""
Tool Registry — central registry for all available tools.
Handles registration, schema retrieval, one-time initialization and
sequential execution.
"""

from __future__ import annotations
import inspect
import logging
import time
from typing import Any, Iterable, Optional

from .errors import ErrorCode, ToolExecutionFailure, ToolInitializationFailure
from .models import ToolCall, ToolResult, ToolSchema

logger = logging.getLogger(__name__)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ToolRegistry:
    """Central registry for all agent tools."""

    def __init__(self, tools: Optional[Iterable] = None):
        self._tools: dict = {}  # name -> tool instance
        self._initialized: set[str] = set()
        for tool in tools or []:
            self.register(tool)

    def register(self, tool) -> None:
        """Register a tool instance. A later registration replaces an earlier one."""
        if not getattr(tool, "name", ""):
            raise ValueError(f"Tool {tool!r} has no name")
        self._tools[tool.name] = tool

    def get_tool(self, name: str):
        """Get a tool by name."""
        if name not in self._tools:
            raise KeyError(f"Unknown tool: {name}. Available: {list(self._tools.keys())}")
        return self._tools[name]

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_schemas(self) -> list[ToolSchema]:
        """Return all tool schemas for the system prompt."""
        schemas = []
        for tool in self._tools.values():
            if hasattr(tool, "get_schema"):
                schemas.append(tool.get_schema())
            else:
                schemas.append(ToolSchema(
                    name=tool.name,
                    description=getattr(tool, "description", ""),
                    input_schema=getattr(tool, "input_schema", {}) or {},
                    output_schema=getattr(tool, "output_schema", {}) or {},
                ))
        return schemas

    def list_tools(self) -> list[str]:
        """Return list of registered tool names."""
        return list(self._tools.keys())

    @property
    def tool_names(self) -> list[str]:
        """Property alias for list_tools()."""
        return self.list_tools()

    def __len__(self) -> int:
        return len(self._tools)

    async def initialize_all(self) -> list[ToolInitializationFailure]:
        """
        Run every tool's setup hook that has not run yet.

        A failing hook does not stop the others; failures are logged and
        returned. A tool whose hook ran (successfully or not) is never
        initialized again.
        """
        failures: list[ToolInitializationFailure] = []
        for name, tool in self._tools.items():
            if name in self._initialized:
                continue
            self._initialized.add(name)
            hook = getattr(tool, "initialize", None)
            if not callable(hook):
                continue
            try:
                await _maybe_await(hook())
                logger.debug(f"Initialized tool '{name}'")
            except Exception as e:
                failure = ToolInitializationFailure(name, e)
                logger.warning(str(failure))
                failures.append(failure)
        return failures

    async def execute_tool(self, call: ToolCall, cwd: str) -> ToolResult:
        """Execute a single tool call. Never raises; failures become error results."""
        t0 = time.time()
        try:
            try:
                tool = self.get_tool(call.name)
            except KeyError as e:
                raise ToolExecutionFailure(
                    call.name, str(e.args[0]), code=ErrorCode.TOOL_NOT_FOUND,
                ) from e
            output = await _maybe_await(tool.execute(dict(call.params), cwd))
            duration_ms = (time.time() - t0) * 1000
            logger.debug(f"Tool '{call.name}' finished in {duration_ms:.0f}ms", extra={"tool_name": call.name})
            return ToolResult(
                tool_id=call.tool_id,
                name=call.name,
                success=True,
                output=output if output is not None else "",
            )
        except ToolExecutionFailure as e:
            logger.warning(f"Tool call failed: {e}", extra={"tool_name": call.name})
            return ToolResult(
                tool_id=call.tool_id,
                name=call.name,
                success=False,
                error=str(e),
            )
        except Exception as e:
            failure = ToolExecutionFailure(call.name, f"Tool execution error: {e}")
            logger.warning(f"Tool '{call.name}' raised: {e}", extra={"tool_name": call.name})
            return ToolResult(
                tool_id=call.tool_id,
                name=call.name,
                success=False,
                error=str(failure),
            )

    async def execute_sequential(self, calls: list[ToolCall], cwd: str) -> list[ToolResult]:
        """Execute tool calls one at a time, in order.

        Later calls may depend on side effects (file writes) of earlier ones.
        """
        results = []
        for call in calls:
            results.append(await self.execute_tool(call, cwd))
        return results
