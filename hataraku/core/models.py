"""
Universal data models for the agent framework.
These are provider-agnostic — each provider converts to/from its native format.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Literal, Optional
import json
import time
import uuid


MessageRole = Literal["user", "assistant"]


@dataclass
class Message:
    """A single message in the conversation history."""
    role: MessageRole
    content: str
    timestamp: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            role=data.get("role", "user"),
            content=data.get("content", ""),
            timestamp=data.get("timestamp", time.time()),
        )


@dataclass
class ToolSchema:
    """Universal tool definition for LLM consumption."""
    name: str
    description: str
    input_schema: dict  # JSON Schema format
    output_schema: dict = field(default_factory=dict)

    @property
    def parameters(self) -> dict:
        """Parameter name -> property schema, with a ``required`` flag folded in."""
        required = set(self.input_schema.get("required", []))
        props = self.input_schema.get("properties", {}) or {}
        return {
            name: {**prop, "required": name in required}
            for name, prop in props.items()
        }


@dataclass
class ToolCall:
    """A single tool invocation requested by the model.

    Parameters are always strings at the parse layer; coercion is the tool's job.
    """
    name: str
    params: dict[str, str] = field(default_factory=dict)
    tool_id: str = field(default_factory=lambda: ToolCall.generate_id(), compare=False)

    @staticmethod
    def generate_id() -> str:
        return f"tool_{uuid.uuid4().hex[:12]}"

    def to_dict(self) -> dict:
        return {"name": self.name, "params": dict(self.params)}


@dataclass
class ToolResult:
    """Result from executing a tool."""
    tool_id: str
    name: str
    success: bool
    output: Any = ""
    error: Optional[str] = None

    def render(self) -> str:
        """Text form of the result as it is shown to the model."""
        if not self.success:
            return self.error or "Tool execution failed."
        if isinstance(self.output, str):
            return self.output
        try:
            return json.dumps(self.output, indent=2, default=str)
        except (TypeError, ValueError):
            return str(self.output)


@dataclass
class ToolExecutionRecord:
    """Observability record for one dispatched tool call (task metadata only)."""
    name: str
    params: dict[str, str]
    order: int = 0
    success: bool = True
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {"name": self.name, "params": dict(self.params)}
