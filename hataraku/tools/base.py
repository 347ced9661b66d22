"""
Base tool class — all tools inherit from this.
Defines the standard interface: name, description, schemas, execute().
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any

from ..core.models import ToolSchema


class BaseTool(ABC):
    """Abstract base class for all agent tools.

    ``execute`` and ``initialize`` may be plain or ``async`` methods; the
    registry awaits whatever they return. ``initialize`` is optional: leave it
    as None when the tool needs no setup.
    """

    name: str = ""
    description: str = ""
    input_schema: dict = {"type": "object", "properties": {}, "required": []}
    output_schema: dict = {}

    initialize = None

    @abstractmethod
    def execute(self, params: dict[str, str], cwd: str) -> Any:
        """
        Run the tool.

        Args:
            params: Parameters as parsed from the model's response (strings).
            cwd: The task's working directory.

        Returns:
            Tool output. Strings are passed to the model verbatim, anything
            else is rendered as JSON. Raise to signal failure.
        """

    def get_schema(self) -> ToolSchema:
        """Return the tool's schema for LLM consumption."""
        return ToolSchema(
            name=self.name,
            description=self.description,
            input_schema=self.input_schema,
            output_schema=self.output_schema,
        )
