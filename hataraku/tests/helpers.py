"""
Test Helpers — tool doubles and agent factory.

The scripted model lives in hataraku.core.providers.mock.MockProvider; this
module adds tools with observable side effects and a one-line agent builder.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from hataraku.core.agent import Agent, AgentConfig
from hataraku.core.providers.mock import MockProvider
from hataraku.tools.base import BaseTool


def run_async(coro):
    """Run an async function in a new event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class NoopTool(BaseTool):
    """Does nothing, records every call."""

    description = "Does nothing"

    def __init__(self, name: str = "noop"):
        self.name = name
        self.calls: list[tuple[dict, str]] = []

    def execute(self, params, cwd):
        self.calls.append((params, cwd))
        return ""


class EchoTool(BaseTool):
    """Returns its parameters and working directory as structured output."""

    name = "echo"
    description = "Echo parameters back"
    input_schema = {
        "type": "object",
        "properties": {
            "text": {"type": "string", "description": "Text to echo"},
            "repeat": {"type": "integer", "description": "How many times"},
        },
        "required": ["text"],
    }

    async def execute(self, params, cwd):
        return {"params": params, "cwd": cwd}


class FailingTool(BaseTool):
    """Raises on every call."""

    description = "Always fails"

    def __init__(self, name: str = "failing", message: str = "disk on fire"):
        self.name = name
        self.message = message

    def execute(self, params, cwd):
        raise RuntimeError(self.message)


class InitTrackingTool(BaseTool):
    """Counts initialize() calls; optionally fails during setup."""

    description = "Needs setup"

    def __init__(self, name: str = "setup_tool", fail: bool = False, use_async: bool = False):
        self.name = name
        self.fail = fail
        self.init_calls = 0
        if use_async:
            self.initialize = self._initialize_async
        else:
            self.initialize = self._initialize

    def _initialize(self):
        self.init_calls += 1
        if self.fail:
            raise ConnectionError(f"{self.name} backend unavailable")

    async def _initialize_async(self):
        self._initialize()

    def execute(self, params, cwd):
        return f"{self.name} ok"


def make_agent(
    responses: Optional[list[str]] = None,
    tools: Any = None,
    chunk_size: int = 0,
    **config_kwargs,
) -> tuple[Agent, MockProvider]:
    """Agent wired to a MockProvider with the given scripted responses."""
    provider = MockProvider(responses=responses or [], chunk_size=chunk_size)
    agent = Agent(AgentConfig(model=provider, tools=tools, **config_kwargs))
    return agent, provider
