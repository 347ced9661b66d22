"""
Hataraku — an agent that runs multi-step, tool-using tasks against a language model.

Usage::

    from hataraku import Agent, AgentConfig, TaskInput, Thread

    agent = Agent(AgentConfig(
        model={"provider": "anthropic", "model": "claude-sonnet-4-5-20250929", "api_key": "..."},
        tools=[MyTool()],
    ))
    result = await agent.task(TaskInput("Summarize README.md"))
    print(result.content)
"""

from .core.agent import (
    Agent,
    AgentConfig,
    StreamingTaskResult,
    TaskInput,
    TaskMetadata,
    TaskResult,
)
from .core.errors import (
    ErrorCode,
    HatarakuError,
    InvalidConfiguration,
    NoCompletionFound,
    SchemaValidationFailed,
    StreamingSchemaUnsupported,
    ToolExecutionFailure,
    ToolInitializationFailure,
    TurnBudgetExceeded,
)
from .core.models import Message, ToolCall, ToolExecutionRecord, ToolResult, ToolSchema
from .core.parser import ParsedResponse, ResponseParser
from .core.prompt_builder import PromptConfig, PromptSection, PromptSectionName, SystemPromptBuilder
from .core.providers import BaseModelProvider, ModelConfiguration, ProviderFactory
from .core.stream_events import TextEvent, UsageEvent
from .core.thread import Thread
from .core.usage import TaskUsage
from .tools.base import BaseTool

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentConfig",
    "StreamingTaskResult",
    "TaskInput",
    "TaskMetadata",
    "TaskResult",
    "ErrorCode",
    "HatarakuError",
    "InvalidConfiguration",
    "NoCompletionFound",
    "SchemaValidationFailed",
    "StreamingSchemaUnsupported",
    "ToolExecutionFailure",
    "ToolInitializationFailure",
    "TurnBudgetExceeded",
    "Message",
    "ToolCall",
    "ToolExecutionRecord",
    "ToolResult",
    "ToolSchema",
    "ParsedResponse",
    "ResponseParser",
    "PromptConfig",
    "PromptSection",
    "PromptSectionName",
    "SystemPromptBuilder",
    "BaseModelProvider",
    "ModelConfiguration",
    "ProviderFactory",
    "TextEvent",
    "UsageEvent",
    "Thread",
    "TaskUsage",
    "BaseTool",
]
