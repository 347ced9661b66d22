"""
Agent Loop — The core orchestrator.
Builds the prompt, calls the model, runs tool calls, loops until the model
calls attempt_completion.
"""

from __future__ import annotations
import asyncio
import dataclasses
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Optional, Union

from pydantic import PydanticUserError, TypeAdapter, ValidationError

from .errors import (
    InvalidConfiguration,
    NoCompletionFound,
    SchemaValidationFailed,
    StreamingSchemaUnsupported,
    ToolInitializationFailure,
    TurnBudgetExceeded,
)
from .models import MessageRole, ToolExecutionRecord, ToolResult
from .parser import ResponseParser
from .prompt_builder import PromptConfig, SystemPromptBuilder
from .providers import BaseModelProvider, ModelConfiguration, ProviderFactory
from .stream_events import TextEvent, UsageEvent
from .thread import Thread
from .tool_registry import ToolRegistry
from .usage import TaskUsage

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 25

ModelDescriptor = Union[BaseModelProvider, ModelConfiguration, dict]


# ── Configuration and task types ────────────────────────────────────

@dataclass(frozen=True)
class AgentConfig:
    """
    Everything needed to build an Agent.

    ``model`` is either a ready provider instance, a ModelConfiguration, or a
    plain dict accepted by ModelConfiguration.from_dict. ``tools`` is a list
    of tool instances or a mapping of name → tool.
    """
    model: ModelDescriptor
    tools: Union[list, dict, None] = None
    role: Optional[str] = None
    custom_instructions: Optional[str] = None
    name: str = "hataraku"
    max_turns: int = DEFAULT_MAX_TURNS
    working_directory: Optional[str] = None
    prompt: Optional[PromptConfig] = None


@dataclass
class TaskInput:
    content: str
    role: MessageRole = "user"
    thread: Optional[Thread] = None
    # A pydantic model, TypedDict, dataclass or any other type pydantic can validate
    output_schema: Any = None
    stream: bool = False


@dataclass
class TaskMetadata:
    task_id: str
    input: str
    thinking: list[str] = field(default_factory=list)
    tool_calls: list[ToolExecutionRecord] = field(default_factory=list)
    usage: TaskUsage = field(default_factory=TaskUsage)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "input": self.input,
            "thinking": list(self.thinking),
            "tool_calls": [c.to_dict() for c in self.tool_calls],
            "usage": self.usage.to_dict(),
        }


@dataclass
class TaskResult:
    content: Any
    metadata: TaskMetadata


_STREAM_END = object()


class StreamingTaskResult:
    """
    Live result of a streaming task.

    ``stream`` yields completion text as it arrives. ``content`` and
    ``metadata`` are futures that resolve once the task loop finishes; if the
    task fails they raise the same error, and so does the stream.

    Usage::

        result = await agent.task(TaskInput("...", stream=True))
        async for chunk in result.stream:
            print(chunk, end="")
        metadata = await result.metadata
    """

    def __init__(self, task_id: str):
        loop = asyncio.get_running_loop()
        self.task_id = task_id
        self.content: asyncio.Future = loop.create_future()
        self.metadata: asyncio.Future = loop.create_future()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._error: Optional[BaseException] = None
        self._finished = False
        self._runner: Optional[asyncio.Task] = None

    @property
    def stream(self) -> AsyncIterator[str]:
        return self._iterate()

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    @property
    def done(self) -> bool:
        return self._finished

    async def result(self) -> TaskResult:
        """Wait for the task to finish and return it as a plain TaskResult."""
        content = await self.content
        metadata = await self.metadata
        return TaskResult(content=content, metadata=metadata)

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            if self._finished and self._queue.empty():
                break
            item = await self._queue.get()
            if item is _STREAM_END:
                break
            yield item
        if self._error is not None:
            raise self._error

    # ── Producer side (agent only) ──

    def _push(self, chunk: str) -> None:
        if chunk:
            self._queue.put_nowait(chunk)

    # Either future may already be cancelled by the caller (asyncio.wait_for
    # timing out); the stream is closed regardless.

    def _complete(self, result: TaskResult) -> None:
        try:
            if not self.content.done():
                self.content.set_result(result.content)
            if not self.metadata.done():
                self.metadata.set_result(result.metadata)
        finally:
            self._close()

    def _fail(self, error: Exception) -> None:
        self._error = error
        try:
            for future in (self.content, self.metadata):
                if not future.done():
                    future.set_exception(error)
                    # Mark retrieved: the error is also raised from the stream
                    future.exception()
        finally:
            self._close()

    def _cancel(self) -> None:
        try:
            for future in (self.content, self.metadata):
                if not future.done():
                    future.cancel()
        finally:
            self._close()

    def _close(self) -> None:
        if self._finished:
            return
        self._finished = True
        self._queue.put_nowait(_STREAM_END)


@dataclass
class _TaskRun:
    """Per-task state threaded through the loop."""
    task_id: str
    input: TaskInput
    thread: Thread
    adapter: Optional[TypeAdapter] = None
    json_schema: Optional[dict] = None
    metadata: Optional[TaskMetadata] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = TaskMetadata(task_id=self.task_id, input=self.input.content)


# ── Helpers ─────────────────────────────────────────────────────────

def format_task_message(content: str, json_schema: Optional[dict] = None) -> str:
    message = f"<task>{content}</task>"
    if json_schema is not None:
        message += f"<output_schema>{json.dumps(json_schema)}</output_schema>"
    return message


def format_tool_results(results: list[ToolResult]) -> str:
    """One <tool_result> block per call, in dispatch order."""
    blocks = []
    for result in results:
        status = "true" if result.success else "false"
        blocks.append(
            f'<tool_result tool="{result.name}" success="{status}">\n'
            f"{result.render()}\n"
            f"</tool_result>"
        )
    return "\n\n".join(blocks)


def _build_registry(tools: Union[list, dict, None]) -> ToolRegistry:
    registry = ToolRegistry()
    if tools is None:
        return registry
    if isinstance(tools, dict):
        for name, tool in tools.items():
            if getattr(tool, "name", None) != name:
                raise InvalidConfiguration(
                    f"tool registered as {name!r} reports name {getattr(tool, 'name', None)!r}"
                )
        tools = list(tools.values())
    for tool in tools:
        try:
            registry.register(tool)
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
    return registry


def _is_provider(model: Any) -> bool:
    return isinstance(model, BaseModelProvider) or callable(getattr(model, "create_message", None))


# ── Agent ───────────────────────────────────────────────────────────

class Agent:
    """
    Runs tasks against a model with a fixed set of tools.

    Flow per task:
      task message → thread → system prompt + history → model
      → if tool calls: run them in order → results → thread → loop
      → if attempt_completion: validate (optional) → final message → result
      → if neither: NoCompletionFound
    """

    def __init__(self, config: AgentConfig):
        if not isinstance(config, AgentConfig):
            raise InvalidConfiguration(f"expected AgentConfig, got {type(config).__name__}")
        if config.max_turns < 1:
            raise InvalidConfiguration(f"max_turns must be at least 1, got {config.max_turns}")

        self.config = config
        self.name = config.name
        self.max_turns = config.max_turns
        self.cwd = os.path.abspath(config.working_directory or os.getcwd())

        # Model: a provider instance is used as is; a configuration is
        # validated now and turned into a provider on first use.
        self._provider: Optional[BaseModelProvider] = None
        self._model_configuration: Optional[ModelConfiguration] = None
        model = config.model
        if _is_provider(model):
            self._provider = model
        elif isinstance(model, (ModelConfiguration, dict)):
            if isinstance(model, dict):
                model = ModelConfiguration.from_dict(model)
            ProviderFactory.validate(model)
            self._model_configuration = model
        else:
            raise InvalidConfiguration(
                f"model must be a provider instance or a provider configuration, "
                f"got {type(model).__name__}"
            )

        self.registry = _build_registry(config.tools)

        prompt_config = config.prompt or PromptConfig()
        prompt_config = dataclasses.replace(
            prompt_config,
            role_definition=config.role or prompt_config.role_definition,
            custom_instructions=config.custom_instructions or prompt_config.custom_instructions,
        )
        self.prompt_builder = SystemPromptBuilder(prompt_config, cwd=self.cwd)

        self._init_lock = asyncio.Lock()
        self._initialized = False
        self.initialization_failures: list[ToolInitializationFailure] = []

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, provider={self.model_provider!r}, tools={self.loaded_tools})"

    @property
    def model_provider(self) -> BaseModelProvider:
        if self._provider is None:
            self._provider = ProviderFactory.create(self._model_configuration)
        return self._provider

    @property
    def loaded_tools(self) -> list[str]:
        return self.registry.list_tools()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def get_config(self) -> AgentConfig:
        return self.config

    # ── Initialization ──────────────────────────────────────────────

    async def initialize(self) -> list[ToolInitializationFailure]:
        """
        Run every tool's setup hook once.

        Failing tools are logged and returned; they stay registered and the
        other tools still initialize. Calls after the first return [].
        """
        async with self._init_lock:
            if self._initialized:
                return []
            failures = await self.registry.initialize_all()
            self._initialized = True
            self.initialization_failures = failures
            if failures:
                logger.warning(
                    f"{len(failures)} tool(s) failed to initialize: "
                    f"{[f.tool_name for f in failures]}"
                )
            return failures

    # ── Task entry point ────────────────────────────────────────────

    async def task(self, task_input: Union[TaskInput, str]) -> Union[TaskResult, StreamingTaskResult]:
        """
        Run one task.

        With ``stream=False`` returns a TaskResult once the task is done. With
        ``stream=True`` returns a StreamingTaskResult immediately; the loop
        keeps running in the background.

        Raises:
            StreamingSchemaUnsupported: stream=True together with an output schema
            InvalidConfiguration: the output schema is not a type pydantic can validate
            NoCompletionFound, TurnBudgetExceeded, SchemaValidationFailed:
                terminal task failures (non-streaming; streaming surfaces them
                through the result)
            Any provider error, unchanged
        """
        if isinstance(task_input, str):
            task_input = TaskInput(content=task_input)
        if task_input.stream and task_input.output_schema is not None:
            raise StreamingSchemaUnsupported()

        adapter, json_schema = self._resolve_schema(task_input.output_schema)
        await self.initialize()

        thread = task_input.thread if task_input.thread is not None else Thread()
        run = _TaskRun(
            task_id=f"task_{uuid.uuid4().hex[:12]}",
            input=task_input,
            thread=thread,
            adapter=adapter,
            json_schema=json_schema,
        )
        logger.info(
            f"Task started on thread {thread.thread_id} "
            f"({'streaming' if task_input.stream else 'blocking'})",
            extra=self._log_extra(run),
        )

        if not task_input.stream:
            return await self._execute(run)

        result = StreamingTaskResult(run.task_id)
        result._runner = asyncio.create_task(self._execute_streaming(run, result))
        return result

    async def _execute_streaming(self, run: _TaskRun, result: StreamingTaskResult) -> None:
        try:
            task_result = await self._execute(run, emit=result._push)
        except asyncio.CancelledError:
            result._cancel()
            raise
        except Exception as e:
            # Delivered to the caller through the stream and both futures
            result._fail(e)
        else:
            result._complete(task_result)

    # ── Turn loop ───────────────────────────────────────────────────

    def _log_extra(self, run: _TaskRun) -> dict:
        return {
            "trace_id": run.task_id,
            "agent_name": self.name,
            "provider_name": getattr(self.model_provider, "provider_name", ""),
        }

    async def _execute(self, run: _TaskRun, emit: Optional[Callable[[str], None]] = None) -> TaskResult:
        thread = run.thread
        metadata = run.metadata
        provider = self.model_provider
        log_extra = self._log_extra(run)

        system_prompt = self.prompt_builder.build(
            tools=self.registry.get_schemas(),
            output_schema=run.json_schema,
            thread=thread,
        )
        thread.add_message(run.input.role, format_task_message(run.input.content, run.json_schema))

        for turn in range(1, self.max_turns + 1):
            logger.debug(f"Turn {turn}/{self.max_turns}", extra=log_extra)
            parser = ResponseParser(self.registry.tool_names)

            try:
                async for event in provider.create_message(system_prompt, thread.get_messages()):
                    if isinstance(event, TextEvent):
                        update = parser.feed(event.text)
                        if emit is not None and update.completion_delta:
                            emit(update.completion_delta)
                    elif isinstance(event, UsageEvent):
                        metadata.usage.record(event, getattr(provider, "model", ""))
            except Exception as e:
                logger.error(f"Model provider error: {e}", extra=log_extra)
                raise

            final = parser.finish()
            if emit is not None and final.completed and final.completion_delta:
                emit(final.completion_delta)

            response = parser.result
            metadata.thinking.extend(response.thinking)

            if response.is_complete:
                raw = response.completion
                thread.add_message("assistant", raw)
                content = raw
                if run.adapter is not None:
                    content = self._validate_output(raw, run.adapter)
                logger.info(
                    f"Completed after {turn} turn(s), "
                    f"{len(metadata.tool_calls)} tool call(s)",
                    extra=log_extra,
                )
                return TaskResult(content=content, metadata=metadata)

            if not response.has_tool_calls:
                logger.warning(f"No tool call or completion in turn {turn}", extra=log_extra)
                raise NoCompletionFound(parser.buffer)

            thread.add_message("assistant", parser.buffer)
            logger.info(
                f"Dispatching {len(response.tool_calls)} tool call(s): "
                f"{[c.name for c in response.tool_calls]}",
                extra=log_extra,
            )
            results = await self.registry.execute_sequential(response.tool_calls, self.cwd)
            for call, result in zip(response.tool_calls, results):
                metadata.tool_calls.append(ToolExecutionRecord(
                    name=call.name,
                    params=dict(call.params),
                    order=len(metadata.tool_calls),
                    success=result.success,
                ))
            thread.add_message("user", format_tool_results(results))

        logger.warning(f"Turn budget of {self.max_turns} exhausted", extra=log_extra)
        raise TurnBudgetExceeded(self.max_turns)

    # ── Output schema ───────────────────────────────────────────────

    @staticmethod
    def _resolve_schema(schema: Any) -> tuple[Optional[TypeAdapter], Optional[dict]]:
        if schema is None:
            return None, None
        if isinstance(schema, dict):
            raise InvalidConfiguration(
                "output_schema must be a type (pydantic model, TypedDict, dataclass, ...), "
                "not a JSON schema dict"
            )
        try:
            adapter = TypeAdapter(schema)
            return adapter, adapter.json_schema()
        except (PydanticUserError, TypeError) as e:
            raise InvalidConfiguration(f"unusable output_schema {schema!r}: {e}") from e

    @staticmethod
    def _validate_output(raw: str, adapter: TypeAdapter) -> Any:
        """Parse the completion as JSON and check it against the schema; return the parsed value."""
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SchemaValidationFailed(f"result is not valid JSON ({e})", content=raw) from e
        try:
            adapter.validate_json(raw, strict=True)
        except ValidationError as e:
            raise SchemaValidationFailed(
                f"{e.error_count()} validation error(s): {e}",
                content=raw,
                errors=e.errors(),
            ) from e
        return parsed
