"""
Agent tests — the task loop, threads, schemas, streaming and initialization.

Every test drives the agent with a scripted MockProvider, so what the model
"says" and what it was shown are both fully observable.
"""

import asyncio

import pytest
from pydantic import BaseModel, TypeAdapter

from hataraku.core.agent import (
    DEFAULT_MAX_TURNS,
    Agent,
    AgentConfig,
    StreamingTaskResult,
    TaskInput,
    TaskResult,
    format_task_message,
)
from hataraku.core.errors import (
    ErrorCode,
    InvalidConfiguration,
    NoCompletionFound,
    SchemaValidationFailed,
    StreamingSchemaUnsupported,
    TurnBudgetExceeded,
)
from hataraku.core.providers.base import ModelConfiguration
from hataraku.core.providers.mock import MockProvider
from hataraku.core.thread import Thread
from hataraku.tests.helpers import (
    EchoTool, FailingTool, InitTrackingTool, NoopTool, make_agent, run_async,
)


def done(text="done"):
    return f"<attempt_completion>{text}</attempt_completion>"


class Answer(BaseModel):
    result: str


# ── Task loop ───────────────────────────────────────────────────────

class TestTaskLoop:

    def test_completion_only_is_one_call(self):
        agent, provider = make_agent([done("The answer is 42.")])
        result = run_async(agent.task(TaskInput(content="What is 6*7?")))
        assert isinstance(result, TaskResult)
        assert result.content == "The answer is 42."
        assert result.metadata.tool_calls == []
        assert provider.call_count == 1

    def test_tool_call_then_completion(self):
        agent, provider = make_agent(['<tool_call name="x"/>', done()], tools=[NoopTool("x")])
        result = run_async(agent.task(TaskInput(content="test task")))
        assert result.content == "done"
        assert [c.to_dict() for c in result.metadata.tool_calls] == [{"name": "x", "params": {}}]
        assert provider.call_count == 2

    def test_string_input_accepted(self):
        agent, _ = make_agent([done("ok")])
        assert run_async(agent.task("hello")).content == "ok"

    def test_task_message_without_schema(self):
        agent, provider = make_agent([done()])
        run_async(agent.task("test task"))
        first = provider.calls[0]["messages"]
        assert len(first) == 1
        assert first[0].role == "user"
        assert first[0].content == "<task>test task</task>"

    def test_message_count_after_tool_turns(self):
        noop = NoopTool()
        thread = Thread()
        agent, _ = make_agent(
            ['<tool_call name="noop"/>', "<noop></noop>", done()],
            tools=[noop],
        )
        run_async(agent.task(TaskInput(content="t", thread=thread)))

        messages = thread.get_messages()
        # task, then (assistant, tool results) per tool turn, then the completion
        assert len(messages) == 2 * 2 + 2
        assert [m.role for m in messages] == ["user", "assistant"] * 3
        assert messages[1].content == '<tool_call name="noop"/>'
        assert messages[2].content == '<tool_result tool="noop" success="true">\n\n</tool_result>'
        assert messages[-1].content == "done"
        assert len(noop.calls) == 2

    def test_multiple_calls_in_one_turn_run_in_order(self):
        thread = Thread()
        agent, provider = make_agent(
            ['<echo><text>a</text></echo><echo><text>b</text></echo>', done()],
            tools=[EchoTool()],
        )
        result = run_async(agent.task(TaskInput(content="t", thread=thread)))
        assert [c.params for c in result.metadata.tool_calls] == [{"text": "a"}, {"text": "b"}]
        results_message = thread.get_messages()[2].content
        assert results_message.count("<tool_result") == 2
        assert results_message.index('"a"') < results_message.index('"b"')

    def test_turn_dispatches_through_sequential_executor(self, monkeypatch):
        agent, _ = make_agent(
            ['<echo><text>a</text></echo><failing/><echo><text>b</text></echo>', done()],
            tools=[EchoTool(), FailingTool()],
        )
        batches = []
        original = agent.registry.execute_sequential

        async def spy(calls, cwd):
            batches.append([c.name for c in calls])
            return await original(calls, cwd)

        monkeypatch.setattr(agent.registry, "execute_sequential", spy)
        result = run_async(agent.task("t"))
        assert batches == [["echo", "failing", "echo"]]
        records = result.metadata.tool_calls
        assert [(r.name, r.order, r.success) for r in records] == [
            ("echo", 0, True), ("failing", 1, False), ("echo", 2, True),
        ]

    def test_tool_call_after_unterminated_completion_runs(self):
        tool = NoopTool("x")
        agent, provider = make_agent(
            ['<attempt_completion>draft <tool_call name="x"/>', done()],
            tools=[tool],
        )
        result = run_async(agent.task("t"))
        assert result.content == "done"
        assert [c.name for c in result.metadata.tool_calls] == ["x"]
        assert len(tool.calls) == 1
        assert provider.call_count == 2

    def test_plain_text_raises_no_completion(self):
        thread = Thread()
        agent, provider = make_agent(["I think I am done now."])
        with pytest.raises(NoCompletionFound) as exc_info:
            run_async(agent.task(TaskInput(content="t", thread=thread)))
        assert exc_info.value.response_text == "I think I am done now."
        assert provider.call_count == 1
        # The task message stays on the thread
        assert [m.content for m in thread.get_messages()] == ["<task>t</task>"]

    def test_unknown_tool_is_reported_to_model(self):
        agent, provider = make_agent(['<tool_call name="ghost"/>', done()], tools=[NoopTool()])
        result = run_async(agent.task("t"))
        assert result.content == "done"
        assert result.metadata.tool_calls[0].success is False
        feedback = provider.last_call["messages"][-1].content
        assert 'tool="ghost" success="false"' in feedback
        assert "Unknown tool: ghost" in feedback

    def test_failing_tool_is_reported_to_model(self):
        agent, provider = make_agent(['<tool_call name="failing"/>', done()], tools=[FailingTool()])
        result = run_async(agent.task("t"))
        assert result.content == "done"
        feedback = provider.last_call["messages"][-1].content
        assert "Tool execution error: disk on fire" in feedback

    def test_turn_budget(self):
        agent, provider = make_agent(['<tool_call name="noop"/>'] * 5, tools=[NoopTool()], max_turns=3)
        with pytest.raises(TurnBudgetExceeded) as exc_info:
            run_async(agent.task("loop forever"))
        assert exc_info.value.max_turns == 3
        assert exc_info.value.code is ErrorCode.AGENT_MAX_TURNS
        assert provider.call_count == 3

    def test_default_turn_budget(self):
        agent, _ = make_agent()
        assert agent.max_turns == DEFAULT_MAX_TURNS == 25

    def test_provider_error_propagates_unchanged(self):
        agent, provider = make_agent()
        error = ValueError("upstream exploded")
        provider.enqueue_error(error)
        with pytest.raises(ValueError) as exc_info:
            run_async(agent.task("t"))
        assert exc_info.value is error

    def test_tools_receive_working_directory(self, tmp_path):
        noop = NoopTool()
        agent, _ = make_agent(
            ['<noop><path>a.txt</path></noop>', done()],
            tools=[noop],
            working_directory=str(tmp_path),
        )
        run_async(agent.task("t"))
        assert noop.calls == [({"path": "a.txt"}, str(tmp_path))]

    def test_usage_and_thinking_in_metadata(self):
        agent, _ = make_agent(
            ["<thinking>look first</thinking><noop></noop>", "<thinking>now answer</thinking>" + done()],
            tools=[NoopTool()],
        )
        metadata = run_async(agent.task("t")).metadata
        assert metadata.usage.tokens_in == 200
        assert metadata.usage.tokens_out == 100
        assert metadata.usage.cost == 0.0
        assert metadata.thinking == ["look first", "now answer"]
        assert metadata.input == "t"
        assert metadata.task_id.startswith("task_")

    def test_system_prompt_lists_tools(self):
        agent, provider = make_agent([done()], tools=[EchoTool()])
        run_async(agent.task("t"))
        prompt = provider.last_call["system_prompt"]
        assert "## attempt_completion" in prompt
        assert "## echo" in prompt
        assert "Schema Validation and Output Formatting" not in prompt

    def test_role_and_custom_instructions_reach_prompt(self):
        agent, provider = make_agent([done()], role="You are a release bot.", custom_instructions="Be brief.")
        run_async(agent.task("t"))
        prompt = provider.last_call["system_prompt"]
        assert prompt.startswith("ROLE\n\nYou are a release bot.")
        assert "Be brief." in prompt


# ── Threads ─────────────────────────────────────────────────────────

class TestThreads:

    def test_thread_reused_across_tasks(self):
        thread = Thread()
        agent, provider = make_agent([done("response 1"), done("response 2")])
        run_async(agent.task(TaskInput(content="first", thread=thread)))
        run_async(agent.task(TaskInput(content="second", thread=thread)))

        assert len(thread) == 4
        seen = provider.calls[1]["messages"]
        assert len(seen) == 3
        assert seen[1].content == "response 1"
        assert seen[2].content == "<task>second</task>"

    def test_tasks_without_thread_are_isolated(self):
        agent, provider = make_agent([done("one"), done("two")])
        run_async(agent.task("first"))
        run_async(agent.task("second"))
        assert len(provider.calls[1]["messages"]) == 1

    def test_thread_context_in_system_prompt(self):
        thread = Thread()
        thread.add_context("testKey", {"value": "remember me"})
        agent, provider = make_agent([done()])
        run_async(agent.task(TaskInput(content="t", thread=thread)))
        prompt = provider.last_call["system_prompt"]
        assert '<context key="testKey">' in prompt
        assert "remember me" in prompt


# ── Output schema ───────────────────────────────────────────────────

class TestOutputSchema:

    def test_valid_output_is_parsed(self):
        agent, _ = make_agent([done('{"result": "ok"}')])
        result = run_async(agent.task(TaskInput(content="t", output_schema=Answer)))
        assert result.content == {"result": "ok"}

    def test_non_model_type(self):
        agent, _ = make_agent([done("[1, 2, 3]")])
        result = run_async(agent.task(TaskInput(content="t", output_schema=list[int])))
        assert result.content == [1, 2, 3]

    def test_task_message_and_prompt_carry_schema(self):
        agent, provider = make_agent([done('{"result": "ok"}')])
        run_async(agent.task(TaskInput(content="test task", output_schema=Answer)))
        json_schema = TypeAdapter(Answer).json_schema()
        first = provider.calls[0]["messages"][0].content
        assert first == format_task_message("test task", json_schema)
        assert first.startswith("<task>test task</task><output_schema>")
        assert "Schema Validation and Output Formatting" in provider.last_call["system_prompt"]

    def test_type_mismatch_fails(self):
        thread = Thread()
        agent, _ = make_agent([done('{"result": 5}')])
        with pytest.raises(SchemaValidationFailed) as exc_info:
            run_async(agent.task(TaskInput(content="t", output_schema=Answer, thread=thread)))
        assert exc_info.value.errors
        assert exc_info.value.content == '{"result": 5}'
        # The completion is kept on the thread
        assert thread.get_messages()[-1].content == '{"result": 5}'

    def test_missing_field_fails(self):
        agent, _ = make_agent([done("{}")])
        with pytest.raises(SchemaValidationFailed):
            run_async(agent.task(TaskInput(content="t", output_schema=Answer)))

    def test_invalid_json_fails(self):
        agent, _ = make_agent([done("not json at all")])
        with pytest.raises(SchemaValidationFailed, match="not valid JSON"):
            run_async(agent.task(TaskInput(content="t", output_schema=Answer)))

    def test_dict_schema_rejected_before_model_call(self):
        agent, provider = make_agent([done()])
        with pytest.raises(InvalidConfiguration):
            run_async(agent.task(TaskInput(content="t", output_schema={"type": "object"})))
        assert provider.call_count == 0

    def test_streaming_with_schema_rejected_before_model_call(self):
        agent, provider = make_agent([done('{"result": "ok"}')])
        with pytest.raises(StreamingSchemaUnsupported):
            run_async(agent.task(TaskInput(content="t", output_schema=Answer, stream=True)))
        assert provider.call_count == 0


# ── Streaming ───────────────────────────────────────────────────────

class TestStreaming:

    def test_stream_yields_only_completion_text(self):
        agent, _ = make_agent(
            ['<thinking>hmm</thinking><tool_call name="noop"/>', done("streamed answer")],
            tools=[NoopTool()],
            chunk_size=3,
        )

        async def go():
            result = await agent.task(TaskInput(content="t", stream=True))
            assert isinstance(result, StreamingTaskResult)
            chunks = [chunk async for chunk in result.stream]
            return result, chunks, await result.content, await result.metadata

        result, chunks, content, metadata = run_async(go())
        assert len(chunks) > 1
        assert "".join(chunks) == "streamed answer"
        assert content == "streamed answer"
        assert [c.name for c in metadata.tool_calls] == ["noop"]
        assert result.done

    def test_result_helper(self):
        agent, _ = make_agent([done("whole")], chunk_size=2)

        async def go():
            streaming = await agent.task(TaskInput(content="t", stream=True))
            return await streaming.result()

        result = run_async(go())
        assert isinstance(result, TaskResult)
        assert result.content == "whole"

    def test_failure_surfaces_through_stream_and_futures(self):
        agent, _ = make_agent(["no completion here"], chunk_size=4)

        async def go():
            result = await agent.task(TaskInput(content="t", stream=True))
            with pytest.raises(NoCompletionFound):
                async for _ in result:
                    pass
            with pytest.raises(NoCompletionFound):
                await result.content
            with pytest.raises(NoCompletionFound):
                await result.metadata

        run_async(go())

    def test_stream_closes_after_content_wait_times_out(self):
        provider = MockProvider(responses=[done("slow answer")], chunk_size=2, latency=0.01)
        agent = Agent(AgentConfig(model=provider))

        async def go():
            result = await agent.task(TaskInput(content="t", stream=True))
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(result.content, 0.001)

            async def drain():
                return [chunk async for chunk in result.stream]

            chunks = await asyncio.wait_for(drain(), 2)
            metadata = await asyncio.wait_for(result.metadata, 2)
            await result._runner
            return result, chunks, metadata

        result, chunks, metadata = run_async(go())
        assert "".join(chunks) == "slow answer"
        assert result.content.cancelled()
        assert metadata.tool_calls == []
        assert result.done

    def test_failure_read_only_from_stream_leaves_no_unretrieved_error(self):
        agent, _ = make_agent(["no completion here"], chunk_size=4)

        async def go():
            result = await agent.task(TaskInput(content="t", stream=True))
            with pytest.raises(NoCompletionFound):
                async for _ in result.stream:
                    pass
            await result._runner
            return result

        result = run_async(go())
        assert not result.content._log_traceback
        assert not result.metadata._log_traceback
        assert isinstance(result.content.exception(), NoCompletionFound)


# ── Initialization ──────────────────────────────────────────────────

class TestInitialization:

    def test_initialize_runs_hooks_once(self):
        sync_tool = InitTrackingTool("sync_tool")
        async_tool = InitTrackingTool("async_tool", use_async=True)
        agent, _ = make_agent(tools=[sync_tool, async_tool])

        async def go():
            first = await agent.initialize()
            second = await agent.initialize()
            return first, second

        assert run_async(go()) == ([], [])
        assert agent.initialized
        assert (sync_tool.init_calls, async_tool.init_calls) == (1, 1)

    def test_concurrent_initialize(self):
        tool = InitTrackingTool("slow", fail=True, use_async=True)
        agent, _ = make_agent(tools=[tool])

        async def go():
            return await asyncio.gather(agent.initialize(), agent.initialize())

        results = run_async(go())
        assert sorted(len(r) for r in results) == [0, 1]
        assert tool.init_calls == 1

    def test_task_initializes_lazily(self):
        tool = InitTrackingTool()
        agent, _ = make_agent([done(), done()], tools=[tool])
        assert not agent.initialized
        run_async(agent.task("one"))
        run_async(agent.task("two"))
        assert tool.init_calls == 1

    def test_failed_tool_does_not_block_others(self):
        broken = InitTrackingTool("broken", fail=True)
        healthy = InitTrackingTool("healthy")
        agent, _ = make_agent([done("still works")], tools=[broken, healthy])

        failures = run_async(agent.initialize())
        assert [f.tool_name for f in failures] == ["broken"]
        assert healthy.init_calls == 1
        assert agent.loaded_tools == ["broken", "healthy"]
        assert agent.initialization_failures == failures
        assert run_async(agent.task("t")).content == "still works"


# ── Configuration ───────────────────────────────────────────────────

class TestConfiguration:

    def test_dict_model_creates_provider_lazily(self):
        agent = Agent(AgentConfig(model={
            "provider": "mock",
            "model": "mock-model",
            "responses": [done("from config")],
        }))
        assert agent._provider is None
        assert isinstance(agent.model_provider, MockProvider)
        assert run_async(agent.task("t")).content == "from config"

    def test_model_configuration_accepted(self):
        agent = Agent(AgentConfig(model=ModelConfiguration(provider="mock", model_id="m")))
        assert agent.model_provider.model == "m"

    def test_unknown_provider(self):
        with pytest.raises(InvalidConfiguration) as exc_info:
            Agent(AgentConfig(model={"provider": "nope", "model": "x"}))
        assert exc_info.value.code is ErrorCode.PROVIDER_NOT_SUPPORTED

    def test_missing_model_id(self):
        with pytest.raises(InvalidConfiguration):
            Agent(AgentConfig(model={"provider": "mock"}))

    def test_unsupported_model_type(self):
        with pytest.raises(InvalidConfiguration):
            Agent(AgentConfig(model=42))

    def test_non_config_rejected(self):
        with pytest.raises(InvalidConfiguration):
            Agent({"model": MockProvider()})

    def test_zero_turn_budget_rejected(self):
        with pytest.raises(InvalidConfiguration):
            Agent(AgentConfig(model=MockProvider(), max_turns=0))

    def test_tool_mapping_name_mismatch(self):
        with pytest.raises(InvalidConfiguration):
            Agent(AgentConfig(model=MockProvider(), tools={"wrong": NoopTool("right")}))

    def test_tool_mapping_with_nameless_tool(self):
        with pytest.raises(InvalidConfiguration):
            Agent(AgentConfig(model=MockProvider(), tools={"": NoopTool("")}))

    def test_tool_mapping_accepted(self):
        agent = Agent(AgentConfig(model=MockProvider(), tools={"echo": EchoTool()}))
        assert agent.loaded_tools == ["echo"]

    def test_get_config_and_repr(self):
        config = AgentConfig(model=MockProvider(api_key="secret-key-1234"), name="bot")
        agent = Agent(config)
        assert agent.get_config() is config
        assert "secret-key" not in repr(agent)
        assert "bot" in repr(agent)
