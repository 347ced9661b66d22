"""
Mock Model Provider — scripted responses for tests and offline runs.

Responses are queued up front and returned one per ``create_message`` call.
Every call is recorded (system prompt + a snapshot of the message history) so
tests can assert on exactly what the model saw.

Usage::

    provider = MockProvider()
    provider.enqueue_text('<tool_call name="x"/>')
    provider.enqueue_text("<attempt_completion>done</attempt_completion>")
    agent = Agent(AgentConfig(model=provider, tools=[NoopTool("x")]))
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator, Iterable, Optional, Union

from .base import BaseModelProvider, ProviderFactory
from ..models import Message
from ..stream_events import ProviderEvent, TextEvent, UsageEvent

NO_MORE_RESPONSES = "[MockProvider] No more queued responses."


class _ErrorSentinel:
    """Queued in place of a response to make the next call raise."""

    def __init__(self, error: Union[str, BaseException]):
        self.error = error

    def raise_error(self):
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(self.error)


class MockProvider(BaseModelProvider):
    """
    Configurable mock provider.

    Supports:
      - Queued responses (whole text or explicit chunk lists)
      - Queued errors raised from the provider call
      - Call tracking for assertions
      - Simulated latency between chunks
      - Simulated token usage (100 in / 50 out, no cost)
    """

    default_model = "mock-model"

    def __init__(self, model: Optional[str] = None, responses: Optional[Iterable[str]] = None,
                 chunk_size: int = 0, latency: float = 0.0, **kwargs):
        super().__init__(model=model, **kwargs)
        self._response_queue: list[Any] = []
        self._call_log: list[dict[str, Any]] = []
        self._chunk_size = chunk_size
        self._latency = latency
        self._default_usage = {"input_tokens": 100, "output_tokens": 50}
        for text in responses or []:
            self.enqueue_text(text)

    # ── Enqueue helpers ─────────────────────────────────────────

    def enqueue_text(self, text: str, usage: Optional[dict] = None) -> None:
        """Enqueue a response emitted in ``chunk_size`` pieces (or whole)."""
        self._response_queue.append((self._split(text), usage))

    def enqueue_chunks(self, chunks: list[str], usage: Optional[dict] = None) -> None:
        """Enqueue a response emitted exactly as the given chunks."""
        self._response_queue.append((list(chunks), usage))

    def enqueue_error(self, error: Union[str, BaseException] = "Provider error") -> None:
        """Enqueue a call that raises instead of responding."""
        self._response_queue.append(_ErrorSentinel(error))

    # ── Assertions ──────────────────────────────────────────────

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return list(self._call_log)

    @property
    def last_call(self) -> Optional[dict[str, Any]]:
        return self._call_log[-1] if self._call_log else None

    @property
    def remaining(self) -> int:
        return len(self._response_queue)

    # ── BaseModelProvider implementation ───────────────────────

    async def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        self._call_log.append({
            "system_prompt": system_prompt,
            "messages": [Message(role=m.role, content=m.content) for m in messages],
            "timestamp": time.time(),
        })

        if not self._response_queue:
            chunks, usage = [NO_MORE_RESPONSES], None
        else:
            entry = self._response_queue.pop(0)
            if isinstance(entry, _ErrorSentinel):
                entry.raise_error()
            chunks, usage = entry

        for chunk in chunks:
            if self._latency > 0:
                await asyncio.sleep(self._latency)
            yield TextEvent(text=chunk)

        usage = usage or self._default_usage
        yield UsageEvent(
            input_tokens=usage.get("input_tokens", 0),
            output_tokens=usage.get("output_tokens", 0),
            cache_reads=usage.get("cache_reads", 0),
            cache_writes=usage.get("cache_writes", 0),
            cost=usage.get("cost", 0.0),
        )

    def _split(self, text: str) -> list[str]:
        if self._chunk_size <= 0 or not text:
            return [text]
        return [text[i:i + self._chunk_size] for i in range(0, len(text), self._chunk_size)]

    @property
    def provider_name(self) -> str:
        return "mock"


ProviderFactory.register("mock", MockProvider)
