"""
Anthropic Model Provider — streams text through the Messages API.
"""

from __future__ import annotations
from typing import AsyncIterator, Optional

from .base import BaseModelProvider, ProviderFactory
from ..models import Message
from ..stream_events import ProviderEvent, TextEvent, UsageEvent


class AnthropicProvider(BaseModelProvider):
    """Anthropic provider using the native streaming Messages API."""

    default_model = "claude-sonnet-4-5-20250929"

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None, **kwargs):
        super().__init__(model=model, api_key=api_key, **kwargs)

    def _client(self):
        from anthropic import AsyncAnthropic

        kwargs = {"api_key": self.api_key, "timeout": self.timeout}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return AsyncAnthropic(**kwargs)

    async def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        """Stream response text, then one UsageEvent for the whole call."""
        client = self._client()

        input_tokens = output_tokens = cache_reads = cache_writes = 0

        async with client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt,
            messages=self._convert_messages(messages),
            temperature=self.temperature,
        ) as stream:
            async for event in stream:
                if event.type == "message_start":
                    usage = getattr(event.message, "usage", None)
                    if usage is not None:
                        input_tokens = getattr(usage, "input_tokens", 0) or 0
                        cache_reads = getattr(usage, "cache_read_input_tokens", 0) or 0
                        cache_writes = getattr(usage, "cache_creation_input_tokens", 0) or 0

                elif event.type == "content_block_delta":
                    text = getattr(event.delta, "text", None)
                    if text:
                        yield TextEvent(text=text)

                elif event.type == "message_delta":
                    usage = getattr(event, "usage", None)
                    if usage is not None:
                        output_tokens = getattr(usage, "output_tokens", 0) or 0

        yield UsageEvent(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cache_reads=cache_reads,
            cache_writes=cache_writes,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"


ProviderFactory.register("anthropic", AnthropicProvider)
