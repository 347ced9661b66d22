"""
OpenAI Model Provider — streams chat completions.
"""

from __future__ import annotations
from typing import AsyncIterator, Optional

from .base import BaseModelProvider, ProviderFactory
from ..models import Message
from ..stream_events import ProviderEvent, TextEvent, UsageEvent


class OpenAIProvider(BaseModelProvider):
    """OpenAI provider (and base for OpenAI-compatible endpoints)."""

    default_model = "gpt-4o"

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None,
                 base_url: str = "https://api.openai.com/v1", **kwargs):
        super().__init__(model=model, base_url=base_url, api_key=api_key, **kwargs)

    def _client_kwargs(self) -> dict:
        return {
            "api_key": self.api_key,
            "base_url": self.base_url,
            "timeout": self.timeout,
        }

    def _client(self):
        from openai import AsyncOpenAI

        return AsyncOpenAI(**self._client_kwargs())

    async def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        """Stream response deltas; the final chunk carries usage."""
        client = self._client()

        openai_messages = [{"role": "system", "content": system_prompt}]
        openai_messages.extend(self._convert_messages(messages))

        stream = await client.chat.completions.create(
            model=self.model,
            messages=openai_messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            stream=True,
            stream_options={"include_usage": True},
        )

        async for chunk in stream:
            usage = getattr(chunk, "usage", None)
            if usage is not None:
                details = getattr(usage, "prompt_tokens_details", None)
                cached = getattr(details, "cached_tokens", 0) if details else 0
                yield UsageEvent(
                    input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                    output_tokens=getattr(usage, "completion_tokens", 0) or 0,
                    cache_reads=cached or 0,
                )
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta is not None and delta.content:
                yield TextEvent(text=delta.content)

    @property
    def provider_name(self) -> str:
        return "openai"


ProviderFactory.register("openai", OpenAIProvider)
