"""
Mistral Model Provider — streams chat completions from Codestral.

Uses the ``mistralai`` SDK against the Codestral endpoint. Sampling is
deterministic (temperature 0) unless a temperature is passed explicitly.
"""

from __future__ import annotations
from typing import AsyncIterator, Optional

from .base import BaseModelProvider, ProviderFactory
from ..models import Message
from ..stream_events import ProviderEvent, TextEvent, UsageEvent

CODESTRAL_URL = "https://codestral.mistral.ai"


def _delta_text(content) -> str:
    """A delta is either plain text or a list of typed content parts."""
    if not content:
        return ""
    if isinstance(content, str):
        return content
    return "".join(
        getattr(part, "text", "") or ""
        for part in content
        if getattr(part, "type", None) == "text"
    )


class MistralProvider(BaseModelProvider):
    """Mistral provider using the streaming chat API."""

    default_model = "codestral-latest"

    def __init__(self, model: Optional[str] = None, api_key: Optional[str] = None,
                 base_url: Optional[str] = CODESTRAL_URL, **kwargs):
        kwargs.setdefault("temperature", 0.0)
        super().__init__(model=model, api_key=api_key, base_url=base_url or CODESTRAL_URL, **kwargs)

    def _client(self):
        from mistralai import Mistral

        return Mistral(
            api_key=self.api_key,
            server_url=self.base_url,
            timeout_ms=int(self.timeout * 1000),
        )

    async def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        client = self._client()
        stream = await client.chat.stream_async(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                *self._convert_messages(messages),
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        async for chunk in stream:
            data = chunk.data
            choices = getattr(data, "choices", None) or []
            if choices:
                text = _delta_text(getattr(choices[0].delta, "content", None))
                if text:
                    yield TextEvent(text=text)

            usage = getattr(data, "usage", None)
            if usage is not None:
                yield UsageEvent(
                    input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                    output_tokens=getattr(usage, "completion_tokens", 0) or 0,
                )

    @property
    def provider_name(self) -> str:
        return "mistral"


ProviderFactory.register("mistral", MistralProvider)
