"""
Ollama Model Provider — talks to a local Ollama server over HTTP.
Streams newline-delimited JSON from /api/chat.
"""

from __future__ import annotations
import json
import logging
from typing import AsyncIterator, Optional

import httpx

from .base import BaseModelProvider, ProviderFactory
from ..models import Message
from ..stream_events import ProviderEvent, TextEvent, UsageEvent

logger = logging.getLogger(__name__)


class OllamaProvider(BaseModelProvider):
    """Ollama local model provider."""

    default_model = "qwen2.5-coder:7b"

    def __init__(self, model: Optional[str] = None, base_url: str = "http://localhost:11434", **kwargs):
        super().__init__(model=model, base_url=base_url.rstrip("/"), **kwargs)

    async def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        """
        Stream response chunks from Ollama.

        Each line of the response body is a JSON object; the last one has
        ``done: true`` and carries the token counts. Local models cost nothing.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/api/chat",
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        *self._convert_messages(messages),
                    ],
                    "stream": True,
                    "options": {
                        "temperature": self.temperature,
                        "num_predict": self.max_tokens,
                    },
                },
            ) as stream:
                stream.raise_for_status()
                async for line in stream.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping non-JSON line from Ollama: {line[:80]!r}")
                        continue

                    chunk = data.get("message", {}).get("content", "")
                    if chunk:
                        yield TextEvent(text=chunk)

                    if data.get("done", False):
                        yield UsageEvent(
                            input_tokens=data.get("prompt_eval_count", 0) or 0,
                            output_tokens=data.get("eval_count", 0) or 0,
                            cost=0.0,
                        )
                        break

    async def health_check(self) -> dict:
        """Check if Ollama is running and model is available."""
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                resp.raise_for_status()
                models = [m.get("name", "").split(":")[0] for m in resp.json().get("models", [])]
                return {
                    "status": "ok",
                    "provider": "ollama",
                    "model": self.model,
                    "model_available": self.model.split(":")[0] in models,
                    "available_models": models,
                }
        except httpx.HTTPError as e:
            return {"status": "error", "provider": "ollama", "error": str(e)}

    @property
    def provider_name(self) -> str:
        return "ollama"


ProviderFactory.register("ollama", OllamaProvider)
