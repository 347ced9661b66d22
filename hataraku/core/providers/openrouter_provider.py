"""
OpenRouter Model Provider — access many models through one OpenAI-compatible API.

OpenRouter (https://openrouter.ai) serves models from OpenAI, Anthropic,
Google, Meta, Mistral and others behind a single endpoint. Since the API is
OpenAI-compatible, this provider subclasses OpenAIProvider and only overrides
defaults (base URL, attribution headers).

Usage::

    export OPENROUTER_API_KEY="sk-or-..."
    hataraku --provider openrouter --model anthropic/claude-sonnet-4 "..."
"""

from __future__ import annotations

from typing import Optional

from .base import ProviderFactory
from .openai_provider import OpenAIProvider


# Default headers for OpenRouter attribution and ranking
_OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/hataraku",
    "X-Title": "Hataraku",
}


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter provider — OpenAI-compatible API.

    Inherits streaming and usage handling from OpenAIProvider and only changes:

    - Default ``base_url`` → ``https://openrouter.ai/api/v1``
    - Adds ``HTTP-Referer`` and ``X-Title`` headers for OpenRouter attribution
    """

    default_model = "openai/gpt-4o"

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1",
        extra_headers: Optional[dict] = None,
        **kwargs,
    ):
        # Merge user-supplied headers with OpenRouter attribution headers
        self._extra_headers = {**_OPENROUTER_HEADERS, **(extra_headers or {})}
        super().__init__(model=model, api_key=api_key, base_url=base_url, **kwargs)

    @property
    def extra_headers(self) -> dict:
        return dict(self._extra_headers)

    def _client_kwargs(self) -> dict:
        kwargs = super()._client_kwargs()
        kwargs["default_headers"] = self.extra_headers
        return kwargs

    @property
    def provider_name(self) -> str:
        return "openrouter"


ProviderFactory.register("openrouter", OpenRouterProvider)
