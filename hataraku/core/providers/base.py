"""
Abstract base class for model providers.
All providers (Anthropic, OpenAI, OpenRouter, Ollama, Mock) implement this interface.

A provider turns a system prompt plus message history into an ordered stream
of TextEvent / UsageEvent. Providers take credentials from the
ModelConfiguration they are built with and never read the environment.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from ..errors import ErrorCode, InvalidConfiguration
from ..models import Message
from ..stream_events import ProviderEvent

logger = logging.getLogger(__name__)


@dataclass
class ModelConfiguration:
    """Provider name + model id, plus whatever the provider needs to connect."""
    provider: str
    model_id: str
    api_key: Optional[str] = field(default=None, repr=False)
    base_url: Optional[str] = None
    options: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "ModelConfiguration":
        """
        Build from a plain mapping.

        Accepts ``provider`` or ``api_provider`` for the provider name and
        ``model``, ``model_id`` or ``api_model_id`` for the model id. Unknown
        keys are collected into ``options``.
        """
        data = dict(data)
        provider = data.pop("provider", None) or data.pop("api_provider", None) or ""
        data.pop("api_provider", None)
        model_id = ""
        for key in ("model_id", "api_model_id", "model"):
            value = data.pop(key, None)
            if value and not model_id:
                model_id = value
        api_key = data.pop("api_key", None)
        base_url = data.pop("base_url", None)
        options = dict(data.pop("options", {}) or {})
        options.update(data)
        return cls(
            provider=provider,
            model_id=model_id,
            api_key=api_key,
            base_url=base_url,
            options=options,
        )


class BaseModelProvider(ABC):
    """Abstract model provider interface."""

    default_model: str = ""

    def __init__(self, model: Optional[str] = None, base_url: Optional[str] = None,
                 api_key: Optional[str] = None, **kwargs):
        self.model = model or self.default_model
        self.base_url = base_url
        # Stored privately and masked in repr
        self._api_key = api_key
        self.temperature = kwargs.get("temperature", 0.7)
        self.max_tokens = kwargs.get("max_tokens", 4096)
        self.timeout = kwargs.get("timeout", 300)

    @property
    def api_key(self) -> Optional[str]:
        """Access the API key (property to avoid accidental logging)."""
        return self._api_key

    def __repr__(self) -> str:
        """Mask API key in repr to prevent accidental logging."""
        masked = f"***{self._api_key[-4:]}" if self._api_key and len(self._api_key) > 4 else "***"
        return (
            f"{self.__class__.__name__}(model={self.model!r}, "
            f"api_key={masked!r})"
        )

    @abstractmethod
    def create_message(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[ProviderEvent]:
        """
        Send the conversation to the model and stream the response.

        Implemented as an async generator yielding TextEvent and UsageEvent in
        emission order. Errors propagate to the caller.

        Args:
            system_prompt: System prompt text
            messages: Full conversation history, oldest first
        """

    @property
    def provider_name(self) -> str:
        return self.__class__.__name__

    @staticmethod
    def _convert_messages(messages: list[Message]) -> list[dict]:
        """Plain role/content dicts, the shape every chat API accepts."""
        return [{"role": m.role, "content": m.content} for m in messages]


class ProviderFactory:
    """Create model providers from a ModelConfiguration."""

    _providers: dict[str, type[BaseModelProvider]] = {}

    @classmethod
    def register(cls, name: str, provider_class: type[BaseModelProvider]):
        cls._providers[name] = provider_class

    @classmethod
    def available(cls) -> list[str]:
        return sorted(cls._providers)

    @classmethod
    def validate(cls, configuration: ModelConfiguration) -> None:
        """Raise InvalidConfiguration unless the configuration names a known provider and a model."""
        if not isinstance(configuration, ModelConfiguration):
            raise InvalidConfiguration(
                f"expected a model provider or ModelConfiguration, got {type(configuration).__name__}"
            )
        if configuration.provider not in cls._providers:
            raise InvalidConfiguration(
                f"unknown provider {configuration.provider!r}. "
                f"Available: {cls.available()}",
                code=ErrorCode.PROVIDER_NOT_SUPPORTED,
            )
        if not configuration.model_id:
            raise InvalidConfiguration(
                f"no model id given for provider {configuration.provider!r}"
            )

    @classmethod
    def create(cls, configuration: ModelConfiguration) -> BaseModelProvider:
        """
        Create provider from a configuration.

        Example::

            ProviderFactory.create(ModelConfiguration(
                provider="anthropic",
                model_id="claude-sonnet-4-5-20250929",
                api_key="sk-ant-...",
                options={"temperature": 0.2},
            ))
        """
        cls.validate(configuration)
        provider_class = cls._providers[configuration.provider]
        kwargs = dict(configuration.options)
        if configuration.api_key is not None:
            kwargs["api_key"] = configuration.api_key
        if configuration.base_url is not None:
            kwargs["base_url"] = configuration.base_url
        provider = provider_class(model=configuration.model_id, **kwargs)
        logger.debug(f"Created provider {provider!r}")
        return provider
