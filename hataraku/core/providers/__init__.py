"""Model providers. Importing this package registers every provider with ProviderFactory."""

from .base import BaseModelProvider, ModelConfiguration, ProviderFactory
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .openrouter_provider import OpenRouterProvider
from .mistral_provider import MistralProvider
from .ollama import OllamaProvider
from .mock import MockProvider

__all__ = [
    "BaseModelProvider",
    "ModelConfiguration",
    "ProviderFactory",
    "AnthropicProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "MistralProvider",
    "OllamaProvider",
    "MockProvider",
]
