"""LLM provider interfaces, implementations and the generation gateway"""

from .provider import LLMProvider, LLMMessage, LLMResponse
from .errors import GenerationError, ProviderError, MalformedResponseError
from .ollama_client import OllamaClient
from .gateway import GenerationGateway

__all__ = [
    "LLMProvider",
    "LLMMessage",
    "LLMResponse",
    "GenerationError",
    "ProviderError",
    "MalformedResponseError",
    "OllamaClient",
    "GenerationGateway",
]
