"""Provider-agnostic LLM interface"""

from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from pydantic import BaseModel


class LLMMessage(BaseModel):
    """LLM message"""
    role: str  # system, user, assistant
    content: str


class LLMResponse(BaseModel):
    """LLM response"""
    content: str
    model: str
    usage: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations raise ``ProviderError`` with the backend's status so the
    gateway can tell transient failures from terminal ones.
    """

    @abstractmethod
    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from the LLM.

        Recognised kwargs: ``response_schema`` (JSON schema of the expected
        object, implies JSON output) and ``generation_kind`` (for logging).
        """
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the model name being used"""
        pass

    async def close(self):
        """Release any network resources"""
        return None
