"""Base agent class with gateway access and shared prompt helpers"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any, Optional, Type, TypeVar

from pydantic import BaseModel

from noirplan.llm import GenerationGateway
from noirplan.models import GenerationKind, Mystery

T = TypeVar("T", bound=BaseModel)

PROMPTS_DIR = Path(__file__).parent.parent.parent / "config" / "prompts"


class BaseAgent(ABC):
    """Base class for all stage agents.

    Agents turn a slice of the mystery into one backend call and hand back the
    validated result. They never write to the document; committing is the
    pipeline's job.
    """

    def __init__(self, name: str, gateway: GenerationGateway):
        """
        Initialize base agent

        Args:
            name: Agent name (also the prompt file name under config/prompts)
            gateway: Generation gateway
        """
        self.name = name
        self.gateway = gateway

        # Load prompt template
        prompt_path = PROMPTS_DIR / f"{name}.txt"
        if prompt_path.exists():
            with open(prompt_path, "r", encoding="utf-8") as f:
                self.system_prompt = f.read()
        else:
            self.system_prompt = self._default_system_prompt()

    def _default_system_prompt(self) -> str:
        """Default system prompt if file not found"""
        return (
            "You are a designer of murder mystery party games. "
            "You write clear, playable material for a host and their guests."
        )

    async def generate_text(
        self,
        kind: GenerationKind,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """Generate free prose"""
        return await self.gateway.invoke(
            kind,
            system_prompt=self.system_prompt,
            user_prompt=user_prompt,
            temperature=temperature,
            max_tokens=max_tokens
        )

    async def generate_structured_output(
        self,
        kind: GenerationKind,
        user_prompt: str,
        response_model: Type[T],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> T:
        """Generate a response validated into response_model"""
        return await self.gateway.invoke(
            kind,
            system_prompt=self.system_prompt,
            user_prompt=user_prompt,
            response_model=response_model,
            temperature=temperature,
            max_tokens=max_tokens
        )

    @abstractmethod
    async def execute(self, context: Dict[str, Any]) -> Any:
        """
        Execute the agent's main task

        Args:
            context: Stage inputs (usually the current mystery plus parameters)

        Returns:
            The validated stage output
        """
        pass

    def _require_mystery(self, context: Dict[str, Any]) -> Mystery:
        mystery = context.get("mystery")
        if mystery is None:
            raise ValueError("Mystery required in context")
        return mystery
