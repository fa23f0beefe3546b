"""Ollama LLM client implementation"""

import asyncio
import logging
import aiohttp
from typing import List, Optional, Dict, Any

from .provider import LLMProvider, LLMMessage, LLMResponse
from .errors import ProviderError

logger = logging.getLogger(__name__)


class OllamaClient(LLMProvider):
    """Ollama client implementation"""

    def __init__(
        self,
        model: str = "llama3.1:70b",
        base_url: str = "http://localhost:11434",
        timeout: int = 300
    ):
        """
        Initialize Ollama client

        Args:
            model: Model name (e.g., "llama3.1:70b")
            base_url: Ollama API base URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()

    def _build_payload(
        self,
        messages: List[LLMMessage],
        temperature: float,
        max_tokens: Optional[int],
        response_schema: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Convert LLMMessages to an Ollama chat payload"""
        system_prompt_parts = [m.content for m in messages if m.role == "system"]

        conversation = []
        for msg in messages:
            if msg.role != "system":
                conversation.append({"role": msg.role, "content": msg.content})

        # Prepend system content to the first user message
        system_content = "\n".join(system_prompt_parts) if system_prompt_parts else ""
        if system_content:
            if conversation and conversation[0]["role"] == "user":
                conversation[0]["content"] = system_content + "\n\n" + conversation[0]["content"]
            else:
                conversation.insert(0, {"role": "user", "content": system_content})

        payload = {
            "model": self.model,
            "messages": conversation,
            "stream": False,
            "options": {
                "temperature": temperature,
            }
        }

        if max_tokens:
            payload["options"]["num_predict"] = max_tokens

        # Ollama accepts a JSON schema as structured-output format
        if response_schema:
            payload["format"] = response_schema

        return payload

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from Ollama"""
        session = await self._get_session()
        payload = self._build_payload(
            messages,
            temperature,
            max_tokens,
            kwargs.get("response_schema")
        )

        if "options" in kwargs:
            payload["options"].update(kwargs["options"])

        logger.debug(f"[Ollama] {kwargs.get('generation_kind', 'call')} -> {self.model}")

        try:
            async with session.post(
                f"{self.base_url}/api/chat",
                json=payload
            ) as response:
                response.raise_for_status()
                data = await response.json()
        except aiohttp.ClientResponseError as e:
            raise ProviderError(f"Ollama API error: {e.message}", status=e.status) from e
        except asyncio.TimeoutError as e:
            raise ProviderError("Ollama API timed out", status=504) from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"Ollama API error: {str(e)}") from e

        return LLMResponse(
            content=data.get("message", {}).get("content", ""),
            model=self.model,
            usage={
                "prompt_tokens": data.get("prompt_eval_count", 0),
                "completion_tokens": data.get("eval_count", 0),
                "total_tokens": data.get("prompt_eval_count", 0) + data.get("eval_count", 0),
            },
            metadata={
                "done": data.get("done", True),
                "total_duration": data.get("total_duration", 0),
            }
        )

    def get_model_name(self) -> str:
        """Get the model name being used"""
        return self.model
