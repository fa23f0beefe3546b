"""Gemini LLM client implementation"""

import logging
import os
from typing import List, Optional

from google import genai
from google.genai import errors, types

from .provider import LLMProvider, LLMMessage, LLMResponse
from .errors import ProviderError

logger = logging.getLogger(__name__)


class GeminiClient(LLMProvider):
    """Google Gemini client (async API of google-genai)"""

    def __init__(
        self,
        model: str = "gemini-flash-latest",
        api_key: Optional[str] = None
    ):
        """
        Initialize Gemini client

        Args:
            model: Gemini model name
            api_key: API key; falls back to the GEMINI_API_KEY environment variable
        """
        api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set.")

        self.model = model
        self.client = genai.Client(api_key=api_key)

    async def generate(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate a response from Gemini"""
        system_instruction = "\n".join(m.content for m in messages if m.role == "system")
        contents = "\n\n".join(m.content for m in messages if m.role != "system")
        schema = kwargs.get("response_schema")

        config = types.GenerateContentConfig(
            system_instruction=system_instruction or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
            response_mime_type="application/json" if schema else None,
            response_json_schema=schema,
        )

        logger.debug(f"[Gemini] {kwargs.get('generation_kind', 'call')} -> {self.model}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except errors.APIError as e:
            raise ProviderError(f"Gemini API error: {str(e)}", status=e.code) from e

        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            content=response.text or "",
            model=self.model,
            usage={
                "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
                "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
                "total_tokens": getattr(usage, "total_token_count", 0) or 0,
            }
        )

    def get_model_name(self) -> str:
        """Get the model name being used"""
        return self.model
