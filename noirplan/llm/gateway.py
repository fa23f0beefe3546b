"""Generation gateway: the retrying, schema-checking door to the content backend"""

import asyncio
import json
import logging
import re
from typing import Awaitable, Callable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from noirplan.models import GenerationKind
from .provider import LLMProvider, LLMMessage, LLMResponse
from .errors import ProviderError, MalformedResponseError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_FORMAT_INSTRUCTION = (
    "\n\nIMPORTANT: Respond with valid JSON only. Do not include any text before or after the JSON. "
    "Do not include any markdown formatting or code blocks. Return pure JSON matching this schema:\n"
)


def fix_json(text: str) -> str:
    """
    Attempt to fix common JSON issues from LLM output.

    Args:
        text: JSON string that may have issues

    Returns:
        Fixed JSON string
    """
    # Remove trailing commas before } or ]
    text = re.sub(r',(\s*[}\]])', r'\1', text)

    open_braces = text.count('{') - text.count('}')
    open_brackets = text.count('[') - text.count(']')

    # Truncated output: drop the dangling key/value and close what is open
    if open_braces > 0 or open_brackets > 0:
        text = re.sub(r',\s*"[^"]*":\s*[^,}\]]*$', '', text)
        text = re.sub(r',\s*$', '', text)

        text = text.rstrip()
        for _ in range(open_brackets):
            text += ']'
        for _ in range(open_braces):
            text += '}'

    return text


def extract_json(text: str) -> str:
    """
    Extract JSON from text that may contain extra content before/after.

    Args:
        text: Raw text that may contain JSON

    Returns:
        Extracted JSON string
    """
    text = text.strip()

    # Remove markdown code blocks if present
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]

    if text.endswith("```"):
        text = text[:-3]

    text = text.strip()

    json_start = -1
    for i, char in enumerate(text):
        if char in '{[':
            json_start = i
            break

    if json_start == -1:
        return text

    start_char = text[json_start]
    end_char = '}' if start_char == '{' else ']'

    depth = 0
    in_string = False
    escape_next = False
    json_end = -1

    for i in range(json_start, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue

        if char == '\\' and in_string:
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == start_char:
            depth += 1
        elif char == end_char:
            depth -= 1
            if depth == 0:
                json_end = i + 1
                break

    if json_end > json_start:
        return text[json_start:json_end]

    return fix_json(text[json_start:])


class GenerationGateway:
    """Uniform call contract to the content backend.

    Every ``invoke`` is one independent round trip (plus retries). Rate-limit
    and server-side failures are retried with exponential backoff; everything
    else propagates to the caller untouched. Structured responses are
    validated into the caller's pydantic model before they leave the gateway.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        max_retries: int = 3,
        initial_delay: float = 2.0,
        temperature: float = 0.7,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        """
        Initialize gateway

        Args:
            llm_provider: Backend provider
            max_retries: Retries after the first attempt for transient failures
            initial_delay: First backoff delay in seconds, doubled each retry
            temperature: Default sampling temperature
            sleep: Awaitable sleep function (injectable for tests)
        """
        self.llm_provider = llm_provider
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.temperature = temperature
        self._sleep = sleep or asyncio.sleep

    async def invoke(
        self,
        kind: GenerationKind,
        system_prompt: str,
        user_prompt: str,
        response_model: Optional[Type[T]] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Union[T, str]:
        """
        Make one backend call for a stage.

        Args:
            kind: Which generation this is
            system_prompt: System instruction prompt
            user_prompt: Stage request
            response_model: Expected response shape; None for free prose
            temperature: Sampling temperature (gateway default if None)
            max_tokens: Maximum tokens to generate

        Returns:
            Validated response_model instance, or the raw text for prose

        Raises:
            ProviderError: terminal backend failure, or transient after retries
            MalformedResponseError: response does not match response_model
        """
        kwargs = {"generation_kind": kind.value}
        if response_model is not None:
            schema = response_model.model_json_schema()
            kwargs["response_schema"] = schema
            user_prompt = user_prompt + JSON_FORMAT_INSTRUCTION + json.dumps(schema)

        messages = [
            LLMMessage(role="system", content=system_prompt),
            LLMMessage(role="user", content=user_prompt)
        ]

        response = await self._generate_with_retry(
            kind,
            messages,
            temperature if temperature is not None else self.temperature,
            max_tokens,
            kwargs
        )

        if response_model is None:
            return response.content

        return self._parse(kind, response.content, response_model)

    async def _generate_with_retry(
        self,
        kind: GenerationKind,
        messages: List[LLMMessage],
        temperature: float,
        max_tokens: Optional[int],
        kwargs: dict
    ) -> LLMResponse:
        delay = self.initial_delay
        retries_left = self.max_retries
        attempt = 1

        while True:
            try:
                logger.debug(f"[Gateway] {kind.value} attempt {attempt}")
                return await self.llm_provider.generate(
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    **kwargs
                )
            except ProviderError as e:
                if e.kind is None:
                    e.kind = kind.value
                if not e.retryable:
                    raise
                if retries_left <= 0:
                    logger.error(f"[Gateway] {kind.value} failed after {self.max_retries} retries: {e}")
                    raise
                logger.warning(
                    f"[Gateway] {kind.value} transient error (status {e.status}); retrying in {delay:.1f}s"
                )
                await self._sleep(delay)
                delay *= 2
                retries_left -= 1
                attempt += 1

    async def close(self):
        await self.llm_provider.close()

    def _parse(self, kind: GenerationKind, content: str, response_model: Type[T]) -> T:
        cleaned = extract_json(content)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"{kind.value} response is not valid JSON: {e}",
                raw=content,
                kind=kind.value
            ) from e

        try:
            return response_model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(
                f"{kind.value} response does not match {response_model.__name__}: {e}",
                raw=content,
                kind=kind.value
            ) from e
