"""Errors raised by LLM providers and the generation gateway"""

from typing import Optional


class GenerationError(Exception):
    """Base class for content backend failures"""

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class ProviderError(GenerationError):
    """The backend call itself failed.

    ``status`` is the HTTP-equivalent status when the backend reported one.
    Rate limiting (429) and server-side errors (5xx) are retryable; anything
    else, including failures without a status, is terminal.
    """

    def __init__(self, message: str, status: Optional[int] = None, kind: Optional[str] = None):
        super().__init__(message, kind=kind)
        self.status = status

    @property
    def retryable(self) -> bool:
        if self.status is None:
            return False
        return self.status == 429 or self.status >= 500


class MalformedResponseError(GenerationError):
    """The backend answered, but not in the expected shape"""

    def __init__(self, message: str, raw: str = "", kind: Optional[str] = None):
        super().__init__(message, kind=kind)
        self.raw = raw
