"""Memory and storage interfaces"""

from .structured_state import KeyValueState
from .local_storage import LocalFileState, InMemoryState
from .document_store import DocumentStore, ResetNotConfirmedError, DOCUMENT_KEY, STAGE_KEY

__all__ = [
    "KeyValueState",
    "LocalFileState",
    "InMemoryState",
    "DocumentStore",
    "ResetNotConfirmedError",
    "DOCUMENT_KEY",
    "STAGE_KEY",
]
