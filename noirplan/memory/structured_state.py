"""Key-value interface for persisted session state"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueState(ABC):
    """Abstract interface for whole-value persistence under fixed keys"""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Read the serialized value stored under key, or None"""
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store a serialized value under key, replacing any previous one"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key; returns whether anything was removed"""
        pass
