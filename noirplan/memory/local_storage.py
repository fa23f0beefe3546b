"""Local file-based and in-memory storage implementations"""

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional

from .structured_state import KeyValueState


class LocalFileState(KeyValueState):
    """Local file-based key-value storage, one file per key"""

    def __init__(self, storage_dir: str = "./data"):
        """
        Initialize local file storage

        Args:
            storage_dir: Directory to store data files
        """
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _get_item_path(self, key: str) -> Path:
        """Get file path for a key"""
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.storage_dir / f"{safe_key}.json"

    def read(self, key: str) -> Optional[str]:
        """Read a value from local storage"""
        file_path = self._get_item_path(key)

        if not file_path.exists():
            return None

        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, value: str) -> None:
        """Write a value to local storage (atomic replace)"""
        file_path = self._get_item_path(key)

        fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def delete(self, key: str) -> bool:
        """Delete a value from local storage"""
        file_path = self._get_item_path(key)

        if file_path.exists():
            file_path.unlink()
            return True
        return False


class InMemoryState(KeyValueState):
    """Process-local storage (tests, throwaway sessions)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def write(self, key: str, value: str) -> None:
        self.items[key] = value

    def delete(self, key: str) -> bool:
        return self.items.pop(key, None) is not None
