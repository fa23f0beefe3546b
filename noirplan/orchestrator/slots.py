"""Single-slot in-flight tokens for mutable collections"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from .errors import SlotBusyError

logger = logging.getLogger(__name__)


class TaskSlot:
    """
    At most one gateway-backed operation per collection at a time.

    Claiming is check-and-set with no await in between, so on a single event
    loop two coroutines can never both hold the slot. A busy slot rejects the
    new request rather than queueing it.
    """

    def __init__(self, name: str):
        self.name = name
        self.holder: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.holder is not None

    @contextmanager
    def claim(self, token: str) -> Iterator[str]:
        """Hold the slot for the duration of the block"""
        if self.holder is not None:
            raise SlotBusyError(self.name, self.holder, token)

        self.holder = token
        logger.debug(f"[Slot] {self.name} claimed by {token}")
        try:
            yield token
        finally:
            self.holder = None
            logger.debug(f"[Slot] {self.name} released by {token}")


class TaskSlots:
    """The slots of one session"""

    def __init__(self):
        self.characters = TaskSlot("characters")
        self.issues = TaskSlot("issues")
