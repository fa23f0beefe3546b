"""Document store: the single mutable mystery document and the stage cursor"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from noirplan.models import Mystery, Stage
from .structured_state import KeyValueState

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "noirplan_mystery_data_v4"
STAGE_KEY = "noirplan_current_view_v4"


class ResetNotConfirmedError(Exception):
    """Reset was requested without explicit confirmation"""


class DocumentStore:
    """
    Holds the live Mystery and persists it after every update.

    Updates are shallow merges of top-level fields: a supplied field replaces
    the previous value wholesale, omitted fields keep the very same objects.
    """

    def __init__(self, state: KeyValueState):
        """
        Initialize the store and restore any persisted session

        Args:
            state: Key-value storage backing the document and stage cursor
        """
        self.state = state
        self._mystery = self._restore_document()
        self._stage = self._restore_stage()

    def _restore_document(self) -> Mystery:
        try:
            raw = self.state.read(DOCUMENT_KEY)
            if raw is None:
                return Mystery()
            return Mystery.model_validate_json(raw)
        except (ValidationError, ValueError, OSError) as e:
            logger.warning(f"Could not restore saved mystery, starting empty: {e}")
            return Mystery()

    def _restore_stage(self) -> Stage:
        try:
            raw = self.state.read(STAGE_KEY)
        except (ValueError, OSError) as e:
            logger.warning(f"Could not restore saved stage, starting at concept: {e}")
            return Stage.CONCEPT
        if raw is None:
            return Stage.CONCEPT
        try:
            return Stage(raw.strip())
        except ValueError:
            logger.warning(f"Unknown saved stage {raw!r}, starting at concept")
            return Stage.CONCEPT

    def get(self) -> Mystery:
        """Current document"""
        return self._mystery

    def update(self, partial: Dict[str, Any]) -> Mystery:
        """
        Merge top-level field replacements into the document and persist it.

        Args:
            partial: Field name -> new value (models or plain data)

        Returns:
            The updated document

        Raises:
            ValueError: unknown field name or invalid value; nothing is changed
        """
        unknown = set(partial) - set(Mystery.model_fields)
        if unknown:
            raise ValueError(f"Unknown mystery fields: {sorted(unknown)}")

        merged = {name: getattr(self._mystery, name) for name in Mystery.model_fields}
        merged.update(partial)
        mystery = Mystery.model_validate(merged)

        self.state.write(DOCUMENT_KEY, mystery.model_dump_json())
        self._mystery = mystery
        logger.debug(f"Mystery updated: {', '.join(sorted(partial)) or '(nothing)'}")
        return mystery

    @property
    def stage(self) -> Stage:
        return self._stage

    def set_stage(self, stage: Stage) -> Stage:
        """Move the stage cursor and persist it"""
        stage = Stage(stage)
        self.state.write(STAGE_KEY, stage.value)
        self._stage = stage
        return self._stage

    def reset(self, confirmed: bool = False) -> Mystery:
        """
        Start over with an empty mystery, clearing persisted state.

        Args:
            confirmed: Must be True; progress is lost

        Raises:
            ResetNotConfirmedError: if not confirmed
        """
        if not confirmed:
            raise ResetNotConfirmedError("Starting a new mystery discards current progress; confirmation required")

        self._mystery = Mystery()
        self._stage = Stage.CONCEPT
        self.state.delete(DOCUMENT_KEY)
        self.state.delete(STAGE_KEY)
        logger.info("Mystery reset")
        return self._mystery
