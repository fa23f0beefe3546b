"""Orchestration errors"""

from typing import List, Optional

from noirplan.models import Stage


class StagePreconditionError(Exception):
    """A stage was invoked before its upstream data exists"""

    def __init__(self, stage: Stage, reasons: List[str]):
        super().__init__(f"Cannot run {stage.label}: {'; '.join(reasons)}")
        self.stage = stage
        self.reasons = reasons


class StageGateError(Exception):
    """Navigation past a stage whose required fields are still empty"""

    def __init__(self, stage: Stage, reasons: List[str]):
        super().__init__(f"Cannot leave {stage.label} yet: {'; '.join(reasons)}")
        self.stage = stage
        self.reasons = reasons


class SlotBusyError(Exception):
    """Another operation already holds the collection's task slot"""

    def __init__(self, slot: str, holder: str, requested: str):
        super().__init__(f"{slot} is busy with {holder!r}; cannot start {requested!r}")
        self.slot = slot
        self.holder = holder
        self.requested = requested


class EntityNotFoundError(LookupError):
    """No element with the given id in the target collection"""

    def __init__(self, collection: str, entity_id: str):
        super().__init__(f"No {collection} entry with id {entity_id!r}")
        self.collection = collection
        self.entity_id = entity_id


class BulkRunError(Exception):
    """A bulk run stopped at a stage; earlier steps stay committed"""

    def __init__(self, stage: Stage, cause: Optional[BaseException] = None):
        super().__init__(f"Bulk generation stopped at {stage.label}: {cause}")
        self.stage = stage
        self.cause = cause
