"""Orchestration of the mystery-building stages"""

from .errors import (
    StagePreconditionError,
    StageGateError,
    SlotBusyError,
    EntityNotFoundError,
    BulkRunError,
)
from .slots import TaskSlot, TaskSlots
from .workflow import StageWorkflow, StageTask, StageStatus
from .pipeline import StagePipeline, PipelineSettings
from .regeneration import CharacterRegenerator, CastEditor, replace_by_id, MAX_SUSPECTS
from .audit_loop import AuditWorkflow
from .bulk_runner import LuckyRunner, LuckyConfig
from .session import MysterySession

__all__ = [
    "MysterySession",
    "StagePipeline",
    "PipelineSettings",
    "CharacterRegenerator",
    "CastEditor",
    "replace_by_id",
    "MAX_SUSPECTS",
    "AuditWorkflow",
    "LuckyRunner",
    "LuckyConfig",
    "StageWorkflow",
    "StageTask",
    "StageStatus",
    "TaskSlot",
    "TaskSlots",
    # Errors
    "StagePreconditionError",
    "StageGateError",
    "SlotBusyError",
    "EntityNotFoundError",
    "BulkRunError",
]
