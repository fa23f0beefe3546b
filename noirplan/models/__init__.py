"""Pydantic schemas for NoirPlan data structures"""

from .character import Character, CharacterInfo, Gender
from .clue import Clue
from .audit import StoryBeat, ConsistencyIssue, ConsistencyReport
from .mystery import Mystery
from .stage import Stage, GenerationKind
from .generation import (
    StoryConcept,
    CastMember,
    CastList,
    DossierContent,
    ClueList,
    IssueDraft,
    AuditVerdict,
    BeatList,
    ResolutionPatch,
)

__all__ = [
    # Characters
    "Character",
    "CharacterInfo",
    "Gender",
    # Evidence
    "Clue",
    # Audit
    "StoryBeat",
    "ConsistencyIssue",
    "ConsistencyReport",
    # Document
    "Mystery",
    # Stages
    "Stage",
    "GenerationKind",
    # Backend response schemas
    "StoryConcept",
    "CastMember",
    "CastList",
    "DossierContent",
    "ClueList",
    "IssueDraft",
    "AuditVerdict",
    "BeatList",
    "ResolutionPatch",
]
