"""Pipeline stage and generation kind enums"""

from enum import Enum
from typing import Optional


class Stage(str, Enum):
    """Stages of the mystery builder, in order"""
    CONCEPT = "concept"
    CASTING = "casting"
    TIMELINE = "timeline"
    CLUES = "clues"
    DOSSIERS = "dossiers"
    AUDIT = "audit"
    OUTPUT = "output"  # Final review & print

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]

    @property
    def position(self) -> int:
        """1-based position in the stage selector"""
        return list(Stage).index(self) + 1

    def next(self) -> Optional["Stage"]:
        stages = list(Stage)
        idx = stages.index(self)
        return stages[idx + 1] if idx + 1 < len(stages) else None

    def previous(self) -> Optional["Stage"]:
        stages = list(Stage)
        idx = stages.index(self)
        return stages[idx - 1] if idx > 0 else None


_STAGE_LABELS = {
    Stage.CONCEPT: "Concept",
    Stage.CASTING: "Casting",
    Stage.TIMELINE: "Timeline",
    Stage.CLUES: "Clues",
    Stage.DOSSIERS: "Dossiers",
    Stage.AUDIT: "Audit",
    Stage.OUTPUT: "Print",
}


class GenerationKind(str, Enum):
    """Kinds of backend calls; each one expects its own response shape"""
    CONCEPT = "concept"
    REFINE_CONCEPT = "refine_concept"
    CASTING = "casting"
    RECAST = "recast"
    TIMELINE = "timeline"
    CLUES = "clues"
    DOSSIER = "dossier"
    AUDIT = "audit"
    COVERAGE = "coverage"
    RESOLVE = "resolve"
