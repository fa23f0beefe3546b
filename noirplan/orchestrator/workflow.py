"""Stage dependency management: preconditions, navigation gates, status"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from noirplan.models import Mystery, Stage
from .errors import StagePreconditionError

logger = logging.getLogger(__name__)

Check = Callable[[Mystery], List[str]]


class StageStatus(str, Enum):
    """Stage status derived from the document"""
    BLOCKED = "blocked"  # upstream data missing
    READY = "ready"
    COMPLETED = "completed"


def _nothing(mystery: Mystery) -> List[str]:
    return []


def _has_incident(mystery: Mystery) -> List[str]:
    return [] if mystery.core_story.strip() else ["concept has no incident description"]


def _has_cast(mystery: Mystery) -> List[str]:
    return [] if mystery.characters else ["no suspects have been cast"]


def _has_roles(mystery: Mystery) -> List[str]:
    reasons = _has_cast(mystery)
    if mystery.killer is None:
        reasons.append("killer is not one of the cast")
    if mystery.saboteur is None:
        reasons.append("saboteur is not one of the cast")
    return reasons


def _has_timeline(mystery: Mystery) -> List[str]:
    return [] if mystery.timeline.strip() else ["no timeline has been written"]


def _has_clues(mystery: Mystery) -> List[str]:
    return [] if mystery.clues else ["no clues have been generated"]


def _all_fleshed(mystery: Mystery) -> List[str]:
    reasons = _has_cast(mystery)
    pending = [c.name for c in mystery.characters if not c.is_fleshed]
    if pending:
        reasons.append(f"dossiers missing for: {', '.join(pending)}")
    return reasons


def _has_report(mystery: Mystery) -> List[str]:
    return [] if mystery.consistency_report is not None else ["audit has not been run"]


class StageTask:
    """A stage with what it needs before running and before moving on"""

    def __init__(
        self,
        stage: Stage,
        dependencies: Optional[List[Stage]] = None,
        precondition: Check = _nothing,
        gate: Check = _nothing
    ):
        """
        Initialize stage task

        Args:
            stage: The stage
            dependencies: Stages whose output this stage consumes
            precondition: Reasons the stage cannot run yet (empty if it can)
            gate: Reasons navigation cannot advance past this stage (empty if it can)
        """
        self.stage = stage
        self.dependencies = dependencies or []
        self.precondition = precondition
        self.gate = gate


class StageWorkflow:
    """Manages stage dependencies and derived status"""

    def __init__(self):
        """Initialize workflow with the mystery builder's stages"""
        self.tasks: Dict[Stage, StageTask] = {}

        self.add_task(Stage.CONCEPT, gate=_has_incident)
        self.add_task(Stage.CASTING, [Stage.CONCEPT], precondition=_has_incident, gate=_has_cast)
        self.add_task(Stage.TIMELINE, [Stage.CONCEPT, Stage.CASTING], precondition=_has_roles, gate=_has_timeline)
        self.add_task(Stage.CLUES, [Stage.TIMELINE], precondition=_has_timeline, gate=_has_clues)
        self.add_task(
            Stage.DOSSIERS,
            [Stage.CASTING, Stage.TIMELINE],
            precondition=lambda m: _has_cast(m) + _has_timeline(m),
            gate=_all_fleshed
        )
        self.add_task(Stage.AUDIT, [Stage.DOSSIERS, Stage.CLUES], precondition=_has_cast, gate=_has_report)
        self.add_task(Stage.OUTPUT, [Stage.AUDIT])

    def add_task(
        self,
        stage: Stage,
        dependencies: Optional[List[Stage]] = None,
        precondition: Check = _nothing,
        gate: Check = _nothing
    ):
        """Add a stage to the workflow"""
        self.tasks[stage] = StageTask(stage, dependencies, precondition, gate)

    def check_preconditions(self, stage: Stage, mystery: Mystery) -> List[str]:
        """Reasons the stage would run on missing upstream data"""
        return self.tasks[stage].precondition(mystery)

    def require(self, stage: Stage, mystery: Mystery, enforce: bool = True):
        """
        Refuse (or warn about) running a stage whose upstream data is missing

        Raises:
            StagePreconditionError: If preconditions are unmet and enforce is set
        """
        reasons = self.check_preconditions(stage, mystery)
        if not reasons:
            return
        if enforce:
            raise StagePreconditionError(stage, reasons)
        logger.warning(f"Running {stage.label} out of order: {'; '.join(reasons)}")

    def check_gate(self, stage: Stage, mystery: Mystery) -> List[str]:
        """Reasons navigation may not advance past the stage"""
        return self.tasks[stage].gate(mystery)

    def can_advance(self, stage: Stage, mystery: Mystery) -> bool:
        return not self.check_gate(stage, mystery)

    def status(self, mystery: Mystery) -> Dict[Stage, StageStatus]:
        """Status of every stage for the given document"""
        statuses = {}
        for stage, task in self.tasks.items():
            if stage is not Stage.OUTPUT and not task.gate(mystery):
                statuses[stage] = StageStatus.COMPLETED
            elif not task.precondition(mystery):
                statuses[stage] = StageStatus.READY
            else:
                statuses[stage] = StageStatus.BLOCKED
        return statuses

    def get_execution_order(self) -> List[Stage]:
        """Get the execution order of stages (topological sort)"""
        completed = set()
        order = []

        while len(completed) < len(self.tasks):
            ready = [
                task.stage
                for task in self.tasks.values()
                if task.stage not in completed
                and all(dep in completed for dep in task.dependencies)
            ]

            if not ready:
                remaining = [s.value for s in self.tasks if s not in completed]
                raise ValueError(f"Cannot resolve dependencies for stages: {remaining}")

            ready.sort(key=lambda s: s.position)
            order.extend(ready)
            completed.update(ready)

        return order
