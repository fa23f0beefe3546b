"""Mystery session: owns the document, the workers and the stage cursor"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional

from noirplan.llm import GenerationGateway
from noirplan.memory import DocumentStore
from noirplan.models import Mystery, Stage
from .audit_loop import AuditWorkflow
from .bulk_runner import LuckyRunner
from .errors import StageGateError
from .pipeline import PipelineSettings, StagePipeline
from .regeneration import CastEditor, CharacterRegenerator
from .slots import TaskSlots
from .workflow import StageStatus, StageWorkflow

logger = logging.getLogger(__name__)


class MysterySession:
    """
    One working session on one mystery.

    All workers share the same store and task slots, so the busy rules hold
    across the pipeline, the regenerator, the audit loop and the bulk runner.
    """

    def __init__(
        self,
        store: DocumentStore,
        gateway: GenerationGateway,
        settings: Optional[PipelineSettings] = None,
        rng: Optional[random.Random] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        """
        Initialize session

        Args:
            store: Document store (already restored from persistence)
            gateway: Generation gateway shared by every worker
            settings: Pipeline settings
            rng: Random source for role assignment
            sleep: Awaitable sleep used to space per-character calls
        """
        self.store = store
        self.gateway = gateway
        self.settings = settings or PipelineSettings()
        self.slots = TaskSlots()
        self.workflow = StageWorkflow()

        self.pipeline = StagePipeline(store, gateway, self.slots, self.settings, self.workflow, rng)
        self.regenerator = CharacterRegenerator(
            store,
            gateway,
            self.slots,
            self.workflow,
            enforce_preconditions=self.settings.enforce_preconditions,
            spacing_seconds=self.settings.entity_spacing_seconds,
            sleep=sleep or asyncio.sleep
        )
        self.editor = CastEditor(store)
        self.audit = AuditWorkflow(
            store,
            gateway,
            self.slots,
            self.workflow,
            enforce_preconditions=self.settings.enforce_preconditions
        )
        self.lucky = LuckyRunner(store, self.pipeline, self.regenerator, self.audit, self.workflow)

    @property
    def mystery(self) -> Mystery:
        return self.store.get()

    @property
    def stage(self) -> Stage:
        return self.store.stage

    def go_to(self, stage: Stage) -> Stage:
        """Jump to any stage"""
        return self.store.set_stage(Stage(stage))

    def gate_reasons(self) -> List[str]:
        return self.workflow.check_gate(self.stage, self.mystery)

    def advance(self) -> Stage:
        """
        Move to the next stage.

        Raises:
            StageGateError: If the current stage's required fields are empty
        """
        current = self.stage
        following = current.next()
        if following is None:
            return current

        reasons = self.gate_reasons()
        if reasons:
            raise StageGateError(current, reasons)
        return self.store.set_stage(following)

    def back(self) -> Stage:
        previous = self.stage.previous()
        if previous is None:
            return self.stage
        return self.store.set_stage(previous)

    def status(self) -> Dict[Stage, StageStatus]:
        return self.workflow.status(self.mystery)

    def new_mystery(self, confirmed: bool = False) -> Mystery:
        """Discard everything and start over (requires confirmation)"""
        return self.store.reset(confirmed)

    async def close(self):
        await self.gateway.close()
