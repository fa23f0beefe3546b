"""Bulk runner: every stage, end to end, in one go"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field

from noirplan.memory import DocumentStore
from noirplan.models import Mystery, Stage
from noirplan.models.mystery import DEFAULT_NUM_GUESTS
from .audit_loop import AuditWorkflow
from .errors import BulkRunError
from .pipeline import StagePipeline
from .regeneration import CharacterRegenerator
from .workflow import StageWorkflow

logger = logging.getLogger(__name__)

BulkProgressCallback = Callable[[Stage, str], None]


class LuckyConfig(BaseModel):
    """Inputs for a full unattended run"""
    theme: str = Field(..., min_length=1, description="Mystery theme")
    location: str = Field(default="", description="Where the party takes place")
    num_guests: int = Field(default=DEFAULT_NUM_GUESTS, ge=1, le=12)
    details: str = Field(default="", description="Anything else the concept should honour")
    clue_tools: Optional[str] = Field(default=None, description="Fabrication tools; keeps current if None")
    run_audit: bool = Field(default=True)


class LuckyRunner:
    """
    Runs the whole pipeline sequentially.

    Each step commits as it completes and the stage cursor follows the
    running step. The first failure stops the run; whatever was committed
    before it stays in the document.
    """

    def __init__(
        self,
        store: DocumentStore,
        pipeline: StagePipeline,
        regenerator: CharacterRegenerator,
        audit: AuditWorkflow,
        workflow: Optional[StageWorkflow] = None
    ):
        self.store = store
        self.pipeline = pipeline
        self.regenerator = regenerator
        self.audit = audit
        self.workflow = workflow or StageWorkflow()

    async def run(self, config: LuckyConfig, on_progress: Optional[BulkProgressCallback] = None) -> Mystery:
        """
        Generate a complete mystery.

        Raises:
            BulkRunError: On the first failing step (cause attached)
        """
        def report(stage: Stage, message: str):
            logger.info(f"[Lucky] {stage.label}: {message}")
            if on_progress:
                on_progress(stage, message)

        def dossier_progress(done, total, character):
            report(Stage.DOSSIERS, f"Dossier {done}/{total}: {character.name}")

        steps: Dict[Stage, Callable[[], Awaitable[Mystery]]] = {
            Stage.CONCEPT: lambda: self.pipeline.generate_concept(
                config.theme, config.location, config.num_guests, config.details
            ),
            Stage.CASTING: lambda: self.pipeline.cast_suspects(config.num_guests, assign_roles=True),
            Stage.TIMELINE: self.pipeline.build_timeline,
            Stage.CLUES: lambda: self.pipeline.generate_clues(config.clue_tools),
            Stage.DOSSIERS: lambda: self.regenerator.flesh_all(dossier_progress),
            Stage.AUDIT: self.audit.run_audit,
        }
        messages = {
            Stage.CONCEPT: "Drafting concept...",
            Stage.CASTING: "Casting suspects and choosing roles...",
            Stage.TIMELINE: "Writing the master timeline...",
            Stage.CLUES: "Designing the evidence kit...",
            Stage.DOSSIERS: "Writing dossiers...",
            Stage.AUDIT: "Auditing for consistency...",
        }

        mystery = self.store.get()
        for stage in self.workflow.get_execution_order():
            step = steps.get(stage)
            if step is None:
                continue
            if stage is Stage.AUDIT and not config.run_audit:
                report(stage, "Skipped")
                continue

            self.store.set_stage(stage)
            report(stage, messages[stage])
            try:
                mystery = await step()
            except Exception as e:
                logger.error(f"[Lucky] Stopped at {stage.label}: {e}")
                raise BulkRunError(stage, e) from e

        self.store.set_stage(Stage.OUTPUT)
        report(Stage.OUTPUT, "Mystery complete")
        return mystery
