"""Stage pipeline: one backend call per stage, one commit per success"""

import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from noirplan.agents import ConceptAgent, CastingAgent, TimelineAgent, ClueAgent
from noirplan.llm import GenerationGateway
from noirplan.memory import DocumentStore
from noirplan.models import Character, Mystery, Stage, StoryConcept
from .errors import StagePreconditionError, EntityNotFoundError
from .regeneration import with_unique_ids
from .slots import TaskSlots
from .workflow import StageWorkflow

logger = logging.getLogger(__name__)


@dataclass
class PipelineSettings:
    """Pipeline behaviour switches (``pipeline`` section of the config)"""
    enforce_preconditions: bool = True
    distinct_roles: bool = False
    entity_spacing_seconds: float = 1.0

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "PipelineSettings":
        pipeline_config = (config or {}).get("pipeline", {}) or {}
        return cls(
            enforce_preconditions=pipeline_config.get("enforce_preconditions", True),
            distinct_roles=pipeline_config.get("distinct_roles", False),
            entity_spacing_seconds=pipeline_config.get("entity_spacing_seconds", 1.0),
        )


def concept_fields(concept: StoryConcept) -> Dict[str, str]:
    """Document fields written by the concept stage"""
    return {
        "title": concept.title,
        "victim_name": concept.victim,
        "environment": concept.atmosphere,
        "core_story": concept.incident,
        "general_parties": concept.parties,
        "twist": concept.twist,
    }


class StagePipeline:
    """
    Runs the Concept, Casting, Timeline and Clues stages.

    Each stage reads the current document, makes its gateway call and commits
    its fields in a single update. A failed call propagates and leaves the
    document exactly as it was.
    """

    def __init__(
        self,
        store: DocumentStore,
        gateway: GenerationGateway,
        slots: Optional[TaskSlots] = None,
        settings: Optional[PipelineSettings] = None,
        workflow: Optional[StageWorkflow] = None,
        rng: Optional[random.Random] = None
    ):
        self.store = store
        self.slots = slots or TaskSlots()
        self.settings = settings or PipelineSettings()
        self.workflow = workflow or StageWorkflow()
        self.rng = rng or random.Random()

        self.concept_agent = ConceptAgent(gateway)
        self.casting_agent = CastingAgent(gateway)
        self.timeline_agent = TimelineAgent(gateway)
        self.clue_agent = ClueAgent(gateway)

    def check(self, stage: Stage, mystery: Optional[Mystery] = None):
        self.workflow.require(stage, mystery or self.store.get(), self.settings.enforce_preconditions)

    # Concept

    async def generate_concept(
        self,
        theme: str,
        location: str = "",
        num_guests: Optional[int] = None,
        details: str = ""
    ) -> Mystery:
        """Draft the base story (no killer yet) and commit it"""
        self.check(Stage.CONCEPT)
        num_guests = num_guests or self.store.get().num_guests

        concept = await self.concept_agent.execute({
            "theme": theme,
            "location": location,
            "num_guests": num_guests,
            "details": details,
        })

        logger.info(f"Concept drafted: {concept.title}")
        return self.store.update({
            **concept_fields(concept),
            "theme": theme,
            "num_guests": num_guests,
        })

    async def refine_concept(self, suggestion: str) -> Mystery:
        """Revise the current concept; a blank suggestion changes nothing"""
        if not suggestion or not suggestion.strip():
            return self.store.get()

        current = ConceptAgent.current_concept(self.store.get())
        concept = await self.concept_agent.refine(current, suggestion.strip())

        logger.info(f"Concept refined: {concept.title}")
        return self.store.update(concept_fields(concept))

    # Casting

    async def cast_suspects(self, num_guests: Optional[int] = None, assign_roles: bool = True) -> Mystery:
        """
        Replace the cast with fresh suspect skeletons.

        Args:
            num_guests: Suspect count (document's num_guests if None)
            assign_roles: Pick killer and saboteur from the new cast afterwards
        """
        mystery = self.store.get()
        self.check(Stage.CASTING, mystery)
        num_guests = num_guests or mystery.num_guests

        with self.slots.characters.claim("cast"):
            members = await self.casting_agent.execute({
                "incident": mystery.core_story,
                "parties": mystery.general_parties,
                "num_guests": num_guests,
            })

        characters = with_unique_ids([
            Character(
                id=m.id,
                name=m.name,
                gender=m.gender,
                archetype=m.archetype,
                initial_motive=m.initial_motive,
            )
            for m in members
        ])

        logger.info(f"Cast {len(characters)} suspects")
        mystery = self.store.update({"characters": characters, "num_guests": num_guests})

        if assign_roles:
            mystery = self.assign_roles()
        return mystery

    def assign_roles(self) -> Mystery:
        """
        Choose the killer and the saboteur uniformly at random.

        The two picks are independent, so one suspect may hold both roles,
        unless the ``distinct_roles`` setting is on.
        """
        characters = self.store.get().characters
        if not characters:
            raise StagePreconditionError(Stage.CASTING, ["no suspects have been cast"])

        ids = [c.id for c in characters]
        killer_id = self.rng.choice(ids)
        candidates = ids
        if self.settings.distinct_roles and len(ids) > 1:
            candidates = [i for i in ids if i != killer_id]
        saboteur_id = self.rng.choice(candidates)

        logger.debug(f"Roles assigned: killer={killer_id} saboteur={saboteur_id}")
        return self.store.update({"killer_id": killer_id, "saboteur_id": saboteur_id})

    # Timeline

    async def build_timeline(self) -> Mystery:
        """Write the master timeline (opaque prose) and commit it"""
        mystery = self.store.get()
        self.check(Stage.TIMELINE, mystery)

        timeline = await self.timeline_agent.execute({"mystery": mystery})

        logger.info(f"Timeline written ({len(timeline)} chars)")
        return self.store.update({"timeline": timeline})

    # Clues

    async def generate_clues(self, clue_tools: Optional[str] = None) -> Mystery:
        """
        Generate the evidence kit.

        Args:
            clue_tools: New fabrication tools description; committed before the call
        """
        if clue_tools is not None:
            self.store.update({"clue_tools": clue_tools})

        mystery = self.store.get()
        self.check(Stage.CLUES, mystery)

        clues = await self.clue_agent.execute({"mystery": mystery})

        logger.info(f"Generated {len(clues)} clues")
        return self.store.update({"clues": with_unique_ids(clues)})

    def delete_clue(self, clue_id: str) -> Mystery:
        clues = self.store.get().clues
        if not any(c.id == clue_id for c in clues):
            raise EntityNotFoundError("clues", clue_id)
        return self.store.update({"clues": [c for c in clues if c.id != clue_id]})
