"""Casting Agent - suspect skeletons"""

import logging
from typing import Dict, Any, List

from .base import BaseAgent
from noirplan.models import GenerationKind, CastList, CastMember, Character

logger = logging.getLogger(__name__)


class CastingAgent(BaseAgent):
    """Agent responsible for creating suspects (name, gender, archetype, motive)"""

    def __init__(self, *args, **kwargs):
        super().__init__("casting", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You are a casting director for a murder mystery party.
Every suspect must be playable by a guest: a clear archetype, a vivid name and a believable motive."""

    async def execute(self, context: Dict[str, Any]) -> List[CastMember]:
        """Create the full cast"""
        num_guests = context.get("num_guests", 6)
        user_prompt = "\n".join([
            f"Create {num_guests} unique suspects for a murder mystery.",
            f"CONTEXT (the incident): {context.get('incident', '')}",
            f"GROUPS INVOLVED: {context.get('parties', '')}",
            "",
            "For each suspect provide: id, name, gender (male/female), archetype and initial_motive.",
            'Return them under "suspects".',
        ])

        result = await self.generate_structured_output(
            GenerationKind.CASTING,
            user_prompt,
            CastList,
            temperature=0.9
        )

        if len(result.suspects) != num_guests:
            logger.warning(f"Asked for {num_guests} suspects, backend cast {len(result.suspects)}")

        return result.suspects

    async def recast(self, context: Dict[str, Any]) -> CastMember:
        """Create one replacement suspect who fits beside the rest of the cast"""
        character: Character = context["character"]
        others: List[Character] = context.get("others", [])
        taken = ", ".join(f"{c.name} ({c.archetype})" for c in others) or "none yet"

        user_prompt = "\n".join([
            "Create ONE new suspect to replace an existing one in a murder mystery.",
            f"CONTEXT (the incident): {context.get('incident', '')}",
            f"GROUPS INVOLVED: {context.get('parties', '')}",
            f"SUSPECT BEING REPLACED: {character.name} ({character.archetype})",
            f"OTHER SUSPECTS (do not duplicate names or archetypes): {taken}",
            "",
            "Provide: name, gender (male/female), archetype and initial_motive.",
        ])

        return await self.generate_structured_output(
            GenerationKind.RECAST,
            user_prompt,
            CastMember,
            temperature=0.9
        )
