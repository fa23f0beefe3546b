"""Clue Agent - physical evidence kit"""

from typing import Dict, Any, List

from .base import BaseAgent
from noirplan.models import GenerationKind, ClueList, Clue


class ClueAgent(BaseAgent):
    """Generates 6-8 fabricable clues grounded in the timeline"""

    def __init__(self, *args, **kwargs):
        super().__init__("clues", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You design physical clues for a murder mystery party.
Each clue must be something the host can make at home and hide somewhere in the venue."""

    async def execute(self, context: Dict[str, Any]) -> List[Clue]:
        mystery = self._require_mystery(context)

        user_prompt = "\n".join([
            "Generate 6-8 physical clues based on:",
            f"THE INCIDENT: {mystery.core_story}",
            f"THE TRUTH/TIMELINE: {mystery.timeline}",
            f"SETTING: {mystery.environment}",
            f"FABRICATION TOOLS: {mystery.clue_tools}",
            "",
            "For each clue provide: id, name, description (how to make it), "
            "location_to_hide and relevance (what it proves). Return them under \"clues\".",
        ])

        result = await self.generate_structured_output(
            GenerationKind.CLUES,
            user_prompt,
            ClueList,
            temperature=0.7
        )
        return result.clues
