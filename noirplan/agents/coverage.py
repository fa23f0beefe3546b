"""Coverage Agent - Rule of Three evidence paths per story beat"""

from typing import Dict, Any, List

from .base import BaseAgent
from noirplan.models import GenerationKind, BeatList, StoryBeat


class CoverageAgent(BaseAgent):
    """Identifies the major story beats and the evidence supporting each"""

    def __init__(self, *args, **kwargs):
        super().__init__("coverage", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You analyse murder mysteries for solvability.
A key secret should be inferable from at least three independent evidence paths."""

    async def execute(self, context: Dict[str, Any]) -> List[StoryBeat]:
        mystery = self._require_mystery(context)
        clue_names = ", ".join(c.name for c in mystery.clues)

        user_prompt = "\n".join([
            'Analyse the "Rule of Three" for this mystery.',
            "Identify 3-5 major story beats and, for each, list the clues or disclosures supporting it.",
            f"STORY: {mystery.core_story}",
            f"TIMELINE: {mystery.timeline}",
            f"AVAILABLE CLUES: {clue_names}",
            "",
            'Return them under "beats", each with beat_name, description and clues.',
        ])

        result = await self.generate_structured_output(
            GenerationKind.COVERAGE,
            user_prompt,
            BeatList,
            temperature=0.3
        )
        return result.beats
