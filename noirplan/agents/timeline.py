"""Timeline Agent - the hidden truth and the master chronology"""

from typing import Dict, Any

from .base import BaseAgent
from noirplan.models import GenerationKind

# Window covered around the discovery of the body
TIMELINE_WINDOW_HOURS = 2
TIMELINE_STEP_MINUTES = 15


class TimelineAgent(BaseAgent):
    """Writes the definitive timeline; the output is prose and is not parsed"""

    def __init__(self, *args, **kwargs):
        super().__init__("timeline", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You are the architect of a murder mystery's hidden truth.
You know who did it and how, and you keep every guest's whereabouts straight."""

    async def execute(self, context: Dict[str, Any]) -> str:
        mystery = self._require_mystery(context)
        killer = mystery.killer
        saboteur = mystery.saboteur
        guest_list = ", ".join(f"{c.name} ({c.archetype})" for c in mystery.characters)

        user_prompt = "\n".join([
            'Create the definitive chronological timeline and the "truth" of this mystery.',
            "",
            f"THE INCIDENT SETUP: {mystery.core_story}",
            f"ATMOSPHERE: {mystery.environment}",
            f"GUESTS: {guest_list}",
            "",
            "ASSIGNED ROLES:",
            f"- KILLER: {killer.name if killer else ''}",
            f"- SABOTEUR: {saboteur.name if saboteur else ''}",
            "",
            "Requirements:",
            f"1. THE TRUTH: explain exactly how {killer.name if killer else 'the killer'} committed the murder.",
            f"2. A {TIMELINE_STEP_MINUTES}-minute increment timeline covering the {TIMELINE_WINDOW_HOURS} hours "
            "before and after the discovery of the body.",
            "3. Account for every guest at every step and make their movements overlap suspiciously.",
        ])

        return await self.generate_text(GenerationKind.TIMELINE, user_prompt, temperature=0.8)
