"""Concept Agent - base story setup, without a killer"""

from typing import Dict, Any

from .base import BaseAgent
from noirplan.models import GenerationKind, StoryConcept, Mystery


class ConceptAgent(BaseAgent):
    """Agent responsible for the story concept and its refinements"""

    def __init__(self, *args, **kwargs):
        super().__init__("concept", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You are a murder mystery designer drafting the setup of a party game.
You decide the title, the victim, the setting, how the death happened and the mid-game twist.
You never decide who the killer is: that is chosen later, after the suspects exist."""

    async def execute(self, context: Dict[str, Any]) -> StoryConcept:
        """Draft a fresh concept from theme, location, suspect count and directives"""
        user_prompt = self._build_user_prompt(
            theme=context.get("theme", ""),
            location=context.get("location", ""),
            num_guests=context.get("num_guests", 6),
            details=context.get("details", "")
        )

        return await self.generate_structured_output(
            GenerationKind.CONCEPT,
            user_prompt,
            StoryConcept,
            temperature=0.9
        )

    async def refine(self, current: StoryConcept, suggestion: str) -> StoryConcept:
        """Revise an existing concept according to a free-text suggestion"""
        user_prompt = "\n".join([
            "Revise the current mystery concept according to the host's suggestion.",
            "",
            "CURRENT:",
            f"Title: {current.title}",
            f"Victim: {current.victim}",
            f"Atmosphere: {current.atmosphere}",
            f"Incident: {current.incident}",
            f"Parties: {current.parties}",
            f"Twist: {current.twist}",
            "",
            f'HOST SUGGESTION: "{suggestion}"',
            "",
            "Keep whatever the suggestion does not touch. Still do not name a killer.",
        ])

        return await self.generate_structured_output(
            GenerationKind.REFINE_CONCEPT,
            user_prompt,
            StoryConcept,
            temperature=0.7
        )

    @staticmethod
    def current_concept(mystery: Mystery) -> StoryConcept:
        """Concept fields of the document, as a StoryConcept"""
        return StoryConcept(
            title=mystery.title,
            victim=mystery.victim_name,
            atmosphere=mystery.environment,
            incident=mystery.core_story,
            parties=mystery.general_parties,
            twist=mystery.twist,
        )

    def _build_user_prompt(self, theme: str, location: str, num_guests: int, details: str) -> str:
        prompt_parts = [
            "Design a murder mystery concept. Do NOT say who the killer is; focus on the setup.",
            "",
            f"THEME: {theme or 'Host has no preference'}",
            f"PROPOSED LOCATION: {location or 'Host has no preference'}",
            f"SUSPECT COUNT: {num_guests}",
        ]

        if details:
            prompt_parts.append(f"HOST PREFERENCES: {details}")

        prompt_parts.append(
            "\nProvide: title (compelling name), victim (name and role of the person found dead), "
            "atmosphere (setting and mood of the event), incident (HOW the murder happened, not WHO), "
            "parties (groups or factions present) and twist (a mid-game complication)."
        )

        return "\n".join(prompt_parts)
