"""Dossier Agent - the web of suspicion, one character at a time"""

from typing import Dict, Any, List

from .base import BaseAgent
from noirplan.models import GenerationKind, DossierContent, Character


class DossierAgent(BaseAgent):
    """Fleshes out one character's dossier.

    Private info gives the character a "dark act" they fear may have killed the
    victim; public info gossips about the dark acts of the *other* guests.
    """

    def __init__(self, *args, **kwargs):
        super().__init__("dossier", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You write character dossiers for a murder mystery party.
Every guest should suspect themselves a little, and everyone else a lot."""

    async def execute(self, context: Dict[str, Any]) -> DossierContent:
        """
        Args:
            context: Should contain:
                - character: Character to flesh
                - is_killer / is_saboteur: role flags
                - mystery: Mystery (incident, timeline, twist)
                - roster: full cast, for cross-referencing
        """
        character: Character = context["character"]
        mystery = self._require_mystery(context)
        roster: List[Character] = context.get("roster", mystery.characters)

        user_prompt = self._build_user_prompt(
            character,
            bool(context.get("is_killer")),
            bool(context.get("is_saboteur")),
            mystery.core_story,
            mystery.timeline,
            mystery.twist,
            roster
        )

        return await self.generate_structured_output(
            GenerationKind.DOSSIER,
            user_prompt,
            DossierContent,
            temperature=0.8
        )

    def _build_user_prompt(
        self,
        character: Character,
        is_killer: bool,
        is_saboteur: bool,
        incident: str,
        timeline: str,
        twist: str,
        roster: List[Character]
    ) -> str:
        if is_killer:
            role_status = "THE ACTUAL KILLER"
        elif is_saboteur:
            role_status = "THE SABOTEUR"
        else:
            role_status = "INNOCENT SUSPECT"

        other_guests = ", ".join(c.name for c in roster if c.id != character.id)

        return "\n".join([
            f"Flesh out the full dossier for: {character.name} ({character.archetype}).",
            f"ROLE STATUS: {role_status}",
            f"INITIAL MOTIVE: {character.initial_motive}",
            "",
            f"THE INCIDENT: {incident}",
            f"THE TRUTH (Timeline): {timeline}",
            f"OTHER GUESTS IN THE GAME: {other_guests}",
            "",
            "WEB OF SUSPICION:",
            "1. Private info (self-incrimination): give this character a 'dark act', something they did "
            "that could have had lethal consequences for the victim (swapped pills, sabotaged equipment, "
            "left a door open). Intent is optional; negligence or a prank will do. They must be unsure "
            "of the outcome and believe they might be the killer.",
            "2. Public info (incriminating others): gossip, sightings or overheard whispers about OTHER "
            "guests from the list, alluding to the dark acts in their dossiers. Ground every sighting "
            "in the timeline's places and times.",
            "",
            "Provide:",
            "- pre_game_blurb: costume and acting guide sent before the party",
            "- background: 2-3 paragraphs of personal history",
            "- relationships: how they feel about the other guests",
            "- connection_to_victim",
            "- round1.private_info: their dark act and their guilt or fear",
            "- round1.public_info: 3-4 sightings of OTHER guests that make them look suspicious",
            f"- round2.public_info / round2.private_info: information related to the twist: {twist}",
        ])
