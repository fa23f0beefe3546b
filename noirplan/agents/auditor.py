"""Auditor Agent - cross-stage consistency check"""

from typing import Dict, Any

from .base import BaseAgent
from noirplan.models import GenerationKind, AuditVerdict, Mystery


class AuditorAgent(BaseAgent):
    """Audits dossiers, timeline and clues for logical defects"""

    def __init__(self, *args, **kwargs):
        super().__init__("auditor", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You are a meticulous murder mystery editor.
You find contradictions between what the guests say, what the timeline records and what the clues prove."""

    async def execute(self, context: Dict[str, Any]) -> AuditVerdict:
        mystery = self._require_mystery(context)

        user_prompt = "\n".join([
            "Audit this murder mystery for its 'web of suspicion' and 'ambiguous guilt' logic.",
            "",
            "AUDIT CHECKLIST:",
            "1. AMBIGUOUS GUILT: does every suspect have a private dark act (an action with potentially "
            "lethal consequences) that makes them doubt their innocence?",
            "2. WEB OF SUSPICION: is every private dark act alluded to by at least one OTHER suspect's "
            "public info?",
            "3. TIMELINE ADHERENCE: do the sightings in public info match the movements and locations "
            "in the master timeline?",
            "4. SOLVABILITY: can the true killer's method be told apart from the innocent suspects' dark "
            "acts by logical deduction from the evidence?",
            "",
            "DATA:",
            self.build_digest(mystery),
            "",
            "Return is_valid (overall verdict), issues (each with id, description, suggestion) and notes "
            "(a short summary of the audit).",
        ])

        return await self.generate_structured_output(
            GenerationKind.AUDIT,
            user_prompt,
            AuditVerdict,
            temperature=0.2
        )

    @staticmethod
    def build_digest(mystery: Mystery) -> str:
        """Textual digest the audit works from"""
        dossiers = "\n\n".join(
            f"SUSPECT: {c.name}\n"
            f"ROUND 1 PUBLIC: {', '.join(c.round1.public_info)}\n"
            f"ROUND 1 PRIVATE: {', '.join(c.round1.private_info)}"
            for c in mystery.characters
        )
        clues = ", ".join(c.name for c in mystery.clues)
        return f"{dossiers}\n\nTIMELINE: {mystery.timeline}\nCLUES: {clues}"
