"""Resolver Agent - patches one audit issue by rewriting the timeline"""

from typing import Dict, Any

from .base import BaseAgent
from noirplan.models import GenerationKind, ResolutionPatch


class ResolverAgent(BaseAgent):
    """Produces a replacement timeline and a summary of what changed"""

    def __init__(self, *args, **kwargs):
        super().__init__("resolver", *args, **kwargs)

    def _default_system_prompt(self) -> str:
        return """You repair logical inconsistencies in murder mystery timelines.
Change as little as possible and keep every guest accounted for."""

    async def execute(self, context: Dict[str, Any]) -> ResolutionPatch:
        """
        Args:
            context: Should contain:
                - issue_description: the defect to fix
                - timeline: optional current timeline to revise
        """
        issue_description = context.get("issue_description")
        if not issue_description:
            raise ValueError("Issue description required in context")

        prompt_parts = [f'Fix this logical inconsistency: "{issue_description}"']

        timeline = context.get("timeline")
        if timeline:
            prompt_parts.append(f"\nCURRENT TIMELINE:\n{timeline}")

        prompt_parts.append(
            "\nReturn timeline (the full revised timeline) and summary "
            "(one or two sentences describing the change)."
        )

        return await self.generate_structured_output(
            GenerationKind.RESOLVE,
            "\n".join(prompt_parts),
            ResolutionPatch,
            temperature=0.5
        )
