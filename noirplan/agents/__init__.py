"""Agent implementations for mystery generation"""

from .base import BaseAgent
from .concept import ConceptAgent
from .casting import CastingAgent
from .timeline import TimelineAgent
from .clues import ClueAgent
from .dossier import DossierAgent
from .auditor import AuditorAgent
from .coverage import CoverageAgent
from .resolver import ResolverAgent

__all__ = [
    "BaseAgent",
    "ConceptAgent",
    "CastingAgent",
    "TimelineAgent",
    "ClueAgent",
    "DossierAgent",
    "AuditorAgent",
    "CoverageAgent",
    "ResolverAgent",
]
