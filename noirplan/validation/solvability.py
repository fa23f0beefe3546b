"""Solvability views - Rule of Three coverage and the guilt matrix

Display aids for the host. Nothing here fails an audit or blocks a stage.
"""

import logging
import re
from typing import List

from pydantic import BaseModel, Field

from noirplan.models import Mystery, StoryBeat

logger = logging.getLogger(__name__)

RULE_OF_THREE = 3

DARK_ACT_KEYWORDS = ("poison", "tamper", "stab", "blood", "weapon", "took", "left")

_DARK_ACT_PATTERN = re.compile(r"\b(" + "|".join(DARK_ACT_KEYWORDS) + r")", re.IGNORECASE)


class BeatCoverage(BaseModel):
    """How well one story beat is supported by evidence"""
    beat_name: str
    paths: int = Field(..., description="Number of supporting clues or disclosures")
    meets_threshold: bool


class GuiltRow(BaseModel):
    """One suspect's line in the guilt matrix"""
    character_id: str
    name: str
    is_killer: bool = False
    is_saboteur: bool = False
    dark_acts: List[str] = Field(default_factory=list, description="Private disclosures reading as dark acts")

    @property
    def doubts_innocence(self) -> bool:
        return bool(self.dark_acts)


def beat_coverage(beats: List[StoryBeat], threshold: int = RULE_OF_THREE) -> List[BeatCoverage]:
    """
    Count the evidence paths behind each beat

    Args:
        beats: Beats from the coverage analysis
        threshold: Paths a beat needs to be considered solvable

    Returns:
        One BeatCoverage per beat, in beat order
    """
    coverage = []
    for beat in beats:
        paths = len([clue for clue in beat.clues if clue.strip()])
        coverage.append(BeatCoverage(
            beat_name=beat.beat_name,
            paths=paths,
            meets_threshold=paths >= threshold,
        ))

    weak = [c.beat_name for c in coverage if not c.meets_threshold]
    if weak:
        logger.debug(f"Beats below {threshold} paths: {', '.join(weak)}")
    return coverage


def guilt_matrix(mystery: Mystery) -> List[GuiltRow]:
    """Role flags and apparent dark acts for every suspect, in cast order"""
    rows = []
    for character in mystery.characters:
        private = character.round1.private_info + character.round2.private_info
        rows.append(GuiltRow(
            character_id=character.id,
            name=character.name,
            is_killer=character.id == mystery.killer_id,
            is_saboteur=character.id == mystery.saboteur_id,
            dark_acts=[line for line in private if _DARK_ACT_PATTERN.search(line)],
        ))
    return rows
