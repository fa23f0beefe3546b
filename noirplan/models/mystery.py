"""Mystery document model"""

from typing import List, Optional
from pydantic import BaseModel, Field

from .character import Character
from .clue import Clue
from .audit import StoryBeat, ConsistencyReport


DEFAULT_ENVIRONMENT = "A grand Victorian estate"
DEFAULT_PARTIES = "High-society relatives and staff"
DEFAULT_CLUE_TOOLS = "Printer, household items, glue, ink"
DEFAULT_NUM_GUESTS = 6


class Mystery(BaseModel):
    """The working document: everything generated or edited for one mystery"""
    # Concept
    title: str = Field(default="")
    theme: str = Field(default="")
    victim_name: str = Field(default="")
    environment: str = Field(default=DEFAULT_ENVIRONMENT, description="Location and atmosphere")
    general_parties: str = Field(default=DEFAULT_PARTIES, description="Factions or groups present")
    clue_tools: str = Field(default=DEFAULT_CLUE_TOOLS, description="What the host can fabricate clues with")
    core_story: str = Field(default="", description="How the murder happened (incident), not who")
    timeline: str = Field(default="", description="Master timeline, including the truth")
    twist: str = Field(default="", description="Mid-game complication")
    num_guests: int = Field(default=DEFAULT_NUM_GUESTS, ge=1)

    # Cast and evidence
    characters: List[Character] = Field(default_factory=list)
    clues: List[Clue] = Field(default_factory=list)
    killer_id: Optional[str] = Field(default=None)
    saboteur_id: Optional[str] = Field(default=None)

    # Audit
    beats: List[StoryBeat] = Field(default_factory=list)
    consistency_report: Optional[ConsistencyReport] = Field(default=None)

    def get_character(self, character_id: Optional[str]) -> Optional[Character]:
        if not character_id:
            return None
        for character in self.characters:
            if character.id == character_id:
                return character
        return None

    @property
    def killer(self) -> Optional[Character]:
        return self.get_character(self.killer_id)

    @property
    def saboteur(self) -> Optional[Character]:
        return self.get_character(self.saboteur_id)

    @property
    def all_fleshed(self) -> bool:
        return bool(self.characters) and all(c.is_fleshed for c in self.characters)
