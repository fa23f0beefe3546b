"""Character models"""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field, field_validator


class Gender(str, Enum):
    """Suspect gender (drives costume and pronoun hints in the kit)"""
    MALE = "male"
    FEMALE = "female"

    def toggled(self) -> "Gender":
        return Gender.FEMALE if self is Gender.MALE else Gender.MALE


class CharacterInfo(BaseModel):
    """Disclosures for one round of play"""
    public_info: List[str] = Field(default_factory=list, description="Things to share freely")
    private_info: List[str] = Field(default_factory=list, description="Things to hide unless questioned")


class Character(BaseModel):
    """A suspect and, once fleshed, their full dossier"""
    id: str = Field(..., description="Stable character ID")
    name: str = Field(..., description="Character name")
    gender: Gender = Field(default=Gender.FEMALE)
    archetype: str = Field(default="", description="Character archetype")
    initial_motive: str = Field(default="", description="Brief motive set at casting")

    # Dossier (empty until fleshed)
    pre_game_blurb: str = Field(default="", description="Costume/acting guide sent before the party")
    background: str = Field(default="", description="Personal history")
    relationships: str = Field(default="", description="Feelings about the other guests")
    secrets: str = Field(default="", description="Host-only notes")
    connection_to_victim: str = Field(default="")
    is_fleshed: bool = Field(default=False, description="Whether the full dossier has been generated")

    # Round 1: before the twist, round 2: after it
    round1: CharacterInfo = Field(default_factory=CharacterInfo)
    round2: CharacterInfo = Field(default_factory=CharacterInfo)

    @field_validator("gender", mode="before")
    @classmethod
    def _normalize_gender(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value
