"""Response schemas for backend calls.

Each stage validates the backend's raw JSON into one of these records at the
gateway boundary. Fields the backend adds beyond these are ignored, which is
also how the concept stage keeps the killer out of the setup.
"""

from typing import List
from pydantic import BaseModel, Field, field_validator

from .character import Gender, CharacterInfo
from .clue import Clue
from .audit import StoryBeat


class StoryConcept(BaseModel):
    """Base story concept (no killer yet)"""
    title: str = Field(..., description="A compelling name for the mystery")
    victim: str = Field(..., description="Name and role of the person found dead")
    atmosphere: str = Field(..., description="Setting and mood of the event")
    incident: str = Field(..., description="How the murder occurred, but not who did it")
    parties: str = Field(..., description="Groups, factions or types of people present")
    twist: str = Field(..., description="Mid-game complication or external chaos factor")


class CastMember(BaseModel):
    """Suspect skeleton returned by casting"""
    id: str = Field(default="")
    name: str
    gender: Gender
    archetype: str
    initial_motive: str

    @field_validator("gender", mode="before")
    @classmethod
    def _normalize_gender(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CastList(BaseModel):
    suspects: List[CastMember] = Field(..., min_length=1)


class DossierContent(BaseModel):
    """Full dossier for one character"""
    pre_game_blurb: str
    background: str
    relationships: str
    connection_to_victim: str
    round1: CharacterInfo = Field(default_factory=CharacterInfo)
    round2: CharacterInfo = Field(default_factory=CharacterInfo)


class ClueList(BaseModel):
    clues: List[Clue] = Field(..., min_length=6, max_length=8)


class IssueDraft(BaseModel):
    id: str = Field(default="")
    description: str
    suggestion: str = Field(default="")


class AuditVerdict(BaseModel):
    is_valid: bool
    issues: List[IssueDraft] = Field(default_factory=list)
    notes: str = Field(default="")


class BeatList(BaseModel):
    beats: List[StoryBeat] = Field(default_factory=list)


class ResolutionPatch(BaseModel):
    """Revised timeline plus a short summary of the change"""
    timeline: str
    summary: str
