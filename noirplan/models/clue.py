"""Clue models"""

from pydantic import BaseModel, Field


class Clue(BaseModel):
    """A physical clue to fabricate and hide"""
    id: str = Field(default="", description="Unique clue ID")
    name: str = Field(..., description="Clue name")
    description: str = Field(default="", description="How to fabricate the prop")
    location_to_hide: str = Field(default="", description="Where the host hides it")
    relevance: str = Field(default="", description="How it connects to the story")
