"""Audit and coverage models"""

from typing import List
from pydantic import BaseModel, Field


class StoryBeat(BaseModel):
    """A major narrative beat and the evidence paths supporting it"""
    beat_name: str = Field(..., description="Name of the beat")
    description: str = Field(default="", description="What the players must infer")
    clues: List[str] = Field(default_factory=list, description="Clues or disclosures supporting the beat")


class ConsistencyIssue(BaseModel):
    """A logical defect found by the audit"""
    id: str = Field(..., description="Stable issue ID")
    description: str = Field(..., description="The defect")
    suggestion: str = Field(default="", description="Remediation, replaced by the fix summary once fixed")
    fixed: bool = Field(default=False)


class ConsistencyReport(BaseModel):
    """Audit verdict"""
    is_valid: bool = Field(..., description="Global verdict")
    issues: List[ConsistencyIssue] = Field(default_factory=list)
    notes: str = Field(default="", description="Audit summary; fixes are appended")

    def get_issue(self, issue_id: str):
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    @property
    def open_issues(self) -> List[ConsistencyIssue]:
        return [issue for issue in self.issues if not issue.fixed]
