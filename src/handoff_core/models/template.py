"""Troubleshooting template model."""

from typing import List, Optional

from pydantic import BaseModel, Field

from handoff_core.models.escalation import ChecklistItem


class Template(BaseModel):
    """Reusable checklist for a category of problem"""

    id: int
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: str
    checklist_items: List[ChecklistItem] = Field(default_factory=list)
    l2_team: Optional[str] = Field(default=None, description="Team the escalation is handed to")
