"""Escalation data models.

Key Models:
- Escalation: One troubleshooting case prepared for handoff to a ticket
- EscalationStatus: Publish lifecycle (DRAFT -> POSTED | POST_FAILED)
- EscalationInput: User-editable fields, the input to markdown rendering
- AuditEntry: Append-only record of a lifecycle event

Ownership:
- Only the posting pipeline writes status, markdown_output, posted_at and last_error
- markdown_output is the authoritative text of what was (or will be) published
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from handoff_core.models.common import utc_now


# ============================================================
# Status & Lifecycle
# ============================================================

class EscalationStatus(str, Enum):
    """
    Escalation publish status.

    Lifecycle Flow:
      DRAFT -> POSTED (terminal)
            -> POST_FAILED -> POSTED (terminal)
                           -> POST_FAILED (re-stamped on repeated failure)

    There is no transition back to DRAFT once a post has been attempted.
    """

    DRAFT = "draft"
    POSTED = "posted"
    POST_FAILED = "post_failed"

    @property
    def is_terminal(self) -> bool:
        return self == EscalationStatus.POSTED

    @classmethod
    def parse(cls, value: Optional[str]) -> "EscalationStatus":
        """Parse a stored status string; unknown values load as DRAFT."""
        try:
            return cls(value)
        except ValueError:
            return cls.DRAFT


def is_valid_transition(from_status: EscalationStatus, to_status: EscalationStatus) -> bool:
    """
    Validate status transition.

    Valid Transitions:
    - DRAFT -> POSTED | POST_FAILED
    - POST_FAILED -> POSTED | POST_FAILED

    Invalid:
    - POSTED -> * (terminal)
    - * -> DRAFT (no backward)
    """
    valid_transitions = {
        EscalationStatus.DRAFT: [EscalationStatus.POSTED, EscalationStatus.POST_FAILED],
        EscalationStatus.POST_FAILED: [EscalationStatus.POSTED, EscalationStatus.POST_FAILED],
        EscalationStatus.POSTED: [],
    }

    return to_status in valid_transitions.get(from_status, [])


class AuditAction(str, Enum):
    """Lifecycle events written to the audit log"""

    CREATED = "created"
    POSTED = "posted"
    POST_FAILED = "post_failed"
    RETRY_POSTED = "retry_posted"


# ============================================================
# Escalation Models
# ============================================================

class ChecklistItem(BaseModel):
    """One troubleshooting step and whether it was done"""

    text: str = Field(description="Step description")
    checked: bool = Field(default=False, description="Whether the step was completed")


class EscalationInput(BaseModel):
    """User-editable escalation fields; the input to markdown rendering."""

    ticket_id: str = Field(description="External ticket key, e.g. OPS-123", min_length=1, max_length=100)
    template_id: Optional[int] = Field(default=None, description="Template used to build the checklist")
    problem_summary: str = Field(default="", description="Free-text problem summary")
    checklist: List[ChecklistItem] = Field(default_factory=list)
    current_status: str = Field(default="", description="What the situation is right now")
    next_steps: str = Field(default="", description="What L2 should do next")
    llm_summary: Optional[str] = Field(default=None, description="Generated summary")
    llm_confidence: Optional[str] = Field(default=None, description="Confidence label of the summary")

    @field_validator('ticket_id')
    @classmethod
    def ticket_id_not_blank(cls, v):
        if not v.strip():
            raise ValueError("ticket_id cannot be blank")
        return v.strip()


class Escalation(EscalationInput):
    """
    Stored escalation record.

    Invariant: posted_at is set if and only if status is POSTED.
    """

    id: int = Field(description="Stable identifier assigned by the store")
    markdown_output: Optional[str] = Field(
        default=None,
        description="Rendered markdown sent (or attempted) as the ticket comment"
    )
    status: EscalationStatus = Field(default=EscalationStatus.DRAFT)
    posted_at: Optional[datetime] = Field(default=None)
    last_error: Optional[str] = Field(
        default=None,
        description="Detail of the most recent failed post attempt"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def posted_at_matches_status(self) -> 'Escalation':
        if self.status == EscalationStatus.POSTED and self.posted_at is None:
            raise ValueError("POSTED status requires posted_at timestamp")
        if self.status != EscalationStatus.POSTED and self.posted_at is not None:
            raise ValueError(f"posted_at can only be set when status is POSTED (current: {self.status.value})")
        return self

    def to_input(self) -> EscalationInput:
        """Return the user-editable fields as rendering input."""
        return EscalationInput(
            ticket_id=self.ticket_id,
            template_id=self.template_id,
            problem_summary=self.problem_summary,
            checklist=[item.model_copy() for item in self.checklist],
            current_status=self.current_status,
            next_steps=self.next_steps,
            llm_summary=self.llm_summary,
            llm_confidence=self.llm_confidence,
        )


class EscalationSummary(BaseModel):
    """Row of the escalation history list"""

    id: int
    ticket_id: str
    problem_summary: str
    status: EscalationStatus
    created_at: datetime


class AuditEntry(BaseModel):
    """Immutable record of one lifecycle event"""

    id: int
    escalation_id: int
    action: str = Field(description="created | posted | post_failed | retry_posted")
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        frozen = True
