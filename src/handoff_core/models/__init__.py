"""
Shared data models for the ticket handoff core.

This package provides Pydantic models shared by the store, the ticketing
client, the renderer and the posting pipeline.
"""

from handoff_core.models.common import (
    ApiConfig,
    SummaryResult,
    parse_utc_timestamp,
    utc_now,
    utc_timestamp,
)
from handoff_core.models.escalation import (
    # Lifecycle
    AuditAction,
    AuditEntry,
    EscalationStatus,
    is_valid_transition,

    # Records
    ChecklistItem,
    Escalation,
    EscalationInput,
    EscalationSummary,
)
from handoff_core.models.template import Template
from handoff_core.models.ticket import Ticket, TicketComment, TicketUser

__all__ = [
    # Common
    "ApiConfig", "SummaryResult", "parse_utc_timestamp", "utc_now", "utc_timestamp",
    # Escalations
    "AuditAction", "AuditEntry", "EscalationStatus", "is_valid_transition",
    "ChecklistItem", "Escalation", "EscalationInput", "EscalationSummary",
    # Templates
    "Template",
    # Tickets
    "Ticket", "TicketComment", "TicketUser",
]
