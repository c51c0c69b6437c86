"""Ticket Handoff Core

Escalation records, markdown rendering and the posting pipeline that
publishes escalations to an external ticketing service.
"""

__version__ = "0.1.0"

# Export models and errors first (no dependencies)
from handoff_core.models import (
    ApiConfig, AuditEntry, ChecklistItem, Escalation, EscalationInput,
    EscalationStatus, EscalationSummary, SummaryResult, Template, Ticket,
)
from handoff_core.errors import (
    HandoffError, PartialPostError, PostingError, TicketingError, TransportError,
)

# Export configuration
from handoff_core.config import HandoffSettings, load_settings


# Lazy import for context and services; they pull in the HTTP and storage stacks
def __getattr__(name):
    """Lazy import for HandoffContext and the services."""
    if name == "HandoffContext":
        from handoff_core.context import HandoffContext
        return HandoffContext
    if name in ("EscalationService", "SettingsService", "EscalationPoster"):
        from handoff_core import services
        return getattr(services, name)
    if name == "JiraClient":
        from handoff_core.clients import JiraClient
        return JiraClient
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    # Models
    "ApiConfig", "AuditEntry", "ChecklistItem", "Escalation", "EscalationInput",
    "EscalationStatus", "EscalationSummary", "SummaryResult", "Template", "Ticket",
    # Errors
    "HandoffError", "PartialPostError", "PostingError", "TicketingError", "TransportError",
    # Configuration
    "HandoffSettings", "load_settings",
    # Lazy loaded
    "HandoffContext", "EscalationService", "SettingsService", "EscalationPoster", "JiraClient",
]
