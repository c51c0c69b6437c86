"""Services used by the UI layer: escalations, posting and settings."""

from handoff_core.services.escalation_service import EscalationService
from handoff_core.services.posting import (
    EscalationPoster,
    format_attachment_failures,
    upload_attachments,
)
from handoff_core.services.settings_service import SettingsService

__all__ = [
    "EscalationPoster",
    "EscalationService",
    "SettingsService",
    "format_attachment_failures",
    "upload_attachments",
]
