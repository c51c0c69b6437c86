"""Record store interface for escalations, audit entries and templates."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from handoff_core.models import (
    ApiConfig,
    AuditEntry,
    Escalation,
    EscalationInput,
    EscalationStatus,
    EscalationSummary,
    Template,
)


class EscalationStore(ABC):
    """Keyed record store plus append-only audit log.

    Single-record reads and writes only; no cross-record transactions are
    required by callers.
    """

    # ============================================================
    # Escalations
    # ============================================================

    @abstractmethod
    async def create_escalation(self, data: EscalationInput) -> int:
        """Insert a DRAFT escalation and its ``created`` audit entry; return the id"""
        pass

    @abstractmethod
    async def get_escalation(self, escalation_id: int) -> Escalation:
        """Raises NotFoundError if the escalation does not exist"""
        pass

    @abstractmethod
    async def list_escalations(self) -> List[EscalationSummary]:
        """Summaries ordered newest first"""
        pass

    @abstractmethod
    async def delete_escalation(self, escalation_id: int) -> None:
        """Delete an escalation and, by cascade, its audit entries"""
        pass

    @abstractmethod
    async def update_status(
        self,
        escalation_id: int,
        status: EscalationStatus,
        markdown_output: Optional[str] = None,
        posted_at: Optional[datetime] = None,
        last_error: Optional[str] = None,
    ) -> None:
        """Persist the outcome of a post attempt"""
        pass

    # ============================================================
    # Audit log
    # ============================================================

    @abstractmethod
    async def append_audit(self, escalation_id: int, action: str, details: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def list_audit(self, escalation_id: int) -> List[AuditEntry]:
        """Audit entries for one escalation, oldest first"""
        pass

    # ============================================================
    # Templates & settings
    # ============================================================

    @abstractmethod
    async def list_templates(self) -> List[Template]:
        pass

    @abstractmethod
    async def get_template(self, template_id: int) -> Template:
        """Raises NotFoundError if the template does not exist"""
        pass

    @abstractmethod
    async def seed_templates(self, templates: Sequence[Dict[str, Any]]) -> int:
        """Insert templates only if none exist; return the number inserted"""
        pass

    @abstractmethod
    async def save_api_config(self, config: ApiConfig) -> None:
        pass

    @abstractmethod
    async def get_api_config(self) -> Optional[ApiConfig]:
        pass
