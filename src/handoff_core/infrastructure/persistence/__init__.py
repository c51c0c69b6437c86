"""Durable storage for escalations, audit entries, templates and settings."""

from handoff_core.infrastructure.persistence.base import EscalationStore
from handoff_core.infrastructure.persistence.seed_templates import DEFAULT_TEMPLATES
from handoff_core.infrastructure.persistence.sqlite_store import SQLiteEscalationStore

__all__ = [
    "DEFAULT_TEMPLATES",
    "EscalationStore",
    "SQLiteEscalationStore",
]
