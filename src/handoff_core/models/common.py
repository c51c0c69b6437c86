"""Common models shared across the handoff core.

This module contains small models used by more than one component:
- ApiConfig: Ticketing account and local-model settings saved by the user
- SummaryResult: Output of the local-model summarizer
- Utility functions: utc_now(), utc_timestamp(), parse_utc_timestamp()
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def utc_timestamp(value: Optional[datetime] = None) -> str:
    """ISO-8601 UTC string used for every stored timestamp"""
    value = value or utc_now()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_utc_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp; naive values are treated as UTC"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ApiConfig(BaseModel):
    """Ticketing and local-model settings.

    The base URL and API token are kept in the credential store; only the
    account email and the Ollama settings are persisted with the records.
    """

    jira_base_url: str = Field(default="", description="Ticketing site URL, e.g. https://acme.atlassian.net")
    jira_email: str = Field(default="", description="Account email, also the credential identifier")
    jira_api_token: str = Field(default="", description="API token (never persisted in the record store)")
    ollama_endpoint: str = Field(default="http://localhost:11434")
    ollama_model: str = Field(default="llama3")

    @property
    def has_ticketing_credentials(self) -> bool:
        return bool(self.jira_base_url and self.jira_email and self.jira_api_token)


class SummaryResult(BaseModel):
    """Summary produced by the local model plus a checklist-based confidence"""

    summary: str
    confidence: str = Field(description="High | Medium | Low")
    confidence_reason: str
