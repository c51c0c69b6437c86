"""Clients for the external ticketing service."""

from handoff_core.clients.base import BaseServiceClient
from handoff_core.clients.jira_client import JiraClient, adf_to_text, build_comment_document
from handoff_core.clients.ticket_system import TicketSystemClient

__all__ = [
    "BaseServiceClient",
    "JiraClient",
    "TicketSystemClient",
    "adf_to_text",
    "build_comment_document",
]
