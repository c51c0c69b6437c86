"""Capability interface for the external ticketing system."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from handoff_core.models import Ticket


class TicketSystemClient(ABC):
    """Abstract ticketing client.

    The posting pipeline depends only on this interface, so tests can
    substitute an in-process fake for the REST implementation.
    """

    @abstractmethod
    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        """Fetch a ticket with its comments"""
        pass

    @abstractmethod
    async def post_comment(self, ticket_id: str, body: str) -> None:
        """Add a comment to a ticket"""
        pass

    @abstractmethod
    async def attach_file(self, ticket_id: str, file_path: Union[str, Path]) -> None:
        """Upload one file as a ticket attachment"""
        pass

    @abstractmethod
    async def test_connection(self) -> str:
        """Verify credentials and return the account display name"""
        pass
