"""Test doubles shared across the test modules."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import keyring.backend
from keyring.errors import KeyringError, PasswordDeleteError

from handoff_core.clients import TicketSystemClient
from handoff_core.errors import HandoffError, NotFoundError
from handoff_core.models import EscalationInput, Template, Ticket
from handoff_core.rendering import MarkdownRenderer


class FakeTicketClient(TicketSystemClient):
    """In-process ticketing client that records every call.

    Args:
        comment_error: Raised by every post_comment call when set
        attach_errors: Error to raise per attachment path
    """

    def __init__(
        self,
        comment_error: Optional[HandoffError] = None,
        attach_errors: Optional[Dict[str, HandoffError]] = None,
        display_name: str = "Support Agent",
    ):
        self.comment_error = comment_error
        self.attach_errors = attach_errors or {}
        self.display_name = display_name
        self.comments: List[Tuple[str, str]] = []
        self.attach_calls: List[str] = []
        self.attached: List[str] = []
        self.tickets: Dict[str, Ticket] = {}

    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        try:
            return self.tickets[ticket_id]
        except KeyError:
            raise NotFoundError(f"Ticket {ticket_id} not found", status_code=404) from None

    async def post_comment(self, ticket_id: str, body: str) -> None:
        if self.comment_error is not None:
            raise self.comment_error
        self.comments.append((ticket_id, body))

    async def attach_file(self, ticket_id: str, file_path: Union[str, Path]) -> None:
        path = str(file_path)
        self.attach_calls.append(path)
        if path in self.attach_errors:
            raise self.attach_errors[path]
        self.attached.append(path)

    async def test_connection(self) -> str:
        return self.display_name


class RecordingRenderer(MarkdownRenderer):
    """Markdown renderer that counts calls and can be made to fail."""

    def __init__(self, error: Optional[Exception] = None):
        super().__init__()
        self.calls = 0
        self.error = error

    def render(self, template: Optional[Template], data: EscalationInput) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return super().render(template, data)


class MemoryKeyring(keyring.backend.KeyringBackend):
    """Keyring backend holding passwords in a dict."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords: Dict[Tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        if self.passwords.pop((service, username), None) is None:
            raise PasswordDeleteError("Password not found")


class LockedKeyring(keyring.backend.KeyringBackend):
    """Keyring backend whose every call fails, like a locked keychain."""

    priority = 1

    def get_password(self, service, username):
        raise KeyringError("keychain is locked")

    def set_password(self, service, username, password):
        raise KeyringError("keychain is locked")

    def delete_password(self, service, username):
        raise KeyringError("keychain is locked")
