"""Exception hierarchy for the ticket handoff core.

Every error carries a machine-readable ``kind`` and, where an HTTP exchange
was involved, the original ``status_code``. Retry classification in
:mod:`handoff_core.utils.resilience` works on these fields only, never on
message text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Machine-readable error categories"""

    TICKETING = "ticketing"
    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    STORAGE = "storage"
    TEMPLATE = "template"
    CREDENTIAL = "credential"
    FILE = "file"
    SUMMARIZER = "summarizer"
    POSTING = "posting"
    PARTIAL = "partial"


class HandoffError(Exception):
    """Base class for all handoff errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class TicketingError(HandoffError):
    """Non-success response from the ticketing API.

    Attributes:
        status_code: HTTP status returned by the ticketing server
        retry_after: Value of the Retry-After header for 429 responses
    """

    kind = ErrorKind.TICKETING

    def __init__(
        self,
        message: str,
        status_code: int,
        retry_after: Optional[str] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after

    @property
    def is_auth_error(self) -> bool:
        return self.status_code == 401


class TransportError(HandoffError):
    """Timeout or connection failure before any HTTP status was received."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, is_timeout: bool = False, is_connect: bool = False):
        super().__init__(message)
        self.is_timeout = is_timeout
        self.is_connect = is_connect


class NotFoundError(HandoffError):
    kind = ErrorKind.NOT_FOUND


class ValidationError(HandoffError):
    kind = ErrorKind.VALIDATION


class StorageError(HandoffError):
    kind = ErrorKind.STORAGE


class TemplateRenderError(HandoffError):
    kind = ErrorKind.TEMPLATE


class CredentialError(HandoffError):
    kind = ErrorKind.CREDENTIAL


class AttachmentFileError(HandoffError):
    """Local problem with an attachment (missing, unreadable, oversized)."""

    kind = ErrorKind.FILE


class SummarizerError(HandoffError):
    """Local model call failed. ``transient`` marks connection/timeout failures."""

    kind = ErrorKind.SUMMARIZER

    def __init__(self, message: str, transient: bool = False, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.transient = transient


class PostingError(HandoffError):
    """The comment stage of a post attempt failed; nothing was attached."""

    kind = ErrorKind.POSTING

    def __init__(self, message: str, ticket_id: str, cause: Optional[HandoffError] = None):
        super().__init__(message, status_code=cause.status_code if cause else None)
        self.ticket_id = ticket_id
        self.cause = cause


@dataclass(frozen=True)
class AttachmentFailure:
    """One attachment that could not be uploaded."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


class PartialPostError(HandoffError):
    """The comment was posted but one or more attachments failed."""

    kind = ErrorKind.PARTIAL

    def __init__(self, message: str, ticket_id: str, failures: List[AttachmentFailure]):
        super().__init__(message)
        self.ticket_id = ticket_id
        self.failures = list(failures)

    @property
    def failed_paths(self) -> List[str]:
        return [failure.path for failure in self.failures]
