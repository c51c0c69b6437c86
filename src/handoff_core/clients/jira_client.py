"""HTTP client for the Jira Cloud REST API (v3)."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from handoff_core.clients.base import BaseServiceClient
from handoff_core.clients.ticket_system import TicketSystemClient
from handoff_core.errors import (
    AttachmentFileError,
    NotFoundError,
    TicketingError,
    TransportError,
)
from handoff_core.models import Ticket, TicketComment, TicketUser
from handoff_core.utils.resilience import RetryExecutor

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 100 * 1024 * 1024
ISSUE_FIELDS = "summary,description,status,reporter,assignee,comment"
DEFAULT_RETRY_AFTER = "60"

# Document-format nodes whose children are separate lines
_BLOCK_CONTAINERS = {"doc", "bulletList", "orderedList", "listItem", "blockquote", "table", "tableRow"}


def build_comment_document(text: str) -> Dict[str, Any]:
    """Wrap plain text in the minimal rich-text document the comment API requires."""
    return {
        "body": {
            "type": "doc",
            "version": 1,
            "content": [{
                "type": "paragraph",
                "content": [{
                    "type": "text",
                    "text": text,
                }],
            }],
        }
    }


def adf_to_text(node: Any) -> str:
    """Flatten a rich-text document (or plain string) to plain text.

    Example:
        >>> adf_to_text(build_comment_document("hello")["body"])
        'hello'
    """
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return "".join(adf_to_text(child) for child in node)
    if not isinstance(node, dict):
        return str(node)

    node_type = node.get("type")
    if node_type == "text":
        return node.get("text", "")
    if node_type == "hardBreak":
        return "\n"

    children = [adf_to_text(child) for child in node.get("content", [])]
    if node_type in _BLOCK_CONTAINERS:
        return "\n".join(child for child in children if child)
    return "".join(children)


def _parse_user(data: Optional[Dict[str, Any]]) -> Optional[TicketUser]:
    if not data:
        return None
    return TicketUser(
        display_name=data.get("displayName", ""),
        email=data.get("emailAddress"),
    )


def _parse_ticket(data: Dict[str, Any]) -> Ticket:
    fields = data["fields"]
    description = fields.get("description")
    comments = (fields.get("comment") or {}).get("comments", [])

    return Ticket(
        key=data["key"],
        summary=fields["summary"],
        description=adf_to_text(description) if description is not None else None,
        status=fields["status"]["name"],
        reporter=_parse_user(fields.get("reporter")),
        assignee=_parse_user(fields.get("assignee")),
        comments=[
            TicketComment(
                author=(comment.get("author") or {}).get("displayName", ""),
                body=adf_to_text(comment.get("body")),
                created=comment.get("created", ""),
            )
            for comment in comments
        ],
    )


def _status_text(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


class JiraClient(BaseServiceClient, TicketSystemClient):
    """Async client for the Jira Cloud REST API.

    Every HTTP call is wrapped individually by the retry executor, so a retried
    comment never re-uploads attachments and vice versa.

    Usage:
        client = JiraClient(
            base_url="https://acme.atlassian.net",
            email="agent@acme.com",
            api_token="...",
        )
        ticket = await client.fetch_ticket("OPS-123")
        await client.post_comment("OPS-123", markdown)
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = 10.0,
        upload_timeout: float = 300.0,
        max_attachment_bytes: int = MAX_ATTACHMENT_BYTES,
        retry_executor: Optional[RetryExecutor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            base_url: Jira site URL
            email: Account email
            api_token: Account API token
            timeout: Timeout for fetch/comment/test calls (default: 10.0)
            upload_timeout: Timeout for attachment uploads (default: 300.0)
            max_attachment_bytes: Client-side size ceiling for attachments (default: 100MB)
            retry_executor: Retry policy for each HTTP call
            transport: Optional httpx transport
        """
        super().__init__(
            base_url=base_url,
            email=email,
            api_token=api_token,
            timeout=timeout,
            upload_timeout=upload_timeout,
            retry_executor=retry_executor,
            transport=transport,
        )
        self.max_attachment_bytes = max_attachment_bytes

    async def _send(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, translating transport failures.

        Raises:
            TransportError: On timeout or connection failure
        """
        try:
            async with self._get_client(timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to ticket server timed out: {e}", is_timeout=True) from e
        except (httpx.NetworkError, httpx.RemoteProtocolError) as e:
            raise TransportError(f"Connection to ticket server failed: {e}", is_connect=True) from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request to ticket server failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise TicketingError(
                f"Invalid response from ticket server: {e}",
                status_code=response.status_code,
            ) from e

    # ============================================================
    # Fetch
    # ============================================================

    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        """Get ticket by key.

        Raises:
            TicketingError: 401 (invalid credentials), 429 (rate limited) or other status
            NotFoundError: Ticket does not exist
            TransportError: Timeout or connection failure after all retries
        """
        return await self.retry_executor.execute(
            lambda: self._fetch_ticket_once(ticket_id),
            description=f"fetch_ticket({ticket_id})",
        )

    async def _fetch_ticket_once(self, ticket_id: str) -> Ticket:
        response = await self._send(
            "GET",
            f"{self.base_url}/rest/api/3/issue/{ticket_id}",
            params={"fields": ISSUE_FIELDS},
            headers=self._headers(),
        )

        status = response.status_code
        if status == 401:
            raise TicketingError("Invalid credentials", status_code=401)
        if status == 404:
            raise NotFoundError(f"Ticket {ticket_id} not found", status_code=404)
        if status == 429:
            retry_after = response.headers.get("Retry-After", DEFAULT_RETRY_AFTER)
            raise TicketingError(
                f"Rate limited, retry in {retry_after} seconds",
                status_code=429,
                retry_after=retry_after,
            )
        if not response.is_success:
            raise TicketingError(f"Ticket server error: {_status_text(response)}", status_code=status)

        try:
            return _parse_ticket(self._json(response))
        except (KeyError, TypeError) as e:
            raise TicketingError(
                f"Unexpected ticket payload for {ticket_id}: missing {e}",
                status_code=status,
            ) from e

    # ============================================================
    # Comment
    # ============================================================

    async def post_comment(self, ticket_id: str, body: str) -> None:
        """Add a comment to a ticket.

        Raises:
            TicketingError: 401 (invalid credentials), 403 (no permission) or other status
            TransportError: Timeout or connection failure after all retries
        """
        await self.retry_executor.execute(
            lambda: self._post_comment_once(ticket_id, body),
            description=f"post_comment({ticket_id})",
        )
        logger.info(f"Posted comment to {ticket_id} ({len(body)} chars)")

    async def _post_comment_once(self, ticket_id: str, body: str) -> None:
        response = await self._send(
            "POST",
            f"{self.base_url}/rest/api/3/issue/{ticket_id}/comment",
            json=build_comment_document(body),
            headers=self._headers(),
        )

        status = response.status_code
        if status == 401:
            raise TicketingError("Invalid credentials", status_code=401)
        if status == 403:
            raise TicketingError(
                f"No permission to comment on {ticket_id}. Check your API token permissions.",
                status_code=403,
            )
        if not response.is_success:
            raise TicketingError(f"Failed to post comment: {_status_text(response)}", status_code=status)

    # ============================================================
    # Attachments
    # ============================================================

    async def attach_file(self, ticket_id: str, file_path: Union[str, Path]) -> None:
        """Upload one file as an attachment.

        The size is checked before any upload so that oversized files never
        cost a round trip.

        Raises:
            AttachmentFileError: File missing, unreadable or over the size ceiling
            TicketingError: 401, 403, 413 (rejected as too large) or other status
            TransportError: Timeout or connection failure after all retries
        """
        path = Path(file_path)
        await self.retry_executor.execute(
            lambda: self._attach_file_once(ticket_id, path),
            description=f"attach_file({ticket_id}, {path.name})",
        )
        logger.info(f"Attached {path.name} to {ticket_id}")

    async def _attach_file_once(self, ticket_id: str, path: Path) -> None:
        if not path.is_file():
            raise AttachmentFileError(f"File not found: {path}")

        size_bytes = path.stat().st_size
        size_mb = size_bytes // (1024 * 1024)
        if size_bytes > self.max_attachment_bytes:
            limit_mb = self.max_attachment_bytes // (1024 * 1024)
            raise AttachmentFileError(f"File too large ({size_mb}MB). Limit is {limit_mb}MB.")

        try:
            file_bytes = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise AttachmentFileError(f"Cannot read {path}: {e}") from e

        response = await self._send(
            "POST",
            f"{self.base_url}/rest/api/3/issue/{ticket_id}/attachments",
            timeout=self.upload_timeout,
            files={"file": (path.name, file_bytes, "application/octet-stream")},
            headers=self._headers(json_body=False, extra={"X-Atlassian-Token": "no-check"}),
        )

        status = response.status_code
        if status == 401:
            raise TicketingError("Invalid credentials", status_code=401)
        if status == 403:
            raise TicketingError(
                f"No permission to attach files to {ticket_id}. Check your API token permissions.",
                status_code=403,
            )
        if status == 413:
            raise TicketingError(
                f"File rejected by ticket server (too large: {size_mb}MB). Try compressing it.",
                status_code=413,
            )
        if not response.is_success:
            raise TicketingError(f"Failed to attach file: {_status_text(response)}", status_code=status)

    # ============================================================
    # Connection test
    # ============================================================

    async def test_connection(self) -> str:
        """Verify credentials.

        Returns:
            Display name of the authenticated account
        """
        return await self.retry_executor.execute(
            self._test_connection_once,
            description="test_connection",
        )

    async def _test_connection_once(self) -> str:
        response = await self._send(
            "GET",
            f"{self.base_url}/rest/api/3/myself",
            headers=self._headers(),
        )

        status = response.status_code
        if status == 401:
            raise TicketingError("Invalid credentials", status_code=401)
        if not response.is_success:
            raise TicketingError(f"Connection test failed: {_status_text(response)}", status_code=status)

        try:
            return self._json(response)["displayName"]
        except (KeyError, TypeError) as e:
            raise TicketingError(
                "Unexpected account payload: missing displayName",
                status_code=status,
            ) from e
