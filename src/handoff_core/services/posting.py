"""Escalation posting pipeline.

Publishes a stored escalation to its ticket as one comment followed by zero
or more attachments, then records the outcome on the escalation and in the
audit log.

Stages (each failure short-circuits the rest):
1. load     - escalation must exist and not be POSTED
2. render   - reuse cached markdown_output, otherwise render once
3. comment  - one comment via the ticketing client (retried per HTTP call)
4. attach   - each file uploaded in input order, failures collected
5. record   - status, markdown, posted_at/last_error and an audit entry

The escalation record is written only after network I/O completes. Callers
must not run two posts for the same escalation concurrently.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from handoff_core.clients.ticket_system import TicketSystemClient
from handoff_core.errors import (
    AttachmentFailure,
    HandoffError,
    NotFoundError,
    PartialPostError,
    PostingError,
    TemplateRenderError,
    ValidationError,
)
from handoff_core.infrastructure.persistence.base import EscalationStore
from handoff_core.models import (
    AuditAction,
    Escalation,
    EscalationStatus,
    Template,
    is_valid_transition,
    utc_now,
)
from handoff_core.rendering import MarkdownRenderer

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


async def upload_attachments(
    client: TicketSystemClient,
    ticket_id: str,
    attachment_paths: Sequence[PathLike],
) -> Tuple[int, List[AttachmentFailure]]:
    """Upload files one at a time in input order; a failure does not stop the rest.

    Returns:
        Number of files attached and the failures in input order
    """
    attached = 0
    failures: List[AttachmentFailure] = []
    for path in attachment_paths:
        try:
            await client.attach_file(ticket_id, path)
            attached += 1
        except HandoffError as e:
            logger.warning(f"Attachment {path} failed for {ticket_id}: {e}")
            failures.append(AttachmentFailure(path=str(path), reason=str(e)))
    return attached, failures


def format_attachment_failures(ticket_id: str, failures: Sequence[AttachmentFailure]) -> str:
    """One header line naming the ticket, then one ``path: reason`` line per failed file."""
    lines = [f"Failed to attach {len(failures)} file(s) to {ticket_id}:"]
    lines.extend(str(failure) for failure in failures)
    return "\n".join(lines)


class EscalationPoster:
    """Runs post and retry attempts for escalations.

    Args:
        store: Record store holding escalations and the audit log
        renderer: Markdown renderer used when no markdown is cached
        client: Ticketing client the comment and attachments go to
    """

    def __init__(self, store: EscalationStore, renderer: MarkdownRenderer, client: TicketSystemClient):
        self.store = store
        self.renderer = renderer
        self.client = client

    async def post(self, escalation_id: int, attachment_paths: Sequence[PathLike] = ()) -> None:
        """Publish a DRAFT (or previously failed) escalation.

        Raises:
            NotFoundError: Escalation does not exist
            ValidationError: Escalation is already POSTED
            TemplateRenderError: Markdown could not be rendered
            PostingError: The comment could not be posted; nothing was attached
            PartialPostError: The comment was posted but some attachments failed
        """
        await self._publish(escalation_id, attachment_paths, retry=False)

    async def retry(self, escalation_id: int, attachment_paths: Sequence[PathLike] = ()) -> None:
        """Re-attempt an escalation in POST_FAILED, reusing the markdown of the first attempt.

        Raises:
            Same as :meth:`post`; ValidationError unless the status is POST_FAILED
        """
        await self._publish(escalation_id, attachment_paths, retry=True)

    async def _publish(self, escalation_id: int, attachment_paths: Sequence[PathLike], retry: bool) -> None:
        escalation = await self.store.get_escalation(escalation_id)
        self._check_status(escalation, retry)

        ticket_id = escalation.ticket_id
        label = "retry" if retry else "post"
        logger.info(f"Starting {label} of escalation {escalation_id} to {ticket_id}")

        markdown = escalation.markdown_output
        if markdown is None:
            try:
                markdown = self.renderer.render(await self._load_template(escalation), escalation.to_input())
            except TemplateRenderError as e:
                await self._record_failure(escalation, None, stage="render", error=str(e))
                raise
        else:
            logger.info(f"Reusing cached markdown for escalation {escalation_id} ({len(markdown)} chars)")

        try:
            await self.client.post_comment(ticket_id, markdown)
        except HandoffError as e:
            message = f"Failed to post comment to {ticket_id}: {e}"
            await self._record_failure(escalation, markdown, stage="comment", error=message)
            raise PostingError(message, ticket_id=ticket_id, cause=e) from e

        attached, failures = await upload_attachments(self.client, ticket_id, attachment_paths)

        if failures:
            message = format_attachment_failures(ticket_id, failures)
            await self._record_failure(
                escalation,
                markdown,
                stage="attachments",
                error=message,
                extra={
                    "files_attached": attached,
                    "files_failed": len(failures),
                    "failures": [{"file": f.path, "error": f.reason} for f in failures],
                },
            )
            raise PartialPostError(message, ticket_id=ticket_id, failures=failures)

        await self.store.update_status(
            escalation_id,
            EscalationStatus.POSTED,
            markdown_output=markdown,
            posted_at=utc_now(),
            last_error=None,
        )
        action = AuditAction.RETRY_POSTED if retry else AuditAction.POSTED
        await self.store.append_audit(
            escalation_id,
            action.value,
            {
                "ticket_id": ticket_id,
                "files_attached": attached,
                "had_llm_summary": escalation.llm_summary is not None,
            },
        )
        logger.info(f"Escalation {escalation_id} posted to {ticket_id} with {attached} attachment(s)")

    @staticmethod
    def _check_status(escalation: Escalation, retry: bool) -> None:
        if not is_valid_transition(escalation.status, EscalationStatus.POSTED):
            raise ValidationError(
                f"Escalation {escalation.id} was already posted to {escalation.ticket_id}"
            )
        if retry and escalation.status != EscalationStatus.POST_FAILED:
            raise ValidationError(
                f"Only failed posts can be retried (escalation {escalation.id} is {escalation.status.value})"
            )

    async def _load_template(self, escalation: Escalation) -> Optional[Template]:
        if escalation.template_id is None:
            return None
        try:
            return await self.store.get_template(escalation.template_id)
        except NotFoundError:
            logger.warning(
                f"Template {escalation.template_id} for escalation {escalation.id} no longer exists, "
                f"rendering without it"
            )
            return None

    async def _record_failure(
        self,
        escalation: Escalation,
        markdown: Optional[str],
        stage: str,
        error: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.store.update_status(
            escalation.id,
            EscalationStatus.POST_FAILED,
            markdown_output=markdown,
            last_error=error,
        )
        details: Dict[str, Any] = {"ticket_id": escalation.ticket_id, "stage": stage, "error": error}
        if extra:
            details.update(extra)
        await self.store.append_audit(escalation.id, AuditAction.POST_FAILED.value, details)
        logger.warning(f"Escalation {escalation.id} post failed at {stage} stage: {error}")
