"""Escalation service: the operations a UI layer calls.

Covers the escalation records, markdown preview, publishing to the ticket
and the optional local-model summary.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from handoff_core.clients.ticket_system import TicketSystemClient
from handoff_core.context import HandoffContext
from handoff_core.errors import NotFoundError, PartialPostError, SummarizerError
from handoff_core.infrastructure.llm import OllamaSummarizer
from handoff_core.models import (
    AuditEntry,
    ChecklistItem,
    Escalation,
    EscalationInput,
    EscalationSummary,
    SummaryResult,
    Template,
    Ticket,
)
from handoff_core.rendering import MarkdownRenderer
from handoff_core.services.posting import (
    EscalationPoster,
    format_attachment_failures,
    upload_attachments,
)

logger = logging.getLogger(__name__)

OLLAMA_UNAVAILABLE_MESSAGE = "Ollama is not running. Start it with `ollama serve` or skip the AI summary."


class EscalationService:
    """Escalation operations on top of a :class:`HandoffContext`.

    Args:
        context: Runtime handle with settings and stores
        renderer: Markdown renderer (default: built-in escalation layout)
        client: Ticketing client; built from the saved configuration when omitted
    """

    def __init__(
        self,
        context: HandoffContext,
        renderer: Optional[MarkdownRenderer] = None,
        client: Optional[TicketSystemClient] = None,
    ):
        self.context = context
        self.renderer = renderer or MarkdownRenderer()
        self._client = client

    async def _ticket_client(self) -> TicketSystemClient:
        if self._client is not None:
            return self._client
        return await self.context.ticket_client()

    # ============================================================
    # Records
    # ============================================================

    async def save_escalation(self, data: EscalationInput) -> int:
        return await self.context.store.create_escalation(data)

    async def get_escalation(self, escalation_id: int) -> Escalation:
        return await self.context.store.get_escalation(escalation_id)

    async def list_escalations(self) -> List[EscalationSummary]:
        return await self.context.store.list_escalations()

    async def delete_escalation(self, escalation_id: int) -> None:
        await self.context.store.delete_escalation(escalation_id)

    async def get_audit_log(self, escalation_id: int) -> List[AuditEntry]:
        return await self.context.store.list_audit(escalation_id)

    async def list_templates(self) -> List[Template]:
        return await self.context.store.list_templates()

    async def get_template(self, template_id: int) -> Template:
        return await self.context.store.get_template(template_id)

    async def render_markdown(self, data: EscalationInput) -> str:
        """Preview the markdown for unsaved input; an unknown template renders without it."""
        template = None
        if data.template_id is not None:
            try:
                template = await self.context.store.get_template(data.template_id)
            except NotFoundError:
                logger.warning(f"Template {data.template_id} not found, rendering without it")
        return self.renderer.render(template, data)

    # ============================================================
    # Publishing
    # ============================================================

    async def post_escalation(self, escalation_id: int, file_paths: Sequence[Union[str, Path]] = ()) -> None:
        """Post an escalation to its ticket.

        The ticketing client is resolved first, so a missing configuration
        fails without touching the escalation.
        """
        client = await self._ticket_client()
        poster = EscalationPoster(self.context.store, self.renderer, client)
        await poster.post(escalation_id, file_paths)

    async def retry_post_escalation(
        self,
        escalation_id: int,
        file_paths: Sequence[Union[str, Path]] = (),
    ) -> None:
        client = await self._ticket_client()
        poster = EscalationPoster(self.context.store, self.renderer, client)
        await poster.retry(escalation_id, file_paths)

    # ============================================================
    # Direct ticket access
    # ============================================================

    async def fetch_ticket(self, ticket_id: str) -> Ticket:
        client = await self._ticket_client()
        return await client.fetch_ticket(ticket_id)

    async def post_to_ticket(self, ticket_id: str, comment: str) -> None:
        client = await self._ticket_client()
        await client.post_comment(ticket_id, comment)

    async def attach_files_to_ticket(self, ticket_id: str, file_paths: Sequence[Union[str, Path]]) -> int:
        """Attach files to a ticket outside of an escalation.

        Returns:
            Number of files attached

        Raises:
            PartialPostError: One or more files failed; the others were attached
        """
        client = await self._ticket_client()
        attached, failures = await upload_attachments(client, ticket_id, file_paths)
        if failures:
            raise PartialPostError(
                format_attachment_failures(ticket_id, failures),
                ticket_id=ticket_id,
                failures=failures,
            )
        return attached

    # ============================================================
    # Summary
    # ============================================================

    async def summarize(self, checklist: Sequence[ChecklistItem], problem_summary: str) -> SummaryResult:
        """Summarize the checklist with the configured local model.

        Raises:
            SummarizerError: Ollama is not running or the request failed
        """
        settings = self.context.settings
        config = await self.context.store.get_api_config()
        summarizer = OllamaSummarizer(
            endpoint=config.ollama_endpoint if config else settings.ollama_endpoint,
            model=config.ollama_model if config else settings.ollama_model,
            timeout=settings.ollama_timeout,
        )

        if not await summarizer.is_available():
            raise SummarizerError(OLLAMA_UNAVAILABLE_MESSAGE, transient=True)

        return await summarizer.summarize(checklist, problem_summary)
