"""Tests for handoff_core.services.escalation_service."""

import pytest

from handoff_core.errors import (
    CredentialError,
    NotFoundError,
    PartialPostError,
    PostingError,
    SummarizerError,
    TicketingError,
)
from handoff_core.models import ApiConfig, EscalationStatus, Ticket
from handoff_core.services import EscalationService

from tests.helpers import FakeTicketClient, RecordingRenderer


class TestRecords:

    @pytest.mark.asyncio
    async def test_save_list_delete(self, context, sample_input):
        service = EscalationService(context)

        escalation_id = await service.save_escalation(sample_input)
        assert (await service.get_escalation(escalation_id)).ticket_id == "OPS-123"
        assert [s.id for s in await service.list_escalations()] == [escalation_id]
        assert [e.action for e in await service.get_audit_log(escalation_id)] == ["created"]

        await service.delete_escalation(escalation_id)
        assert await service.list_escalations() == []

    @pytest.mark.asyncio
    async def test_templates(self, context):
        service = EscalationService(context)
        templates = await service.list_templates()

        assert (await service.get_template(templates[0].id)).name == templates[0].name

    @pytest.mark.asyncio
    async def test_render_markdown_with_template(self, context, sample_input):
        service = EscalationService(context)
        template = (await service.list_templates())[0]

        markdown = await service.render_markdown(sample_input.model_copy(update={"template_id": template.id}))

        assert f"**Template:** {template.name}" in markdown

    @pytest.mark.asyncio
    async def test_render_markdown_unknown_template(self, context, sample_input):
        markdown = await EscalationService(context).render_markdown(
            sample_input.model_copy(update={"template_id": 5150})
        )

        assert markdown.startswith("## Escalation: OPS-123\n\n### Problem Summary")


class TestPublishing:

    @pytest.mark.asyncio
    async def test_post_and_retry(self, context, sample_input):
        renderer = RecordingRenderer()
        failing = FakeTicketClient(comment_error=TicketingError("Service unavailable", status_code=503))
        escalation_id = await context.store.create_escalation(sample_input)

        with pytest.raises(PostingError):
            await EscalationService(context, renderer=renderer, client=failing).post_escalation(escalation_id)

        working = FakeTicketClient()
        await EscalationService(context, renderer=renderer, client=working).retry_post_escalation(escalation_id)

        escalation = await context.store.get_escalation(escalation_id)
        assert escalation.status == EscalationStatus.POSTED
        assert renderer.calls == 1

    @pytest.mark.asyncio
    async def test_missing_credentials_leave_record_untouched(self, context, sample_input):
        escalation_id = await context.store.create_escalation(sample_input)

        with pytest.raises(CredentialError):
            await EscalationService(context).post_escalation(escalation_id, ["a.log"])

        escalation = await context.store.get_escalation(escalation_id)
        assert escalation.status == EscalationStatus.DRAFT
        assert escalation.markdown_output is None
        assert [e.action for e in await context.store.list_audit(escalation_id)] == ["created"]

    @pytest.mark.asyncio
    async def test_post_missing_escalation(self, context, fake_client):
        with pytest.raises(NotFoundError):
            await EscalationService(context, client=fake_client).post_escalation(404)


class TestDirectTicketAccess:

    @pytest.mark.asyncio
    async def test_fetch_and_comment(self, context, fake_client):
        fake_client.tickets["OPS-1"] = Ticket(key="OPS-1", summary="Printer jam", status="Open")
        service = EscalationService(context, client=fake_client)

        assert (await service.fetch_ticket("OPS-1")).summary == "Printer jam"
        await service.post_to_ticket("OPS-1", "Looking into it")
        assert fake_client.comments == [("OPS-1", "Looking into it")]

    @pytest.mark.asyncio
    async def test_attach_files_partial(self, context):
        client = FakeTicketClient(
            attach_errors={"b.log": TicketingError("Invalid credentials", status_code=401)}
        )
        service = EscalationService(context, client=client)

        with pytest.raises(PartialPostError) as exc_info:
            await service.attach_files_to_ticket("OPS-1", ["a.log", "b.log"])

        assert exc_info.value.failed_paths == ["b.log"]
        assert client.attached == ["a.log"]

    @pytest.mark.asyncio
    async def test_attach_files_all_succeed(self, context, fake_client):
        service = EscalationService(context, client=fake_client)

        assert await service.attach_files_to_ticket("OPS-1", ["a.log", "b.log"]) == 2


class TestSummarize:

    @pytest.mark.asyncio
    async def test_unavailable_server(self, context, sample_input):
        await context.store.save_api_config(ApiConfig(ollama_endpoint="http://127.0.0.1:1"))

        with pytest.raises(SummarizerError) as exc_info:
            await EscalationService(context).summarize(sample_input.checklist, sample_input.problem_summary)

        assert "ollama serve" in str(exc_info.value)
        assert exc_info.value.transient is True
