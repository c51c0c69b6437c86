"""Pytest fixtures for handoff core tests."""

from pathlib import Path

import pytest

from handoff_core.auth import InMemoryCredentialStore
from handoff_core.config import HandoffSettings
from handoff_core.context import HandoffContext
from handoff_core.infrastructure.persistence import SQLiteEscalationStore
from handoff_core.models import ChecklistItem, EscalationInput

from tests.helpers import FakeTicketClient, RecordingRenderer


@pytest.fixture
def fake_client() -> FakeTicketClient:
    return FakeTicketClient()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
async def store(tmp_path: Path) -> SQLiteEscalationStore:
    """Initialized SQLite store with the built-in templates."""
    store = SQLiteEscalationStore(tmp_path / "handoff.db")
    await store.initialize()
    return store


@pytest.fixture
def settings(tmp_path: Path) -> HandoffSettings:
    return HandoffSettings(database_path=tmp_path / "handoff.db")


@pytest.fixture
def context(settings: HandoffSettings, store: SQLiteEscalationStore) -> HandoffContext:
    return HandoffContext(settings=settings, store=store, credentials=InMemoryCredentialStore())


@pytest.fixture
def sample_input() -> EscalationInput:
    """Escalation with two checklist items, one done, and no template."""
    return EscalationInput(
        ticket_id="OPS-123",
        problem_summary="VPN disconnects every few minutes",
        checklist=[
            ChecklistItem(text="Restarted VPN client", checked=True),
            ChecklistItem(text="Collected VPN client logs", checked=False),
        ],
        current_status="User working from hotspot",
        next_steps="Check concentrator logs for the user's sessions",
    )
