"""Tests for configuration, credential stores, the context handle and SettingsService."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from handoff_core.auth import EnvCredentialStore, InMemoryCredentialStore, KeyringCredentialStore
from handoff_core.auth.credentials import KEYRING_SERVICE
from handoff_core.clients import JiraClient
from handoff_core.config import HandoffSettings, load_settings
from handoff_core.context import HandoffContext
from handoff_core.errors import CredentialError
from handoff_core.models import ApiConfig
from handoff_core.services import SettingsService

from tests.helpers import FakeTicketClient, LockedKeyring, MemoryKeyring

SETTINGS_ENV = [
    "HANDOFF_DB_PATH",
    "TICKET_REQUEST_TIMEOUT",
    "TICKET_UPLOAD_TIMEOUT",
    "TICKET_MAX_ATTEMPTS",
    "TICKET_MAX_ATTACHMENT_MB",
    "OLLAMA_ENDPOINT",
    "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:

    def test_defaults(self, clean_env):
        settings = HandoffSettings.from_env()

        assert settings.request_timeout == 10.0
        assert settings.upload_timeout == 300.0
        assert settings.max_attempts == 4
        assert settings.max_attachment_bytes == 100 * 1024 * 1024
        assert settings.ollama_endpoint == "http://localhost:11434"
        assert settings.ollama_model == "llama3"
        assert settings.database_path.name == "tickets.db"

    def test_environment_overrides(self, clean_env, tmp_path):
        clean_env.setenv("HANDOFF_DB_PATH", str(tmp_path / "custom.db"))
        clean_env.setenv("TICKET_MAX_ATTEMPTS", "2")
        clean_env.setenv("TICKET_UPLOAD_TIMEOUT", "60")
        clean_env.setenv("OLLAMA_ENDPOINT", "http://gpu-box:11434/")

        settings = HandoffSettings.from_env()

        assert settings.database_path == tmp_path / "custom.db"
        assert settings.max_attempts == 2
        assert settings.upload_timeout == 60.0
        assert settings.ollama_endpoint == "http://gpu-box:11434"

    @pytest.mark.parametrize("raw", ["abc", "0", "-3"])
    def test_invalid_numbers_fall_back(self, clean_env, raw):
        clean_env.setenv("TICKET_MAX_ATTEMPTS", raw)
        assert HandoffSettings.from_env().max_attempts == 4

    def test_load_from_env_file(self, clean_env, tmp_path):
        # Registered so monkeypatch removes the values load_dotenv writes
        clean_env.setenv("TICKET_REQUEST_TIMEOUT", "")
        clean_env.setenv("OLLAMA_MODEL", "")
        env_file = tmp_path / ".env"
        env_file.write_text("TICKET_REQUEST_TIMEOUT=5\nOLLAMA_MODEL=mistral\n")

        settings = load_settings(env_file)

        assert settings.request_timeout == 5.0
        assert settings.ollama_model == "mistral"


class TestCredentialStores:

    def test_in_memory_round_trip(self):
        store = InMemoryCredentialStore()
        store.save("agent@acme.com", "https://acme.atlassian.net/", "token")

        secret = store.get("agent@acme.com")
        assert secret.base_url == "https://acme.atlassian.net"
        assert secret.token == "token"
        assert "token" not in repr(secret)
        assert store.exists("agent@acme.com")

        store.delete("agent@acme.com")
        assert not store.exists("agent@acme.com")
        with pytest.raises(CredentialError):
            store.get("agent@acme.com")

    def test_in_memory_requires_identifier(self):
        with pytest.raises(CredentialError):
            InMemoryCredentialStore().save("", "https://acme.atlassian.net", "token")

    def test_env_store(self, monkeypatch):
        monkeypatch.setenv("JIRA_BASE_URL", "https://acme.atlassian.net")
        monkeypatch.setenv("JIRA_API_TOKEN", "env-token")
        monkeypatch.setenv("JIRA_EMAIL", "agent@acme.com")
        store = EnvCredentialStore()

        assert store.get("agent@acme.com").token == "env-token"
        assert not store.exists("other@acme.com")
        with pytest.raises(CredentialError):
            store.save("agent@acme.com", "https://x", "y")

    def test_env_store_unset(self, monkeypatch):
        monkeypatch.delenv("JIRA_BASE_URL", raising=False)
        monkeypatch.delenv("JIRA_API_TOKEN", raising=False)
        monkeypatch.delenv("JIRA_EMAIL", raising=False)

        with pytest.raises(CredentialError):
            EnvCredentialStore().get("agent@acme.com")


class TestKeyringCredentialStore:

    def test_round_trip_encoding(self):
        backend = MemoryKeyring()
        store = KeyringCredentialStore(backend=backend)

        store.save("agent@acme.com", "https://acme.atlassian.net/", "token")

        assert backend.passwords == {
            (KEYRING_SERVICE, "agent@acme.com"): "https://acme.atlassian.net||token",
        }
        secret = store.get("agent@acme.com")
        assert secret.base_url == "https://acme.atlassian.net"
        assert secret.token == "token"
        assert store.exists("agent@acme.com")

    def test_delete(self):
        store = KeyringCredentialStore(backend=MemoryKeyring())
        store.save("agent@acme.com", "https://acme.atlassian.net", "token")

        store.delete("agent@acme.com")

        assert not store.exists("agent@acme.com")
        with pytest.raises(CredentialError):
            store.delete("agent@acme.com")

    def test_missing_entry(self):
        with pytest.raises(CredentialError) as exc_info:
            KeyringCredentialStore(backend=MemoryKeyring()).get("agent@acme.com")

        assert "No stored credentials" in str(exc_info.value)

    @pytest.mark.parametrize("stored", ["no-separator", "||token", "https://acme.atlassian.net||"])
    def test_malformed_entry(self, stored):
        backend = MemoryKeyring()
        backend.set_password(KEYRING_SERVICE, "agent@acme.com", stored)

        with pytest.raises(CredentialError) as exc_info:
            KeyringCredentialStore(backend=backend).get("agent@acme.com")

        assert "Invalid credential format" in str(exc_info.value)

    def test_backend_errors_become_credential_errors(self):
        store = KeyringCredentialStore(backend=LockedKeyring())

        for call in (
            lambda: store.save("agent@acme.com", "https://acme.atlassian.net", "token"),
            lambda: store.get("agent@acme.com"),
            lambda: store.delete("agent@acme.com"),
        ):
            with pytest.raises(CredentialError) as exc_info:
                call()
            assert "keychain is locked" in str(exc_info.value)
        assert not store.exists("agent@acme.com")


class TestContext:

    @pytest.mark.asyncio
    async def test_create_initializes_store(self, tmp_path):
        context = await HandoffContext.create(HandoffSettings(database_path=tmp_path / "ctx.db"))

        assert Path(context.store.db_path).exists()
        assert len(await context.store.list_templates()) == 3
        assert isinstance(context.credentials, KeyringCredentialStore)

    @pytest.mark.asyncio
    async def test_ticket_client_requires_config(self, context):
        with pytest.raises(CredentialError) as exc_info:
            await context.ticket_client()

        assert "configure Jira credentials" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_ticket_client_requires_stored_credentials(self, context):
        await context.store.save_api_config(ApiConfig(jira_email="agent@acme.com"))

        with pytest.raises(CredentialError):
            await context.ticket_client()

    @pytest.mark.asyncio
    async def test_ticket_client_uses_settings(self, context):
        context.settings.upload_timeout = 120.0
        context.settings.max_attempts = 2
        await context.store.save_api_config(ApiConfig(jira_email="agent@acme.com"))
        context.credentials.save("agent@acme.com", "https://acme.atlassian.net", "token")

        client = await context.ticket_client()

        assert isinstance(client, JiraClient)
        assert client.base_url == "https://acme.atlassian.net"
        assert client.email == "agent@acme.com"
        assert client.upload_timeout == 120.0
        assert client.retry_executor.max_attempts == 2


class TestSettingsService:

    @pytest.mark.asyncio
    async def test_save_splits_secrets(self, context):
        service = SettingsService(context)
        await service.save_api_config(ApiConfig(
            jira_base_url="https://acme.atlassian.net",
            jira_email="agent@acme.com",
            jira_api_token="secret",
            ollama_model="mistral",
        ))

        assert context.credentials.get("agent@acme.com").token == "secret"
        stored = await context.store.get_api_config()
        assert stored.jira_api_token == ""
        assert stored.ollama_model == "mistral"

    @pytest.mark.asyncio
    async def test_get_masks_token(self, context):
        service = SettingsService(context)
        await service.save_api_config(ApiConfig(
            jira_base_url="https://acme.atlassian.net",
            jira_email="agent@acme.com",
            jira_api_token="secret",
        ))

        config = await service.get_api_config()

        assert config.jira_api_token == "••••••"
        assert config.jira_base_url == "https://acme.atlassian.net"
        assert config.jira_email == "agent@acme.com"

    @pytest.mark.asyncio
    async def test_get_defaults_when_unset(self, context):
        config = await SettingsService(context).get_api_config()

        assert config.jira_email == ""
        assert config.ollama_endpoint == "http://localhost:11434"
        assert config.jira_api_token == "••••••"

    @pytest.mark.asyncio
    async def test_incomplete_credentials_not_saved(self, context):
        await SettingsService(context).save_api_config(ApiConfig(jira_email="agent@acme.com"))

        assert not context.credentials.exists("agent@acme.com")

    @pytest.mark.asyncio
    async def test_connection_message(self, context, monkeypatch):
        monkeypatch.setattr(context, "ticket_client", AsyncMock(return_value=FakeTicketClient(display_name="Dana")))

        assert await SettingsService(context).test_connection() == "Connected as Dana"

    @pytest.mark.asyncio
    async def test_saved_account_survives_restart(self, settings):
        backend = MemoryKeyring()
        first = await HandoffContext.create(settings, credentials=KeyringCredentialStore(backend=backend))
        await SettingsService(first).save_api_config(ApiConfig(
            jira_base_url="https://acme.atlassian.net",
            jira_email="agent@acme.com",
            jira_api_token="secret",
        ))

        restarted = await HandoffContext.create(settings, credentials=KeyringCredentialStore(backend=backend))
        client = await restarted.ticket_client()

        assert client.base_url == "https://acme.atlassian.net"
        assert client.email == "agent@acme.com"
