"""Explicit runtime handle shared by the services.

A ``HandoffContext`` is built once at startup and passed to every service.
It owns the settings, the record store and the credential store, and knows
how to build a ticketing client from the saved account configuration.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from handoff_core.auth import CredentialStore, KeyringCredentialStore
from handoff_core.clients import JiraClient
from handoff_core.config import HandoffSettings
from handoff_core.errors import CredentialError
from handoff_core.infrastructure.persistence import EscalationStore, SQLiteEscalationStore
from handoff_core.utils.resilience import RetryExecutor

logger = logging.getLogger(__name__)

MISSING_CONFIG_MESSAGE = "No API config found. Please configure Jira credentials in Settings."


@dataclass
class HandoffContext:
    """Settings, record store and credential store for one process."""

    settings: HandoffSettings
    store: EscalationStore
    credentials: CredentialStore

    @classmethod
    async def create(
        cls,
        settings: HandoffSettings,
        credentials: Optional[CredentialStore] = None,
        seed_templates: bool = True,
    ) -> "HandoffContext":
        """Open the SQLite store at ``settings.database_path`` and initialize it.

        Args:
            settings: Runtime settings
            credentials: Credential store (default: the OS keychain)
            seed_templates: Insert the built-in templates into an empty store
        """
        store = SQLiteEscalationStore(settings.database_path)
        await store.initialize(seed=seed_templates)
        logger.info(f"Handoff context ready (db={settings.database_path})")
        return cls(
            settings=settings,
            store=store,
            credentials=credentials or KeyringCredentialStore(),
        )

    async def ticket_client(self, retry_executor: Optional[RetryExecutor] = None) -> JiraClient:
        """Build a ticketing client from the saved account email and its credentials.

        Raises:
            CredentialError: No account configured or no credentials stored for it
        """
        config = await self.store.get_api_config()
        if config is None or not config.jira_email:
            raise CredentialError(MISSING_CONFIG_MESSAGE)

        try:
            secret = self.credentials.get(config.jira_email)
        except CredentialError as e:
            raise CredentialError(f"{MISSING_CONFIG_MESSAGE} ({e})") from e

        return JiraClient(
            base_url=secret.base_url,
            email=config.jira_email,
            api_token=secret.token,
            timeout=self.settings.request_timeout,
            upload_timeout=self.settings.upload_timeout,
            max_attachment_bytes=self.settings.max_attachment_bytes,
            retry_executor=retry_executor or RetryExecutor(max_attempts=self.settings.max_attempts),
        )
