"""Ticketing account and local-model settings."""

import logging

from handoff_core.context import HandoffContext
from handoff_core.models import ApiConfig

logger = logging.getLogger(__name__)

MASKED_TOKEN = "••••••"


class SettingsService:
    """Save, read and verify the ticketing configuration.

    The base URL and API token go to the credential store; the account email
    and the Ollama settings go to the record store.
    """

    def __init__(self, context: HandoffContext):
        self.context = context

    async def save_api_config(self, config: ApiConfig) -> None:
        if config.has_ticketing_credentials:
            self.context.credentials.save(config.jira_email, config.jira_base_url, config.jira_api_token)
        else:
            logger.info("Ticketing credentials incomplete, keeping previously stored credentials")

        await self.context.store.save_api_config(config)
        logger.info(f"Saved API config (email={config.jira_email or '-'}, model={config.ollama_model})")

    async def get_api_config(self) -> ApiConfig:
        """Return the saved configuration for display, with the token masked."""
        settings = self.context.settings
        config = await self.context.store.get_api_config()
        if config is None:
            config = ApiConfig(ollama_endpoint=settings.ollama_endpoint, ollama_model=settings.ollama_model)

        if config.jira_email and self.context.credentials.exists(config.jira_email):
            secret = self.context.credentials.get(config.jira_email)
            config.jira_base_url = secret.base_url

        config.jira_api_token = MASKED_TOKEN
        return config

    async def test_connection(self) -> str:
        """Check the saved credentials against the ticketing server.

        Returns:
            "Connected as <display name>"
        """
        client = await self.context.ticket_client()
        display_name = await client.test_connection()
        return f"Connected as {display_name}"
