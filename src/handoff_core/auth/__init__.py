"""Credential handling for the ticketing service.

The base URL and API token live in a credential store keyed by the account
email; the record store only keeps the email.
"""

from handoff_core.auth.credentials import (
    CredentialStore,
    EnvCredentialStore,
    InMemoryCredentialStore,
    KeyringCredentialStore,
    TicketCredentials,
)

__all__ = [
    "CredentialStore",
    "EnvCredentialStore",
    "InMemoryCredentialStore",
    "KeyringCredentialStore",
    "TicketCredentials",
]
