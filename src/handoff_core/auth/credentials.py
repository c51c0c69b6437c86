"""Credential storage for the ticketing service.

The ticketing base URL and API token are kept out of the record store. A
credential store is keyed by an identifier (the account email) and returns
the base URL and token for that account.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import keyring
import keyring.backend
from keyring.errors import KeyringError, PasswordDeleteError

from handoff_core.errors import CredentialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketCredentials:
    """Base URL and API token for one ticketing account.

    Attributes:
        base_url: Ticketing site URL
        token: API token
    """

    base_url: str
    token: str

    def __repr__(self) -> str:
        return f"TicketCredentials(base_url={self.base_url!r}, token='***')"


class CredentialStore(ABC):
    """Secret store keyed by account identifier"""

    @abstractmethod
    def save(self, identifier: str, base_url: str, token: str) -> None:
        pass

    @abstractmethod
    def get(self, identifier: str) -> TicketCredentials:
        """Return credentials for ``identifier``.

        Raises:
            CredentialError: If no credentials are stored for the identifier
        """
        pass

    @abstractmethod
    def delete(self, identifier: str) -> None:
        pass

    def exists(self, identifier: str) -> bool:
        try:
            self.get(identifier)
        except CredentialError:
            return False
        return True


class InMemoryCredentialStore(CredentialStore):
    """Process-local credential store"""

    def __init__(self):
        self._secrets: Dict[str, TicketCredentials] = {}

    def save(self, identifier: str, base_url: str, token: str) -> None:
        if not identifier:
            raise CredentialError("Credential identifier is required")
        self._secrets[identifier] = TicketCredentials(base_url=base_url.rstrip("/"), token=token)
        logger.info(f"Saved ticketing credentials for {identifier}")

    def get(self, identifier: str) -> TicketCredentials:
        try:
            return self._secrets[identifier]
        except KeyError:
            raise CredentialError(f"No stored credentials for {identifier}") from None

    def delete(self, identifier: str) -> None:
        if self._secrets.pop(identifier, None) is None:
            raise CredentialError(f"No stored credentials for {identifier}")
        logger.info(f"Deleted ticketing credentials for {identifier}")


class EnvCredentialStore(CredentialStore):
    """Read-only credentials from the environment.

    Environment Variables:
        JIRA_BASE_URL: Ticketing site URL
        JIRA_API_TOKEN: API token
        JIRA_EMAIL: Optional; when set, only this identifier is served
    """

    def save(self, identifier: str, base_url: str, token: str) -> None:
        raise CredentialError("Environment credentials are read-only; set JIRA_BASE_URL and JIRA_API_TOKEN")

    def get(self, identifier: str) -> TicketCredentials:
        expected = os.getenv("JIRA_EMAIL")
        if expected and expected != identifier:
            raise CredentialError(f"No stored credentials for {identifier}")

        base_url = os.getenv("JIRA_BASE_URL", "")
        token = os.getenv("JIRA_API_TOKEN", "")
        if not base_url or not token:
            raise CredentialError("JIRA_BASE_URL and JIRA_API_TOKEN must be set")

        return TicketCredentials(base_url=base_url.rstrip("/"), token=token)

    def delete(self, identifier: str) -> None:
        raise CredentialError("Environment credentials are read-only")


KEYRING_SERVICE = "com.tickethandoff.jira"
KEYRING_SEPARATOR = "||"


class KeyringCredentialStore(CredentialStore):
    """Credentials persisted in the operating system keychain.

    Each account is one keyring entry under ``KEYRING_SERVICE`` with the
    email as username and ``"{base_url}||{token}"`` as the password.
    Backend failures surface as ``CredentialError``.
    """

    def __init__(
        self,
        service: str = KEYRING_SERVICE,
        backend: Optional[keyring.backend.KeyringBackend] = None,
    ):
        """Initialize store.

        Args:
            service: Keyring service name
            backend: Keyring backend (default: the platform keyring)
        """
        self.service = service
        self._backend = backend

    @property
    def backend(self) -> keyring.backend.KeyringBackend:
        return self._backend or keyring.get_keyring()

    def save(self, identifier: str, base_url: str, token: str) -> None:
        if not identifier:
            raise CredentialError("Credential identifier is required")
        secret = f"{base_url.rstrip('/')}{KEYRING_SEPARATOR}{token}"
        try:
            self.backend.set_password(self.service, identifier, secret)
        except KeyringError as e:
            raise CredentialError(f"Failed to store credentials in keychain: {e}") from e
        logger.info(f"Saved ticketing credentials for {identifier} to keychain")

    def get(self, identifier: str) -> TicketCredentials:
        try:
            secret = self.backend.get_password(self.service, identifier)
        except KeyringError as e:
            raise CredentialError(f"Failed to read credentials from keychain: {e}") from e
        if secret is None:
            raise CredentialError(f"No stored credentials for {identifier}")

        base_url, separator, token = secret.partition(KEYRING_SEPARATOR)
        if not separator or not base_url or not token:
            raise CredentialError(f"Invalid credential format in keychain for {identifier}")
        return TicketCredentials(base_url=base_url, token=token)

    def delete(self, identifier: str) -> None:
        try:
            self.backend.delete_password(self.service, identifier)
        except PasswordDeleteError:
            raise CredentialError(f"No stored credentials for {identifier}") from None
        except KeyringError as e:
            raise CredentialError(f"Failed to delete credentials from keychain: {e}") from e
        logger.info(f"Deleted ticketing credentials for {identifier} from keychain")
