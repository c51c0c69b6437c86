"""Base HTTP client for calls to the external ticketing service."""

import base64
import logging
from typing import Optional

import httpx

from handoff_core.utils.resilience import RetryExecutor

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """Base class for ticketing REST clients.

    Every request authenticates with HTTP Basic credentials built from the
    account email and API token. Each call opens its own ``httpx.AsyncClient``
    so that the metadata and upload calls can use different timeouts.

    Usage:
        class JiraClient(BaseServiceClient):
            async def _fetch_once(self, key: str) -> Ticket:
                async with self._get_client() as client:
                    response = await client.get(
                        f"{self.base_url}/rest/api/3/issue/{key}",
                        headers=self._headers(),
                    )
                    ...
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = 10.0,
        upload_timeout: float = 300.0,
        retry_executor: Optional[RetryExecutor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize service client.

        Args:
            base_url: Ticketing site URL (e.g., https://acme.atlassian.net)
            email: Account email used for Basic auth
            api_token: API token used for Basic auth
            timeout: Timeout for metadata calls in seconds (default: 10.0)
            upload_timeout: Timeout for file uploads in seconds (default: 300.0)
            retry_executor: Retry policy applied to every HTTP call
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.email = email
        self._api_token = api_token
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self.retry_executor = retry_executor or RetryExecutor()
        self._transport = transport

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _auth_header(self) -> str:
        credentials = f"{self.email}:{self._api_token}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"

    def _headers(self, json_body: bool = True, extra: Optional[dict] = None) -> dict:
        """Generate request headers.

        Args:
            json_body: Add a JSON Content-Type header (False for multipart uploads)
            extra: Additional headers to merge in

        Returns:
            Headers dict with Authorization set
        """
        headers = {
            "Authorization": self._auth_header(),
            "Accept": "application/json",
        }

        if json_body:
            headers["Content-Type"] = "application/json"

        if extra:
            headers.update(extra)

        return headers

    def _get_client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Args:
            timeout: Override for the metadata timeout (used for uploads)

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        return httpx.AsyncClient(
            timeout=timeout if timeout is not None else self.timeout,
            transport=self._transport,
        )
