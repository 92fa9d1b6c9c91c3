"""Deal API client.

Deals are owned by the pipeline API; this service only asks whether a deal
exists before accepting or listing its attachments. The base URL is passed in
at construction time rather than read from shared global state.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from deal_attachments.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class DealDirectory(ABC):
    """Answers whether a deal exists."""

    @abstractmethod
    async def deal_exists(self, deal_id: int) -> bool:
        """Return True if the deal exists, False if it is unknown."""

    async def close(self) -> None:
        """Release any held resources."""
        return None


class DealApiClient(DealDirectory):
    """Async HTTP client for the deal pipeline API.

    Uses httpx.AsyncClient with connection pooling, created lazily.
    """

    DEFAULT_TIMEOUT = 10.0
    DEFAULT_LOOKUP_PATH = "/api/deals/{deal_id}"

    def __init__(
        self,
        base_url: str,
        *,
        lookup_path: str = DEFAULT_LOOKUP_PATH,
        timeout: float = DEFAULT_TIMEOUT,
        api_token: str | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.lookup_path = lookup_path
        self.timeout = timeout
        self._api_token = api_token
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client (lazy initialization)."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self._api_token:
                headers["Authorization"] = f"Bearer {self._api_token}"

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def deal_exists(self, deal_id: int) -> bool:
        """Look a deal up on the pipeline API.

        Raises:
            ExternalServiceError: If the API is unreachable or answers with
                anything other than success or 404.
        """
        client = await self._get_client()
        path = self.lookup_path.format(deal_id=deal_id)

        try:
            response = await client.get(path)
        except httpx.HTTPError as e:
            logger.warning(f"Deal lookup failed for deal {deal_id}: {e}")
            raise ExternalServiceError(
                message="Deal API is unavailable",
                details={"deal_id": deal_id},
            ) from e

        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        if response.is_success:
            return True

        logger.warning(f"Deal lookup for deal {deal_id} returned HTTP {response.status_code}")
        raise ExternalServiceError(
            message="Deal API returned an unexpected response",
            details={"deal_id": deal_id, "status_code": response.status_code},
        )
