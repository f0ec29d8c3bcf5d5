"""Base client for calls to downstream funeral-home services."""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class BaseServiceClient:
    """Base class for async HTTP clients talking to internal services.

    Each call opens its own ``httpx.AsyncClient``. Request tracing is carried
    in the X-Correlation-ID header and retried writes carry an
    X-Idempotency-Key so the receiver can discard duplicates.

    Usage:
        class CaseRecordServiceClient(BaseServiceClient):
            async def get_case_record(self, case_number: str) -> CaseRecord:
                async with self._get_client() as client:
                    response = await client.get(
                        f"{self.base_url}/api/v1/case-records/{case_number}",
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    return CaseRecord(**response.json())
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize service client.

        Args:
            base_url: Service base URL (e.g., http://case-service:8000)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

        logger.info(f"Initialized {self.__class__.__name__} with base_url={base_url}")

    def _headers(
        self,
        correlation_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> dict:
        """Generate request headers.

        Args:
            correlation_id: Optional correlation ID for request tracing
            idempotency_key: Optional key identifying a retried write

        Returns:
            Headers dict
        """
        headers = {
            "Content-Type": "application/json",
        }

        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key

        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
