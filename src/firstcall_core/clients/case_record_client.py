"""HTTP client for the Case Management service."""

from typing import List, Optional

from firstcall_core.clients.base import BaseServiceClient
from firstcall_core.models.events import CaseFinalized, CaseRecord


class CaseRecordServiceClient(BaseServiceClient):
    """Async HTTP client for the Case Management service's case-record API.

    Usage:
        client = CaseRecordServiceClient(base_url="http://case-service:8000")
        record = await client.create_case_record(event)
    """

    def __init__(
        self,
        base_url: str = "http://case-service:8000",
        timeout: float = 30.0,
        transport=None,
    ):
        super().__init__(base_url=base_url, timeout=timeout, transport=transport)

    async def create_case_record(
        self, event: CaseFinalized, correlation_id: Optional[str] = None
    ) -> CaseRecord:
        """Create the permanent case record for a finalized First Call.

        The event id is sent as the idempotency key, so a retried POST does
        not create a second record.

        Args:
            event: CaseFinalized event carrying the case number and snapshot
            correlation_id: Optional correlation ID for request tracing

        Returns:
            Created case record

        Raises:
            httpx.HTTPStatusError: If the service rejects the record
        """
        record = CaseRecord.from_event(event)
        async with self._get_client() as client:
            response = await client.post(
                f"{self.base_url}/api/v1/case-records",
                json=record.model_dump(mode="json"),
                headers=self._headers(
                    correlation_id=correlation_id, idempotency_key=event.event_id
                ),
            )
            response.raise_for_status()
            return CaseRecord(**response.json())

    async def get_case_record(
        self, case_number: str, correlation_id: Optional[str] = None
    ) -> CaseRecord:
        """Get a case record by case number.

        Raises:
            httpx.HTTPStatusError: If the record is not found or other HTTP error
        """
        async with self._get_client() as client:
            response = await client.get(
                f"{self.base_url}/api/v1/case-records/{case_number}",
                headers=self._headers(correlation_id=correlation_id),
            )
            response.raise_for_status()
            return CaseRecord(**response.json())

    async def list_case_numbers(
        self, month_prefix: str, correlation_id: Optional[str] = None
    ) -> List[str]:
        """List case numbers issued under a month prefix (e.g. "RTP-202503").

        Args:
            month_prefix: ``PREFIX-YYYYMM`` to filter on
            correlation_id: Optional correlation ID for request tracing

        Returns:
            Case numbers known to the service for that month
        """
        async with self._get_client() as client:
            response = await client.get(
                f"{self.base_url}/api/v1/case-records",
                params={"prefix": month_prefix},
                headers=self._headers(correlation_id=correlation_id),
            )
            response.raise_for_status()
            return [item["case_number"] for item in response.json()]
