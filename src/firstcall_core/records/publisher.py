"""Async publisher delivering finalized cases to the Case Management service.

Used instead of (or next to) an in-process CaseRecordBook when case records
live in a remote service. Events are drained from the outbox before being
posted, so each one is attempted by a single publish run; transient HTTP
failures are retried inside that run, and an event that still fails is kept
in ``dead_letters`` for an operator to resolve.
"""

import logging
from typing import Callable, List, Optional

from firstcall_core.clients.case_record_client import CaseRecordServiceClient
from firstcall_core.models.events import CaseFinalized, CaseRecord
from firstcall_core.utils.resilience import delivery_retry
from firstcall_core.workflow.outbox import EventOutbox

logger = logging.getLogger(__name__)


class CaseRecordPublisher:
    """Posts CaseFinalized events to the Case Management service.

    Usage:
        publisher = CaseRecordPublisher(CaseRecordServiceClient(url), engine.outbox)
        records = await publisher.publish_pending()
    """

    def __init__(
        self,
        client: CaseRecordServiceClient,
        outbox: Optional[EventOutbox] = None,
        retry_policy: Optional[Callable] = None,
    ):
        """Initialize publisher.

        Args:
            client: Case Management HTTP client
            outbox: Outbox to drain in ``publish_pending``
            retry_policy: tenacity retry decorator (default: delivery_retry)
        """
        self.client = client
        self.outbox = outbox
        self._create = (retry_policy or delivery_retry)(client.create_case_record)
        self.dead_letters: List[CaseFinalized] = []

    async def publish(self, event: CaseFinalized) -> CaseRecord:
        """Post one event, retrying transient failures.

        Raises:
            httpx.HTTPError: If the service still fails after retries
        """
        record = await self._create(event, correlation_id=event.event_id)
        logger.info(f"Published case record {record.case_number} for first call {event.case_id}")
        return record

    async def publish_pending(self) -> List[CaseRecord]:
        """Drain the outbox and publish every event.

        Returns:
            Records created by the service, in outbox order
        """
        if self.outbox is None:
            raise RuntimeError("CaseRecordPublisher.publish_pending requires an outbox")

        records: List[CaseRecord] = []
        for event in self.outbox.drain():
            try:
                records.append(await self.publish(event))
            except Exception as e:
                logger.error(
                    f"Failed to publish case record {event.case_number} "
                    f"for first call {event.case_id}: {e}"
                )
                self.dead_letters.append(event)
        return records
