"""Composition root for the First Call workflow.

Builds one explicit set of collaborators instead of module-level singletons,
so each UI session (or each test) can own a fresh workflow.

Two record modes share one outbox but never drain it together:
- local (default): the in-process CaseRecordBook is subscribed to the outbox
  and is the allocator's source of existing case numbers
- remote (``use_remote_records``): finalization events stay queued until
  ``publish_pending`` posts them to the Case Management service, and the
  allocator is seeded from that service with ``refresh_case_numbers``
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import httpx

from firstcall_core.clients.case_record_client import CaseRecordServiceClient
from firstcall_core.config import WorkflowSettings
from firstcall_core.integrations.signature_webhook import SignatureWebhookHandler
from firstcall_core.models.events import CaseRecord
from firstcall_core.records.book import CaseRecordBook
from firstcall_core.records.case_numbers import CaseNumberAllocator
from firstcall_core.records.publisher import CaseRecordPublisher
from firstcall_core.workflow.engine import WorkflowEngine
from firstcall_core.workflow.outbox import EventOutbox
from firstcall_core.workflow.registry import CaseRegistry
from firstcall_core.workflow.switchboard import ActiveCaseSwitchboard

logger = logging.getLogger(__name__)


@dataclass
class FirstCallWorkflow:
    """Wired-up workflow components."""

    settings: WorkflowSettings
    registry: CaseRegistry
    outbox: EventOutbox
    records: CaseRecordBook
    allocator: CaseNumberAllocator
    engine: WorkflowEngine
    switchboard: ActiveCaseSwitchboard
    signature_webhook: SignatureWebhookHandler
    publisher: Optional[CaseRecordPublisher] = None

    async def refresh_case_numbers(self) -> List[str]:
        """Load this month's case numbers from the Case Management service.

        Call at startup and at the start of each month in remote mode, before
        any case is finalized. A no-op returning [] in local mode.
        """
        if self.publisher is None:
            return []
        return await self.allocator.refresh(self.publisher.client)

    async def publish_pending(self) -> List[CaseRecord]:
        """Post queued finalization events to the Case Management service.

        Raises:
            RuntimeError: If the workflow was built in local mode
        """
        if self.publisher is None:
            raise RuntimeError("publish_pending requires use_remote_records=True")
        return await self.publisher.publish_pending()


def build_workflow(
    settings: Optional[WorkflowSettings] = None,
    clock: Optional[Callable[[], datetime]] = None,
    records: Optional[CaseRecordBook] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FirstCallWorkflow:
    """Wire registry, outbox, case records and engine together.

    Args:
        settings: Workflow settings (default: read from the environment)
        clock: Callable returning the current time, shared by every component
        records: Existing case record book (default: empty book)
        transport: httpx transport for the Case Management client (remote mode)

    Returns:
        FirstCallWorkflow, with either the record book subscribed to the
        outbox or a publisher attached to it
    """
    settings = settings or WorkflowSettings.from_env()
    registry = CaseRegistry()
    outbox = EventOutbox()
    records = records if records is not None else CaseRecordBook()

    publisher = None
    auto_dispatch = settings.auto_dispatch
    if settings.use_remote_records:
        client = CaseRecordServiceClient(
            settings.case_service_url, timeout=settings.http_timeout, transport=transport
        )
        publisher = CaseRecordPublisher(client, outbox)
        if auto_dispatch:
            logger.info("Remote case records enabled; events are kept for the publisher")
        auto_dispatch = False
    else:
        outbox.subscribe(records)

    allocator = CaseNumberAllocator(
        prefix=settings.case_number_prefix,
        existing=records.case_numbers,
        clock=clock,
    )
    engine = WorkflowEngine(
        registry,
        outbox=outbox,
        allocator=allocator,
        clock=clock,
        auto_dispatch=auto_dispatch,
    )

    return FirstCallWorkflow(
        settings=settings,
        registry=registry,
        outbox=outbox,
        records=records,
        allocator=allocator,
        engine=engine,
        switchboard=ActiveCaseSwitchboard(registry, engine),
        signature_webhook=SignatureWebhookHandler(engine, api_key=settings.signature_api_key),
        publisher=publisher,
    )
