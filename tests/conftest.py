"""Shared fixtures for the First Call workflow tests."""

from datetime import datetime, timedelta, timezone

import pytest

from firstcall_core.config import WorkflowSettings
from firstcall_core.bootstrap import build_workflow
from firstcall_core.records.book import CaseRecordBook
from firstcall_core.workflow.engine import WorkflowEngine
from firstcall_core.workflow.outbox import EventOutbox
from firstcall_core.workflow.registry import CaseRegistry
from firstcall_core.workflow.switchboard import ActiveCaseSwitchboard

START = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns ``start``, then advances by ``step`` on every call."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def frozen_clock():
    return FakeClock(step=timedelta(0))


@pytest.fixture
def registry():
    return CaseRegistry()


@pytest.fixture
def outbox():
    return EventOutbox()


@pytest.fixture
def finalized(outbox):
    """Every CaseFinalized event dispatched through the outbox."""
    events = []
    outbox.subscribe(events.append)
    return events


@pytest.fixture
def engine(registry, outbox, clock):
    return WorkflowEngine(registry, outbox=outbox, clock=clock)


@pytest.fixture
def switchboard(registry, engine):
    return ActiveCaseSwitchboard(registry, engine)


@pytest.fixture
def settings():
    return WorkflowSettings(case_number_prefix="RTP", signature_api_key="test-api-key")


@pytest.fixture
def workflow(settings, clock):
    return build_workflow(settings, clock=clock, records=CaseRecordBook())


def _standard_intake(signatures_total=2, **fields):
    data = {
        "is_verbal_release": False,
        "signatures_total": signatures_total,
        "deceased_name": "Harold Foster",
        "next_of_kin_name": "Mary Foster",
        "caller_name": "Mary Foster",
        "caller_phone": "555-0101",
        "location_of_pickup": "St. Luke's Hospital",
    }
    data.update(fields)
    return data


def _verbal_intake(**fields):
    data = {
        "is_verbal_release": True,
        "signatures_total": 1,
        "deceased_name": "Ruth Alvarez",
        "next_of_kin_name": "Daniel Alvarez",
    }
    data.update(fields)
    return data


@pytest.fixture
def standard_intake():
    """Factory for a standard-path intake payload."""
    return _standard_intake


@pytest.fixture
def verbal_intake():
    """Factory for a verbal-release intake payload."""
    return _verbal_intake
