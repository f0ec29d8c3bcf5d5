"""Finalization event and case-record models.

The workflow engine never talks to Case Management directly. When a case
reaches COMPLETE it appends a CaseFinalized event to the outbox; whoever
consumes the event creates the permanent CaseRecord.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from firstcall_core.models.case import FirstCallCase


class CaseRecordSnapshot(BaseModel):
    """Flat copy of every intake field handed to Case Management."""

    caller_name: Optional[str] = None
    caller_phone: Optional[str] = None
    caller_relationship: Optional[str] = None
    deceased_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    time_of_death: Optional[str] = None
    location_of_pickup: Optional[str] = None
    address: Optional[str] = None
    next_of_kin_name: Optional[str] = None
    next_of_kin_phone: Optional[str] = None
    weight: Optional[str] = None
    ready_time: Optional[str] = None
    has_stairs: Optional[bool] = None
    is_family_present: Optional[bool] = None
    is_verbal_release: bool = False

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_case(cls, case: FirstCallCase) -> "CaseRecordSnapshot":
        return cls(
            caller_name=case.caller_name,
            caller_phone=case.caller_phone,
            caller_relationship=case.caller_relationship,
            deceased_name=case.deceased_name,
            date_of_birth=case.date_of_birth,
            time_of_death=case.time_of_death,
            location_of_pickup=case.location_of_pickup or case.address,
            address=case.address,
            next_of_kin_name=case.next_of_kin_name,
            next_of_kin_phone=case.next_of_kin_phone,
            weight=case.weight,
            ready_time=case.ready_time,
            has_stairs=case.has_stairs,
            is_family_present=case.is_family_present,
            is_verbal_release=bool(case.is_verbal_release),
        )


class CaseFinalized(BaseModel):
    """
    Domain event fired once when a case newly reaches COMPLETE.
    Immutable once created.
    """

    event_id: str = Field(
        default_factory=lambda: f"evt_{uuid4().hex[:12]}",
        description="Unique event identifier, doubles as an idempotency key"
    )
    case_id: str = Field(description="First Call case that was finalized")
    case_number: str = Field(description="Permanent case number allocated for the record")
    snapshot: CaseRecordSnapshot
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the case reached COMPLETE"
    )

    model_config = ConfigDict(frozen=True)


class CaseRecord(BaseModel):
    """Permanent case record created from a finalized First Call."""

    case_number: str = Field(min_length=1)
    first_call_case_id: str
    snapshot: CaseRecordSnapshot
    case_type: str = Field(default="At-Need", description="At-Need or Pre-Need")
    has_removal_release: bool = Field(
        default=True,
        description="Removal was authorized during the first call"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_event(cls, event: CaseFinalized) -> "CaseRecord":
        return cls(
            case_number=event.case_number,
            first_call_case_id=event.case_id,
            snapshot=event.snapshot,
            created_at=event.occurred_at,
        )
