"""First Call case data models.

This module defines the mutable unit of work for the First Call workflow and
the intake payload that feeds it.

Key Models:
- FirstCallCase: One reported death, from phone intake to finalization
- IntakeData: Fields captured by the intake form
- RequiredDocument: Documents an operator can select for signature

Architecture:
- Cases are frozen; every mutation produces a new instance (copy-on-write)
- ``status`` is computed from the stage and signature counters, never stored
- ``is_verbal_release`` selects the stage topology and is fixed at intake
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from firstcall_core.models.stages import FirstCallStage, FirstCallStatus
from firstcall_core.workflow.policy import derive_status, visible_stages


# ============================================================
# Document Catalog
# ============================================================

class RequiredDocument(BaseModel):
    """A document that can be generated for family signature at intake."""

    document_id: str = Field(description="Stable document identifier")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="Why the document is needed")
    required: bool = Field(default=False, description="Whether every case needs it")

    model_config = ConfigDict(frozen=True)


DOCUMENT_CATALOG: Dict[str, RequiredDocument] = {
    "body-release": RequiredDocument(
        document_id="body-release",
        name="Body Release Form",
        description="Required for body removal",
        required=True,
    ),
    "cremation-auth": RequiredDocument(
        document_id="cremation-auth",
        name="Cremation Authorization",
        description="Required for cremation services",
        required=False,
    ),
}

DEFAULT_DOCUMENTS: Tuple[str, ...] = tuple(
    doc_id for doc_id, doc in DOCUMENT_CATALOG.items() if doc.required
)


def _coerce_yes_no(value: Any) -> Optional[bool]:
    """Accept the intake form's 'yes' / 'no' / '' answers as well as booleans."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "":
            return None
        if text in ("yes", "y", "true"):
            return True
        if text in ("no", "n", "false"):
            return False
    raise ValueError(f"Expected yes/no answer, got {value!r}")


def generate_case_id() -> str:
    return f"fc_{uuid4().hex[:12]}"


# Descriptive fields captured progressively during intake
INTAKE_FIELDS: Tuple[str, ...] = (
    "deceased_name",
    "next_of_kin_name",
    "next_of_kin_phone",
    "family_contact_name",
    "caller_name",
    "caller_phone",
    "caller_relationship",
    "address",
    "date_of_birth",
    "time_of_death",
    "location_of_pickup",
    "weight",
    "is_weight_known",
    "ready_for_pickup",
    "ready_time",
    "has_stairs",
    "is_family_present",
)

_YES_NO_FIELDS = ("is_weight_known", "ready_for_pickup", "has_stairs", "is_family_present")


# ============================================================
# Intake Payload
# ============================================================

class IntakeData(BaseModel):
    """
    Intake form submission.

    Everything is optional: intake validation is the form's job. The only
    decision taken here is how many documents the family must sign.
    """

    deceased_name: Optional[str] = None
    next_of_kin_name: Optional[str] = None
    next_of_kin_phone: Optional[str] = None
    family_contact_name: Optional[str] = None
    caller_name: Optional[str] = None
    caller_phone: Optional[str] = None
    caller_relationship: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    time_of_death: Optional[str] = None
    location_of_pickup: Optional[str] = None
    weight: Optional[str] = None
    is_weight_known: Optional[bool] = None
    ready_for_pickup: Optional[bool] = None
    ready_time: Optional[str] = None
    has_stairs: Optional[bool] = None
    is_family_present: Optional[bool] = None

    is_verbal_release: bool = Field(
        default=False,
        description="Next of kin authorized removal verbally; skips signature collection"
    )

    signatures_total: Optional[int] = Field(
        default=None,
        ge=0,
        description="Explicit number of documents to sign (overrides selected_documents)"
    )

    selected_documents: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DOCUMENTS),
        description="Document ids from DOCUMENT_CATALOG chosen by the operator"
    )

    notify_removal_team: bool = True
    removal_team: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(*_YES_NO_FIELDS, mode="before")
    @classmethod
    def yes_no_answer(cls, v):
        return _coerce_yes_no(v)

    @property
    def required_document_count(self) -> int:
        """Documents to sign and deliver; never less than one."""
        if self.signatures_total is not None:
            return max(1, self.signatures_total)
        return max(1, len(self.selected_documents))

    def case_fields(self) -> Dict[str, Any]:
        """Descriptive fields to merge into the case, skipping unanswered ones."""
        data = self.model_dump(include=set(INTAKE_FIELDS))
        return {key: value for key, value in data.items() if value is not None}


# ============================================================
# First Call Case
# ============================================================

class FirstCallCase(BaseModel):
    """
    Root First Call entity.
    Represents one reported death from phone intake through finalization.
    """

    # ============================================================
    # Core Identity
    # ============================================================
    id: str = Field(
        default_factory=generate_case_id,
        description="Opaque unique case identifier",
        min_length=1
    )

    # ============================================================
    # Descriptive (captured progressively during intake)
    # ============================================================
    deceased_name: Optional[str] = None
    next_of_kin_name: Optional[str] = None
    next_of_kin_phone: Optional[str] = None
    family_contact_name: Optional[str] = None
    caller_name: Optional[str] = None
    caller_phone: Optional[str] = None
    caller_relationship: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[str] = None
    time_of_death: Optional[str] = None
    location_of_pickup: Optional[str] = None
    weight: Optional[str] = None
    is_weight_known: Optional[bool] = None
    ready_for_pickup: Optional[bool] = None
    ready_time: Optional[str] = None
    has_stairs: Optional[bool] = None
    is_family_present: Optional[bool] = None

    # ============================================================
    # Control Flags
    # ============================================================
    is_verbal_release: Optional[bool] = Field(
        default=None,
        description="""
        Selects the stage topology. None until intake completes.
        Immutable once set: the engine never re-evaluates it.
        """
    )

    intake_complete: bool = False

    selected_documents: Tuple[str, ...] = Field(
        default=(),
        description="Document ids chosen at intake"
    )

    notify_removal_team: bool = True
    removal_team: Optional[str] = None

    release_form_sent: bool = Field(
        default=False,
        description="Verbal release only: body release form was sent to the next of kin"
    )
    release_form_sent_at: Optional[datetime] = None

    # ============================================================
    # Progress Counters
    # ============================================================
    documents_generated: int = Field(default=0, ge=0)
    signatures_received: int = Field(default=0, ge=0)
    signatures_total: int = Field(default=0, ge=0)
    faxes_sent: int = Field(default=0, ge=0)
    faxes_total: int = Field(default=0, ge=0)

    # ============================================================
    # Workflow State
    # ============================================================
    current_stage: FirstCallStage = Field(
        default=FirstCallStage.INTAKE,
        description="Stage the case currently sits on"
    )

    completed_stages: Tuple[FirstCallStage, ...] = Field(
        default=(),
        description="Append-only history of stages the case has moved past"
    )

    case_number: Optional[str] = Field(
        default=None,
        description="Permanent case number, assigned on finalization"
    )
    finalized_at: Optional[datetime] = None

    # ============================================================
    # Timestamps
    # ============================================================
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the call was first logged"
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Refreshed on every mutation"
    )

    model_config = ConfigDict(frozen=True, extra="ignore")

    # ============================================================
    # Computed Properties
    # ============================================================
    @computed_field
    @property
    def status(self) -> FirstCallStatus:
        """Derived operator-facing status (never stored)."""
        return derive_status(
            self.current_stage, self.signatures_received, self.signatures_total
        )

    @property
    def is_complete(self) -> bool:
        return self.current_stage == FirstCallStage.COMPLETE

    @property
    def stages(self) -> Tuple[FirstCallStage, ...]:
        """Stages applicable to this case."""
        return visible_stages(self.is_verbal_release)

    def evolve(self, **changes: Any) -> "FirstCallCase":
        """
        Return a validated copy with ``changes`` applied.

        ``model_copy`` skips validation, so the copy is rebuilt from a dump.
        """
        data = self.model_dump(exclude={"status"})
        data.update(changes)
        return type(self).model_validate(data)

    # ============================================================
    # Validation
    # ============================================================
    @field_validator(*_YES_NO_FIELDS, mode="before")
    @classmethod
    def yes_no_answer(cls, v):
        return _coerce_yes_no(v)

    @model_validator(mode="after")
    def validate_counters(self) -> "FirstCallCase":
        """Received/sent counters never exceed their totals"""
        if self.signatures_received > self.signatures_total:
            raise ValueError(
                f"signatures_received ({self.signatures_received}) cannot exceed "
                f"signatures_total ({self.signatures_total})"
            )
        if self.faxes_sent > self.faxes_total:
            raise ValueError(
                f"faxes_sent ({self.faxes_sent}) cannot exceed faxes_total ({self.faxes_total})"
            )
        return self

    @model_validator(mode="after")
    def validate_stage_history(self) -> "FirstCallCase":
        """Current and completed stages must fit the case's topology"""
        stages = visible_stages(self.is_verbal_release)

        if self.current_stage not in stages:
            raise ValueError(
                f"Stage {self.current_stage.value} is not applicable to this case "
                f"(is_verbal_release={self.is_verbal_release})"
            )

        if len(set(self.completed_stages)) != len(self.completed_stages):
            raise ValueError("completed_stages must not contain duplicates")

        if self.current_stage in self.completed_stages:
            raise ValueError(
                f"Current stage {self.current_stage.value} cannot also be completed"
            )

        for stage in self.completed_stages:
            if stage not in stages:
                raise ValueError(f"Completed stage {stage.value} is not applicable to this case")

        if self.current_stage != FirstCallStage.INTAKE and self.is_verbal_release is None:
            raise ValueError("is_verbal_release must be decided before leaving intake")

        return self

    @model_validator(mode="after")
    def validate_timestamp_ordering(self) -> "FirstCallCase":
        if self.created_at > self.updated_at:
            raise ValueError(
                f"created_at ({self.created_at}) cannot be after updated_at ({self.updated_at})"
            )
        return self
