"""
Shared data models for the First Call workflow.

This package provides the Pydantic models exchanged between the workflow
engine, the case registry, and the Case Management collaborator.
"""

from firstcall_core.models.stages import (
    FirstCallStage,
    FirstCallStatus,
    StageProgress,
)

from firstcall_core.models.case import (
    # Core case model
    FirstCallCase,
    IntakeData,
    INTAKE_FIELDS,

    # Documents
    RequiredDocument,
    DOCUMENT_CATALOG,
    DEFAULT_DOCUMENTS,
    generate_case_id,
)

from firstcall_core.models.events import (
    CaseFinalized,
    CaseRecord,
    CaseRecordSnapshot,
)

__all__ = [
    # Stages
    "FirstCallStage", "FirstCallStatus", "StageProgress",
    # Core case
    "FirstCallCase", "IntakeData", "INTAKE_FIELDS", "generate_case_id",
    # Documents
    "RequiredDocument", "DOCUMENT_CATALOG", "DEFAULT_DOCUMENTS",
    # Events
    "CaseFinalized", "CaseRecord", "CaseRecordSnapshot",
]
