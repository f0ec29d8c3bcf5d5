"""First Call Core Library

Case workflow engine for funeral-home first-call intake: stage policy, case
registry, workflow engine, active-case switchboard, and the boundary to the
Case Management service.
"""

__version__ = "0.1.0"

# Export shared models first (the workflow modules depend on them)
from firstcall_core.models import (
    FirstCallCase, FirstCallStage, FirstCallStatus, StageProgress,
    IntakeData, CaseFinalized, CaseRecord, CaseRecordSnapshot,
)

from firstcall_core.exceptions import (
    FirstCallError,
    StaleCaseError,
    CaseNumberError,
    WebhookSignatureError,
)

from firstcall_core.workflow import derive_status, visible_stages, stage_progress
from firstcall_core.workflow.registry import CaseRegistry
from firstcall_core.workflow.outbox import EventOutbox
from firstcall_core.workflow.engine import WorkflowEngine
from firstcall_core.workflow.switchboard import ActiveCaseSwitchboard
from firstcall_core.records import CaseNumberAllocator, CaseRecordBook, generate_case_number
from firstcall_core.config import WorkflowSettings


# Lazy import for the composition root and the HTTP-facing pieces
def __getattr__(name):
    """Lazy import for build_workflow and the Case Management client."""
    if name in ("build_workflow", "FirstCallWorkflow"):
        from firstcall_core import bootstrap
        return getattr(bootstrap, name)
    if name == "CaseRecordServiceClient":
        from firstcall_core.clients import CaseRecordServiceClient
        return CaseRecordServiceClient
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

__all__ = [
    # Models
    "FirstCallCase", "FirstCallStage", "FirstCallStatus", "StageProgress",
    "IntakeData", "CaseFinalized", "CaseRecord", "CaseRecordSnapshot",
    # Errors
    "FirstCallError", "StaleCaseError", "CaseNumberError", "WebhookSignatureError",
    # Workflow
    "derive_status", "visible_stages", "stage_progress",
    "CaseRegistry", "EventOutbox", "WorkflowEngine", "ActiveCaseSwitchboard",
    # Records
    "CaseNumberAllocator", "CaseRecordBook", "generate_case_number",
    # Configuration (lazy loaded)
    "WorkflowSettings", "build_workflow", "FirstCallWorkflow",
    "CaseRecordServiceClient",
]
