"""First Call Workflow

Stage policy, case registry, workflow engine and active-case switchboard.
"""

# Policy has no model dependencies and is imported eagerly
from firstcall_core.workflow.policy import (
    STANDARD_STAGES,
    VERBAL_RELEASE_STAGES,
    derive_status,
    is_stage_applicable,
    next_stage,
    stage_progress,
    visible_stages,
)

_LAZY = {
    "CaseRegistry": "firstcall_core.workflow.registry",
    "EventOutbox": "firstcall_core.workflow.outbox",
    "WorkflowEngine": "firstcall_core.workflow.engine",
    "ActiveCaseSwitchboard": "firstcall_core.workflow.switchboard",
}


# The remaining modules depend on the case model, which itself imports the
# policy above, so they are loaded on first access
def __getattr__(name):
    """Lazy import for the stateful workflow components."""
    if name in _LAZY:
        import importlib
        return getattr(importlib.import_module(_LAZY[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    # Policy
    "STANDARD_STAGES",
    "VERBAL_RELEASE_STAGES",
    "derive_status",
    "is_stage_applicable",
    "next_stage",
    "stage_progress",
    "visible_stages",
    # Stateful components (lazy loaded)
    "CaseRegistry",
    "EventOutbox",
    "WorkflowEngine",
    "ActiveCaseSwitchboard",
]
