"""Active-case switchboard.

Lets the operator juggle several open calls: start a new one without
abandoning the others, switch the active case, and list open cases for the
dashboard and the active-cases dock.
"""

import logging
from typing import List, Optional

from firstcall_core.models.case import FirstCallCase
from firstcall_core.models.stages import FirstCallStatus
from firstcall_core.workflow.engine import WorkflowEngine
from firstcall_core.workflow.registry import CaseRegistry

logger = logging.getLogger(__name__)


def _most_recent_first(cases: List[FirstCallCase]) -> List[FirstCallCase]:
    # sorted() is stable with reverse=True, so ties keep insertion order
    return sorted(cases, key=lambda case: case.updated_at, reverse=True)


class ActiveCaseSwitchboard:
    """Multi-case view over the registry.

    Status filters go through each case's derived ``status`` so the lists
    always agree with the stage policy.
    """

    def __init__(self, registry: CaseRegistry, engine: Optional[WorkflowEngine] = None):
        self.registry = registry
        self.engine = engine

    def new_call(self) -> str:
        """Create a fresh case and make it active; other cases stay open."""
        if self.engine is None:
            raise RuntimeError("ActiveCaseSwitchboard.new_call requires a WorkflowEngine")
        return self.engine.create_case()

    def switch_case(self, case_id: Optional[str]) -> None:
        """Point the active case at ``case_id``.

        An unknown id is accepted; readers then simply resolve no active case.
        """
        if case_id is not None and case_id not in self.registry:
            logger.warning(f"Switching to unknown case {case_id}")
        self.registry.active_case_id = case_id

    @property
    def active_case_id(self) -> Optional[str]:
        return self.registry.active_case_id

    def get_active_case(self) -> Optional[FirstCallCase]:
        return self.registry.get(self.registry.active_case_id)

    def get_all_active_cases(self) -> List[FirstCallCase]:
        """Open (not complete) cases, most recently updated first."""
        return _most_recent_first([
            case for case in self.registry.list_cases()
            if case.status != FirstCallStatus.COMPLETE
        ])

    def get_cases_needing_attention(self) -> List[FirstCallCase]:
        """Alert queue: cases whose status is ACTION_NEEDED, most recent first."""
        return _most_recent_first([
            case for case in self.registry.list_cases()
            if case.status == FirstCallStatus.ACTION_NEEDED
        ])

    def get_completed_cases(self) -> List[FirstCallCase]:
        return _most_recent_first([
            case for case in self.registry.list_cases()
            if case.status == FirstCallStatus.COMPLETE
        ])
