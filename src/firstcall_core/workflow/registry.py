"""In-memory case registry.

Holds every First Call case keyed by id plus the single active-case pointer.
Writes are copy-on-write at the map level: each write builds a new dict and
swaps it in, so a reader iterating the previous mapping never observes a
half-applied change.
"""

import logging
from typing import Dict, List, Optional

from firstcall_core.exceptions import StaleCaseError
from firstcall_core.models.case import FirstCallCase

logger = logging.getLogger(__name__)


class CaseRegistry:
    """Keyed store of First Call cases with an active-case pointer.

    Usage:
        registry = CaseRegistry()
        registry.insert(case)
        registry.replace(updated, expected=case)
    """

    def __init__(self):
        self._cases: Dict[str, FirstCallCase] = {}
        self.active_case_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._cases)

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._cases

    @property
    def cases(self) -> Dict[str, FirstCallCase]:
        """Current mapping snapshot; never mutated in place."""
        return self._cases

    def insert(self, case: FirstCallCase) -> FirstCallCase:
        """Add a new case.

        Raises:
            ValueError: If a case with the same id is already registered
        """
        if case.id in self._cases:
            raise ValueError(f"Case {case.id} already exists")
        self._cases = {**self._cases, case.id: case}
        return case

    def get(self, case_id: Optional[str]) -> Optional[FirstCallCase]:
        if case_id is None:
            return None
        return self._cases.get(case_id)

    def replace(
        self,
        case: FirstCallCase,
        expected: Optional[FirstCallCase] = None,
    ) -> Optional[FirstCallCase]:
        """Atomically swap in a new version of an existing case.

        Args:
            case: Replacement case (same id as the stored one)
            expected: Version the caller read before computing ``case``. When
                given, the write only succeeds if the stored version still has
                the same ``updated_at`` and ``current_stage``.

        Returns:
            The stored case, or None if the id is unknown

        Raises:
            StaleCaseError: If ``expected`` no longer matches the stored case
        """
        current = self._cases.get(case.id)
        if current is None:
            logger.debug(f"Ignoring replace for unknown case {case.id}")
            return None

        if expected is not None and (
            current.updated_at != expected.updated_at
            or current.current_stage != expected.current_stage
        ):
            raise StaleCaseError(case.id)

        self._cases = {**self._cases, case.id: case}
        return case

    def delete(self, case_id: str) -> bool:
        """Remove a case; clears the active pointer if it referenced it.

        Returns:
            True if a case was removed
        """
        if case_id not in self._cases:
            return False

        cases = dict(self._cases)
        del cases[case_id]
        self._cases = cases

        if self.active_case_id == case_id:
            self.active_case_id = None
        return True

    def list_cases(self) -> List[FirstCallCase]:
        """All cases in insertion order."""
        return list(self._cases.values())
