"""In-memory Case Management collaborator.

CaseRecordBook subscribes to the outbox and turns each CaseFinalized event
into a permanent CaseRecord. It is also the default source of existing case
numbers for the allocator.
"""

import logging
from typing import Dict, List, Optional

from firstcall_core.exceptions import CaseNumberError
from firstcall_core.models.events import CaseFinalized, CaseRecord

logger = logging.getLogger(__name__)


class CaseRecordBook:
    """Case records keyed by case number."""

    def __init__(self, records: Optional[List[CaseRecord]] = None):
        self._records: Dict[str, CaseRecord] = {}
        for record in records or []:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __call__(self, event: CaseFinalized) -> None:
        """Outbox handler: create the record for a finalized case."""
        self.add(CaseRecord.from_event(event))

    def add(self, record: CaseRecord) -> CaseRecord:
        """Store a record.

        Raises:
            CaseNumberError: If the case number is already taken
        """
        if record.case_number in self._records:
            logger.error(f"Refusing duplicate case number {record.case_number}")
            raise CaseNumberError(f"Case number {record.case_number} already recorded")

        self._records[record.case_number] = record
        logger.info(
            f"Created case record {record.case_number} "
            f"from first call {record.first_call_case_id}"
        )
        return record

    def get(self, case_number: str) -> Optional[CaseRecord]:
        return self._records.get(case_number)

    def find_by_first_call(self, case_id: str) -> Optional[CaseRecord]:
        for record in self._records.values():
            if record.first_call_case_id == case_id:
                return record
        return None

    def case_numbers(self) -> List[str]:
        return list(self._records)

    def list_records(self) -> List[CaseRecord]:
        return list(self._records.values())
