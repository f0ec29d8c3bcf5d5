"""Case records: case-number generation and the Case Management boundary."""

from firstcall_core.records.case_numbers import (
    CaseNumberAllocator,
    generate_case_number,
    month_prefix,
)
from firstcall_core.records.book import CaseRecordBook
from firstcall_core.records.publisher import CaseRecordPublisher

__all__ = [
    "CaseNumberAllocator",
    "generate_case_number",
    "month_prefix",
    "CaseRecordBook",
    "CaseRecordPublisher",
]
