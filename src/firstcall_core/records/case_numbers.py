"""Human-readable case number generation.

Format: ``PREFIX-YYYYMM-NNNN``. The sequence restarts every month and is the
highest existing sequence for the month plus one, zero-padded to four digits.

Duplicating a legal case number is never acceptable, so every anomaly found
while scanning existing numbers raises CaseNumberError instead of being
skipped.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Set

from firstcall_core.exceptions import CaseNumberError

logger = logging.getLogger(__name__)

MAX_SEQUENCE = 9999
_PREFIX_PATTERN = re.compile(r"^[A-Z][A-Z0-9]*$")


def month_prefix(prefix: str, now: datetime) -> str:
    """
    Month prefix for a case number.

    Example:
        >>> month_prefix("RTP", datetime(2025, 3, 9))
        'RTP-202503'
    """
    return f"{prefix}-{now.year:04d}{now.month:02d}"


def generate_case_number(
    existing: Iterable[str],
    prefix: str = "RTP",
    now: Optional[datetime] = None,
) -> str:
    """Generate the next case number for the month of ``now``.

    Args:
        existing: Every case number already issued (any month)
        prefix: Funeral home prefix, upper-case letters and digits
        now: Reference time (default: current UTC time)

    Returns:
        Next free case number, e.g. "RTP-202503-0007"

    Raises:
        CaseNumberError: If the prefix is malformed, an existing number for
            the month has a non-numeric sequence, the month is exhausted, or
            the result collides with an existing number
    """
    if not _PREFIX_PATTERN.match(prefix or ""):
        raise CaseNumberError(f"Invalid case number prefix: {prefix!r}")

    now = now or datetime.now(timezone.utc)
    head = month_prefix(prefix, now)
    existing_numbers = set(existing)

    highest = 0
    for number in existing_numbers:
        if not number.startswith(f"{head}-"):
            continue
        sequence = number[len(head) + 1:]
        if not sequence.isdigit():
            logger.error(f"Corrupted case number in registry: {number!r}")
            raise CaseNumberError(f"Corrupted case number {number!r} under {head}")
        highest = max(highest, int(sequence))

    next_sequence = highest + 1
    if next_sequence > MAX_SEQUENCE:
        logger.error(f"Case number sequence exhausted for {head}")
        raise CaseNumberError(f"No case numbers left for {head} (max {MAX_SEQUENCE})")

    case_number = f"{head}-{next_sequence:04d}"
    if case_number in existing_numbers:
        logger.error(f"Generated case number {case_number} already exists")
        raise CaseNumberError(f"Case number {case_number} already exists")

    return case_number


class CaseNumberAllocator:
    """Issues case numbers and remembers them until they are recorded.

    Finalization allocates a number before the CaseFinalized event reaches
    the record store, so numbers handed out but not yet stored are counted
    as existing for the next allocation.

    When case records live in a remote service, ``refresh`` loads the
    month's numbers from it before the engine allocates.

    Usage:
        allocator = CaseNumberAllocator("RTP", existing=book.case_numbers)
        await allocator.refresh(case_record_client)
        number = allocator.allocate()
    """

    def __init__(
        self,
        prefix: str = "RTP",
        existing: Optional[Callable[[], Iterable[str]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize allocator.

        Args:
            prefix: Case number prefix
            existing: Callable returning every recorded case number
            clock: Callable returning the current time (default: UTC now)
        """
        self.prefix = prefix
        self._existing = existing or (lambda: ())
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._issued: Set[str] = set()
        self._seeded: Set[str] = set()

    @property
    def issued(self) -> Set[str]:
        return set(self._issued)

    def current_month_prefix(self) -> str:
        return month_prefix(self.prefix, self._clock())

    def seed(self, numbers: Iterable[str]) -> int:
        """Record case numbers held elsewhere (e.g. by the remote service).

        Returns:
            Number of case numbers not known before
        """
        new = set(numbers) - self._seeded
        self._seeded |= new
        return len(new)

    async def refresh(self, client) -> List[str]:
        """Seed the allocator with the service's case numbers for this month.

        Args:
            client: CaseRecordServiceClient (anything with an async
                ``list_case_numbers(month_prefix)``)

        Returns:
            Case numbers reported by the service
        """
        head = self.current_month_prefix()
        numbers = await client.list_case_numbers(head)
        added = self.seed(numbers)
        logger.info(f"Loaded {len(numbers)} case number(s) under {head} ({added} new)")
        return numbers

    def allocate(self) -> str:
        number = generate_case_number(
            set(self._existing()) | self._seeded | self._issued,
            prefix=self.prefix,
            now=self._clock(),
        )
        self._issued.add(number)
        logger.info(f"Allocated case number {number}")
        return number
