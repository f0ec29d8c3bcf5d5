"""Exception hierarchy for the First Call workflow library.

Operator-facing workflow operations degrade silently (unknown case ids and
over-increments are no-ops), so these exceptions are reserved for the few
conditions that must fail loudly.
"""


class FirstCallError(Exception):
    """Base class for all First Call workflow errors."""


class StaleCaseError(FirstCallError):
    """Raised when a compare-and-swap write finds the stored case has moved on.

    Attributes:
        case_id: Identifier of the case whose write was rejected
    """

    def __init__(self, case_id: str, message: str = ""):
        self.case_id = case_id
        super().__init__(message or f"Case {case_id} was modified by another writer")


class CaseNumberError(FirstCallError):
    """Raised when a case number cannot be generated or recorded safely."""


class WebhookSignatureError(FirstCallError):
    """Raised when an e-signature webhook fails HMAC verification."""
