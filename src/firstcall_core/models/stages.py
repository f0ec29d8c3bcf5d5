"""Stage and status enumerations for the First Call workflow.

Stage topology:
  standard path:  INTAKE → SIGNATURES → FAXING → COMPLETE
  verbal release: INTAKE → SUMMARY → COMPLETE

Terminal Stage: COMPLETE (no further transitions)
"""

from enum import Enum


class FirstCallStage(str, Enum):
    """One discrete phase of a First Call case."""

    INTAKE = "intake"
    """Operator is on the phone collecting caller and decedent details."""

    SUMMARY = "summary"
    """Verbal release only: review collected data and send the release form."""

    SIGNATURES = "signatures"
    """Standard path: waiting for the family to e-sign the required documents."""

    FAXING = "faxing"
    """Standard path: signed documents are being delivered by fax or email."""

    COMPLETE = "complete"
    """
    TERMINAL STAGE: All required documents delivered.

    The case is frozen for historical display and a permanent case
    record has been requested downstream.
    """

    @property
    def is_terminal(self) -> bool:
        return self is FirstCallStage.COMPLETE


class FirstCallStatus(str, Enum):
    """
    Operator-facing status label.

    Always derived from (current_stage, signatures_received, signatures_total),
    never stored on its own.
    """

    INTAKE_IN_PROGRESS = "intake-in-progress"
    WAITING_ON_FAMILY = "waiting-on-family"
    ACTION_NEEDED = "action-needed"
    FAXING = "faxing"
    COMPLETE = "complete"

    @property
    def label(self) -> str:
        """Short label shown on case cards and the active-cases dock"""
        return _STATUS_LABELS[self][0]

    @property
    def description(self) -> str:
        """One-line hint displayed under the label"""
        return _STATUS_LABELS[self][1]

    @property
    def is_terminal(self) -> bool:
        return self is FirstCallStatus.COMPLETE


_STATUS_LABELS = {
    FirstCallStatus.INTAKE_IN_PROGRESS: ("Intake in progress", "Director is working"),
    FirstCallStatus.WAITING_ON_FAMILY: ("Waiting on family", "Grace period"),
    FirstCallStatus.ACTION_NEEDED: ("Action needed", "Something stalled"),
    FirstCallStatus.FAXING: ("Faxing", "Auto-processing"),
    FirstCallStatus.COMPLETE: ("Complete", "Done"),
}


class StageProgress(str, Enum):
    """Per-stage indicator for the case timeline"""

    COMPLETE = "complete"
    ACTIVE = "active"
    PENDING = "pending"
