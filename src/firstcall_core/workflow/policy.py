"""Stage policy: pure decisions about stage topology and status labels.

Nothing in this module reads or writes the case registry. The visible stage
set depends only on ``is_verbal_release`` so that it stays stable even if
the document counters are adjusted after intake.
"""

from typing import Optional, Tuple

from firstcall_core.models.stages import FirstCallStage, FirstCallStatus, StageProgress


STANDARD_STAGES: Tuple[FirstCallStage, ...] = (
    FirstCallStage.INTAKE,
    FirstCallStage.SIGNATURES,
    FirstCallStage.FAXING,
    FirstCallStage.COMPLETE,
)

VERBAL_RELEASE_STAGES: Tuple[FirstCallStage, ...] = (
    FirstCallStage.INTAKE,
    FirstCallStage.SUMMARY,
    FirstCallStage.COMPLETE,
)


def visible_stages(is_verbal_release: Optional[bool]) -> Tuple[FirstCallStage, ...]:
    """
    Stages applicable to a case.

    Args:
        is_verbal_release: The case's release flag, or None while intake is
            still open (the standard topology is shown until then)

    Returns:
        Ordered tuple of stages from INTAKE to COMPLETE
    """
    if is_verbal_release:
        return VERBAL_RELEASE_STAGES
    return STANDARD_STAGES


def is_stage_applicable(is_verbal_release: Optional[bool], stage: FirstCallStage) -> bool:
    return stage in visible_stages(is_verbal_release)


def next_stage(is_verbal_release: Optional[bool], current: FirstCallStage) -> FirstCallStage:
    """
    Following stage along the visible topology.

    COMPLETE is terminal and maps to itself. A stage that does not belong to
    the topology also maps to itself, so callers can never jump paths.
    """
    stages = visible_stages(is_verbal_release)
    if current not in stages:
        return current
    index = stages.index(current)
    return stages[min(index + 1, len(stages) - 1)]


def derive_status(
    current_stage: FirstCallStage,
    signatures_received: int,
    signatures_total: int,
) -> FirstCallStatus:
    """
    Derive the operator-facing status of a case.

    ACTION_NEEDED is reached the instant every signature is in while the case
    still sits on SIGNATURES. The engine advances to FAXING in the same call,
    so the state is transient and used only for highlighting.
    """
    stage = FirstCallStage(current_stage)
    if stage in (FirstCallStage.INTAKE, FirstCallStage.SUMMARY):
        return FirstCallStatus.INTAKE_IN_PROGRESS
    if stage == FirstCallStage.SIGNATURES:
        if signatures_received < signatures_total:
            return FirstCallStatus.WAITING_ON_FAMILY
        return FirstCallStatus.ACTION_NEEDED
    if stage == FirstCallStage.FAXING:
        return FirstCallStatus.FAXING
    return FirstCallStatus.COMPLETE


def stage_progress(case, stage: FirstCallStage) -> StageProgress:
    """Timeline indicator for one stage of a case (complete, active or pending)."""
    if stage in case.completed_stages:
        return StageProgress.COMPLETE
    if case.current_stage == stage:
        return StageProgress.ACTIVE
    return StageProgress.PENDING
