"""First Call workflow engine.

Receives stage-completion signals from the operator (intake submitted,
release form sent, signature received, document sent), applies the stage
policy, and commits the resulting case to the registry.

Contract:
- Every operation is total: an unknown case id is a no-op returning None
- Counters clamp instead of raising on over-confirmation
- Transitions only move forward; an operation that does not apply to the
  case's current stage leaves the case untouched
- The CaseFinalized event is queued only by the write that newly reaches
  COMPLETE from FAXING, after that write has committed
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from firstcall_core.models.case import FirstCallCase, IntakeData, INTAKE_FIELDS, generate_case_id
from firstcall_core.models.events import CaseFinalized, CaseRecordSnapshot
from firstcall_core.models.stages import FirstCallStage
from firstcall_core.records.case_numbers import CaseNumberAllocator
from firstcall_core.workflow.outbox import EventOutbox
from firstcall_core.workflow.policy import next_stage
from firstcall_core.workflow.registry import CaseRegistry

logger = logging.getLogger(__name__)

# Fields only the engine may write
PROTECTED_FIELDS = frozenset({
    "id",
    "created_at",
    "updated_at",
    "status",
    "current_stage",
    "completed_stages",
    "intake_complete",
    "case_number",
    "finalized_at",
})

# Counters frozen once their stage is in completed_stages
STAGE_COUNTERS = {
    FirstCallStage.SIGNATURES: ("signatures_received", "signatures_total"),
    FirstCallStage.FAXING: ("faxes_sent", "faxes_total"),
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowEngine:
    """
    Orchestrates First Call cases through their stages.

    Usage:
        engine = WorkflowEngine(CaseRegistry())
        case_id = engine.create_case()
        engine.complete_intake(case_id, {"is_verbal_release": False, "signatures_total": 2})
        engine.record_signature(case_id)
    """

    def __init__(
        self,
        registry: CaseRegistry,
        outbox: Optional[EventOutbox] = None,
        allocator: Optional[CaseNumberAllocator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        auto_dispatch: bool = True,
    ):
        """Initialize engine.

        Args:
            registry: Case registry the engine mutates
            outbox: Outbox receiving CaseFinalized events (default: new outbox)
            allocator: Case number allocator used on finalization
            clock: Callable returning the current time (default: UTC now)
            id_factory: Callable generating new case ids
            auto_dispatch: Dispatch the outbox after every committed mutation
        """
        self.registry = registry
        self.outbox = outbox if outbox is not None else EventOutbox()
        self._clock = clock or _utc_now
        self.allocator = allocator or CaseNumberAllocator(clock=self._clock)
        self._id_factory = id_factory or generate_case_id
        self.auto_dispatch = auto_dispatch

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def create_case(
        self,
        deceased_name: Optional[str] = None,
        next_of_kin_name: Optional[str] = None,
    ) -> str:
        """
        Start a new call with zeroed counters and make it the active case.

        Returns:
            The new case id
        """
        now = self._clock()
        case = FirstCallCase(
            id=self._id_factory(),
            deceased_name=deceased_name or None,
            next_of_kin_name=next_of_kin_name or None,
            created_at=now,
            updated_at=now,
        )
        self.registry.insert(case)
        self.registry.active_case_id = case.id
        logger.info(f"Created first call case {case.id}")
        return case.id

    def complete_intake(
        self,
        case_id: str,
        intake: Union[IntakeData, Mapping[str, Any], None] = None,
    ) -> Optional[FirstCallCase]:
        """
        Merge intake data and leave the INTAKE stage.

        Decides ``is_verbal_release`` once: verbal cases move to SUMMARY,
        everything else to SIGNATURES. The required-document count (minimum
        one) seeds both ``signatures_total`` and ``faxes_total``.
        """
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "complete_intake")
        if case.current_stage != FirstCallStage.INTAKE or case.intake_complete:
            return self._skip(case, "complete_intake")

        if not isinstance(intake, IntakeData):
            intake = IntakeData.model_validate(dict(intake or {}))

        verbal = intake.is_verbal_release
        count = intake.required_document_count
        fields = intake.case_fields()
        if not case.family_contact_name and "family_contact_name" not in fields:
            contact = fields.get("next_of_kin_name") or fields.get("caller_name")
            if contact:
                fields["family_contact_name"] = contact

        updated = self._commit(
            case,
            **fields,
            is_verbal_release=verbal,
            intake_complete=True,
            selected_documents=tuple(intake.selected_documents),
            notify_removal_team=intake.notify_removal_team,
            removal_team=intake.removal_team,
            documents_generated=count,
            signatures_total=count,
            faxes_total=count,
            completed_stages=case.completed_stages + (FirstCallStage.INTAKE,),
            current_stage=next_stage(verbal, FirstCallStage.INTAKE),
        )
        logger.info(
            f"Intake complete for {case_id}: "
            f"{'verbal release' if verbal else f'{count} document(s) to sign'}, "
            f"now {updated.current_stage.value}"
        )
        return updated

    def send_release_form(self, case_id: str) -> Optional[FirstCallCase]:
        """Verbal release only: mark the body release form as sent.

        The stage does not change here; ``complete_summary`` moves the case on.
        """
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "send_release_form")
        if (
            not case.is_verbal_release
            or case.current_stage != FirstCallStage.SUMMARY
            or case.release_form_sent
        ):
            return self._skip(case, "send_release_form")

        now = self._clock()
        updated = self._commit(case, release_form_sent=True, release_form_sent_at=now)
        logger.info(f"Release form sent for {case_id}")
        return updated

    def complete_summary(self, case_id: str) -> Optional[FirstCallCase]:
        """Close the SUMMARY stage of a verbal-release case."""
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "complete_summary")
        if case.current_stage != FirstCallStage.SUMMARY:
            return self._skip(case, "complete_summary")

        updated = self._commit(
            case,
            completed_stages=case.completed_stages + (FirstCallStage.SUMMARY,),
            current_stage=next_stage(case.is_verbal_release, FirstCallStage.SUMMARY),
        )
        logger.info(f"Summary complete for {case_id}, now {updated.current_stage.value}")
        return updated

    def record_signature(self, case_id: str) -> Optional[FirstCallCase]:
        """
        Count one signed document.

        The final signature moves the case to FAXING and sets ``faxes_total``
        to the number of signed documents. Extra confirmations are no-ops.
        """
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "record_signature")
        if case.current_stage != FirstCallStage.SIGNATURES:
            return self._skip(case, "record_signature")

        received = min(case.signatures_received + 1, case.signatures_total)
        changes: Dict[str, Any] = {
            "signatures_received": received,
            "faxes_total": case.signatures_total,
            "faxes_sent": min(case.faxes_sent, case.signatures_total),
        }
        if received >= case.signatures_total:
            changes["completed_stages"] = case.completed_stages + (FirstCallStage.SIGNATURES,)
            changes["current_stage"] = next_stage(False, FirstCallStage.SIGNATURES)

        updated = self._commit(case, **changes)
        logger.info(
            f"Signature {received}/{case.signatures_total} recorded for {case_id}, "
            f"now {updated.current_stage.value}"
        )
        return updated

    def record_document_sent(self, case_id: str) -> Optional[FirstCallCase]:
        """
        Count one delivered document.

        The final delivery completes the case, allocates its case number and
        queues exactly one CaseFinalized event. Calls on a case that is not
        in FAXING (including an already complete one) are no-ops.
        """
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "record_document_sent")
        if case.current_stage != FirstCallStage.FAXING:
            return self._skip(case, "record_document_sent")

        sent = min(case.faxes_sent + 1, case.faxes_total)
        if sent < case.faxes_total:
            updated = self._commit(case, faxes_sent=sent)
            logger.info(f"Document {sent}/{case.faxes_total} sent for {case_id}")
            return updated

        now = self._clock()
        case_number = self.allocator.allocate()
        updated = self._commit(
            case,
            faxes_sent=sent,
            completed_stages=case.completed_stages + (FirstCallStage.FAXING,),
            current_stage=next_stage(False, FirstCallStage.FAXING),
            case_number=case_number,
            finalized_at=now,
            dispatch=False,
        )
        self.outbox.append(
            CaseFinalized(
                case_id=updated.id,
                case_number=case_number,
                snapshot=CaseRecordSnapshot.from_case(updated),
                occurred_at=now,
            )
        )
        logger.info(f"Case {case_id} finalized as {case_number}")
        self._dispatch()
        return updated

    def update_case(
        self,
        case_id: str,
        updates: Optional[Mapping[str, Any]] = None,
        **fields: Any,
    ) -> Optional[FirstCallCase]:
        """
        Merge arbitrary descriptive fields or counter adjustments into a case.

        Workflow state is never written here. ``is_verbal_release`` is
        accepted only while intake is still open. Counters are clamped so
        received/sent never exceed their totals, and the counters of a stage
        already in ``completed_stages`` are read-only. A complete case is
        not edited at all.
        """
        case = self.registry.get(case_id)
        if case is None:
            return self._unknown(case_id, "update_case")
        if case.is_complete:
            return self._skip(case, "update_case")

        changes = dict(updates or {})
        changes.update(fields)

        dropped = sorted(key for key in changes if key in PROTECTED_FIELDS)
        if case.intake_complete and "is_verbal_release" in changes:
            dropped.append("is_verbal_release")
        for stage, counters in STAGE_COUNTERS.items():
            if stage in case.completed_stages:
                dropped.extend(key for key in counters if key in changes)
        if dropped:
            logger.warning(f"Ignoring protected field(s) {dropped} in update for {case_id}")
        changes = {key: value for key, value in changes.items() if key not in dropped}

        self._clamp_counters(case, changes)
        updated = self._commit(case, **changes)
        logger.debug(f"Updated {case_id}: {sorted(changes)}")
        return updated

    def delete_case(self, case_id: str) -> bool:
        removed = self.registry.delete(case_id)
        if removed:
            logger.info(f"Deleted first call case {case_id}")
        return removed

    def get_case(self, case_id: str) -> Optional[FirstCallCase]:
        return self.registry.get(case_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self, case: FirstCallCase, dispatch: bool = True, **changes: Any) -> FirstCallCase:
        """Validate the new version and swap it in against the version read."""
        updated = case.evolve(updated_at=max(self._clock(), case.updated_at), **changes)
        self.registry.replace(updated, expected=case)
        if dispatch:
            self._dispatch()
        return updated

    def _dispatch(self) -> None:
        if self.auto_dispatch and len(self.outbox):
            self.outbox.dispatch()

    @staticmethod
    def _clamp_counters(case: FirstCallCase, changes: Dict[str, Any]) -> None:
        signatures_total = max(0, int(changes.get("signatures_total", case.signatures_total)))
        faxes_total = max(0, int(changes.get("faxes_total", case.faxes_total)))
        if "signatures_total" in changes:
            changes["signatures_total"] = signatures_total
        if "faxes_total" in changes:
            changes["faxes_total"] = faxes_total

        received = max(0, int(changes.get("signatures_received", case.signatures_received)))
        sent = max(0, int(changes.get("faxes_sent", case.faxes_sent)))
        if "signatures_received" in changes or received > signatures_total:
            changes["signatures_received"] = min(received, signatures_total)
        if "faxes_sent" in changes or sent > faxes_total:
            changes["faxes_sent"] = min(sent, faxes_total)

    @staticmethod
    def _unknown(case_id: str, operation: str) -> None:
        logger.debug(f"{operation}: unknown case {case_id}, ignoring")
        return None

    @staticmethod
    def _skip(case: FirstCallCase, operation: str) -> FirstCallCase:
        logger.debug(
            f"{operation}: not applicable to {case.id} in stage {case.current_stage.value}, ignoring"
        )
        return case
