"""Tests for the First Call workflow engine."""

import random

import pytest

from firstcall_core.exceptions import CaseNumberError, StaleCaseError
from firstcall_core.models import FirstCallStage, FirstCallStatus, IntakeData
from firstcall_core.workflow.policy import derive_status, visible_stages

S = FirstCallStage


def _assert_invariants(case):
    assert case.signatures_received <= case.signatures_total
    assert case.faxes_sent <= case.faxes_total
    assert case.current_stage in visible_stages(case.is_verbal_release)
    assert case.current_stage not in case.completed_stages
    assert len(set(case.completed_stages)) == len(case.completed_stages)
    assert case.status == derive_status(
        case.current_stage, case.signatures_received, case.signatures_total
    )


class TestCreateCase:
    def test_create_case_sets_active_and_zeroes_counters(self, engine, registry):
        case_id = engine.create_case()
        case = registry.get(case_id)

        assert registry.active_case_id == case_id
        assert case.current_stage == S.INTAKE
        assert case.completed_stages == ()
        assert case.status == FirstCallStatus.INTAKE_IN_PROGRESS
        assert case.created_at == case.updated_at

    def test_create_case_keeps_other_cases(self, engine, registry):
        first = engine.create_case("Harold Foster", "Mary Foster")
        second = engine.create_case()

        assert len(registry) == 2
        assert registry.active_case_id == second
        assert registry.get(first).deceased_name == "Harold Foster"

    def test_custom_id_factory(self, registry, clock):
        from firstcall_core.workflow.engine import WorkflowEngine

        ids = iter(["case-a", "case-b"])
        engine = WorkflowEngine(registry, clock=clock, id_factory=lambda: next(ids))

        assert engine.create_case() == "case-a"
        assert engine.create_case() == "case-b"


class TestVerbalPath:
    def test_verbal_release_scenario(self, engine, finalized, verbal_intake):
        case_id = engine.create_case()

        case = engine.complete_intake(case_id, verbal_intake())
        assert case.current_stage == S.SUMMARY
        assert case.is_verbal_release is True
        assert case.status == FirstCallStatus.INTAKE_IN_PROGRESS

        case = engine.complete_summary(case_id)
        assert case.current_stage == S.COMPLETE
        assert case.completed_stages == (S.INTAKE, S.SUMMARY)
        assert case.status == FirstCallStatus.COMPLETE

    def test_send_release_form_does_not_change_stage(self, engine, verbal_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, verbal_intake())

        case = engine.send_release_form(case_id)

        assert case.release_form_sent is True
        assert case.release_form_sent_at is not None
        assert case.current_stage == S.SUMMARY

    def test_send_release_form_ignored_on_standard_path(self, engine, standard_intake):
        case_id = engine.create_case()
        before = engine.complete_intake(case_id, standard_intake())

        assert engine.send_release_form(case_id) is before
        assert engine.get_case(case_id).release_form_sent is False

    def test_signature_and_fax_signals_ignored_on_verbal_path(self, engine, verbal_intake):
        case_id = engine.create_case()
        before = engine.complete_intake(case_id, verbal_intake())

        engine.record_signature(case_id)
        engine.record_document_sent(case_id)

        assert engine.get_case(case_id) is before


class TestStandardPath:
    def test_two_document_scenario(self, engine, finalized):
        case_id = engine.create_case()

        case = engine.complete_intake(case_id, {"is_verbal_release": False, "signatures_total": 2})
        assert case.current_stage == S.SIGNATURES
        assert case.status == FirstCallStatus.WAITING_ON_FAMILY

        case = engine.record_signature(case_id)
        assert case.current_stage == S.SIGNATURES
        assert case.signatures_received == 1

        case = engine.record_signature(case_id)
        assert case.current_stage == S.FAXING
        assert case.faxes_total == 2
        assert case.completed_stages == (S.INTAKE, S.SIGNATURES)

        case = engine.record_document_sent(case_id)
        assert case.current_stage == S.FAXING
        assert case.faxes_sent == 1
        assert finalized == []

        case = engine.record_document_sent(case_id)
        assert case.current_stage == S.COMPLETE
        assert case.completed_stages == (S.INTAKE, S.SIGNATURES, S.FAXING)
        assert len(finalized) == 1
        assert finalized[0].case_id == case_id
        assert finalized[0].case_number == case.case_number

    def test_intake_fields_are_merged(self, engine, standard_intake):
        case_id = engine.create_case()
        case = engine.complete_intake(
            case_id,
            standard_intake(has_stairs="yes", selected_documents=["body-release", "cremation-auth"]),
        )

        assert case.deceased_name == "Harold Foster"
        assert case.caller_phone == "555-0101"
        assert case.has_stairs is True
        assert case.family_contact_name == "Mary Foster"
        assert case.selected_documents == ("body-release", "cremation-auth")
        assert case.intake_complete is True
        assert case.documents_generated == 2

    def test_document_count_comes_from_selection(self, engine):
        case_id = engine.create_case()
        case = engine.complete_intake(
            case_id,
            IntakeData(selected_documents=["body-release", "cremation-auth"]),
        )

        assert case.signatures_total == 2
        assert case.faxes_total == 2

    def test_document_count_minimum_one(self, engine):
        case_id = engine.create_case()
        case = engine.complete_intake(case_id, {"signatures_total": 0, "selected_documents": []})

        assert case.signatures_total == 1
        assert case.faxes_total == 1

    def test_over_confirmation_is_clamped(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=3))

        for _ in range(10):
            engine.record_signature(case_id)

        case = engine.get_case(case_id)
        assert case.signatures_received == case.signatures_total == 3
        assert case.current_stage == S.FAXING
        assert case.faxes_sent == 0

    def test_case_finalized_fires_once(self, engine, finalized, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1))
        engine.record_signature(case_id)

        for _ in range(5):
            engine.record_document_sent(case_id)

        assert len(finalized) == 1
        assert engine.get_case(case_id).faxes_sent == 1

    def test_finalized_snapshot_carries_intake_fields(self, engine, finalized, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1, weight="180 lbs"))
        engine.record_signature(case_id)
        engine.record_document_sent(case_id)

        snapshot = finalized[0].snapshot
        assert snapshot.deceased_name == "Harold Foster"
        assert snapshot.caller_name == "Mary Foster"
        assert snapshot.location_of_pickup == "St. Luke's Hospital"
        assert snapshot.weight == "180 lbs"
        assert snapshot.is_verbal_release is False

    def test_case_numbers_follow_month_sequence(self, engine, finalized, standard_intake):
        for _ in range(2):
            case_id = engine.create_case()
            engine.complete_intake(case_id, standard_intake(signatures_total=1))
            engine.record_signature(case_id)
            engine.record_document_sent(case_id)

        assert [event.case_number for event in finalized] == ["RTP-202503-0001", "RTP-202503-0002"]


class TestMonotonicity:
    def test_complete_intake_only_once(self, engine, standard_intake, verbal_intake):
        case_id = engine.create_case()
        first = engine.complete_intake(case_id, verbal_intake())

        second = engine.complete_intake(case_id, standard_intake())

        assert second is first
        assert engine.get_case(case_id).is_verbal_release is True
        assert engine.get_case(case_id).current_stage == S.SUMMARY

    def test_complete_summary_requires_summary_stage(self, engine, standard_intake):
        case_id = engine.create_case()
        before = engine.complete_intake(case_id, standard_intake())

        assert engine.complete_summary(case_id) is before

    def test_signals_before_intake_are_ignored(self, engine):
        case_id = engine.create_case()
        before = engine.get_case(case_id)

        engine.record_signature(case_id)
        engine.record_document_sent(case_id)
        engine.complete_summary(case_id)

        assert engine.get_case(case_id) is before

    def test_random_operation_sequences_keep_invariants(
        self, engine, finalized, standard_intake, verbal_intake
    ):
        rng = random.Random(20250314)
        operations = [
            engine.record_signature,
            engine.record_document_sent,
            engine.complete_summary,
            engine.send_release_form,
            lambda case_id: engine.update_case(case_id, caller_name="Someone"),
            lambda case_id: engine.complete_intake(case_id, standard_intake()),
        ]
        order = {stage: index for index, stage in enumerate(S)}
        completed = set()

        for _ in range(25):
            case_id = engine.create_case()
            verbal = rng.random() < 0.5
            intake = verbal_intake() if verbal else standard_intake(signatures_total=rng.randint(1, 4))
            engine.complete_intake(case_id, intake)
            topology = visible_stages(verbal)
            previous = engine.get_case(case_id)

            for _ in range(15):
                rng.choice(operations)(case_id)
                case = engine.get_case(case_id)
                _assert_invariants(case)
                assert case.is_verbal_release is verbal
                assert case.current_stage in topology
                assert order[case.current_stage] >= order[previous.current_stage]
                assert case.signatures_received >= previous.signatures_received
                assert case.faxes_sent >= previous.faxes_sent
                previous = case

            if previous.current_stage == S.COMPLETE and not verbal:
                completed.add(case_id)

        assert sorted(event.case_id for event in finalized) == sorted(completed)


class TestUpdateCase:
    def test_merges_descriptive_fields(self, engine):
        case_id = engine.create_case()
        before = engine.get_case(case_id)

        case = engine.update_case(case_id, {"deceased_name": "Harold Foster"}, caller_phone="555-0101")

        assert case.deceased_name == "Harold Foster"
        assert case.caller_phone == "555-0101"
        assert case.updated_at > before.updated_at

    def test_workflow_state_is_protected(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake())

        case = engine.update_case(
            case_id,
            current_stage="complete",
            completed_stages=["intake", "signatures", "faxing"],
            status="complete",
            is_verbal_release=True,
            id="hijacked",
        )

        assert case.id == case_id
        assert case.current_stage == S.SIGNATURES
        assert case.completed_stages == (S.INTAKE,)
        assert case.is_verbal_release is False

    def test_verbal_flag_editable_during_intake(self, engine):
        case_id = engine.create_case()

        assert engine.update_case(case_id, is_verbal_release=True).is_verbal_release is True

    def test_counters_are_clamped(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=2))

        case = engine.update_case(case_id, signatures_received=9)
        assert case.signatures_received == 2
        assert case.status == FirstCallStatus.ACTION_NEEDED

        case = engine.update_case(case_id, signatures_total=1)
        assert case.signatures_total == 1
        assert case.signatures_received == 1

    def test_complete_case_is_not_edited(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1))
        engine.record_signature(case_id)
        done = engine.record_document_sent(case_id)

        result = engine.update_case(
            case_id, signatures_total=4, faxes_total=4, caller_name="Someone else"
        )

        assert result is done
        case = engine.get_case(case_id)
        assert case is done
        assert (case.signatures_received, case.signatures_total) == (1, 1)
        assert (case.faxes_sent, case.faxes_total) == (1, 1)
        assert case.caller_name == "Mary Foster"

    def test_signature_counters_frozen_after_signatures_stage(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=2))
        engine.record_signature(case_id)
        engine.record_signature(case_id)

        case = engine.update_case(
            case_id,
            signatures_total=5,
            signatures_received=0,
            faxes_total=3,
            caller_phone="555-0199",
        )

        assert case.current_stage == S.FAXING
        assert (case.signatures_received, case.signatures_total) == (2, 2)
        assert case.faxes_total == 3
        assert case.caller_phone == "555-0199"

    def test_status_recomputed_after_total_adjustment(self, engine, standard_intake):
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=2))
        engine.record_signature(case_id)

        case = engine.update_case(case_id, signatures_total=3)

        assert case.status == FirstCallStatus.WAITING_ON_FAMILY
        assert case.current_stage == S.SIGNATURES


class TestUnknownCases:
    @pytest.mark.parametrize(
        "operation",
        [
            "complete_intake",
            "send_release_form",
            "complete_summary",
            "record_signature",
            "record_document_sent",
            "update_case",
        ],
    )
    def test_unknown_id_is_noop(self, engine, registry, operation):
        engine.create_case()

        assert getattr(engine, operation)("missing") is None
        assert len(registry) == 1

    def test_delete_unknown_returns_false(self, engine):
        assert engine.delete_case("missing") is False


class TestFinalizationFailures:
    def test_corrupted_case_number_fails_loudly(self, workflow, standard_intake):
        from firstcall_core.models import CaseRecord, CaseRecordSnapshot

        workflow.records.add(
            CaseRecord(
                case_number="RTP-202503-00X7",
                first_call_case_id="legacy",
                snapshot=CaseRecordSnapshot(),
            )
        )
        engine = workflow.engine
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1))
        engine.record_signature(case_id)

        with pytest.raises(CaseNumberError):
            engine.record_document_sent(case_id)

        case = engine.get_case(case_id)
        assert case.current_stage == S.FAXING
        assert case.faxes_sent == 0
        assert len(workflow.outbox) == 0

    def test_failing_handler_does_not_cause_redelivery(self, engine, outbox, standard_intake):
        calls = []

        def flaky_handler(event):
            calls.append(event)
            raise RuntimeError("case management unavailable")

        outbox.subscribe(flaky_handler)
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1))
        engine.record_signature(case_id)

        with pytest.raises(RuntimeError):
            engine.record_document_sent(case_id)

        assert engine.get_case(case_id).current_stage == S.COMPLETE
        engine.record_document_sent(case_id)
        engine.update_case(case_id, caller_name="Mary")
        assert len(calls) == 1
        assert len(outbox) == 0

    def test_manual_dispatch(self, registry, outbox, clock, finalized, standard_intake):
        from firstcall_core.workflow.engine import WorkflowEngine

        engine = WorkflowEngine(registry, outbox=outbox, clock=clock, auto_dispatch=False)
        case_id = engine.create_case()
        engine.complete_intake(case_id, standard_intake(signatures_total=1))
        engine.record_signature(case_id)
        engine.record_document_sent(case_id)

        assert finalized == []
        assert len(outbox) == 1
        assert outbox.dispatch() == 1
        assert outbox.dispatch() == 0
        assert len(finalized) == 1


def test_stale_write_is_rejected(engine, registry):
    case_id = engine.create_case()
    stale = registry.get(case_id)
    engine.update_case(case_id, caller_name="Mary Foster")

    with pytest.raises(StaleCaseError):
        registry.replace(stale.evolve(caller_name="Someone else"), expected=stale)
    assert registry.get(case_id).caller_name == "Mary Foster"
