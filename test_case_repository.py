"""Tests for the in-memory case repository."""

import pytest

from caseflow.engine.predicates import has_ddf_attachment, has_ddf_complete
from caseflow.models.case import (
    ActionType,
    ActorType,
    Assessment,
    Attachment,
    AttachmentType,
    CaseStatus,
    DdfStatus,
    DocumentKind,
    ReviewStatus,
    Service,
    Stage,
    Vehicle,
    WorkshopCase,
)
from caseflow.storage.case_repository import sort_cases
from caseflow.utils.errors import CaseDataError, CaseNotFoundError, ErrorType

from conftest import build_ready_for_completion, build_ready_for_in_progress


def _actions(case):
    return [entry.action_type for entry in case.action_log]


def test_add_get_and_list(repo):
    repo.add(WorkshopCase(id="a"))
    repo.add(WorkshopCase(id="b"))
    assert [c.id for c in repo.list()] == ["a", "b"]
    assert repo.get("a").id == "a"
    assert repo.get("missing") is None
    assert "b" in repo
    assert len(repo) == 2


def test_require_raises_for_unknown_id(repo):
    with pytest.raises(CaseNotFoundError) as exc_info:
        repo.require("nope")
    assert exc_info.value.context.error_type == ErrorType.CASE_NOT_FOUND
    assert exc_info.value.context.details == {"case_id": "nope"}


def test_find_by_license_plate_ignores_case(repo):
    repo.add(WorkshopCase(id="a", vehicle=Vehicle(license_plate="EL12345")))
    assert repo.find_by_license_plate(" el12345 ").id == "a"
    assert repo.find_by_license_plate("XX00000") is None
    assert repo.find_by_license_plate("") is None


def test_update_logs_status_and_stage_changes(repo):
    repo.add(WorkshopCase(id="a"))
    case = repo.update("a", status="In Progress", stage=Stage.IN_PROGRESS)
    assert case.status == CaseStatus.IN_PROGRESS
    assert case.stage == Stage.IN_PROGRESS
    assert _actions(case) == [ActionType.STATUS_CHANGED, ActionType.STAGE_CHANGED]
    assert case.action_log[0].description == "Status changed from New to In Progress"
    assert case.action_log[0].actor_type == ActorType.WORKSHOP
    assert case.updated_at == "2024-03-15T12:00:00Z"


def test_update_without_change_adds_no_status_entry(repo):
    repo.add(WorkshopCase(id="a"))
    case = repo.update("a", status=CaseStatus.NEW)
    assert case.action_log == []


def test_update_logs_section_changes(repo):
    repo.add(WorkshopCase(id="a"))
    source = build_ready_for_completion("src")
    case = repo.update(
        "a",
        parts_and_labor=source.parts_and_labor,
        calibration=source.calibration,
        insurance_coverage=source.insurance_coverage,
        required_images=source.required_images,
    )
    assert _actions(case) == [
        ActionType.PARTS_ADDED,
        ActionType.CALIBRATION_UPDATED,
        ActionType.INSURANCE_UPDATED,
        ActionType.IMAGE_UPLOADED,
    ]


def test_update_rejects_unknown_fields(repo):
    repo.add(WorkshopCase(id="a"))
    with pytest.raises(CaseDataError):
        repo.update("a", colour="red")


def test_update_cannot_change_the_id(repo):
    repo.add(WorkshopCase(id="c3"))
    with pytest.raises(CaseDataError) as exc_info:
        repo.update("c3", id="c4")
    assert exc_info.value.context.error_type == ErrorType.CASE_DATA_INVALID
    assert repo.get("c3").id == "c3"
    assert repo.get("c4") is None


@pytest.mark.parametrize("changes", [
    {"stage": "archived"},
    {"status": "Parked"},
    {"stage": None},
])
def test_update_rejects_unknown_stage_or_status(changes, repo):
    repo.add(WorkshopCase(id="a"))
    with pytest.raises(CaseDataError) as exc_info:
        repo.update("a", **changes)
    assert exc_info.value.context.error_type == ErrorType.CASE_DATA_INVALID
    case = repo.get("a")
    assert case.stage == Stage.DRAFT
    assert case.status == CaseStatus.NEW


def test_update_missing_case_returns_none(repo):
    assert repo.update("missing", status=CaseStatus.READY) is None


def test_delete(repo):
    repo.add(WorkshopCase(id="a"))
    assert repo.delete("a", reason="Duplicate") is True
    assert repo.get("a") is None
    assert repo.delete("a") is False


# Damage form

def test_add_ddf_attachment_tags_and_completes(repo):
    repo.add(WorkshopCase(id="a"))
    case = repo.add_ddf_attachment("a", Attachment(name="skadeskjema.pdf"))
    attachment = case.attachments[0]
    assert attachment.kind == DocumentKind.DDF
    assert attachment.type == AttachmentType.DOCUMENT
    assert attachment.id
    assert case.assessment.ddf_status == DdfStatus.COMPLETE
    assert has_ddf_complete(case) is True
    assert _actions(case) == [ActionType.FILE_UPLOADED]


def test_delete_last_ddf_resets_form(repo):
    case = WorkshopCase(
        id="a",
        assessment=Assessment(ddf_status=DdfStatus.COMPLETE, damage_date="2024-02-01", claim_id="CLM-1"),
        attachments=[Attachment(id="ddf-1", name="DDF_1.pdf", type=AttachmentType.DOCUMENT)],
    )
    repo.add(case)
    assert repo.delete_ddf_attachment("a", "ddf-1") is True
    assert has_ddf_attachment(case) is False
    assert case.assessment.ddf_status == DdfStatus.NON_EXISTENT
    assert case.assessment.damage_date is None
    assert case.assessment.claim_id is None


def test_delete_one_of_two_ddfs_keeps_form(repo):
    case = WorkshopCase(
        id="a",
        assessment=Assessment(ddf_status=DdfStatus.COMPLETE, claim_id="CLM-1"),
        attachments=[
            Attachment(id="ddf-1", name="DDF_1.pdf", type=AttachmentType.DOCUMENT),
            Attachment(id="ddf-2", name="DDF_2.pdf", type=AttachmentType.DOCUMENT),
        ],
    )
    repo.add(case)
    assert repo.delete_ddf_attachment("a", "ddf-1") is True
    assert case.assessment.ddf_status == DdfStatus.COMPLETE
    assert case.assessment.claim_id == "CLM-1"


def test_ddf_attachment_is_stored_as_a_copy(repo):
    repo.add(WorkshopCase(id="a"))
    repo.add(WorkshopCase(id="b"))
    upload = Attachment(id="shared", name="skadeskjema.pdf")
    first = repo.add_ddf_attachment("a", upload)
    second = repo.add_ddf_attachment("b", upload)
    assert upload.kind is None
    assert upload.type is None
    assert first.attachments[0] is not second.attachments[0]
    first.attachments[0].name = "renamed.pdf"
    assert second.attachments[0].name == "skadeskjema.pdf"


def test_delete_ddf_ignores_other_attachments(repo):
    case = WorkshopCase(
        id="a",
        assessment=Assessment(ddf_status=DdfStatus.COMPLETE, claim_id="CLM-1"),
        attachments=[Attachment(id="photo-1", name="front.jpg", type=AttachmentType.IMAGE)],
    )
    repo.add(case)
    assert repo.delete_ddf_attachment("a", "photo-1") is False
    assert [att.id for att in case.attachments] == ["photo-1"]
    assert case.assessment.ddf_status == DdfStatus.COMPLETE
    assert case.assessment.claim_id == "CLM-1"


def test_delete_unknown_ddf(repo):
    repo.add(WorkshopCase(id="a"))
    assert repo.delete_ddf_attachment("a", "nope") is False
    assert repo.delete_ddf_attachment("missing", "nope") is False


# Invoice

def test_invoice_lifecycle(repo):
    repo.add(WorkshopCase(id="a"))
    case = repo.add_invoice_attachment("a", "/files/a/invoice.pdf", "invoice.pdf")
    assert case.invoice.file_url == "/files/a/invoice.pdf"
    assert case.invoice.issue_date == "2024-03-15"

    case = repo.add_invoice_attachment("a", "/files/a/invoice-v2.pdf")
    assert case.invoice.file_url == "/files/a/invoice-v2.pdf"

    case = repo.set_invoice_review_status("a", "needs_correction")
    assert case.invoice.review_status == ReviewStatus.NEEDS_CORRECTION
    assert case.action_log[-1].actor_type == ActorType.AGENT

    assert repo.delete_invoice("a") is True
    assert case.invoice is None
    assert repo.delete_invoice("a") is False


def test_review_status_needs_an_invoice(repo):
    repo.add(WorkshopCase(id="a"))
    assert repo.set_invoice_review_status("a", ReviewStatus.OK) is None


def test_unknown_review_status_is_rejected(repo):
    repo.add(build_ready_for_completion("a"))
    with pytest.raises(CaseDataError):
        repo.set_invoice_review_status("a", "great")


# Calibration

def test_calibration_files(repo):
    repo.add(WorkshopCase(id="a"))
    case = repo.add_calibration_file("a", Attachment(id="cal-1", name="adas-report.pdf"))
    assert case.calibration.required is True
    assert case.calibration.not_needed is False
    assert case.calibration.files[0].kind == DocumentKind.CALIBRATION
    assert repo.delete_calibration_file("a", "cal-1") is True
    assert case.calibration.files == []
    assert repo.delete_calibration_file("a", "cal-1") is False


# Logs

def test_logs_are_appended(repo):
    repo.add(WorkshopCase(id="a"))
    entry = repo.add_action_log("a", ActionType.NOTE_ADDED, "Customer called")
    message = repo.add_chat_message("a", "Agent Smith", "Please add photos")
    sms = repo.add_ddf_sms_log("a", "+47 912 34 567")
    case = repo.get("a")
    assert case.action_log == [entry, sms]
    assert case.chat_log == [message]
    assert sms.action_type == ActionType.SMS_SENT
    assert sms.actor_type == ActorType.SYSTEM
    assert repo.add_action_log("missing", ActionType.OTHER, "x") is None


# Views

def _populated(repo):
    draft = build_ready_for_in_progress("draft")
    draft.vehicle = Vehicle(make="Volvo", license_plate="AB11111")
    draft.insurance_company = "Tryg"
    working = build_ready_for_completion("working")
    working.stage = Stage.IN_PROGRESS
    working.invoice.review_status = ReviewStatus.PENDING_REVIEW
    working.vehicle = Vehicle(make="audi", license_plate="CD22222")
    working.insurance_company = "Gjensidige"
    held = WorkshopCase(id="held", stage=Stage.IN_PROGRESS, status=CaseStatus.WAITING_PARTS)
    held.vehicle = Vehicle(make="Tesla", license_plate="EF33333")
    held.service = Service(type="Windshield Replacement")
    for case in (draft, working, held):
        repo.add(case)
    return draft, working, held


def test_stage_views(repo):
    draft, working, held = _populated(repo)
    assert repo.get_cases_by_stage(Stage.DRAFT) == [draft]
    assert repo.get_cases_by_stage("in_progress") == [working, held]
    assert repo.get_awaiting_invoice_cases() == [working]
    assert repo.get_on_hold_cases() == [held]


def test_search(repo):
    draft, working, held = _populated(repo)
    assert repo.search("cd222") == [working]
    assert repo.search("windshield") == [working, held]
    assert repo.search("tesla") == [held]
    assert repo.search("") == [draft, working, held]


def test_sort_cases(repo):
    draft, working, held = _populated(repo)
    cases = repo.list()
    assert sort_cases(cases, "car_brand") == [working, held, draft]
    assert sort_cases(cases, "car_brand", "desc") == [draft, held, working]
    # Cases without an insurance company sort last in both directions
    assert sort_cases(cases, "insurance_company")[-1] is held
    assert sort_cases(cases, "insurance_company", "desc")[-1] is held


def test_sort_by_date_puts_missing_last(repo):
    draft, working, held = _populated(repo)
    working.updated_at = "2024-03-10T10:00:00Z"
    held.updated_at = "2024-03-12T10:00:00Z"
    assert sort_cases(repo.list(), "updated_at", "desc") == [held, working, draft]


def test_sort_rejects_unknown_field():
    with pytest.raises(ValueError):
        sort_cases([], "colour")
    with pytest.raises(ValueError):
        sort_cases([], "status", "sideways")
