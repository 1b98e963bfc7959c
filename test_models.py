"""Tests for case record parsing and serialization."""

import pytest

from caseflow.models.case import (
    AttachmentType,
    CaseStatus,
    CoverageDecision,
    DdfStatus,
    ItemType,
    PartsAndLabor,
    PartsLaborItem,
    Stage,
    WorkshopCase,
    coerce_enum,
)
from caseflow.models.status import Section, SectionApprovalStatus
from caseflow.utils.errors import CaseDataError, ErrorType


PAYLOAD = {
    "id": "case-9",
    "caseNumber": "WS-9",
    "stage": "in_progress",
    "status": "Waiting Parts",
    "vehicle": {"make": "Skoda", "licensePlate": "EV99999"},
    "assessment": {"ddfStatus": "complete", "damageDate": "2024-02-01"},
    "attachments": [{"id": "a1", "name": "DDF_9.pdf", "type": "document"}],
    "partsAndLabor": {
        "items": [
            {"id": "p1", "type": "part", "total": 900},
            {"id": "l1", "type": "labor", "hours": 1, "ratePerHour": 1000, "total": 1000},
        ]
    },
    "insuranceCoverage": {"dataFetched": True, "exists": True, "status": "approved"},
    "imagesNotNeeded": True,
    "imagesNotNeededComment": "Photos taken by insurer",
    "ddfApprovalStatus": "approved",
}


def test_from_dict_reads_camel_case_payload():
    case = WorkshopCase.from_dict(PAYLOAD)
    assert case.stage == Stage.IN_PROGRESS
    assert case.status == CaseStatus.WAITING_PARTS
    assert case.vehicle.license_plate == "EV99999"
    assert case.assessment.ddf_status == DdfStatus.COMPLETE
    assert case.attachments[0].type == AttachmentType.DOCUMENT
    assert case.parts_and_labor.items[1].rate_per_hour == 1000
    assert case.insurance_coverage.status == CoverageDecision.APPROVED
    assert case.images_not_needed is True
    assert case.ddf_approval_status == SectionApprovalStatus.APPROVED


def test_from_dict_accepts_snake_case_keys():
    case = WorkshopCase.from_dict({"id": "c1", "images_not_needed_comment": "n/a"})
    assert case.images_not_needed_comment == "n/a"


def test_from_dict_defaults_missing_and_null_fields():
    case = WorkshopCase.from_dict({"id": "c1", "stage": None, "attachments": None})
    assert case.stage == Stage.DRAFT
    assert case.status == CaseStatus.NEW
    assert case.attachments == []
    assert case.invoice is None


def test_unknown_enum_values_read_as_unset():
    case = WorkshopCase.from_dict({
        "id": "c1",
        "stage": "archived",
        "assessment": {"ddfStatus": "done"},
        "partsAndLabor": {"items": [{"id": "x", "type": "service"}]},
    })
    assert case.stage == Stage.DRAFT
    assert case.assessment.ddf_status is None
    assert case.parts_and_labor.items[0].type is None


@pytest.mark.parametrize("payload", [None, [], "case-1"])
def test_from_dict_rejects_non_mappings(payload):
    with pytest.raises(CaseDataError) as exc_info:
        WorkshopCase.from_dict(payload)
    assert exc_info.value.context.error_type == ErrorType.CASE_DATA_INVALID


def test_from_dict_requires_id():
    with pytest.raises(CaseDataError) as exc_info:
        WorkshopCase.from_dict({"stage": "draft"})
    assert exc_info.value.context.error_type == ErrorType.CASE_FIELD_MISSING


def test_to_dict_is_camel_case_and_omits_none():
    data = WorkshopCase.from_dict(PAYLOAD).to_dict()
    assert data["stage"] == "in_progress"
    assert data["vehicle"]["licensePlate"] == "EV99999"
    assert data["ddfApprovalStatus"] == "approved"
    assert "invoice" not in data
    assert WorkshopCase.from_dict(data).to_dict() == data


def test_copy_is_deep():
    case = WorkshopCase.from_dict(PAYLOAD)
    clone = case.copy()
    clone.vehicle.license_plate = "CHANGED"
    clone.attachments.clear()
    assert case.vehicle.license_plate == "EV99999"
    assert len(case.attachments) == 1


def test_parts_and_labor_totals_are_derived():
    parts = PartsAndLabor(items=[
        PartsLaborItem(id="p", type=ItemType.PART, total=900),
        PartsLaborItem(id="l", type=ItemType.LABOR, total=1000),
    ])
    assert parts.total_parts == 900
    assert parts.total_labor == 1000
    assert parts.grand_total == 1900


def test_parts_and_labor_keeps_given_totals():
    parts = PartsAndLabor.from_dict({"items": [], "totalParts": 10, "totalLabor": 5, "grandTotal": 15})
    assert parts.grand_total == 15


def test_coerce_enum():
    assert coerce_enum(Stage, "finished") == Stage.FINISHED
    assert coerce_enum(Stage, Stage.DRAFT) is Stage.DRAFT
    assert coerce_enum(Stage, "Finished") is None
    assert coerce_enum(Stage, None) is None


def test_section_override_fields_exist_on_case():
    case = WorkshopCase(id="c1")
    for section in Section:
        assert hasattr(case, section.override_field)
