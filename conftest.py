"""Shared case builders for the test suite."""

from datetime import datetime

import pytest

from caseflow.models.case import (
    Attachment,
    AttachmentType,
    Calibration,
    CaseImage,
    CaseStatus,
    CoverageDecision,
    DdfStatus,
    Assessment,
    InsuranceCoverage,
    Invoice,
    ItemType,
    PartsAndLabor,
    PartsLaborItem,
    RequiredImages,
    ReviewStatus,
    Service,
    Stage,
    Vehicle,
    WorkshopCase,
)
from caseflow.storage.case_repository import CaseRepository


FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0)


def ddf_document(name="DDF_BS2024001.pdf", attachment_id="att-ddf"):
    return Attachment(id=attachment_id, name=name, type=AttachmentType.DOCUMENT)


def required_images():
    return RequiredImages(
        vehicle_overview=CaseImage(id="img-1", url="/img/1.jpg", caption="Vehicle Overview"),
        glass_close_up=CaseImage(id="img-2", url="/img/2.jpg", caption="Glass Close-up"),
        damage_detail=CaseImage(id="img-3", url="/img/3.jpg", caption="Damage Detail"),
    )


def part_item(item_id="pl-1", total=1000):
    return PartsLaborItem(id=item_id, type=ItemType.PART, category="Windshield", quantity=1, price=total, total=total)


def labor_item(item_id="pl-2", total=550):
    return PartsLaborItem(id=item_id, type=ItemType.LABOR, description="Fitting", hours=0.5, rate_per_hour=1100, total=total)


def approved_coverage():
    return InsuranceCoverage(exists=True, data_fetched=True, status=CoverageDecision.APPROVED)


def complete_invoice(review_status=ReviewStatus.OK):
    return Invoice(
        invoice_number="INV-1",
        kid="12345678903",
        due_date="2024-04-01",
        total_amount=1550,
        issue_date="2024-03-10",
        review_status=review_status,
    )


def build_ready_for_in_progress(case_id="case-1"):
    """Draft case meeting every in-progress requirement."""
    return WorkshopCase(
        id=case_id,
        vehicle=Vehicle(make="Volvo", model="XC60", license_plate="AB12345"),
        assessment=Assessment(ddf_status=DdfStatus.COMPLETE),
        attachments=[ddf_document()],
        required_images=required_images(),
        parts_and_labor=PartsAndLabor(items=[part_item(), labor_item()]),
        insurance_coverage=approved_coverage(),
    )


def build_ready_for_completion(case_id="case-1"):
    """In-progress case meeting every completion requirement."""
    case = build_ready_for_in_progress(case_id)
    case.stage = Stage.IN_PROGRESS
    case.status = CaseStatus.IN_PROGRESS
    case.invoice = complete_invoice()
    case.calibration = Calibration(not_needed=True)
    case.service = Service(type="Windshield Replacement", repair_finished_date="2024-03-14")
    return case


@pytest.fixture
def blank_case():
    return WorkshopCase(id="case-blank")


@pytest.fixture
def in_progress_ready_case():
    return build_ready_for_in_progress()


@pytest.fixture
def completion_ready_case():
    return build_ready_for_completion()


@pytest.fixture
def repo():
    return CaseRepository(clock=lambda: FIXED_NOW)
