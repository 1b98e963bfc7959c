"""Per-section approval status derivation.

A section is ``approved`` only when an approver recorded it on the case.
Otherwise complete data makes it ``ready_for_approval`` and anything less
is ``incomplete``. Data alone never approves a section.
"""

from typing import Callable, Dict, Optional

from ..models.case import WorkshopCase
from ..models.status import Section, SectionApprovalStatus
from .predicates import (
    has_calibration_complete,
    has_ddf_attachment,
    has_images_available,
    has_insurance_coverage_data,
    has_invoice_present,
    has_parts_and_labor_complete,
    resolve,
)


# Readiness check per section. Insurance is ready once coverage data is
# fetched and exists: approving it is what sets the insurer decision, so
# hasInsuranceCoverageComplete cannot be used here.
SECTION_READINESS: Dict[Section, Callable[[Optional[WorkshopCase]], bool]] = {
    Section.DDF: has_ddf_attachment,
    Section.IMAGES: has_images_available,
    Section.PARTS_LABOR: has_parts_and_labor_complete,
    Section.CALIBRATION: has_calibration_complete,
    Section.INVOICE: has_invoice_present,
    Section.INSURANCE: has_insurance_coverage_data,
}


def is_section_approved(case: Optional[WorkshopCase], section: Section) -> bool:
    """Whether the section's manual approval field is exactly ``approved``."""
    return resolve(case, Section(section).override_field) == SectionApprovalStatus.APPROVED


def get_section_approval_status(
    case: Optional[WorkshopCase],
    section: Section
) -> SectionApprovalStatus:
    """
    Derive the approval status of one section.

    Args:
        case: Case record, or None
        section: Section to evaluate

    Returns:
        ``approved`` if recorded, else ``ready_for_approval`` when the
        section's data is complete, else ``incomplete``
    """
    section = Section(section)
    if case is None:
        return SectionApprovalStatus.INCOMPLETE
    if is_section_approved(case, section):
        return SectionApprovalStatus.APPROVED
    if SECTION_READINESS[section](case):
        return SectionApprovalStatus.READY_FOR_APPROVAL
    return SectionApprovalStatus.INCOMPLETE


def get_ddf_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.DDF)


def get_images_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.IMAGES)


def get_parts_labor_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.PARTS_LABOR)


def get_calibration_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.CALIBRATION)


def get_invoice_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.INVOICE)


def get_insurance_approval_status(case: Optional[WorkshopCase]) -> SectionApprovalStatus:
    return get_section_approval_status(case, Section.INSURANCE)


def get_all_section_approval_statuses(
    case: Optional[WorkshopCase]
) -> Dict[Section, SectionApprovalStatus]:
    """Approval status of every gated section, in workflow order."""
    return {section: get_section_approval_status(case, section) for section in Section}
