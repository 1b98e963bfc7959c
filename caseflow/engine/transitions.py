"""Stage-transition gating for workshop cases.

Gates use the raw data predicates, never the approval statuses, so a
manual approval cannot push an incomplete case forward. Each gate has a
companion function that explains a failure as an ordered list of
user-facing messages. The order and wording are part of the interface.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..models.case import WorkshopCase
from ..models.status import CoverageStatus
from .predicates import (
    get_insurance_coverage_status,
    has_calibration_complete,
    has_ddf_complete,
    has_images_available,
    has_insurance_coverage_complete,
    has_invoice_present,
    has_parts_and_labor_complete,
    has_repair_finished_date,
    is_invoice_reviewed_and_ok,
    resolve,
)

logger = logging.getLogger(__name__)


CASE_NOT_AVAILABLE = "Case data not available"
DDF_REQUIRED = "Digital Damage Form (DDF) must be completed"
IMAGES_REQUIRED = "Images must be uploaded (minimum 4) or marked as not needed with reason"
PARTS_LABOR_REQUIRED = "Parts and Labor details must be completed"
INSURANCE_NOT_FETCHED = "Insurance coverage must be verified and fetched"
INSURANCE_NOT_APPROVED = "Insurance coverage must be approved (currently: Not Approved)"
INSURANCE_UNDEFINED = "Insurance coverage status must be set to approved (currently: Undefined)"
INSURANCE_NO_POLICY = "Insurance coverage must exist for the vehicle"
INVOICE_REQUIRED = "Invoice must be generated"
INVOICE_REVIEW_REQUIRED = "Invoice must be reviewed and approved"
CALIBRATION_REQUIRED = "Calibration must be completed or marked as not needed"
REPAIR_DATE_REQUIRED = "Repair finished date must be set"

_INSURANCE_MESSAGES = {
    CoverageStatus.NOT_FETCHED: INSURANCE_NOT_FETCHED,
    CoverageStatus.NOT_APPROVED: INSURANCE_NOT_APPROVED,
    CoverageStatus.UNDEFINED: INSURANCE_UNDEFINED,
    # Fetched and approved, but no policy on file
    CoverageStatus.APPROVED: INSURANCE_NO_POLICY,
}

Check = Tuple[Callable[[WorkshopCase], bool], str]

_SHARED_CHECKS: List[Check] = [
    (has_ddf_complete, DDF_REQUIRED),
    (has_images_available, IMAGES_REQUIRED),
    (has_parts_and_labor_complete, PARTS_LABOR_REQUIRED),
]

_COMPLETION_CHECKS: List[Check] = _SHARED_CHECKS + [
    (has_invoice_present, INVOICE_REQUIRED),
    (is_invoice_reviewed_and_ok, INVOICE_REVIEW_REQUIRED),
    (has_calibration_complete, CALIBRATION_REQUIRED),
    (has_repair_finished_date, REPAIR_DATE_REQUIRED),
]


def is_case_ready_for_in_progress(case: Optional[WorkshopCase]) -> bool:
    """DDF, images, parts and labor, and approved insurance coverage are all in place."""
    if case is None:
        return False
    return (
        has_ddf_complete(case)
        and has_images_available(case)
        and has_parts_and_labor_complete(case)
        and has_insurance_coverage_complete(case)
    )


def is_case_ready_for_completion(case: Optional[WorkshopCase]) -> bool:
    """
    Whether a case may be marked finished.

    Only the presence of an invoice is checked here, not its review, while
    :func:`get_missing_requirements_for_completion` also asks for an
    approved review. The two can disagree for an unreviewed invoice.
    """
    if case is None:
        return False
    return (
        has_ddf_complete(case)
        and has_images_available(case)
        and has_parts_and_labor_complete(case)
        and has_invoice_present(case)
        and has_calibration_complete(case)
        and has_repair_finished_date(case)
    )


def get_missing_requirements_for_in_progress(case: Optional[WorkshopCase]) -> List[str]:
    """
    Explain why a case cannot move to ``in_progress``.

    Returns:
        Messages in the order DDF, images, parts and labor, insurance;
        empty when the case is ready
    """
    if case is None:
        return [CASE_NOT_AVAILABLE]

    missing = [message for check, message in _SHARED_CHECKS if not check(case)]

    if not has_insurance_coverage_complete(case):
        missing.append(_INSURANCE_MESSAGES[get_insurance_coverage_status(case)])

    logger.debug(f"In-progress requirements missing for case {resolve(case, 'id')}: {len(missing)}")
    return missing


def get_missing_requirements_for_completion(case: Optional[WorkshopCase]) -> List[str]:
    """
    Explain why a case cannot be marked finished.

    Returns:
        Messages in the order DDF, images, parts and labor, invoice,
        invoice review, calibration, repair date; empty when every
        requirement holds
    """
    if case is None:
        return [CASE_NOT_AVAILABLE]

    missing = [message for check, message in _COMPLETION_CHECKS if not check(case)]

    logger.debug(f"Completion requirements missing for case {resolve(case, 'id')}: {len(missing)}")
    return missing
