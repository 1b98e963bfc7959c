"""Case progress for the detail page tracker and the case cards."""

import math
from typing import List, Optional

from ..models.case import WorkshopCase
from ..models.status import CaseProgress, ProgressSection
from .predicates import (
    has_calibration_complete,
    has_ddf_complete,
    has_images_available,
    has_insurance_coverage_complete,
    has_invoice_present,
    has_new_log_messages,
    has_parts_and_labor_complete,
    is_invoice_reviewed_and_ok,
    resolve,
)


def calculate_case_progress(case: Optional[WorkshopCase]) -> CaseProgress:
    """Count the six workflow requirements a case has met."""
    requirements = [
        has_ddf_complete(case),
        has_images_available(case),
        has_parts_and_labor_complete(case),
        has_insurance_coverage_complete(case),
        has_calibration_complete(case),
        is_invoice_reviewed_and_ok(case),
    ]
    return CaseProgress(completed=sum(requirements), total=len(requirements))


def _invoice_section_complete(case: Optional[WorkshopCase]) -> bool:
    return (
        has_invoice_present(case)
        and bool(resolve(case, "invoice.kid"))
        and bool(resolve(case, "invoice.total_amount"))
    )


def get_progress_sections(case: Optional[WorkshopCase]) -> List[ProgressSection]:
    """
    Build the progress tracker shown beside the case detail page.

    Returns:
        Sections in page order; empty when there is no case. The Log
        section is never required and only carries the unread marker.
    """
    if case is None:
        return []
    return [
        ProgressSection("Case Info", "case-info", True),
        ProgressSection("Insurance", "insurance", has_insurance_coverage_complete(case)),
        ProgressSection("DDF Form", "ddf", has_ddf_complete(case)),
        ProgressSection("Images", "images", has_images_available(case)),
        ProgressSection("Parts & Labor", "parts-labor", has_parts_and_labor_complete(case)),
        ProgressSection("Calibration", "calibration", has_calibration_complete(case)),
        ProgressSection("Invoice", "invoice", _invoice_section_complete(case)),
        ProgressSection(
            "Log",
            "communication-log",
            False,
            is_required=False,
            has_new_messages=has_new_log_messages(case),
        ),
    ]


def progress_percentage(sections: List[ProgressSection]) -> int:
    """Completed required sections as a whole percentage (half rounds up)."""
    required = [section for section in sections if section.is_required]
    if not required:
        return 0
    completed = sum(1 for section in required if section.is_complete)
    return math.floor(completed / len(required) * 100 + 0.5)
