"""Status lights, badges and tooltips rendered for a case.

The four-way case badge evaluates each light independently with a fixed
precedence: a recorded approval wins, a recorded ``ready_for_approval``
comes next, and only then is the case data inspected.
"""

from typing import Dict, Optional

from ..models.case import CoverageDecision, ReviewStatus, WorkshopCase, coerce_enum
from ..models.status import (
    Badge,
    CaseStatusIcons,
    CoverageStatus,
    IconColor,
    IconStatus,
    InvoiceReviewBadge,
    SectionApprovalStatus,
)
from .predicates import (
    has_ddf_complete,
    has_images_available,
    has_invoice_required_fields,
    resolve,
)


_GREEN_STATES = (IconStatus.COMPLETE, IconStatus.APPROVED)


def icon_color(status: IconStatus) -> IconColor:
    """Complete and approved are green, needs_correction is red, the rest yellow."""
    if status in _GREEN_STATES:
        return IconColor.GREEN
    if status == IconStatus.NEEDS_CORRECTION:
        return IconColor.RED
    return IconColor.YELLOW


def _override(case: WorkshopCase, field_name: str) -> Optional[SectionApprovalStatus]:
    return coerce_enum(SectionApprovalStatus, resolve(case, field_name))


def get_coverage_icon_status(case: Optional[WorkshopCase]) -> IconStatus:
    if case is None:
        return IconStatus.INCOMPLETE
    override = _override(case, "insurance_approval_status")
    if override == SectionApprovalStatus.APPROVED:
        return IconStatus.COMPLETE
    if override == SectionApprovalStatus.READY_FOR_APPROVAL:
        return IconStatus.READY_FOR_APPROVAL
    if not resolve(case, "insurance_coverage.data_fetched", False):
        return IconStatus.INCOMPLETE
    decision = resolve(case, "insurance_coverage.status")
    if resolve(case, "insurance_coverage.exists", False) and decision == CoverageDecision.APPROVED:
        return IconStatus.COMPLETE
    if decision == CoverageDecision.NOT_APPROVED:
        return IconStatus.NEEDS_CORRECTION
    return IconStatus.INCOMPLETE


def get_damage_icon_status(case: Optional[WorkshopCase]) -> IconStatus:
    # No needs_correction outcome: without an override DDF is complete or not
    if case is None:
        return IconStatus.INCOMPLETE
    override = _override(case, "ddf_approval_status")
    if override == SectionApprovalStatus.APPROVED:
        return IconStatus.COMPLETE
    if override == SectionApprovalStatus.READY_FOR_APPROVAL:
        return IconStatus.READY_FOR_APPROVAL
    return IconStatus.COMPLETE if has_ddf_complete(case) else IconStatus.INCOMPLETE


def get_images_icon_status(case: Optional[WorkshopCase]) -> IconStatus:
    if case is None:
        return IconStatus.INCOMPLETE
    override = _override(case, "images_approval_status")
    if override == SectionApprovalStatus.APPROVED:
        return IconStatus.COMPLETE
    if override == SectionApprovalStatus.READY_FOR_APPROVAL:
        return IconStatus.READY_FOR_APPROVAL
    return IconStatus.COMPLETE if has_images_available(case) else IconStatus.INCOMPLETE


def get_invoice_icon_status(case: Optional[WorkshopCase]) -> IconStatus:
    """
    Invoice light.

    Missing KID, amount, number or due date keeps the light incomplete
    even when the review says ``ok``.
    """
    if case is None:
        return IconStatus.INCOMPLETE
    override = _override(case, "invoice_approval_status")
    if override == SectionApprovalStatus.APPROVED:
        return IconStatus.APPROVED
    if override == SectionApprovalStatus.READY_FOR_APPROVAL:
        return IconStatus.READY_FOR_APPROVAL
    if resolve(case, "invoice") is None or not has_invoice_required_fields(case):
        return IconStatus.INCOMPLETE
    review = resolve(case, "invoice.review_status")
    if review == ReviewStatus.OK:
        return IconStatus.APPROVED
    if review == ReviewStatus.NEEDS_CORRECTION:
        return IconStatus.NEEDS_CORRECTION
    return IconStatus.INCOMPLETE


def get_case_status_icons(case: Optional[WorkshopCase]) -> CaseStatusIcons:
    """Compute the four status lights of a case."""
    return CaseStatusIcons(
        coverage=get_coverage_icon_status(case),
        damage=get_damage_icon_status(case),
        images=get_images_icon_status(case),
        invoice=get_invoice_icon_status(case),
    )


_STATE_LABELS = {
    IconStatus.COMPLETE: "Complete",
    IconStatus.APPROVED: "Approved",
    IconStatus.READY_FOR_APPROVAL: "Ready for Approval",
    IconStatus.NEEDS_CORRECTION: "Needs Correction",
    IconStatus.INCOMPLETE: "Incomplete",
}


def _coverage_tooltip(case: Optional[WorkshopCase], status: IconStatus) -> str:
    if status == IconStatus.COMPLETE:
        return "Coverage: Approved"
    if status == IconStatus.READY_FOR_APPROVAL:
        return "Coverage: Ready for Approval"
    if status == IconStatus.NEEDS_CORRECTION:
        return "Coverage: Not Approved"
    if not resolve(case, "insurance_coverage.data_fetched", False):
        return "Coverage: Not Verified"
    return "Coverage: Incomplete"


def get_status_icon_tooltips(case: Optional[WorkshopCase]) -> Dict[str, str]:
    """Hover text for each of the four lights, keyed like ``CaseStatusIcons``."""
    icons = get_case_status_icons(case)
    return {
        "coverage": _coverage_tooltip(case, icons.coverage),
        "damage": f"DDF: {_STATE_LABELS[icons.damage]}",
        "images": f"Images: {_STATE_LABELS[icons.images]}",
        "invoice": f"Invoice: {_STATE_LABELS[icons.invoice]}",
    }


def get_status_icon_colors(case: Optional[WorkshopCase]) -> Dict[str, IconColor]:
    icons = get_case_status_icons(case)
    return {
        "coverage": icon_color(icons.coverage),
        "damage": icon_color(icons.damage),
        "images": icon_color(icons.images),
        "invoice": icon_color(icons.invoice),
    }


_INVOICE_REVIEW_TITLES = {
    InvoiceReviewBadge.MISSING: "Invoice Missing",
    InvoiceReviewBadge.APPROVED: "Invoice Approved",
    InvoiceReviewBadge.PENDING_REVIEW: "Invoice Pending Review",
    InvoiceReviewBadge.NEEDS_CORRECTION: "Invoice Needs Correction",
    InvoiceReviewBadge.UPLOADED: "Invoice Uploaded - Review Pending",
}


def get_invoice_review_badge(case: Optional[WorkshopCase]) -> InvoiceReviewBadge:
    """Invoice review icon used in the case tables."""
    if resolve(case, "invoice") is None:
        return InvoiceReviewBadge.MISSING
    review = coerce_enum(ReviewStatus, resolve(case, "invoice.review_status"))
    if review == ReviewStatus.OK:
        return InvoiceReviewBadge.APPROVED
    if review == ReviewStatus.PENDING_REVIEW:
        return InvoiceReviewBadge.PENDING_REVIEW
    if review == ReviewStatus.NEEDS_CORRECTION:
        return InvoiceReviewBadge.NEEDS_CORRECTION
    return InvoiceReviewBadge.UPLOADED


def invoice_review_title(badge: InvoiceReviewBadge) -> str:
    return _INVOICE_REVIEW_TITLES[badge]


def get_section_badge(approval_status: SectionApprovalStatus) -> Badge:
    """Header badge of an approval-gated section."""
    if approval_status == SectionApprovalStatus.APPROVED:
        return Badge(text="Approved", color=IconColor.GREEN)
    if approval_status == SectionApprovalStatus.READY_FOR_APPROVAL:
        return Badge(text="Ready for Approval", color=IconColor.YELLOW)
    return Badge(text="Incomplete", color=IconColor.YELLOW)


def get_insurance_section_badge(coverage_status: CoverageStatus) -> Badge:
    """Header badge of the insurance section, driven by the insurer decision."""
    if coverage_status == CoverageStatus.APPROVED:
        return Badge(text="Approved", color=IconColor.GREEN)
    if coverage_status == CoverageStatus.NOT_APPROVED:
        return Badge(text="Not Approved", color=IconColor.RED)
    return Badge(text="Incomplete", color=IconColor.YELLOW)
