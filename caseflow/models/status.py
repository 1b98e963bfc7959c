"""Status enumerations and result models produced by the status engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SectionApprovalStatus(str, Enum):
    """Approval state of a single workflow section."""
    INCOMPLETE = "incomplete"
    READY_FOR_APPROVAL = "ready_for_approval"
    APPROVED = "approved"


class Section(str, Enum):
    """The six approval-gated sections of a case."""
    DDF = "ddf"
    IMAGES = "images"
    PARTS_LABOR = "parts_labor"
    CALIBRATION = "calibration"
    INVOICE = "invoice"
    INSURANCE = "insurance"

    @property
    def override_field(self) -> str:
        """Name of the ``WorkshopCase`` attribute holding the manual approval."""
        return f"{self.value}_approval_status"


class CoverageStatus(str, Enum):
    """Insurance coverage decision as shown to the workshop."""
    APPROVED = "approved"
    NOT_APPROVED = "not_approved"
    UNDEFINED = "undefined"
    NOT_FETCHED = "not_fetched"


class IconStatus(str, Enum):
    """State of one light in the four-way case status badge."""
    COMPLETE = "complete"
    APPROVED = "approved"  # invoice light only
    INCOMPLETE = "incomplete"
    NEEDS_CORRECTION = "needs_correction"
    READY_FOR_APPROVAL = "ready_for_approval"


class IconColor(str, Enum):
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"


class InvoiceReviewBadge(str, Enum):
    """Invoice review icon states used in case tables."""
    MISSING = "missing"
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    NEEDS_CORRECTION = "needs_correction"
    UPLOADED = "uploaded"


@dataclass(frozen=True)
class Badge:
    """
    A rendered status badge.

    Attributes:
        text: Label shown to the user
        color: Colour family of the badge
    """
    text: str
    color: IconColor


@dataclass(frozen=True)
class CaseStatusIcons:
    """
    The four independent status lights shown for a case.

    Attributes:
        coverage: Insurance coverage light
        damage: Digital damage form light
        images: Required images light
        invoice: Invoice light (uses ``approved`` instead of ``complete``)
    """
    coverage: IconStatus
    damage: IconStatus
    images: IconStatus
    invoice: IconStatus


@dataclass(frozen=True)
class CaseProgress:
    """Number of completed workflow requirements out of the total."""
    completed: int
    total: int


@dataclass(frozen=True)
class ProgressSection:
    """
    One entry of the case detail progress tracker.

    Attributes:
        name: Display name of the section
        section_id: Anchor id of the section on the detail page
        is_complete: Whether the section's data is complete
        is_required: Whether the section counts towards progress
        has_new_messages: Unread activity marker (Log section only)
    """
    name: str
    section_id: str
    is_complete: bool
    is_required: bool = True
    has_new_messages: Optional[bool] = None
