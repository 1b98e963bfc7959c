"""Case records and status types."""

from .case import WorkshopCase, Stage, CaseStatus, coerce_enum
from .status import (
    CaseProgress,
    CaseStatusIcons,
    CoverageStatus,
    IconColor,
    IconStatus,
    ProgressSection,
    Section,
    SectionApprovalStatus,
)

__all__ = [
    "WorkshopCase",
    "Stage",
    "CaseStatus",
    "coerce_enum",
    "CaseProgress",
    "CaseStatusIcons",
    "CoverageStatus",
    "IconColor",
    "IconStatus",
    "ProgressSection",
    "Section",
    "SectionApprovalStatus",
]
