"""User actions gated by the status engine."""

from .actions import (
    FINISH_NEEDS_IN_PROGRESS,
    IN_PROGRESS_NEEDS_DRAFT,
    ApprovalResult,
    TransitionResult,
    approve_section,
    mark_finished,
    mark_in_progress,
)

__all__ = [
    "FINISH_NEEDS_IN_PROGRESS",
    "IN_PROGRESS_NEEDS_DRAFT",
    "ApprovalResult",
    "TransitionResult",
    "approve_section",
    "mark_finished",
    "mark_in_progress",
]
