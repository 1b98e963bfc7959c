"""Status engine: predicates, approvals, status lights, stage gates and KPIs."""

from .approval import get_all_section_approval_statuses, get_section_approval_status
from .icons import get_case_status_icons, get_status_icon_tooltips, icon_color
from .progress import calculate_case_progress, get_progress_sections
from .transitions import (
    get_missing_requirements_for_completion,
    get_missing_requirements_for_in_progress,
    is_case_ready_for_completion,
    is_case_ready_for_in_progress,
)

__all__ = [
    'get_all_section_approval_statuses',
    'get_section_approval_status',
    'get_case_status_icons',
    'get_status_icon_tooltips',
    'icon_color',
    'calculate_case_progress',
    'get_progress_sections',
    'get_missing_requirements_for_completion',
    'get_missing_requirements_for_in_progress',
    'is_case_ready_for_completion',
    'is_case_ready_for_in_progress',
]
