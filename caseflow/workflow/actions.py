"""Stage moves and section approvals performed from the dashboard."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..engine.approval import get_section_approval_status
from ..engine.transitions import (
    REPAIR_DATE_REQUIRED,
    get_missing_requirements_for_completion,
    get_missing_requirements_for_in_progress,
    is_case_ready_for_completion,
    is_case_ready_for_in_progress,
)
from ..models.case import (
    ActionType,
    ActorType,
    CaseStatus,
    CoverageDecision,
    Stage,
    WorkshopCase,
)
from ..models.status import Section, SectionApprovalStatus
from ..storage.case_repository import CaseRepository
from ..utils.logging import case_context, with_context

logger = logging.getLogger(__name__)


IN_PROGRESS_NEEDS_DRAFT = "Only draft cases can be moved to in progress"
FINISH_NEEDS_IN_PROGRESS = "Only in-progress cases can be marked finished"


@dataclass
class TransitionResult:
    """
    Outcome of a stage move.

    Attributes:
        success: Whether the case moved
        case: The case after the attempt
        missing: Requirement messages when the move was refused
    """
    success: bool
    case: WorkshopCase
    missing: List[str] = field(default_factory=list)


@dataclass
class ApprovalResult:
    """
    Outcome of a section approval.

    Attributes:
        approved: Whether the approval was recorded
        case: The case after the attempt
        status: Section approval status after the attempt
    """
    approved: bool
    case: WorkshopCase
    status: SectionApprovalStatus


@with_context(component="workflow")
def mark_in_progress(repo: CaseRepository, case_id: str) -> TransitionResult:
    """
    Move a draft case into the in-progress stage.

    Cases in any other stage are refused without consulting the gate.

    Raises:
        CaseNotFoundError: If the case does not exist
    """
    case = repo.require(case_id)
    with case_context(case_id):
        if case.stage != Stage.DRAFT:
            logger.warning(f"Cannot start work on a case in stage {case.stage.value}")
            return TransitionResult(success=False, case=case, missing=[IN_PROGRESS_NEEDS_DRAFT])

        if not is_case_ready_for_in_progress(case):
            missing = get_missing_requirements_for_in_progress(case)
            logger.warning(f"Cannot start work, {len(missing)} requirement(s) missing")
            return TransitionResult(success=False, case=case, missing=missing)

        case = repo.update(case_id, stage=Stage.IN_PROGRESS, status=CaseStatus.IN_PROGRESS)
        logger.info("Case moved to in progress")
        return TransitionResult(success=True, case=case)


@with_context(component="workflow")
def mark_finished(
    repo: CaseRepository,
    case_id: str,
    repair_finished_date: Optional[str],
    now: Optional[datetime] = None
) -> TransitionResult:
    """
    Mark a case finished once the repair date is known.

    Only in-progress cases can finish. The completion gate is evaluated on
    a copy carrying the new date, so a refused attempt leaves the stored
    case untouched.

    Args:
        repo: Case repository
        case_id: Case to finish
        repair_finished_date: Date the repair was finished (ISO date)
        now: Completion time; defaults to the current time

    Raises:
        CaseNotFoundError: If the case does not exist
    """
    case = repo.require(case_id)
    with case_context(case_id):
        if case.stage != Stage.IN_PROGRESS:
            logger.warning(f"Cannot finish a case in stage {case.stage.value}")
            return TransitionResult(success=False, case=case, missing=[FINISH_NEEDS_IN_PROGRESS])

        if not repair_finished_date or not repair_finished_date.strip():
            return TransitionResult(success=False, case=case, missing=[REPAIR_DATE_REQUIRED])

        candidate = case.copy()
        candidate.service.repair_finished_date = repair_finished_date
        if not is_case_ready_for_completion(candidate):
            missing = get_missing_requirements_for_completion(candidate)
            logger.warning(f"Cannot finish case, {len(missing)} requirement(s) missing")
            return TransitionResult(success=False, case=case, missing=missing)

        completed_at = (now or datetime.utcnow()).isoformat(timespec="seconds") + "Z"
        service = candidate.service
        service.completion_date = completed_at
        case = repo.update(
            case_id,
            stage=Stage.FINISHED,
            status=CaseStatus.COMPLETED,
            service=service,
        )
        # Requirements the gate does not enforce, such as the invoice review
        missing = get_missing_requirements_for_completion(case)
        if missing:
            logger.warning(f"Case finished with open items: {'; '.join(missing)}")
        logger.info("Case marked finished")
        return TransitionResult(success=True, case=case)


@with_context(component="workflow")
def approve_section(
    repo: CaseRepository,
    case_id: str,
    section: Section,
    approver: str = "Insurance Agent"
) -> ApprovalResult:
    """
    Record an approver's sign-off on a section.

    Only a section whose data is complete (``ready_for_approval``) can be
    approved. Approving insurance also records the insurer decision as
    approved.

    Raises:
        CaseNotFoundError: If the case does not exist
    """
    section = Section(section)
    case = repo.require(case_id)
    with case_context(case_id):
        status = get_section_approval_status(case, section)
        if status != SectionApprovalStatus.READY_FOR_APPROVAL:
            logger.warning(f"Approval of {section.value} refused, section is {status.value}")
            return ApprovalResult(approved=False, case=case, status=status)

        changes = {section.override_field: SectionApprovalStatus.APPROVED}
        if section == Section.INSURANCE:
            coverage = case.insurance_coverage.copy()
            coverage.status = CoverageDecision.APPROVED
            changes["insurance_coverage"] = coverage

        repo.add_action_log(
            case_id,
            ActionType.OTHER,
            f"{section.value} section approved",
            actor=approver,
            actor_type=ActorType.AGENT,
            metadata={"section": section.value},
        )
        case = repo.update(case_id, actor=approver, actor_type=ActorType.AGENT, **changes)
        logger.info(f"Section {section.value} approved by {approver}")
        return ApprovalResult(
            approved=True,
            case=case,
            status=get_section_approval_status(case, section),
        )
