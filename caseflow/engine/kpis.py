"""Dashboard KPI calculations.

All figures are pure functions of a list of cases and a reference time,
so the dashboard and the tests see the same numbers for the same input.
Averages are rounded to one decimal, rates to whole percent, both with
halves rounded up.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from ..models.case import CaseStatus, ReviewStatus, Stage, WorkshopCase
from .predicates import (
    has_ddf_complete,
    has_images_available,
    has_parts_and_labor_complete,
    has_repair_finished_date,
    parse_timestamp,
    resolve,
)
from .transitions import is_case_ready_for_completion, is_case_ready_for_in_progress


DEFAULT_RECENT_WINDOW_DAYS = 30
DEFAULT_LABOR_UTILIZATION = 75

_CLOSED_STATUSES = (CaseStatus.COMPLETED, CaseStatus.CANCELLED)
_AWAITING_REVIEW = (ReviewStatus.PENDING_REVIEW, ReviewStatus.NEEDS_CORRECTION)


@dataclass(frozen=True)
class DashboardKpis:
    active_jobs: int
    average_claims_process_time: float
    approved_claims_recent: int
    claim_rejection_rate: float
    average_images_per_case: float
    labor_utilization: int


@dataclass(frozen=True)
class DraftKpis:
    total_draft: int
    missing_ddf: int
    missing_images: int
    missing_parts_labor: int
    average_age: float
    ready_for_approval: int
    completion_rate: int


@dataclass(frozen=True)
class InProgressKpis:
    total_in_progress: int
    with_repair_date: int
    average_time_in_stage: float
    ready_for_completion: int
    active_work: int
    repair_completion_rate: int


@dataclass(frozen=True)
class AwaitingInvoiceKpis:
    total_awaiting: int
    pending_review: int
    needs_correction: int
    average_wait_time: float


@dataclass(frozen=True)
class OnHoldKpis:
    total_on_hold: int
    waiting_for_parts: int
    average_hold_time: float
    longest_on_hold: int


@dataclass(frozen=True)
class FinishedKpis:
    total_finished: int
    finished_recent: int
    average_completion_time: float
    total_revenue: float


def _round1(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def _days_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    return math.ceil((end - start).total_seconds() / 86400)


def _days_since(value, now: datetime) -> Optional[int]:
    return _days_between(parse_timestamp(value), now)


def _average(values: Sequence[float], count: Optional[int] = None) -> float:
    divisor = len(values) if count is None else count
    if divisor == 0:
        return 0.0
    return _round1(sum(values) / divisor)


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.utcnow()


# Case list views

def filter_by_stage(cases: Iterable[WorkshopCase], stage: Stage) -> List[WorkshopCase]:
    return [case for case in cases if resolve(case, "stage") == stage]


def filter_awaiting_invoice(cases: Iterable[WorkshopCase]) -> List[WorkshopCase]:
    """In-progress cases whose invoice is pending review or needs correction."""
    return [
        case for case in cases
        if resolve(case, "stage") == Stage.IN_PROGRESS
        and resolve(case, "invoice.review_status") in _AWAITING_REVIEW
    ]


def filter_on_hold(cases: Iterable[WorkshopCase]) -> List[WorkshopCase]:
    """Cases waiting for parts."""
    return [case for case in cases if resolve(case, "status") == CaseStatus.WAITING_PARTS]


# KPIs

def get_dashboard_kpis(
    cases: Sequence[WorkshopCase],
    now: Optional[datetime] = None,
    recent_window_days: int = DEFAULT_RECENT_WINDOW_DAYS,
    labor_utilization: int = DEFAULT_LABOR_UTILIZATION
) -> DashboardKpis:
    """
    Headline figures for the dashboard.

    Args:
        cases: All cases
        now: Reference time (naive UTC); defaults to the current time
        recent_window_days: Window for "approved recently"
        labor_utilization: Workshop labor utilization, reported as given

    Returns:
        DashboardKpis
    """
    now = _now(now)
    window_start = now - timedelta(days=recent_window_days)

    closed = [case for case in cases if resolve(case, "status") in _CLOSED_STATUSES]
    process_times = []
    for case in closed:
        days = _days_between(
            parse_timestamp(resolve(case, "service.start_date")),
            parse_timestamp(resolve(case, "service.completion_date")),
        )
        if days is not None:
            process_times.append(days)

    approved_recent = 0
    for case in cases:
        updated = parse_timestamp(resolve(case, "updated_at"))
        if resolve(case, "status") == CaseStatus.COMPLETED and updated and updated >= window_start:
            approved_recent += 1

    rejected = sum(1 for case in cases if resolve(case, "status") == CaseStatus.CANCELLED)
    total = len(cases)
    rejection_rate = _round1(rejected / total * 100) if total else 0.0

    image_counts = [len(resolve(case, "damage_images", [])) for case in cases]

    return DashboardKpis(
        active_jobs=total - len(closed),
        average_claims_process_time=_average(process_times),
        approved_claims_recent=approved_recent,
        claim_rejection_rate=rejection_rate,
        average_images_per_case=_average(image_counts),
        labor_utilization=labor_utilization,
    )


def get_draft_kpis(cases: Sequence[WorkshopCase], now: Optional[datetime] = None) -> DraftKpis:
    """Draft stage figures: what is missing and how many are ready to start."""
    now = _now(now)
    drafts = filter_by_stage(cases, Stage.DRAFT)
    ages = [age for age in (_days_since(resolve(c, "created_at"), now) for c in drafts) if age is not None]
    ready = sum(1 for case in drafts if is_case_ready_for_in_progress(case))

    return DraftKpis(
        total_draft=len(drafts),
        missing_ddf=sum(1 for case in drafts if not has_ddf_complete(case)),
        missing_images=sum(1 for case in drafts if not has_images_available(case)),
        missing_parts_labor=sum(1 for case in drafts if not has_parts_and_labor_complete(case)),
        average_age=_average(ages, count=len(drafts)),
        ready_for_approval=ready,
        completion_rate=_percent(ready, len(drafts)),
    )


def get_in_progress_kpis(cases: Sequence[WorkshopCase], now: Optional[datetime] = None) -> InProgressKpis:
    """
    In-progress stage figures.

    A case counts as ready for completion if it would pass the completion
    gate once a repair finished date is entered; cases without one are
    evaluated as if it were today.
    """
    now = _now(now)
    in_progress = filter_by_stage(cases, Stage.IN_PROGRESS)
    times = [t for t in (_days_since(resolve(c, "updated_at"), now) for c in in_progress) if t is not None]

    ready = 0
    for case in in_progress:
        candidate = case
        if not has_repair_finished_date(case):
            candidate = case.copy()
            candidate.service.repair_finished_date = now.date().isoformat()
        if is_case_ready_for_completion(candidate):
            ready += 1

    with_repair_date = sum(1 for case in in_progress if has_repair_finished_date(case))

    return InProgressKpis(
        total_in_progress=len(in_progress),
        with_repair_date=with_repair_date,
        average_time_in_stage=_average(times, count=len(in_progress)),
        ready_for_completion=ready,
        active_work=sum(1 for case in in_progress if resolve(case, "status") == CaseStatus.IN_PROGRESS),
        repair_completion_rate=_percent(with_repair_date, len(in_progress)),
    )


def get_awaiting_invoice_kpis(cases: Sequence[WorkshopCase], now: Optional[datetime] = None) -> AwaitingInvoiceKpis:
    """Figures for invoices still under review; wait time runs from the invoice issue date."""
    now = _now(now)
    awaiting = filter_awaiting_invoice(cases)
    waits = [w for w in (_days_since(resolve(c, "invoice.issue_date"), now) for c in awaiting) if w is not None]

    return AwaitingInvoiceKpis(
        total_awaiting=len(awaiting),
        pending_review=sum(
            1 for case in awaiting
            if resolve(case, "invoice.review_status") == ReviewStatus.PENDING_REVIEW
        ),
        needs_correction=sum(
            1 for case in awaiting
            if resolve(case, "invoice.review_status") == ReviewStatus.NEEDS_CORRECTION
        ),
        average_wait_time=_average(waits, count=len(awaiting)),
    )


def get_on_hold_kpis(cases: Sequence[WorkshopCase], now: Optional[datetime] = None) -> OnHoldKpis:
    now = _now(now)
    on_hold = filter_on_hold(cases)
    holds = [h for h in (_days_since(resolve(c, "updated_at"), now) for c in on_hold) if h is not None]

    return OnHoldKpis(
        total_on_hold=len(on_hold),
        waiting_for_parts=len(on_hold),
        average_hold_time=_average(holds, count=len(on_hold)),
        longest_on_hold=max(holds) if holds else 0,
    )


def get_finished_kpis(
    cases: Sequence[WorkshopCase],
    now: Optional[datetime] = None,
    recent_window_days: int = DEFAULT_RECENT_WINDOW_DAYS
) -> FinishedKpis:
    """Finished stage figures; revenue is the sum of parts and labor totals."""
    now = _now(now)
    window_start = now - timedelta(days=recent_window_days)
    finished = filter_by_stage(cases, Stage.FINISHED)

    recent = 0
    completion_times = []
    revenue = 0.0
    for case in finished:
        completed_at = parse_timestamp(resolve(case, "service.completion_date"))
        if completed_at is not None and completed_at >= window_start:
            recent += 1
        days = _days_between(parse_timestamp(resolve(case, "service.start_date")), completed_at)
        if days is not None:
            completion_times.append(days)
        revenue += resolve(case, "parts_and_labor.total_parts", 0) + resolve(case, "parts_and_labor.total_labor", 0)

    return FinishedKpis(
        total_finished=len(finished),
        finished_recent=recent,
        average_completion_time=_average(completion_times),
        total_revenue=revenue,
    )


def shorten_service_type(service_type: Optional[str]) -> str:
    """Drop a trailing "Replacement" or "Repair" for compact table cells."""
    if not service_type:
        return "N/A"
    shortened = re.sub(r"\s+(Replacement|Repair)$", "", service_type, flags=re.IGNORECASE).strip()
    return shortened or "N/A"
