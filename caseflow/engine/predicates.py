"""Section completeness predicates for workshop cases.

Every predicate takes a case (or None) and returns a bool. Nested fields
are read through :func:`resolve`, so a missing section is simply "not
complete" and no predicate can raise on partial data.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ..models.case import (
    ActorType,
    AttachmentType,
    CoverageDecision,
    DdfStatus,
    DocumentKind,
    ItemType,
    REQUIRED_IMAGE_SLOTS,
    ReviewStatus,
    WorkshopCase,
    coerce_enum,
)
from ..models.status import CoverageStatus


_MISSING = object()

DDF_NAME_MARKER = "ddf"


def resolve(obj: Any, path: str, default: Any = None) -> Any:
    """
    Follow a dotted attribute path, returning ``default`` at the first gap.

    Mapping keys are accepted in place of attributes so raw payloads can be
    inspected the same way as case records.

    Example:
        resolve(case, "insurance_coverage.status")  # None if no coverage
    """
    current = obj
    for part in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return default
    return default if current is None else current


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or value.strip() == ""


def is_ddf_attachment(attachment: Any) -> bool:
    """
    Whether an attachment is a digital damage form.

    Tagged attachments are trusted as tagged. Untagged ones fall back to
    the legacy rule: a document whose name contains "ddf" in any case.
    """
    kind = resolve(attachment, "kind")
    if kind is not None:
        return kind == DocumentKind.DDF
    if resolve(attachment, "type") != AttachmentType.DOCUMENT:
        return False
    name = resolve(attachment, "name", "")
    return isinstance(name, str) and DDF_NAME_MARKER in name.lower()


def has_ddf_attachment(case: Optional[WorkshopCase]) -> bool:
    """At least one DDF file is attached, whatever the reported status."""
    return any(is_ddf_attachment(att) for att in resolve(case, "attachments", []))


def has_ddf_complete(case: Optional[WorkshopCase]) -> bool:
    """
    The damage form is reported complete AND a DDF file is attached.

    The status flag alone is not trusted: it can drift from the uploaded
    evidence, so both conditions are required.
    """
    if case is None:
        return False
    reported_complete = resolve(case, "assessment.ddf_status") == DdfStatus.COMPLETE
    return reported_complete and has_ddf_attachment(case)


def has_required_images(case: Optional[WorkshopCase]) -> bool:
    """All three required photo slots are filled."""
    if case is None:
        return False
    return all(
        resolve(case, f"required_images.{slot}") is not None
        for slot in REQUIRED_IMAGE_SLOTS
    )


def has_images_waiver(case: Optional[WorkshopCase]) -> bool:
    """Images were marked as not needed and a reason was given."""
    if case is None:
        return False
    return (
        resolve(case, "images_not_needed") is True
        and not _is_blank(resolve(case, "images_not_needed_comment"))
    )


def has_images_available(case: Optional[WorkshopCase]) -> bool:
    """Either all required images are present, or a justified waiver is set."""
    return has_required_images(case) or has_images_waiver(case)


def has_parts_and_labor_complete(case: Optional[WorkshopCase]) -> bool:
    """The parts and labor list holds at least one part and one labor line."""
    items = resolve(case, "parts_and_labor.items", [])
    has_parts = any(resolve(item, "type") == ItemType.PART for item in items)
    has_labor = any(resolve(item, "type") == ItemType.LABOR for item in items)
    return has_parts and has_labor


def has_calibration_complete(case: Optional[WorkshopCase]) -> bool:
    """
    Calibration was waived, or it was required and is signed and documented.

    An unconfigured calibration block (neither waived nor required) is
    incomplete, not "not applicable".
    """
    if resolve(case, "calibration.not_needed") is True:
        return True
    if resolve(case, "calibration.required") is True:
        has_signature = not _is_blank(resolve(case, "calibration.signature"))
        has_files = len(resolve(case, "calibration.files", [])) > 0
        return has_signature and has_files
    return False


def get_insurance_coverage_status(case: Optional[WorkshopCase]) -> CoverageStatus:
    """Coverage decision, or ``not_fetched`` when no data came back from the insurer."""
    if not resolve(case, "insurance_coverage.data_fetched", False):
        return CoverageStatus.NOT_FETCHED
    decision = coerce_enum(CoverageDecision, resolve(case, "insurance_coverage.status"))
    if decision is None:
        return CoverageStatus.UNDEFINED
    return CoverageStatus(decision.value)


def has_insurance_coverage_data(case: Optional[WorkshopCase]) -> bool:
    """Coverage data was fetched and a policy exists, regardless of decision."""
    return bool(
        resolve(case, "insurance_coverage.data_fetched", False)
        and resolve(case, "insurance_coverage.exists", False)
    )


def has_insurance_coverage_complete(case: Optional[WorkshopCase]) -> bool:
    """Coverage was fetched, exists, and the insurer approved the claim."""
    return (
        has_insurance_coverage_data(case)
        and resolve(case, "insurance_coverage.status") == CoverageDecision.APPROVED
    )


def has_invoice_present(case: Optional[WorkshopCase]) -> bool:
    """An invoice exists; its fields are not checked."""
    return resolve(case, "invoice") is not None


def has_invoice_required_fields(case: Optional[WorkshopCase]) -> bool:
    """The invoice carries KID, total amount, invoice number and due date."""
    return all(
        resolve(case, f"invoice.{name}")
        for name in ("kid", "total_amount", "invoice_number", "due_date")
    )


def is_invoice_reviewed_and_ok(case: Optional[WorkshopCase]) -> bool:
    """The invoice exists and its review status is ``ok``."""
    return resolve(case, "invoice.review_status") == ReviewStatus.OK


def has_all_documents(case: Optional[WorkshopCase]) -> bool:
    """DDF complete, images available and an invoice present."""
    return has_ddf_complete(case) and has_images_available(case) and has_invoice_present(case)


def has_repair_finished_date(case: Optional[WorkshopCase]) -> bool:
    return not _is_blank(resolve(case, "service.repair_finished_date"))


def has_chat_activity(case: Optional[WorkshopCase]) -> bool:
    return len(resolve(case, "chat_log", [])) > 0


def has_action_log_activity(case: Optional[WorkshopCase]) -> bool:
    return len(resolve(case, "action_log", [])) > 0


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO date or timestamp to naive UTC; None when unreadable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Compare everything as naive UTC
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def has_new_log_messages(case: Optional[WorkshopCase]) -> bool:
    """
    Someone other than the workshop logged activity since the log was last viewed.

    Entries written by the workshop itself never count as new. When the
    log was never viewed every other entry is new; entries with an
    unreadable timestamp are not.
    """
    entries = resolve(case, "action_log", [])
    if not entries:
        return False
    last_viewed = parse_timestamp(resolve(case, "last_log_viewed_at"))
    for entry in entries:
        if resolve(entry, "actor_type") == ActorType.WORKSHOP:
            continue
        if last_viewed is None:
            return True
        logged_at = parse_timestamp(resolve(entry, "timestamp"))
        if logged_at is not None and logged_at > last_viewed:
            return True
    return False
