"""In-memory case store for the workshop dashboard."""

import logging
import threading
import uuid
from dataclasses import fields
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..engine.kpis import filter_awaiting_invoice, filter_by_stage, filter_on_hold
from ..engine.predicates import is_ddf_attachment, parse_timestamp, resolve
from ..models.case import (
    ActionLogEntry,
    ActionType,
    ActorType,
    Attachment,
    Assessment,
    AttachmentType,
    Calibration,
    CaseStatus,
    ChatMessage,
    DDF_METADATA_FIELDS,
    DdfStatus,
    DocumentKind,
    Invoice,
    ReviewStatus,
    SenderType,
    Stage,
    WorkshopCase,
    coerce_enum,
)
from ..utils.errors import CaseDataError, CaseNotFoundError
from ..utils.logging import case_context

logger = logging.getLogger(__name__)


WORKSHOP_ACTOR = "Workshop"

_CASE_FIELDS = frozenset(f.name for f in fields(WorkshopCase))

# Field changes that leave a trace in the action log
_LOGGED_CHANGES = (
    ("parts_and_labor", ActionType.PARTS_ADDED, "Parts and labor updated"),
    ("calibration", ActionType.CALIBRATION_UPDATED, "Calibration updated"),
    ("insurance_coverage", ActionType.INSURANCE_UPDATED, "Insurance coverage updated"),
    ("required_images", ActionType.IMAGE_UPLOADED, "Required images updated"),
    ("damage_images", ActionType.IMAGE_UPLOADED, "Damage images updated"),
)

SORT_FIELDS: Dict[str, Callable[[WorkshopCase], Any]] = {
    "license_plate": lambda c: resolve(c, "vehicle.license_plate", ""),
    "insurance_company": lambda c: resolve(c, "insurance_company", ""),
    "workshop": lambda c: resolve(c, "workshop_name", ""),
    "service_type": lambda c: resolve(c, "service.type", ""),
    "status": lambda c: resolve(c, "status", ""),
    "updated_at": lambda c: parse_timestamp(resolve(c, "updated_at")),
    "completion_date": lambda c: parse_timestamp(resolve(c, "service.completion_date")),
    "damage_date": lambda c: parse_timestamp(resolve(c, "assessment.damage_date")),
    "car_brand": lambda c: resolve(c, "vehicle.make", ""),
}


def _utc_now() -> datetime:
    return datetime.utcnow()


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class CaseRepository:
    """
    Thread-safe in-memory store of workshop cases.

    Cases are kept in insertion order. Lookups that miss return None (or
    False for deletions); only :meth:`require` raises. Every mutation
    refreshes the case's ``updated_at`` and, where the dashboard shows it,
    appends an entry to the case's action log.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize CaseRepository.

        Args:
            clock: Returns the current naive UTC time; injectable for tests
        """
        self._cases: Dict[str, WorkshopCase] = {}
        self._lock = threading.RLock()
        self._clock = clock or _utc_now

    def __len__(self) -> int:
        return len(self._cases)

    def __contains__(self, case_id: str) -> bool:
        return case_id in self._cases

    def _timestamp(self) -> str:
        return self._clock().isoformat(timespec="seconds") + "Z"

    # Basic access

    def add(self, case: WorkshopCase) -> WorkshopCase:
        """Store a case, replacing any case with the same id."""
        with self._lock:
            if case.id in self._cases:
                logger.warning(f"Replacing existing case {case.id}")
            self._cases[case.id] = case
        logger.debug(f"Stored case {case.id}")
        return case

    def get(self, case_id: str) -> Optional[WorkshopCase]:
        return self._cases.get(case_id)

    def require(self, case_id: str) -> WorkshopCase:
        """
        Get a case that must exist.

        Raises:
            CaseNotFoundError: If no case has this id
        """
        case = self._cases.get(case_id)
        if case is None:
            raise CaseNotFoundError.for_id(case_id)
        return case

    def list(self) -> List[WorkshopCase]:
        with self._lock:
            return list(self._cases.values())

    def find_by_license_plate(self, license_plate: str) -> Optional[WorkshopCase]:
        """Case-insensitive lookup by registration number."""
        wanted = (license_plate or "").strip().upper()
        if not wanted:
            return None
        for case in self.list():
            if resolve(case, "vehicle.license_plate", "").upper() == wanted:
                return case
        return None

    def update(
        self,
        case_id: str,
        actor: str = WORKSHOP_ACTOR,
        actor_type: ActorType = ActorType.WORKSHOP,
        **changes: Any
    ) -> Optional[WorkshopCase]:
        """
        Apply field changes to a case.

        Args:
            case_id: Case to update
            actor: Display name recorded in the action log
            actor_type: Who is acting
            **changes: WorkshopCase field names and their new values

        Returns:
            The updated case, or None if the case does not exist

        Raises:
            CaseDataError: If a change names a field cases do not have, tries
                to change the case id, or sets an unknown stage or status
        """
        unknown = sorted(set(changes) - _CASE_FIELDS)
        if unknown:
            raise CaseDataError.invalid_payload(changes, f"unknown case fields: {', '.join(unknown)}")
        # The id is the store key
        if "id" in changes:
            raise CaseDataError.invalid_payload(changes, "the case id cannot be changed")
        for name, enum_cls in (("stage", Stage), ("status", CaseStatus)):
            if name not in changes:
                continue
            value = coerce_enum(enum_cls, changes[name])
            if value is None:
                raise CaseDataError.invalid_payload(changes, f"unknown {name} {changes[name]!r}")
            changes[name] = value

        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                logger.warning(f"Update skipped, case {case_id} not found")
                return None

            with case_context(case_id):
                entries = self._describe_changes(case, changes)
                for name, value in changes.items():
                    setattr(case, name, value)
                for action_type, description, metadata in entries:
                    self._append_log(case, action_type, description, actor, actor_type, metadata)
                case.updated_at = self._timestamp()
                logger.info(f"Updated case fields: {', '.join(sorted(changes)) or 'none'}")
            return case

    def _describe_changes(self, case: WorkshopCase, changes: Dict[str, Any]):
        entries = []
        for name, action_type, label in (
            ("status", ActionType.STATUS_CHANGED, "Status"),
            ("stage", ActionType.STAGE_CHANGED, "Stage"),
        ):
            if name not in changes or changes[name] == getattr(case, name):
                continue
            old, new = getattr(case, name).value, changes[name].value
            entries.append((
                action_type,
                f"{label} changed from {old} to {new}",
                {"old_value": old, "new_value": new},
            ))
        for name, action_type, description in _LOGGED_CHANGES:
            if name in changes:
                entries.append((action_type, description, {}))
        return entries

    def delete(self, case_id: str, reason: Optional[str] = None) -> bool:
        """Remove a case for good. Returns False if it did not exist."""
        with self._lock:
            case = self._cases.pop(case_id, None)
        if case is None:
            logger.warning(f"Delete skipped, case {case_id} not found")
            return False
        with case_context(case_id):
            logger.info(f"Deleted case{': ' + reason if reason else ''}")
        return True

    # Damage form

    def add_ddf_attachment(
        self,
        case_id: str,
        attachment: Attachment,
        actor: str = WORKSHOP_ACTOR
    ) -> Optional[WorkshopCase]:
        """
        Attach a damage form and mark the form complete.

        The case stores a copy of the attachment, tagged as a DDF document
        whatever its file name. The caller's object is left as is.
        """
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return None
            attachment = attachment.copy()
            attachment.kind = DocumentKind.DDF
            attachment.type = attachment.type or AttachmentType.DOCUMENT
            attachment.id = attachment.id or _new_id("att")
            attachment.uploaded_at = attachment.uploaded_at or self._timestamp()
            case.attachments.append(attachment)
            if case.assessment is None:
                case.assessment = Assessment()
            case.assessment.ddf_status = DdfStatus.COMPLETE
            self._append_log(
                case,
                ActionType.FILE_UPLOADED,
                f"DDF uploaded: {attachment.name}",
                actor,
                ActorType.WORKSHOP,
                {"file_name": attachment.name},
            )
            case.updated_at = self._timestamp()
        with case_context(case_id):
            logger.info(f"DDF attached: {attachment.name}")
        return case

    def delete_ddf_attachment(self, case_id: str, attachment_id: str) -> bool:
        """
        Remove a DDF file.

        When no DDF file remains the form status is reset to
        ``non-existent`` and the fields read from the form are cleared.
        Ids of attachments that are not DDF files are left alone.
        """
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return False
            remaining = [
                att for att in case.attachments
                if att.id != attachment_id or not is_ddf_attachment(att)
            ]
            if len(remaining) == len(case.attachments):
                return False
            case.attachments = remaining

            if not any(is_ddf_attachment(att) for att in remaining) and case.assessment is not None:
                case.assessment.ddf_status = DdfStatus.NON_EXISTENT
                for name in DDF_METADATA_FIELDS:
                    setattr(case.assessment, name, None)
            case.updated_at = self._timestamp()
        with case_context(case_id):
            logger.info(f"DDF attachment {attachment_id} deleted")
        return True

    # Invoice

    def add_invoice_attachment(
        self,
        case_id: str,
        file_url: str,
        file_name: str = "",
        actor: str = WORKSHOP_ACTOR
    ) -> Optional[WorkshopCase]:
        """Create the invoice if absent, otherwise replace its file."""
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return None
            now = self._timestamp()
            if case.invoice is None:
                case.invoice = Invoice(file_url=file_url, issue_date=now[:10])
            else:
                case.invoice.file_url = file_url
            self._append_log(
                case,
                ActionType.FILE_UPLOADED,
                f"Invoice uploaded: {file_name or file_url}",
                actor,
                ActorType.WORKSHOP,
                {"file_name": file_name, "file_url": file_url},
            )
            case.updated_at = now
        with case_context(case_id):
            logger.info("Invoice attached")
        return case

    def delete_invoice(self, case_id: str) -> bool:
        with self._lock:
            case = self._cases.get(case_id)
            if case is None or case.invoice is None:
                return False
            case.invoice = None
            case.updated_at = self._timestamp()
        with case_context(case_id):
            logger.info("Invoice deleted")
        return True

    def set_invoice_review_status(
        self,
        case_id: str,
        review_status: ReviewStatus,
        actor: str = "Insurance Agent",
        actor_type: ActorType = ActorType.AGENT
    ) -> Optional[WorkshopCase]:
        """
        Record the outcome of an invoice review.

        Returns:
            The case, or None if it does not exist or has no invoice
        """
        status = coerce_enum(ReviewStatus, review_status)
        if status is None:
            raise CaseDataError.invalid_payload(review_status, "unknown invoice review status")
        with self._lock:
            case = self._cases.get(case_id)
            if case is None or case.invoice is None:
                return None
            case.invoice.review_status = status
            self._append_log(
                case,
                ActionType.INVOICE_REVIEWED,
                f"Invoice review: {status.value}",
                actor,
                actor_type,
                {"review_status": status.value},
            )
            case.updated_at = self._timestamp()
        return case

    # Calibration

    def add_calibration_file(
        self,
        case_id: str,
        attachment: Attachment,
        actor: str = WORKSHOP_ACTOR
    ) -> Optional[WorkshopCase]:
        """Attach a calibration report, creating a required calibration block if needed."""
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return None
            if case.calibration is None:
                case.calibration = Calibration(required=True, not_needed=False)
            attachment.kind = DocumentKind.CALIBRATION
            attachment.id = attachment.id or _new_id("cal")
            attachment.uploaded_at = attachment.uploaded_at or self._timestamp()
            case.calibration.files.append(attachment)
            self._append_log(
                case,
                ActionType.CALIBRATION_UPDATED,
                f"Calibration file uploaded: {attachment.name}",
                actor,
                ActorType.WORKSHOP,
                {"file_name": attachment.name},
            )
            case.updated_at = self._timestamp()
        return case

    def delete_calibration_file(self, case_id: str, file_id: str) -> bool:
        with self._lock:
            case = self._cases.get(case_id)
            if case is None or case.calibration is None:
                return False
            remaining = [f for f in case.calibration.files if f.id != file_id]
            if len(remaining) == len(case.calibration.files):
                return False
            case.calibration.files = remaining
            case.updated_at = self._timestamp()
        return True

    # Logs

    def _append_log(
        self,
        case: WorkshopCase,
        action_type: ActionType,
        description: str,
        actor: str,
        actor_type: ActorType,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ActionLogEntry:
        entry = ActionLogEntry(
            id=_new_id("log"),
            action_type=action_type,
            actor=actor,
            actor_type=actor_type,
            description=description,
            timestamp=self._timestamp(),
            metadata=metadata or {},
        )
        case.action_log.append(entry)
        return entry

    def add_action_log(
        self,
        case_id: str,
        action_type: ActionType,
        description: str,
        actor: str = WORKSHOP_ACTOR,
        actor_type: ActorType = ActorType.WORKSHOP,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[ActionLogEntry]:
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return None
            return self._append_log(case, action_type, description, actor, actor_type, metadata)

    def add_chat_message(
        self,
        case_id: str,
        sender: str,
        message: str,
        sender_type: SenderType = SenderType.WORKSHOP
    ) -> Optional[ChatMessage]:
        with self._lock:
            case = self._cases.get(case_id)
            if case is None:
                return None
            chat = ChatMessage(
                id=_new_id("msg"),
                sender=sender,
                sender_type=sender_type,
                message=message,
                timestamp=self._timestamp(),
            )
            case.chat_log.append(chat)
            return chat

    def add_ddf_sms_log(self, case_id: str, phone_number: str) -> Optional[ActionLogEntry]:
        """Record that a DDF request was sent to the customer by SMS."""
        return self.add_action_log(
            case_id,
            ActionType.SMS_SENT,
            f"DDF request sent by SMS to {phone_number}",
            actor="System",
            actor_type=ActorType.SYSTEM,
            metadata={"phone_number": phone_number},
        )

    # Views

    def get_cases_by_stage(self, stage: Stage) -> List[WorkshopCase]:
        return filter_by_stage(self.list(), Stage(stage))

    def get_awaiting_invoice_cases(self) -> List[WorkshopCase]:
        return filter_awaiting_invoice(self.list())

    def get_on_hold_cases(self) -> List[WorkshopCase]:
        return filter_on_hold(self.list())

    def search(self, term: str) -> List[WorkshopCase]:
        """
        Case-insensitive search over the columns of the case table.

        An empty term matches every case.
        """
        needle = (term or "").strip().lower()
        if not needle:
            return self.list()

        def haystack(case: WorkshopCase) -> List[str]:
            return [
                resolve(case, "case_number", ""),
                resolve(case, "vehicle.license_plate", ""),
                resolve(case, "vehicle.make", ""),
                resolve(case, "vehicle.model", ""),
                resolve(case, "customer.name", ""),
                resolve(case, "insurance_company", ""),
                resolve(case, "workshop_name", ""),
                resolve(case, "service.type", ""),
            ]

        return [
            case for case in self.list()
            if any(needle in str(value).lower() for value in haystack(case))
        ]


def sort_cases(
    cases: List[WorkshopCase],
    field_name: str,
    order: str = "asc"
) -> List[WorkshopCase]:
    """
    Sort cases by a dashboard table column.

    Text columns compare case-insensitively, date columns chronologically.
    Cases with no value for the column always sort last.

    Raises:
        ValueError: If the column or order is not recognised
    """
    if field_name not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field '{field_name}'")
    if order not in ("asc", "desc"):
        raise ValueError(f"Unknown sort order '{order}'")

    key_of = SORT_FIELDS[field_name]

    def normalized(case: WorkshopCase):
        value = key_of(case)
        if isinstance(value, str):
            value = getattr(value, "value", value).lower()
        return value

    present = [case for case in cases if normalized(case) not in (None, "")]
    absent = [case for case in cases if normalized(case) in (None, "")]
    present.sort(key=normalized, reverse=(order == "desc"))
    return present + absent
