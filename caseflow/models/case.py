"""Workshop case data models."""

import copy
from dataclasses import dataclass, field, fields, is_dataclass
from enum import Enum
from functools import lru_cache
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from ..utils.errors import CaseDataError
from .status import SectionApprovalStatus


E = TypeVar("E", bound=Enum)
T = TypeVar("T", bound="CaseRecord")


class Stage(str, Enum):
    """Coarse lifecycle position of a case."""
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class CaseStatus(str, Enum):
    """Business status shown on the dashboard."""
    NEW = "New"
    IN_PROGRESS = "In Progress"
    WAITING_PARTS = "Waiting Parts"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class DdfStatus(str, Enum):
    """Self-reported status of the digital damage form."""
    NON_EXISTENT = "non-existent"
    PARTIALLY_DONE = "partially-done"
    COMPLETE = "complete"


class AttachmentType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    VIDEO = "video"
    OTHER = "other"


class DocumentKind(str, Enum):
    """What an attached document is for."""
    DDF = "ddf"
    INVOICE = "invoice"
    CALIBRATION = "calibration"
    OTHER = "other"


class ItemType(str, Enum):
    PART = "part"
    LABOR = "labor"


class PartStatus(str, Enum):
    ORDERED = "Ordered"
    IN_STOCK = "In Stock"
    PENDING = "Pending"
    OUT_OF_STOCK = "Out of Stock"


class ReviewStatus(str, Enum):
    """Invoice review outcome."""
    PENDING_REVIEW = "pending_review"
    NEEDS_CORRECTION = "needs_correction"
    OK = "ok"


class CoverageDecision(str, Enum):
    """Insurer decision stored on the coverage record."""
    APPROVED = "approved"
    NOT_APPROVED = "not_approved"
    UNDEFINED = "undefined"


class PolicyType(str, Enum):
    PRIVATE = "private"
    BUSINESS = "business"


class OwnerType(str, Enum):
    PRIVATE = "private"
    COMPANY = "company"


class SenderType(str, Enum):
    AGENT = "agent"
    WORKSHOP = "workshop"
    SYSTEM = "system"


class ActorType(str, Enum):
    SYSTEM = "system"
    WORKSHOP = "workshop"
    AGENT = "agent"


class ActionType(str, Enum):
    CASE_CREATED = "case_created"
    STATUS_CHANGED = "status_changed"
    FILE_UPLOADED = "file_uploaded"
    INVOICE_REVIEWED = "invoice_reviewed"
    PARTS_ADDED = "parts_added"
    CALIBRATION_UPDATED = "calibration_updated"
    INSURANCE_UPDATED = "insurance_updated"
    IMAGE_UPLOADED = "image_uploaded"
    STAGE_CHANGED = "stage_changed"
    NOTE_ADDED = "note_added"
    SMS_SENT = "sms_sent"
    OTHER = "other"


def coerce_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    """
    Resolve ``value`` to a member of ``enum_cls``.

    Unknown values resolve to None rather than raising, so a misspelt
    status can only ever read as "not set".
    """
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@lru_cache(maxsize=None)
def _hints(cls: type) -> Dict[str, Any]:
    return get_type_hints(cls)


def _convert(tp: Any, value: Any) -> Any:
    """Convert a raw mapping value to the annotated field type."""
    if value is None:
        return None
    origin = get_origin(tp)
    if origin is Union:
        inner = [arg for arg in get_args(tp) if arg is not type(None)]
        return _convert(inner[0], value) if len(inner) == 1 else value
    if origin is list:
        if not isinstance(value, (list, tuple)):
            return None
        (item_tp,) = get_args(tp)
        converted = (_convert(item_tp, item) for item in value)
        return [item for item in converted if item is not None]
    if origin is dict:
        return dict(value) if isinstance(value, Mapping) else None
    if isinstance(tp, type) and issubclass(tp, Enum):
        return coerce_enum(tp, value)
    if is_dataclass(tp):
        return tp.from_dict(value) if isinstance(value, Mapping) else None
    return value


def _dump(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, CaseRecord):
        return value.to_dict()
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump(item) for key, item in value.items()}
    return value


class CaseRecord:
    """
    Mixin giving case dataclasses a camelCase mapping form.

    ``from_dict`` accepts the payload shape the dashboard exchanges
    (``imagesNotNeededComment``) as well as snake_case keys. Missing or
    null values fall back to the field default.
    """

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        if not isinstance(data, Mapping):
            raise CaseDataError.invalid_payload(data, f"expected a mapping for {cls.__name__}")
        hints = _hints(cls)
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = _camel(f.name)
            raw = data.get(key, data.get(f.name))
            value = _convert(hints[f.name], raw)
            if value is not None:
                kwargs[f.name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Camel-cased mapping of the set fields; None values are omitted."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[_camel(f.name)] = _dump(value)
        return result

    def copy(self: T) -> T:
        """Deep copy, so callers can evaluate hypothetical edits."""
        return copy.deepcopy(self)


@dataclass
class Attachment(CaseRecord):
    """
    A file attached to a case.

    Attributes:
        id: Attachment identifier
        name: Original file name
        type: Broad media type of the file
        size: File size in bytes
        uploaded_at: ISO timestamp of the upload
        url: Where the file can be fetched
        kind: What the document is for; None for attachments created before
            documents were tagged
    """
    id: str = ""
    name: str = ""
    type: Optional[AttachmentType] = None
    size: int = 0
    uploaded_at: str = ""
    url: str = ""
    kind: Optional[DocumentKind] = None


@dataclass
class CaseImage(CaseRecord):
    id: str = ""
    url: str = ""
    caption: str = ""
    uploaded_at: str = ""
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass
class RequiredImages(CaseRecord):
    """The three photos every claim needs."""
    vehicle_overview: Optional[CaseImage] = None
    glass_close_up: Optional[CaseImage] = None
    damage_detail: Optional[CaseImage] = None


REQUIRED_IMAGE_SLOTS = ("vehicle_overview", "glass_close_up", "damage_detail")


@dataclass
class Assessment(CaseRecord):
    """
    Damage assessment, including the fields read from the damage form.

    Attributes:
        ddf_status: Self-reported damage form status; only meaningful
            together with an attached DDF file
        damage_date: Date of damage, taken from the DDF
        claim_id: Insurer claim id, taken from the DDF
    """
    damage_description: str = ""
    recommended_action: str = ""
    estimated_cost: float = 0
    assessed_by: str = ""
    assessment_date: str = ""
    ddf_status: Optional[DdfStatus] = None
    damage_date: Optional[str] = None
    glass_type: Optional[str] = None
    location: Optional[str] = None
    wear_level: Optional[str] = None
    damage_type: Optional[str] = None
    cause_of_damage: Optional[str] = None
    wear_and_tear: Optional[str] = None
    place: Optional[str] = None
    claim_id: Optional[str] = None


# Assessment fields populated from an uploaded damage form
DDF_METADATA_FIELDS = (
    "damage_date",
    "glass_type",
    "location",
    "wear_level",
    "damage_type",
    "cause_of_damage",
    "wear_and_tear",
    "place",
    "claim_id",
)


@dataclass
class PartsLaborItem(CaseRecord):
    """
    A parts or labor line. Part lines use the article fields, labor lines
    use ``description``, ``hours`` and ``rate_per_hour``.
    """
    id: str = ""
    type: Optional[ItemType] = None
    total: float = 0
    category: Optional[str] = None
    article_nr: Optional[str] = None
    quantity: Optional[float] = None
    price: Optional[float] = None
    discount: Optional[float] = None
    status: Optional[PartStatus] = None
    estimated_arrival: Optional[str] = None
    description: Optional[str] = None
    hours: Optional[float] = None
    rate_per_hour: Optional[float] = None
    agent_comment: Optional[str] = None  # "Approved" | "Changed to price agreement"


@dataclass
class PartsAndLabor(CaseRecord):
    items: List[PartsLaborItem] = field(default_factory=list)
    total_parts: Optional[float] = None
    total_labor: Optional[float] = None
    grand_total: Optional[float] = None

    def __post_init__(self):
        if self.total_parts is None:
            self.total_parts = sum(i.total or 0 for i in self.items if i.type == ItemType.PART)
        if self.total_labor is None:
            self.total_labor = sum(i.total or 0 for i in self.items if i.type == ItemType.LABOR)
        if self.grand_total is None:
            self.grand_total = self.total_parts + self.total_labor


@dataclass
class Calibration(CaseRecord):
    """
    ADAS calibration record.

    Attributes:
        required: Calibration must be performed and documented
        not_needed: Calibration explicitly waived
        signature: Technician signature confirming the calibration
        confirmed: Technician confirmed the calibration was done
        files: Calibration reports
    """
    required: Optional[bool] = None
    not_needed: Optional[bool] = None
    signature: Optional[str] = None
    confirmed: Optional[bool] = None
    files: List[Attachment] = field(default_factory=list)


@dataclass
class InsuranceCoverage(CaseRecord):
    """
    Policy data fetched from the insurer.

    Attributes:
        exists: A policy covering the vehicle was found
        data_fetched: The lookup against the insurer succeeded
        status: Insurer decision on the claim
    """
    exists: bool = False
    data_fetched: bool = False
    policy_type: Optional[PolicyType] = None
    vat_liable: bool = False
    deductible: float = 0
    coverage_amount: Optional[float] = None
    fetched_at: Optional[str] = None
    policy_number: Optional[str] = None
    expiry_date: Optional[str] = None
    status: Optional[CoverageDecision] = None


@dataclass
class Invoice(CaseRecord):
    invoice_number: str = ""
    kid: str = ""
    due_date: str = ""
    total_amount: float = 0
    file_url: str = ""
    issue_date: str = ""
    review_status: Optional[ReviewStatus] = None


@dataclass
class Customer(CaseRecord):
    name: str = ""
    email: str = ""
    phone: str = ""


@dataclass
class Vehicle(CaseRecord):
    make: str = ""
    model: str = ""
    year: Optional[int] = None
    vin: str = ""
    license_plate: str = ""
    color: str = ""


@dataclass
class Service(CaseRecord):
    type: str = ""
    description: str = ""
    start_date: Optional[str] = None
    completion_date: Optional[str] = None
    repair_finished_date: Optional[str] = None
    estimated_hours: float = 0
    technician: str = ""


@dataclass
class Owner(CaseRecord):
    type: Optional[OwnerType] = None
    name: str = ""
    ownership_date: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""


@dataclass
class Note(CaseRecord):
    id: str = ""
    text: str = ""
    author: str = ""
    timestamp: str = ""


@dataclass
class ChatMessage(CaseRecord):
    id: str = ""
    sender: str = ""
    sender_type: Optional[SenderType] = None
    message: str = ""
    timestamp: str = ""
    attachments: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ActionLogEntry(CaseRecord):
    """
    One entry of a case's action log.

    Attributes:
        action_type: What happened
        actor: Display name of who did it
        actor_type: Whether a system, workshop user or insurance agent acted
        description: Human-readable description
        timestamp: ISO timestamp
        metadata: Free-form details (file names, old and new values)
    """
    id: str = ""
    action_type: Optional[ActionType] = None
    actor: str = ""
    actor_type: Optional[ActorType] = None
    description: str = ""
    timestamp: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkshopCase(CaseRecord):
    """
    A glass repair claim tracked from intake to invoicing.

    Only ``id`` is mandatory; every section starts blank and is filled in
    as the workshop works the case. The ``*_approval_status`` fields are
    manual approvals recorded by an approver and are never derived here.
    """
    id: str
    case_number: str = ""
    stage: Stage = Stage.DRAFT
    status: CaseStatus = CaseStatus.NEW
    priority: Optional[Priority] = None
    insurance_company: str = ""
    workshop_name: Optional[str] = None
    customer: Customer = field(default_factory=Customer)
    vehicle: Vehicle = field(default_factory=Vehicle)
    service: Service = field(default_factory=Service)
    owner: Optional[Owner] = None
    parts_and_labor: PartsAndLabor = field(default_factory=PartsAndLabor)
    required_images: Optional[RequiredImages] = None
    damage_images: List[CaseImage] = field(default_factory=list)
    repair_images: List[CaseImage] = field(default_factory=list)
    after_repair_images: List[CaseImage] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    notes: List[Note] = field(default_factory=list)
    invoice: Optional[Invoice] = None
    chat_log: List[ChatMessage] = field(default_factory=list)
    action_log: List[ActionLogEntry] = field(default_factory=list)
    is_chat_log_enabled: Optional[bool] = None
    last_log_viewed_at: Optional[str] = None
    assessment: Optional[Assessment] = None
    calibration: Optional[Calibration] = None
    insurance_coverage: Optional[InsuranceCoverage] = None
    images_not_needed: bool = False
    images_not_needed_comment: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    ddf_approval_status: Optional[SectionApprovalStatus] = None
    images_approval_status: Optional[SectionApprovalStatus] = None
    parts_labor_approval_status: Optional[SectionApprovalStatus] = None
    calibration_approval_status: Optional[SectionApprovalStatus] = None
    invoice_approval_status: Optional[SectionApprovalStatus] = None
    insurance_approval_status: Optional[SectionApprovalStatus] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkshopCase":
        if not isinstance(data, Mapping):
            raise CaseDataError.invalid_payload(data, "expected a mapping for WorkshopCase")
        if not data.get("id"):
            raise CaseDataError.missing_field("id")
        return super().from_dict(data)
