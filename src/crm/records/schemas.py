"""Pydantic schemas for CRM records -- contacts, deals, tasks, activities, quotes.

Defines all structured types the record store accepts and returns:
- Enums: EntityKind, TaskPriority, TaskStatus, ActivityType, QuoteStatus, DeliveryMethod
- Write payloads: <Entity>Create (full validation) and <Entity>Update (partial,
  only supplied fields are applied)
- Read models: <Entity>Read (lenient, so degraded records from an external
  store still load and render)
- validate_create() / validate_update(): coerce mappings into write payloads,
  raising RecordValidationError instead of pydantic's ValidationError

DealStage is imported from pipeline.stages (not duplicated).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.crm.pipeline.stages import DealStage
from src.crm.records.errors import RecordValidationError

_EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


# ── Enums ───────────────────────────────────────────────────────────────────


class EntityKind(str, Enum):
    """Record types held by the record store."""

    CONTACT = "contact"
    DEAL = "deal"
    TASK = "task"
    ACTIVITY = "activity"
    QUOTE = "quote"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActivityType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"


class QuoteStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class DeliveryMethod(str, Enum):
    EMAIL = "Email"
    MAIL = "Mail"
    IN_PERSON = "In Person"


# ── Base Classes ────────────────────────────────────────────────────────────


class _WritePayload(BaseModel):
    """Common config for create/update payloads: enums stored as plain values."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class PartialUpdate(_WritePayload):
    """Base for update payloads with merge semantics.

    Only fields the caller explicitly supplied (model_fields_set) are applied.
    Fields listed in non_nullable may be omitted but never set to None.
    """

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_explicit_nulls(self) -> PartialUpdate:
        for name in sorted(self.model_fields_set & self.non_nullable):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly supplied fields."""
        return self.model_dump(exclude_unset=True)


class _ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ── Contacts ────────────────────────────────────────────────────────────────


class ContactCreate(_WritePayload):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=_EMAIL_PATTERN, max_length=255)
    phone: str = Field(min_length=1, max_length=50)
    company: str | None = Field(default=None, max_length=200)
    position: str | None = Field(default=None, max_length=200)


class ContactUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"first_name", "last_name", "email", "phone"}
    )

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, pattern=_EMAIL_PATTERN, max_length=255)
    phone: str | None = Field(default=None, min_length=1, max_length=50)
    company: str | None = Field(default=None, max_length=200)
    position: str | None = Field(default=None, max_length=200)
    last_activity: datetime | None = None


class ContactRead(_ReadModel):
    id: int
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    created_at: datetime | None = None
    last_activity: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# ── Deals ───────────────────────────────────────────────────────────────────


class DealCreate(_WritePayload):
    """New deal. Invariants: value >= 0, probability in [0, 100], stage in taxonomy."""

    title: str = Field(min_length=1, max_length=300)
    value: float = Field(ge=0)
    stage: DealStage = DealStage.LEAD
    probability: int = Field(default=10, ge=0, le=100)
    contact_id: int | None = None
    expected_close_date: date | None = None
    description: str | None = None


class DealUpdate(PartialUpdate):
    """Partial deal update. id and created_at are immutable and not accepted."""

    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"title", "value", "stage", "probability"}
    )

    title: str | None = Field(default=None, min_length=1, max_length=300)
    value: float | None = Field(default=None, ge=0)
    stage: DealStage | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    contact_id: int | None = None
    expected_close_date: date | None = None
    description: str | None = None


class DealRead(_ReadModel):
    """A deal as stored.

    Lenient on purpose: stage is a plain string and value may be missing, so
    a record with bad data still loads and the board can degrade around it.
    """

    id: int
    title: str = ""
    value: float | None = None
    stage: str = ""
    probability: int = 0
    contact_id: int | None = None
    expected_close_date: date | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ── Tasks ───────────────────────────────────────────────────────────────────


class TaskCreate(_WritePayload):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    due_date: date
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    contact_id: int | None = None
    deal_id: int | None = None


class TaskUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"title", "due_date", "priority", "status"}
    )

    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    due_date: date | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    contact_id: int | None = None
    deal_id: int | None = None


class TaskRead(_ReadModel):
    id: int
    title: str = ""
    description: str | None = None
    due_date: date | None = None
    priority: str = TaskPriority.MEDIUM.value
    status: str = TaskStatus.PENDING.value
    contact_id: int | None = None
    deal_id: int | None = None
    created_at: datetime | None = None


# ── Activities ──────────────────────────────────────────────────────────────


class ActivityCreate(_WritePayload):
    type: ActivityType = ActivityType.CALL
    subject: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    contact_id: int | None = None
    deal_id: int | None = None


class ActivityUpdate(PartialUpdate):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"type", "subject", "description"})

    type: ActivityType | None = None
    subject: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = Field(default=None, min_length=1)
    contact_id: int | None = None
    deal_id: int | None = None


class ActivityRead(_ReadModel):
    id: int
    type: str = ActivityType.NOTE.value
    subject: str = ""
    description: str | None = None
    contact_id: int | None = None
    deal_id: int | None = None
    created_at: datetime | None = None


# ── Quotes ──────────────────────────────────────────────────────────────────


class _QuoteAddressFields(BaseModel):
    billing_name: str | None = None
    billing_street: str | None = None
    billing_city: str | None = None
    billing_state: str | None = None
    billing_country: str | None = None
    billing_pincode: str | None = None
    shipping_name: str | None = None
    shipping_street: str | None = None
    shipping_city: str | None = None
    shipping_state: str | None = None
    shipping_country: str | None = None
    shipping_pincode: str | None = None


class QuoteCreate(_WritePayload, _QuoteAddressFields):
    company: str = Field(min_length=1, max_length=200)
    contact_id: int
    deal_id: int
    quote_date: date
    expires_on: date
    status: QuoteStatus = QuoteStatus.DRAFT
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL

    @model_validator(mode="after")
    def _expiry_after_quote_date(self) -> QuoteCreate:
        if self.expires_on <= self.quote_date:
            raise ValueError("expires_on must be after quote_date")
        return self


class QuoteUpdate(PartialUpdate, _QuoteAddressFields):
    non_nullable: ClassVar[frozenset[str]] = frozenset(
        {"company", "contact_id", "deal_id", "quote_date", "expires_on", "status", "delivery_method"}
    )

    company: str | None = Field(default=None, min_length=1, max_length=200)
    contact_id: int | None = None
    deal_id: int | None = None
    quote_date: date | None = None
    expires_on: date | None = None
    status: QuoteStatus | None = None
    delivery_method: DeliveryMethod | None = None

    @model_validator(mode="after")
    def _expiry_after_quote_date(self) -> QuoteUpdate:
        if self.quote_date and self.expires_on and self.expires_on <= self.quote_date:
            raise ValueError("expires_on must be after quote_date")
        return self


class QuoteRead(_ReadModel, _QuoteAddressFields):
    id: int
    company: str = ""
    contact_id: int | None = None
    deal_id: int | None = None
    quote_date: date | None = None
    expires_on: date | None = None
    status: str = QuoteStatus.DRAFT.value
    delivery_method: str | None = None
    created_at: datetime | None = None


# ── Schema Registry ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EntitySchemas:
    create: type[_WritePayload]
    update: type[PartialUpdate]
    read: type[_ReadModel]


ENTITY_SCHEMAS: dict[EntityKind, EntitySchemas] = {
    EntityKind.CONTACT: EntitySchemas(ContactCreate, ContactUpdate, ContactRead),
    EntityKind.DEAL: EntitySchemas(DealCreate, DealUpdate, DealRead),
    EntityKind.TASK: EntitySchemas(TaskCreate, TaskUpdate, TaskRead),
    EntityKind.ACTIVITY: EntitySchemas(ActivityCreate, ActivityUpdate, ActivityRead),
    EntityKind.QUOTE: EntitySchemas(QuoteCreate, QuoteUpdate, QuoteRead),
}


def _errors_of(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": e["loc"], "msg": e["msg"], "type": e["type"]} for e in exc.errors()]


def validate_create(kind: EntityKind, data: BaseModel | Mapping[str, Any]) -> _WritePayload:
    """Coerce data into kind's create payload or raise RecordValidationError."""
    schema = ENTITY_SCHEMAS[kind].create
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(data))
    except ValidationError as exc:
        raise RecordValidationError(kind.value, _errors_of(exc)) from exc


def validate_update(kind: EntityKind, fields: BaseModel | Mapping[str, Any]) -> PartialUpdate:
    """Coerce partial fields into kind's update payload or raise RecordValidationError.

    Unknown and immutable fields (id, created_at) are rejected.
    """
    schema = ENTITY_SCHEMAS[kind].update
    if isinstance(fields, schema):
        return fields
    if isinstance(fields, BaseModel):
        fields = fields.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(fields))
    except ValidationError as exc:
        raise RecordValidationError(kind.value, _errors_of(exc)) from exc
