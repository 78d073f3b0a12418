from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from leadview.domain.rules import (
    coerce_bool,
    coerce_datetime,
    coerce_number,
    coerce_str,
    first_value,
    normalize_status,
)
from leadview.domain.stages import (
    LeadStage,
    NextActionKind,
    TaskPriority,
    TaskType,
    TemperatureBucket,
    TouchDirection,
)

PRICING_REQUESTED_LABEL = "pricing requested"
PRICING_RECEIVED_LABEL = "pricing received"


@dataclass(frozen=True)
class Opportunity:
    opportunity_id: str | None
    status: str | None
    customer_id: str | None
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None
    opportunity_number: str | None
    title: str | None
    primary_quote_id: str | None
    created_at: datetime | None
    updated_at: datetime | None
    is_deleted: bool = False
    is_archived: bool = False

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Opportunity:
        return cls(
            opportunity_id=coerce_str(first_value(record, "opportunity_id", "id", "project_id")),
            status=coerce_str(record.get("status")),
            customer_id=coerce_str(record.get("customer_id")),
            customer_name=coerce_str(
                first_value(record, "customer_name", "customerName", "client_name")
            ),
            customer_email=coerce_str(
                first_value(record, "customer_email", "customerEmail", "contact_email")
            ),
            customer_phone=coerce_str(first_value(record, "customer_phone", "customerPhone")),
            opportunity_number=coerce_str(
                first_value(
                    record, "opportunity_number", "project_number", "projectNumber", "number"
                )
            ),
            title=coerce_str(first_value(record, "title", "name")),
            primary_quote_id=coerce_str(first_value(record, "primary_quote_id", "primaryQuoteId")),
            created_at=coerce_datetime(first_value(record, "created_at", "created_date")),
            updated_at=coerce_datetime(first_value(record, "updated_at", "updated_date")),
            is_deleted=coerce_bool(record.get("is_deleted"))
            or coerce_datetime(record.get("deleted_at")) is not None,
            is_archived=coerce_bool(first_value(record, "is_archived", "archived"))
            or coerce_datetime(record.get("archived_at")) is not None,
        )


@dataclass(frozen=True)
class Quote:
    quote_id: str | None
    opportunity_id: str | None
    status: str | None
    created_at: datetime | None
    pricing_requested: bool = False
    pricing_received: bool = False
    value: float | None = None
    is_deleted: bool = False

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Quote:
        checklist = _checklist_flags(record.get("quote_checklist") or record.get("checklist"))
        return cls(
            quote_id=coerce_str(first_value(record, "quote_id", "id")),
            opportunity_id=coerce_str(first_value(record, "opportunity_id", "project_id")),
            status=coerce_str(record.get("status")),
            created_at=coerce_datetime(first_value(record, "created_at", "created_date")),
            pricing_requested=coerce_bool(record.get("pricing_requested"))
            or PRICING_REQUESTED_LABEL in checklist,
            pricing_received=coerce_bool(record.get("pricing_received"))
            or PRICING_RECEIVED_LABEL in checklist,
            value=coerce_number(first_value(record, "value", "total", "amount")),
            is_deleted=coerce_bool(record.get("is_deleted"))
            or coerce_datetime(record.get("deleted_at")) is not None,
        )


@dataclass(frozen=True)
class Conversation:
    conversation_id: str | None
    opportunity_id: str | None
    subject: str | None
    snippet: str | None
    participants: tuple[str, ...]
    last_message_at: datetime | None
    last_customer_message_at: datetime | None
    last_internal_message_at: datetime | None
    is_unread: bool = False
    assigned_to: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Conversation:
        participants = record.get("participants")
        if not isinstance(participants, (list, tuple)):
            participants = []
        return cls(
            conversation_id=coerce_str(first_value(record, "conversation_id", "thread_id", "id")),
            opportunity_id=coerce_str(first_value(record, "opportunity_id", "project_id")),
            subject=coerce_str(record.get("subject")),
            snippet=coerce_str(record.get("snippet")),
            participants=tuple(p for p in (coerce_str(p) for p in participants) if p),
            last_message_at=coerce_datetime(
                first_value(record, "last_message_at", "last_message_date")
            ),
            last_customer_message_at=coerce_datetime(
                first_value(record, "last_customer_message_at", "last_external_message_at")
            ),
            last_internal_message_at=coerce_datetime(record.get("last_internal_message_at")),
            is_unread=coerce_bool(first_value(record, "is_unread", "unread")),
            assigned_to=coerce_str(first_value(record, "assigned_to", "owner")),
        )


@dataclass(frozen=True)
class QuoteSnapshot:
    quote_id: str | None
    status: str
    pricing_requested: bool
    pricing_received: bool
    value: float | None
    created_at: datetime | None

    @classmethod
    def from_quote(cls, quote: Quote) -> QuoteSnapshot:
        return cls(
            quote_id=quote.quote_id,
            status=normalize_status(quote.status),
            pricing_requested=quote.pricing_requested,
            pricing_received=quote.pricing_received,
            value=quote.value,
            created_at=quote.created_at,
        )


@dataclass(frozen=True)
class CommsRollup:
    thread_count: int = 0
    has_unread: bool = False
    is_assigned: bool = False
    assigned_to: str | None = None
    last_contact_at: datetime | None = None
    last_customer_contact_at: datetime | None = None
    last_internal_contact_at: datetime | None = None
    last_touch_direction: TouchDirection | None = None
    days_since_customer_contact: int | None = None
    days_since_internal_contact: int | None = None


@dataclass(frozen=True)
class StageResult:
    lead_stage: LeadStage
    is_active: bool
    stage_reason: str


@dataclass(frozen=True)
class TemperatureResult:
    temperature_score: int
    temperature_bucket: TemperatureBucket
    temperature_reasons: tuple[str, ...]


@dataclass(frozen=True)
class NextActionResult:
    next_action: NextActionKind
    next_action_reason: str
    follow_up_due_at: datetime | None


@dataclass(frozen=True)
class LeadView:
    opportunity_id: str | None
    opportunity_number: str | None
    customer_id: str | None
    customer_name: str | None
    customer_email: str | None
    customer_phone: str | None
    title: str | None
    lead_stage: LeadStage
    is_active: bool
    stage_reason: str
    primary_quote_snapshot: QuoteSnapshot | None
    comms_rollup: CommsRollup
    temperature_score: int
    temperature_bucket: TemperatureBucket
    temperature_reasons: tuple[str, ...]
    next_action: NextActionKind
    next_action_reason: str
    follow_up_due_at: datetime | None

    def to_record(self) -> dict[str, Any]:
        """Plain JSON-ready dict; nullable fields are always present."""
        return _to_plain(self)


@dataclass(frozen=True)
class TaskCreationRequest:
    title: str
    description: str
    due_at: datetime | None
    opportunity_id: str
    customer_id: str | None
    customer_name: str | None
    task_type: TaskType
    priority: TaskPriority

    def to_record(self) -> dict[str, Any]:
        return _to_plain(self)


def _to_plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    if is_dataclass(value):
        return {f.name: _to_plain(getattr(value, f.name)) for f in fields(value)}
    return value


def _checklist_flags(checklist: Any) -> set[str]:
    if not isinstance(checklist, list):
        return set()
    checked: set[str] = set()
    for item in checklist:
        if isinstance(item, Mapping) and item.get("checked") is True:
            label = normalize_status(item.get("item"))
            if label:
                checked.add(label)
    return checked
