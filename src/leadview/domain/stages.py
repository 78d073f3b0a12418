from __future__ import annotations

from enum import Enum


class LeadStage(str, Enum):
    NEW = "new"
    STALLED = "stalled"
    QUOTE_DRAFT = "quote_draft"
    QUOTE_REQUESTED = "quote_requested"
    PRICING_RECEIVED = "pricing_received"
    QUOTE_SENT = "quote_sent"
    QUOTE_APPROVED = "quote_approved"
    WON = "won"
    LOST = "lost"
    CANCELLED = "cancelled"


TERMINAL_STAGES = frozenset({LeadStage.WON, LeadStage.LOST, LeadStage.CANCELLED})


class TemperatureBucket(str, Enum):
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class NextActionKind(str, Enum):
    REQUEST_PRICING = "request_pricing"
    SEND_QUOTE = "send_quote"
    MAKE_FIRST_CONTACT = "make_first_contact"
    FOLLOW_UP_WITH_CUSTOMER = "follow_up_with_customer"
    ARCHIVE = "archive"
    WAIT = "wait"
    NONE = "none"


class TouchDirection(str, Enum):
    CUSTOMER = "customer"
    INTERNAL = "internal"


class TaskType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    FOLLOW_UP = "follow_up"
    OTHER = "other"


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
