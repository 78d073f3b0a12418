from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from leadview.domain.models import CommsRollup, Conversation
from leadview.domain.stages import TouchDirection
from leadview.services.utils import resolve_now

SECONDS_PER_DAY = 86400


def compute_comms_rollup(
    conversations_for_opportunity: Iterable[Conversation] | None,
    now: datetime | str | None = None,
) -> CommsRollup:
    """Aggregate one opportunity's conversations in a single pass.

    Missing or malformed timestamps were already dropped to ``None`` when the
    records were coerced, so they simply never win a max.
    """
    conversations = list(conversations_for_opportunity or ())
    if not conversations:
        return CommsRollup()
    current = resolve_now(now)

    has_unread = False
    is_assigned = False
    assigned_to: str | None = None
    assigned_activity: datetime | None = None
    last_contact: datetime | None = None
    last_customer: datetime | None = None
    last_internal: datetime | None = None

    for conversation in conversations:
        has_unread = has_unread or conversation.is_unread
        activity = _latest(
            conversation.last_message_at,
            conversation.last_customer_message_at,
            conversation.last_internal_message_at,
        )
        last_contact = _latest(last_contact, activity)
        last_customer = _latest(last_customer, conversation.last_customer_message_at)
        last_internal = _latest(last_internal, conversation.last_internal_message_at)
        if conversation.assigned_to:
            is_assigned = True
            # Owner of the most recently active assigned conversation.
            if assigned_to is None or (
                activity is not None and (assigned_activity is None or activity > assigned_activity)
            ):
                assigned_to = conversation.assigned_to
                assigned_activity = activity

    return CommsRollup(
        thread_count=len(conversations),
        has_unread=has_unread,
        is_assigned=is_assigned,
        assigned_to=assigned_to,
        last_contact_at=last_contact,
        last_customer_contact_at=last_customer,
        last_internal_contact_at=last_internal,
        last_touch_direction=_touch_direction(last_customer, last_internal),
        days_since_customer_contact=_days_between(current, last_customer),
        days_since_internal_contact=_days_between(current, last_internal),
    )


def _latest(*values: datetime | None) -> datetime | None:
    present = [value for value in values if value is not None]
    return max(present) if present else None


def _touch_direction(
    last_customer: datetime | None, last_internal: datetime | None
) -> TouchDirection | None:
    if last_customer is None and last_internal is None:
        return None
    if last_internal is None:
        return TouchDirection.CUSTOMER
    if last_customer is None:
        return TouchDirection.INTERNAL
    # Ties resolve to the customer.
    if last_customer >= last_internal:
        return TouchDirection.CUSTOMER
    return TouchDirection.INTERNAL


def _days_between(now: datetime, past: datetime | None) -> int | None:
    if past is None:
        return None
    days = int((now - past).total_seconds() // SECONDS_PER_DAY)
    return max(days, 0)
