from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from leadview.domain.models import LeadView


def rank_lead_views(views: Iterable[LeadView]) -> list[LeadView]:
    """Order lead views for a work queue.

    Soonest follow-up first, then hottest, then largest quote, then most
    recent contact. Missing values sort last.
    """
    return sorted(views, key=_rank_key)


def _rank_key(view: LeadView) -> tuple:
    quote_value = view.primary_quote_snapshot.value if view.primary_quote_snapshot else None
    last_contact = view.comms_rollup.last_contact_at
    return (
        view.follow_up_due_at is None,
        _timestamp(view.follow_up_due_at),
        -view.temperature_score,
        quote_value is None,
        -(quote_value or 0.0),
        last_contact is None,
        -_timestamp(last_contact),
        view.opportunity_id or "",
    )


def _timestamp(value: datetime | None) -> float:
    return value.timestamp() if value is not None else 0.0
