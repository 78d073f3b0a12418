from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Callable, TypeVar

from leadview.config import DEFAULT_EXCLUDED_STATUSES, Thresholds, ensure_thresholds
from leadview.domain.models import Conversation, LeadView, Opportunity, Quote
from leadview.services.comms import compute_comms_rollup
from leadview.services.eligibility import is_eligible
from leadview.services.next_action import compute_next_action
from leadview.services.quotes import resolve_primary_quote
from leadview.services.stage import compute_lead_stage
from leadview.services.temperature import compute_temperature
from leadview.services.utils import resolve_now

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", Opportunity, Quote, Conversation)

Records = Iterable[Any] | Mapping[str, Iterable[Any]] | None


def coerce_records(records: Any, model: type[RecordT]) -> list[RecordT]:
    """Accept model instances or raw dict records; anything else is dropped."""
    if isinstance(records, (str, bytes)) or not isinstance(records, Iterable):
        return []
    coerced: list[RecordT] = []
    for record in records:
        if isinstance(record, model):
            coerced.append(record)
        elif isinstance(record, Mapping):
            coerced.append(model.from_record(record))
    return coerced


def group_by_opportunity(
    records: Records,
    model: type[RecordT],
    key: Callable[[RecordT], str | None] = lambda record: record.opportunity_id,
) -> dict[str, list[RecordT]]:
    """Group child records by opportunity id in one pass.

    A mapping is taken as already grouped by the caller.
    """
    grouped: dict[str, list[RecordT]] = {}
    if isinstance(records, Mapping):
        for opportunity_id, items in records.items():
            grouped.setdefault(str(opportunity_id), []).extend(coerce_records(items, model))
        return grouped
    for record in coerce_records(records, model):
        opportunity_id = key(record)
        if not opportunity_id:
            continue
        grouped.setdefault(opportunity_id, []).append(record)
    return grouped


def compute_lead_views(
    opportunities: Iterable[Any] | None,
    quotes: Records,
    conversations: Records,
    thresholds: Thresholds,
    now: datetime | str | None = None,
    excluded_statuses: Iterable[str] = DEFAULT_EXCLUDED_STATUSES,
) -> list[LeadView]:
    """Derive lead views for every eligible opportunity, in input order.

    ``quotes`` and ``conversations`` may be flat collections carrying an
    opportunity id, or mappings already keyed by opportunity id. Pass ``now``
    explicitly for reproducible output.
    """
    ensure_thresholds(thresholds)
    current = resolve_now(now)
    excluded = tuple(excluded_statuses)
    quotes_by_opportunity = group_by_opportunity(quotes, Quote)
    conversations_by_opportunity = group_by_opportunity(conversations, Conversation)

    views: list[LeadView] = []
    skipped = 0
    for opportunity in coerce_records(opportunities, Opportunity):
        if not is_eligible(opportunity, excluded):
            skipped += 1
            logger.debug("Skipping ineligible opportunity %s", opportunity.opportunity_id)
            continue
        views.append(
            compose_lead_view(
                opportunity,
                quotes_by_opportunity.get(opportunity.opportunity_id or "", []),
                conversations_by_opportunity.get(opportunity.opportunity_id or "", []),
                thresholds,
                current,
            )
        )

    logger.info("Composed %d lead views (%d ineligible skipped)", len(views), skipped)
    return views


def compose_lead_view(
    opportunity: Opportunity,
    quotes_for_opportunity: Iterable[Quote],
    conversations_for_opportunity: Iterable[Conversation],
    thresholds: Thresholds,
    now: datetime,
) -> LeadView:
    primary_quote = resolve_primary_quote(opportunity, quotes_for_opportunity)
    rollup = compute_comms_rollup(conversations_for_opportunity, now)
    stage = compute_lead_stage(opportunity, primary_quote, rollup, thresholds)
    temperature = compute_temperature(stage.lead_stage, rollup, thresholds)
    action = compute_next_action(stage.lead_stage, rollup, temperature, thresholds, now)
    return LeadView(
        opportunity_id=opportunity.opportunity_id,
        opportunity_number=opportunity.opportunity_number,
        customer_id=opportunity.customer_id,
        customer_name=opportunity.customer_name,
        customer_email=opportunity.customer_email,
        customer_phone=opportunity.customer_phone,
        title=opportunity.title,
        lead_stage=stage.lead_stage,
        is_active=stage.is_active,
        stage_reason=stage.stage_reason,
        primary_quote_snapshot=primary_quote,
        comms_rollup=rollup,
        temperature_score=temperature.temperature_score,
        temperature_bucket=temperature.temperature_bucket,
        temperature_reasons=temperature.temperature_reasons,
        next_action=action.next_action,
        next_action_reason=action.next_action_reason,
        follow_up_due_at=action.follow_up_due_at,
    )
