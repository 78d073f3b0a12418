from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from leadview.domain.models import LeadView, Opportunity, TaskCreationRequest
from leadview.domain.rules import InvalidState
from leadview.domain.stages import NextActionKind, TaskPriority, TaskType, TemperatureBucket

TASK_TYPES = {
    NextActionKind.FOLLOW_UP_WITH_CUSTOMER: TaskType.CALL,
    NextActionKind.MAKE_FIRST_CONTACT: TaskType.EMAIL,
    NextActionKind.SEND_QUOTE: TaskType.EMAIL,
    NextActionKind.REQUEST_PRICING: TaskType.OTHER,
    NextActionKind.ARCHIVE: TaskType.OTHER,
    NextActionKind.WAIT: TaskType.FOLLOW_UP,
}

TASK_PRIORITIES = {
    TemperatureBucket.HOT: TaskPriority.HIGH,
    TemperatureBucket.WARM: TaskPriority.MEDIUM,
    TemperatureBucket.COLD: TaskPriority.LOW,
}


def create_follow_up_task(
    lead_view: LeadView, opportunity: Opportunity | Mapping[str, Any]
) -> TaskCreationRequest:
    """Build a task request from an already-composed lead view.

    Uses only the data passed in; nothing is fetched.
    """
    if lead_view.next_action == NextActionKind.NONE:
        raise InvalidState(
            f"Lead {lead_view.opportunity_id} has no next action; nothing to follow up."
        )
    if isinstance(opportunity, Mapping):
        opportunity = Opportunity.from_record(opportunity)
    if not lead_view.opportunity_id:
        raise InvalidState("Lead view has no opportunity id to link the task to.")
    if opportunity.opportunity_id != lead_view.opportunity_id:
        raise InvalidState(
            f"Opportunity {opportunity.opportunity_id} does not match lead "
            f"{lead_view.opportunity_id}."
        )

    customer_name = (
        opportunity.customer_name or lead_view.customer_name or opportunity.title or "Lead"
    )
    return TaskCreationRequest(
        title=f"Follow up: {customer_name}",
        description=_describe(lead_view),
        due_at=lead_view.follow_up_due_at,
        opportunity_id=lead_view.opportunity_id,
        customer_id=opportunity.customer_id or lead_view.customer_id,
        customer_name=opportunity.customer_name or lead_view.customer_name,
        task_type=TASK_TYPES.get(lead_view.next_action, TaskType.FOLLOW_UP),
        priority=TASK_PRIORITIES.get(lead_view.temperature_bucket, TaskPriority.MEDIUM),
    )


def _describe(lead_view: LeadView) -> str:
    lines = [
        lead_view.next_action_reason,
        f"Recommended action: {lead_view.next_action.value.replace('_', ' ')}",
        f"Lead stage: {lead_view.lead_stage.value.replace('_', ' ')}",
        f"Temperature: {lead_view.temperature_bucket.value} (score {lead_view.temperature_score})",
    ]
    quote = lead_view.primary_quote_snapshot
    if quote is not None:
        value = f"{quote.value:,.2f}" if quote.value is not None else "no value"
        lines.append(f"Quote: {quote.status or 'unknown'} ({value})")
    contact = ", ".join(
        detail for detail in (lead_view.customer_email, lead_view.customer_phone) if detail
    )
    if contact:
        lines.append(f"Contact: {contact}")
    days = lead_view.comms_rollup.days_since_customer_contact
    if days is not None:
        lines.append(
            "Last customer activity: " + ("today" if days == 0 else f"{days} days ago")
        )
    return "\n".join(lines)
