from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from leadview.config import Thresholds, ensure_thresholds
from leadview.domain.models import CommsRollup, NextActionResult, TemperatureResult
from leadview.domain.rules import Rule, first_match
from leadview.domain.stages import (
    TERMINAL_STAGES,
    LeadStage,
    NextActionKind,
    TemperatureBucket,
    TouchDirection,
)
from leadview.services.utils import resolve_now


@dataclass(frozen=True)
class _ActionInputs:
    stage: LeadStage
    rollup: CommsRollup
    temperature: TemperatureResult | None
    thresholds: Thresholds
    now: datetime

    @property
    def days(self) -> int | None:
        return self.rollup.days_since_customer_contact

    @property
    def bucket(self) -> TemperatureBucket | None:
        return self.temperature.temperature_bucket if self.temperature else None


Due = Callable[[_ActionInputs], datetime | None]


def _due_now(c: _ActionInputs) -> datetime:
    return c.now


def _no_due(c: _ActionInputs) -> None:
    return None


def _due_after_reply_sla(c: _ActionInputs) -> datetime:
    return c.rollup.last_customer_contact_at + timedelta(hours=c.thresholds.reply_sla_hours)


def _customer_owed_reply(c: _ActionInputs) -> bool:
    return (
        c.thresholds.reply_after_days is not None
        and c.thresholds.reply_sla_hours is not None
        and c.rollup.last_touch_direction == TouchDirection.CUSTOMER
        and c.rollup.last_customer_contact_at is not None
        and c.days is not None
        and c.days >= c.thresholds.reply_after_days
    )


def _archivable(c: _ActionInputs) -> bool:
    return (
        c.stage == LeadStage.STALLED
        and c.thresholds.archive_after_days is not None
        and c.days is not None
        and c.days >= c.thresholds.archive_after_days
        and c.bucket == TemperatureBucket.COLD
    )


def _wait_reason(c: _ActionInputs) -> str:
    if c.rollup.last_touch_direction == TouchDirection.INTERNAL:
        return "Last touch was internal; awaiting customer"
    if c.stage == LeadStage.QUOTE_REQUESTED:
        return "Pricing requested; awaiting pricing"
    return "No follow-up due yet"


ACTION_RULES: tuple[Rule[_ActionInputs, tuple[NextActionKind, Due]], ...] = (
    Rule(
        lambda c: c.stage in TERMINAL_STAGES,
        (NextActionKind.NONE, _no_due),
        lambda c: f"Lead closed ({c.stage.value})",
    ),
    Rule(
        lambda c: c.stage == LeadStage.QUOTE_DRAFT,
        (NextActionKind.REQUEST_PRICING, _due_now),
        lambda c: "Draft quote; pricing never requested",
    ),
    Rule(
        lambda c: c.stage == LeadStage.PRICING_RECEIVED,
        (NextActionKind.SEND_QUOTE, _due_now),
        lambda c: "Pricing received; quote not sent",
    ),
    Rule(
        lambda c: c.stage == LeadStage.NEW and c.rollup.thread_count == 0,
        (NextActionKind.MAKE_FIRST_CONTACT, _due_now),
        lambda c: "New lead with no conversations",
    ),
    Rule(
        _customer_owed_reply,
        (NextActionKind.FOLLOW_UP_WITH_CUSTOMER, _due_after_reply_sla),
        lambda c: f"Customer waiting on a reply for {c.days} days",
    ),
    Rule(
        _archivable,
        (NextActionKind.ARCHIVE, _due_now),
        lambda c: f"Stalled and cold; no customer contact for {c.days} days",
    ),
    Rule(
        lambda c: c.stage == LeadStage.STALLED,
        (NextActionKind.FOLLOW_UP_WITH_CUSTOMER, _due_now),
        lambda c: f"Stalled; no customer contact for {c.days} days",
    ),
    Rule(
        lambda c: True,
        (NextActionKind.WAIT, _no_due),
        _wait_reason,
    ),
)


def compute_next_action(
    stage: LeadStage,
    rollup: CommsRollup | None,
    temperature: TemperatureResult | None,
    thresholds: Thresholds,
    now: datetime | str | None = None,
) -> NextActionResult:
    """Recommend the single best next step for a lead.

    Missing rollup or temperature data counts as no signal: the rules that
    need it do not match and evaluation continues down the table.
    """
    ensure_thresholds(thresholds)
    inputs = _ActionInputs(
        stage=stage,
        rollup=rollup or CommsRollup(),
        temperature=temperature,
        thresholds=thresholds,
        now=resolve_now(now),
    )
    rule = first_match(ACTION_RULES, inputs)
    action, due = rule.result
    return NextActionResult(
        next_action=action,
        next_action_reason=rule.reason(inputs),
        follow_up_due_at=due(inputs),
    )
