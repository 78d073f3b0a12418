from __future__ import annotations

from dataclasses import dataclass

from leadview.config import Thresholds, ensure_thresholds
from leadview.domain.models import CommsRollup, Opportunity, QuoteSnapshot, StageResult
from leadview.domain.rules import Rule, first_match, normalize_status
from leadview.domain.stages import TERMINAL_STAGES, LeadStage

WON_STATUSES = frozenset({"won", "closed won", "completed", "complete"})
LOST_STATUSES = frozenset({"lost", "closed lost"})
CANCELLED_STATUSES = frozenset({"cancelled", "canceled"})

QUOTE_DECLINED = frozenset({"declined", "rejected"})
QUOTE_APPROVED = frozenset({"approved", "accepted"})
QUOTE_SENT = frozenset({"sent"})
QUOTE_DRAFT = frozenset({"draft", ""})


@dataclass(frozen=True)
class _StageInputs:
    status: str
    quote: QuoteSnapshot | None
    days_since_customer: int | None
    stalled_after_days: int | None

    @property
    def quote_status(self) -> str:
        return self.quote.status if self.quote else ""

    @property
    def is_draft(self) -> bool:
        return self.quote_status in QUOTE_DRAFT


TERMINAL_RULES: tuple[Rule[_StageInputs, LeadStage], ...] = (
    Rule(
        lambda c: c.status in WON_STATUSES,
        LeadStage.WON,
        lambda c: f"Opportunity marked {c.status}",
    ),
    Rule(
        lambda c: c.status in LOST_STATUSES,
        LeadStage.LOST,
        lambda c: f"Opportunity marked {c.status}",
    ),
    Rule(
        lambda c: c.status in CANCELLED_STATUSES,
        LeadStage.CANCELLED,
        lambda c: f"Opportunity marked {c.status}",
    ),
)

QUOTE_RULES: tuple[Rule[_StageInputs, LeadStage], ...] = (
    Rule(
        lambda c: c.quote_status in QUOTE_DECLINED,
        LeadStage.LOST,
        lambda c: f"Quote {c.quote_status}",
    ),
    Rule(
        lambda c: c.quote_status in QUOTE_APPROVED,
        LeadStage.QUOTE_APPROVED,
        lambda c: f"Quote {c.quote_status}",
    ),
    Rule(
        lambda c: c.quote_status in QUOTE_SENT,
        LeadStage.QUOTE_SENT,
        lambda c: "Quote sent",
    ),
    Rule(
        lambda c: c.is_draft and c.quote.pricing_received,
        LeadStage.PRICING_RECEIVED,
        lambda c: "Pricing received; quote not sent",
    ),
    Rule(
        lambda c: c.is_draft and c.quote.pricing_requested,
        LeadStage.QUOTE_REQUESTED,
        lambda c: "Pricing requested; awaiting pricing",
    ),
    Rule(
        lambda c: c.is_draft,
        LeadStage.QUOTE_DRAFT,
        lambda c: "Draft quote; pricing not requested",
    ),
    # Unrecognized quote statuses are treated as sent.
    Rule(
        lambda c: True,
        LeadStage.QUOTE_SENT,
        lambda c: f"Quote status {c.quote_status} treated as sent",
    ),
)

NO_QUOTE_RULES: tuple[Rule[_StageInputs, LeadStage], ...] = (
    Rule(
        lambda c: c.stalled_after_days is not None
        and c.days_since_customer is not None
        and c.days_since_customer >= c.stalled_after_days,
        LeadStage.STALLED,
        lambda c: f"No quote and no customer contact for {c.days_since_customer} days",
    ),
    Rule(
        lambda c: True,
        LeadStage.NEW,
        lambda c: "No quote activity yet",
    ),
)


def compute_lead_stage(
    opportunity: Opportunity | None,
    primary_quote: QuoteSnapshot | None,
    rollup: CommsRollup | None,
    thresholds: Thresholds,
) -> StageResult:
    """Classify an opportunity into exactly one lead stage.

    Terminal opportunity statuses win outright, then the primary quote, then
    contact recency for opportunities without quotes.
    """
    ensure_thresholds(thresholds)
    inputs = _StageInputs(
        status=normalize_status(opportunity.status if opportunity else None),
        quote=primary_quote,
        days_since_customer=rollup.days_since_customer_contact if rollup else None,
        stalled_after_days=thresholds.stalled_after_days,
    )

    rule = first_match(TERMINAL_RULES, inputs)
    if rule is None:
        table = QUOTE_RULES if primary_quote is not None else NO_QUOTE_RULES
        rule = first_match(table, inputs)
    # Both fallback tables end in a catch-all, so a rule always matches.
    return StageResult(
        lead_stage=rule.result,
        is_active=rule.result not in TERMINAL_STAGES,
        stage_reason=rule.reason(inputs),
    )
