import itertools

import pytest

from leadview.config import DEFAULT_THRESHOLDS, Thresholds
from leadview.domain.models import CommsRollup, Opportunity, QuoteSnapshot
from leadview.domain.rules import InvalidConfiguration
from leadview.domain.stages import LeadStage
from leadview.services.stage import compute_lead_stage


def _opp(status: str | None) -> Opportunity:
    return Opportunity.from_record({"id": "opp-1", "status": status})


def _quote(status: str, requested: bool = False, received: bool = False) -> QuoteSnapshot:
    return QuoteSnapshot(
        quote_id="q-1",
        status=status,
        pricing_requested=requested,
        pricing_received=received,
        value=None,
        created_at=None,
    )


def _rollup(days: int | None) -> CommsRollup:
    return CommsRollup(thread_count=1, days_since_customer_contact=days)


@pytest.mark.parametrize(
    ("status", "stage"),
    [
        ("Won", LeadStage.WON),
        ("closed_won", LeadStage.WON),
        ("Completed", LeadStage.WON),
        ("Lost", LeadStage.LOST),
        ("Cancelled", LeadStage.CANCELLED),
        ("canceled", LeadStage.CANCELLED),
    ],
)
def test_terminal_status_short_circuits(status: str, stage: LeadStage) -> None:
    result = compute_lead_stage(_opp(status), _quote("sent"), _rollup(1), DEFAULT_THRESHOLDS)
    assert result.lead_stage == stage
    assert result.is_active is False


@pytest.mark.parametrize(
    ("quote", "stage"),
    [
        (_quote("declined"), LeadStage.LOST),
        (_quote("approved"), LeadStage.QUOTE_APPROVED),
        (_quote("accepted"), LeadStage.QUOTE_APPROVED),
        (_quote("sent"), LeadStage.QUOTE_SENT),
        (_quote("draft", requested=True, received=True), LeadStage.PRICING_RECEIVED),
        (_quote("draft", requested=True), LeadStage.QUOTE_REQUESTED),
        (_quote("draft"), LeadStage.QUOTE_DRAFT),
        (_quote(""), LeadStage.QUOTE_DRAFT),
        (_quote("viewed"), LeadStage.QUOTE_SENT),
    ],
)
def test_quote_lookup_table(quote: QuoteSnapshot, stage: LeadStage) -> None:
    result = compute_lead_stage(_opp("Open"), quote, _rollup(30), DEFAULT_THRESHOLDS)
    assert result.lead_stage == stage


def test_quote_sent_status_is_not_terminal() -> None:
    result = compute_lead_stage(_opp("Quote Sent"), _quote("sent"), _rollup(1), DEFAULT_THRESHOLDS)
    assert result.lead_stage == LeadStage.QUOTE_SENT
    assert result.is_active is True
    assert result.stage_reason == "Quote sent"


def test_no_quote_uses_contact_recency() -> None:
    stalled = compute_lead_stage(_opp("Open"), None, _rollup(20), DEFAULT_THRESHOLDS)
    assert stalled.lead_stage == LeadStage.STALLED
    assert stalled.stage_reason == "No quote and no customer contact for 20 days"

    boundary = compute_lead_stage(_opp("Open"), None, _rollup(14), DEFAULT_THRESHOLDS)
    assert boundary.lead_stage == LeadStage.STALLED

    fresh = compute_lead_stage(_opp("Open"), None, _rollup(13), DEFAULT_THRESHOLDS)
    assert fresh.lead_stage == LeadStage.NEW


def test_missing_stalled_threshold_disables_stalled() -> None:
    result = compute_lead_stage(_opp("Open"), None, _rollup(400), Thresholds())
    assert result.lead_stage == LeadStage.NEW


def test_all_null_inputs_resolve_to_new() -> None:
    result = compute_lead_stage(None, None, None, DEFAULT_THRESHOLDS)
    assert result.lead_stage == LeadStage.NEW
    assert result.is_active is True


def test_classification_is_total() -> None:
    statuses = [None, "", "Open", "Won", "Lost", "Cancelled", "Quote Sent"]
    quotes = [
        None,
        _quote(""),
        _quote("draft"),
        _quote("draft", requested=True),
        _quote("draft", requested=True, received=True),
        _quote("sent"),
        _quote("approved"),
        _quote("declined"),
    ]
    rollups = [None, CommsRollup(), _rollup(0), _rollup(13), _rollup(14), _rollup(90)]
    for status, quote, rollup in itertools.product(statuses, quotes, rollups):
        result = compute_lead_stage(_opp(status), quote, rollup, DEFAULT_THRESHOLDS)
        assert isinstance(result.lead_stage, LeadStage)
        assert result.stage_reason


def test_rejects_thresholds_of_wrong_shape() -> None:
    with pytest.raises(InvalidConfiguration):
        compute_lead_stage(_opp("Open"), None, None, {"stalled_after_days": 14})


def test_rejects_thresholds_with_wrong_field_types() -> None:
    with pytest.raises(InvalidConfiguration):
        compute_lead_stage(_opp("Open"), None, _rollup(20), Thresholds(stalled_after_days="14"))
