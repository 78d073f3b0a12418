import json
from datetime import UTC, datetime, timedelta

import pytest

from leadview.config import DEFAULT_THRESHOLDS
from leadview.domain.models import CommsRollup, Conversation, Opportunity
from leadview.domain.rules import InvalidConfiguration
from leadview.domain.stages import LeadStage, NextActionKind, TemperatureBucket, TouchDirection
from leadview.services.compose import compute_lead_views, group_by_opportunity
from leadview.services.eligibility import is_eligible

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _ago(**delta) -> str:
    return (NOW - timedelta(**delta)).isoformat()


def _batch() -> tuple[list[dict], list[dict], list[dict]]:
    opportunities = [
        {"id": "opp-sent", "status": "Quote Sent", "customer_name": "Acme Bio", "customer_id": "c-1"},
        {"id": "opp-deleted", "status": "Open", "deleted_at": _ago(days=1)},
        {"id": "opp-stalled", "status": "Open", "customer_name": "Birch Labs"},
        {"id": "opp-won", "status": "Won", "customer_name": "Cedar Co"},
        {"id": "opp-spam", "status": "spam"},
        {"id": "opp-bare"},
    ]
    quotes = [
        {"id": "q-1", "opportunity_id": "opp-sent", "status": "Sent", "created_at": _ago(days=3)},
        {"id": "q-orphan", "opportunity_id": "missing", "status": "Sent"},
    ]
    conversations = [
        {
            "id": "t-1",
            "opportunity_id": "opp-sent",
            "last_customer_message_at": _ago(days=1),
            "last_message_at": _ago(days=1),
        },
        {
            "id": "t-2",
            "opportunity_id": "opp-stalled",
            "last_customer_message_at": _ago(days=20),
        },
    ]
    return opportunities, quotes, conversations


def _views():
    opportunities, quotes, conversations = _batch()
    return compute_lead_views(opportunities, quotes, conversations, DEFAULT_THRESHOLDS, now=NOW)


def test_output_keeps_eligible_opportunities_in_input_order() -> None:
    opportunities, _, _ = _batch()
    expected = [
        record["id"] for record in opportunities if is_eligible(Opportunity.from_record(record))
    ]
    assert [view.opportunity_id for view in _views()] == expected
    assert expected == ["opp-sent", "opp-stalled", "opp-won", "opp-bare"]


def test_quote_sent_with_recent_customer_reply_waits() -> None:
    view = _views()[0]
    assert view.lead_stage == LeadStage.QUOTE_SENT
    assert view.next_action == NextActionKind.WAIT
    assert view.primary_quote_snapshot.quote_id == "q-1"
    assert view.comms_rollup.last_touch_direction == TouchDirection.CUSTOMER
    assert view.comms_rollup.days_since_customer_contact == 1


def test_silent_lead_without_quote_is_stalled_and_cold() -> None:
    view = _views()[1]
    assert view.lead_stage == LeadStage.STALLED
    assert view.temperature_bucket == TemperatureBucket.COLD
    assert view.temperature_score == 0


def test_won_lead_is_inactive_with_no_action() -> None:
    view = _views()[2]
    assert view.lead_stage == LeadStage.WON
    assert view.is_active is False
    assert view.next_action == NextActionKind.NONE
    assert view.follow_up_due_at is None


def test_bare_opportunity_is_null_safe() -> None:
    view = _views()[3]
    assert view.primary_quote_snapshot is None
    assert view.comms_rollup == CommsRollup()
    assert view.lead_stage == LeadStage.NEW
    assert view.temperature_reasons == ("Stage new (+30)",)
    assert view.next_action == NextActionKind.MAKE_FIRST_CONTACT
    assert view.follow_up_due_at == NOW


def test_repeat_runs_are_byte_identical() -> None:
    first = json.dumps([view.to_record() for view in _views()], sort_keys=True)
    second = json.dumps([view.to_record() for view in _views()], sort_keys=True)
    assert first == second


def test_records_keep_nullable_fields() -> None:
    record = _views()[3].to_record()
    assert record["primary_quote_snapshot"] is None
    assert record["follow_up_due_at"] == NOW.isoformat()
    assert record["comms_rollup"]["last_touch_direction"] is None
    assert record["comms_rollup"]["days_since_customer_contact"] is None
    assert record["customer_name"] is None


def test_accepts_pregrouped_children() -> None:
    opportunities, quotes, conversations = _batch()
    grouped_quotes = {"opp-sent": [{"id": "q-1", "status": "Sent", "created_at": _ago(days=3)}]}
    grouped_conversations = group_by_opportunity(conversations, Conversation)
    views = compute_lead_views(
        opportunities, grouped_quotes, grouped_conversations, DEFAULT_THRESHOLDS, now=NOW
    )
    assert views == _views()


def test_malformed_records_are_dropped_or_defaulted() -> None:
    views = compute_lead_views(
        [None, "opp", {"id": "opp-1", "status": 7, "created_at": "garbage"}],
        [42, {"opportunity_id": "opp-1", "created_at": None}],
        [object(), {"opportunity_id": "opp-1", "unread": "yes"}],
        DEFAULT_THRESHOLDS,
        now=NOW,
    )
    assert len(views) == 1
    assert views[0].comms_rollup.has_unread is True
    assert views[0].lead_stage == LeadStage.QUOTE_DRAFT


def test_empty_batch() -> None:
    assert compute_lead_views([], [], [], DEFAULT_THRESHOLDS, now=NOW) == []
    assert compute_lead_views(None, None, None, DEFAULT_THRESHOLDS, now=NOW) == []


def test_rejects_thresholds_of_wrong_shape() -> None:
    with pytest.raises(InvalidConfiguration):
        compute_lead_views([], [], [], {"hot_min_score": 60}, now=NOW)


def test_score_never_rises_as_a_lead_goes_stale() -> None:
    def score_after(days: int) -> int:
        conversation = {
            "id": "t-1",
            "opportunity_id": "opp-1",
            "assigned_to": "sam",
            "last_customer_message_at": _ago(days=days),
        }
        (view,) = compute_lead_views(
            [{"id": "opp-1", "status": "Open"}], [], [conversation], DEFAULT_THRESHOLDS, now=NOW
        )
        return view.temperature_score

    assert score_after(13) == 30
    assert score_after(14) == 0
    scores = [score_after(days) for days in range(0, 40)]
    assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))


def test_non_iterable_grouped_children_are_ignored() -> None:
    views = compute_lead_views([{"id": "o"}], {"o": 5}, {"o": None}, DEFAULT_THRESHOLDS, now=NOW)
    assert len(views) == 1
    assert views[0].primary_quote_snapshot is None
    assert views[0].comms_rollup.thread_count == 0
    (view,) = compute_lead_views([{"id": "o"}], 5, "threads", DEFAULT_THRESHOLDS, now=NOW)
    assert view.opportunity_id == "o"


def test_views_carry_opportunity_contact_details() -> None:
    (view,) = compute_lead_views(
        [
            {
                "id": "opp-1",
                "number": "P-7",
                "customer_email": "ops@acme.test",
                "customer_phone": "555-0100",
            }
        ],
        [],
        [],
        DEFAULT_THRESHOLDS,
        now=NOW,
    )
    assert view.opportunity_number == "P-7"
    record = view.to_record()
    assert record["customer_email"] == "ops@acme.test"
    assert record["customer_phone"] == "555-0100"
    assert _views()[3].to_record()["opportunity_number"] is None
