from leadview.domain.models import Opportunity
from leadview.services.eligibility import is_eligible


def _opp(**overrides) -> Opportunity:
    record = {"id": "opp-1", "status": "Open"}
    record.update(overrides)
    return Opportunity.from_record(record)


def test_open_opportunity_is_eligible() -> None:
    assert is_eligible(_opp())


def test_missing_status_is_eligible() -> None:
    assert is_eligible(Opportunity.from_record({"id": "opp-1"}))
    assert is_eligible(_opp(status=None))
    assert is_eligible(_opp(status=42))


def test_soft_deleted_is_not_eligible() -> None:
    assert not is_eligible(_opp(deleted_at="2026-01-01T00:00:00Z"))
    assert not is_eligible(_opp(is_deleted=True))


def test_archived_is_not_eligible() -> None:
    assert not is_eligible(_opp(archived=True))
    assert not is_eligible(_opp(archived_at="2026-01-01T00:00:00Z"))
    assert not is_eligible(_opp(status="Archived"))


def test_excluded_status_is_configurable() -> None:
    assert not is_eligible(_opp(status="Spam"))
    assert is_eligible(_opp(status="Spam"), excluded_statuses=[])
    assert not is_eligible(_opp(status="On Hold"), excluded_statuses=["on_hold"])


def test_terminal_opportunities_stay_eligible() -> None:
    assert is_eligible(_opp(status="Won"))
    assert is_eligible(_opp(status="Lost"))
