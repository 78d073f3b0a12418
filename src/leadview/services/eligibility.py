from __future__ import annotations

from collections.abc import Iterable

from leadview.config import DEFAULT_EXCLUDED_STATUSES
from leadview.domain.models import Opportunity
from leadview.domain.rules import normalize_status


def is_eligible(
    opportunity: Opportunity,
    excluded_statuses: Iterable[str] = DEFAULT_EXCLUDED_STATUSES,
) -> bool:
    """Whether an opportunity belongs in the lead console.

    Missing status is eligible; only explicit deletion, archiving or an
    excluded status hides a record.
    """
    if opportunity.is_deleted or opportunity.is_archived:
        return False
    status = normalize_status(opportunity.status)
    if not status:
        return True
    return status not in {normalize_status(s) for s in excluded_statuses}
