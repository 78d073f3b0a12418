from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from leadview.domain.models import Opportunity, Quote, QuoteSnapshot

_OLDEST = datetime.min.replace(tzinfo=UTC)


def resolve_primary_quote(
    opportunity: Opportunity, quotes_for_opportunity: Iterable[Quote] | None
) -> QuoteSnapshot | None:
    candidates = [quote for quote in quotes_for_opportunity or () if not quote.is_deleted]
    if not candidates:
        return None

    if opportunity.primary_quote_id:
        for quote in candidates:
            if quote.quote_id == opportunity.primary_quote_id:
                return QuoteSnapshot.from_quote(quote)

    # Latest created wins; equal timestamps fall back to the highest quote id.
    latest = max(candidates, key=_recency_key)
    return QuoteSnapshot.from_quote(latest)


def _recency_key(quote: Quote) -> tuple[datetime, str]:
    return (quote.created_at or _OLDEST, quote.quote_id or "")
