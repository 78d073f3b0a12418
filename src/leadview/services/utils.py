from __future__ import annotations

from datetime import UTC, datetime

from leadview.domain.rules import coerce_datetime


def utc_now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def resolve_now(now: datetime | str | None) -> datetime:
    """Normalize a caller-supplied clock value; anything unusable falls back to the wall clock."""
    resolved = coerce_datetime(now)
    return resolved if resolved is not None else utc_now()
