from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
C = TypeVar("C")


class ValidationError(ValueError):
    pass


class InvalidState(RuntimeError):
    pass


class InvalidConfiguration(ValueError):
    pass


def validate_enum(value: str | None, allowed: Iterable[str], field: str) -> None:
    if value is None:
        return
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")


def parse_datetime(value: str | None, field: str) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be ISO 8601.") from exc
    return _as_utc(parsed)


# Tolerant coercion for raw records. Bad data degrades to a default, never raises.


def coerce_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return _as_utc(value)
    # YAML loads bare dates as date objects.
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if not isinstance(value, str) or len(value.strip()) < 10:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def coerce_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return False


def coerce_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.replace(",", "").strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def normalize_status(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    folded = value.strip().lower().replace("_", " ").replace("-", " ")
    return " ".join(folded.split())


def first_value(record: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-empty value among ``keys`` (records use mixed naming)."""
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class Rule(Generic[C, T]):
    """One row of an ordered decision table: the first rule whose predicate holds wins."""

    predicate: Callable[[C], bool]
    result: T
    reason: Callable[[C], str]


def first_match(table: Iterable[Rule[C, T]], context: C) -> Rule[C, T] | None:
    for rule in table:
        if rule.predicate(context):
            return rule
    return None
