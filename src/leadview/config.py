from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from leadview.domain.rules import InvalidConfiguration
from leadview.domain.stages import LeadStage

CONFIG_FILENAME = "leadview.yaml"
DEFAULT_EVENTS_PATH = Path("data") / "events.ndjson"
DEFAULT_EXCLUDED_STATUSES = ("archived", "duplicate", "spam", "test")


@dataclass(frozen=True)
class RecencyBand:
    max_days: int
    points: int


_COUNT_FIELDS = (
    "stalled_after_days",
    "stale_penalty",
    "unread_bonus",
    "unassigned_penalty",
    "hot_min_score",
    "warm_min_score",
    "reply_after_days",
    "archive_after_days",
)


def _check_count(key: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfiguration(f"{key} must be an integer.")
    if value < 0:
        raise InvalidConfiguration(f"{key} must not be negative.")
    return value


def _check_hours(key: str, value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfiguration(f"{key} must be a number.")
    if value < 0:
        raise InvalidConfiguration(f"{key} must not be negative.")
    return value


def _check_recency_bands(bands: tuple[Any, ...]) -> None:
    for band in bands:
        if not isinstance(band, RecencyBand):
            raise InvalidConfiguration("recency_bands entries must be RecencyBand values.")
        if _check_count("recency_bands max_days", band.max_days) is None:
            raise InvalidConfiguration("recency_bands entries need max_days.")
        if _check_count("recency_bands points", band.points) is None:
            raise InvalidConfiguration("recency_bands entries need points.")
    for earlier, later in zip(bands, bands[1:]):
        if later.max_days < earlier.max_days:
            raise InvalidConfiguration("recency_bands must be ordered by max_days.")
        # Staleness must never raise the score.
        if later.points > earlier.points:
            raise InvalidConfiguration("recency_bands points must not increase with max_days.")


def _check_stage_scores(scores: Any) -> None:
    if not isinstance(scores, Mapping):
        raise InvalidConfiguration("stage_scores must be a mapping.")
    for stage, score in scores.items():
        if not isinstance(stage, LeadStage):
            raise InvalidConfiguration(f"Unknown stage in stage_scores: {stage}")
        if isinstance(score, bool) or not isinstance(score, int):
            raise InvalidConfiguration(f"stage_scores.{stage.value} must be an integer.")


@dataclass(frozen=True)
class Thresholds:
    """Numeric cutoffs for the stage, temperature and next-action stages.

    ``None`` on any field disables the rule that reads it. Values are checked
    on construction, so a ``Thresholds`` built in code is held to the same
    rules as one loaded from ``leadview.yaml``.
    """

    stalled_after_days: int | None = None
    stale_penalty: int | None = None
    recency_bands: tuple[RecencyBand, ...] = ()
    stage_scores: Mapping[LeadStage, int] = field(default_factory=dict)
    unread_bonus: int | None = None
    unassigned_penalty: int | None = None
    hot_min_score: int | None = None
    warm_min_score: int | None = None
    reply_after_days: int | None = None
    reply_sla_hours: float | None = None
    archive_after_days: int | None = None

    def __post_init__(self) -> None:
        for name in _COUNT_FIELDS:
            _check_count(name, getattr(self, name))
        _check_hours("reply_sla_hours", self.reply_sla_hours)
        if not isinstance(self.recency_bands, (tuple, list)):
            raise InvalidConfiguration("recency_bands must be a sequence of RecencyBand.")
        object.__setattr__(self, "recency_bands", tuple(self.recency_bands))
        _check_recency_bands(self.recency_bands)
        _check_stage_scores(self.stage_scores)
        if (
            self.hot_min_score is not None
            and self.warm_min_score is not None
            and self.warm_min_score > self.hot_min_score
        ):
            raise InvalidConfiguration("warm_min_score must not exceed hot_min_score.")
        new_score = self.stage_scores.get(LeadStage.NEW)
        stalled_score = self.stage_scores.get(LeadStage.STALLED)
        # A lead turning stalled must not gain base points.
        if new_score is not None and stalled_score is not None and stalled_score > new_score:
            raise InvalidConfiguration("stage_scores.stalled must not exceed stage_scores.new.")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Thresholds:
        if not isinstance(data, Mapping):
            raise InvalidConfiguration("Thresholds must be a mapping.")
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise InvalidConfiguration(f"Unknown threshold keys: {', '.join(sorted(unknown))}")
        return cls(
            stalled_after_days=_count(data, "stalled_after_days"),
            stale_penalty=_count(data, "stale_penalty"),
            recency_bands=_recency_bands(data.get("recency_bands")),
            stage_scores=_stage_scores(data.get("stage_scores")),
            unread_bonus=_count(data, "unread_bonus"),
            unassigned_penalty=_count(data, "unassigned_penalty"),
            hot_min_score=_count(data, "hot_min_score"),
            warm_min_score=_count(data, "warm_min_score"),
            reply_after_days=_count(data, "reply_after_days"),
            reply_sla_hours=_hours(data, "reply_sla_hours"),
            archive_after_days=_count(data, "archive_after_days"),
        )


    def to_mapping(self) -> dict[str, Any]:
        return {
            "stalled_after_days": self.stalled_after_days,
            "stale_penalty": self.stale_penalty,
            "recency_bands": [
                {"max_days": band.max_days, "points": band.points} for band in self.recency_bands
            ],
            "stage_scores": {stage.value: score for stage, score in self.stage_scores.items()},
            "unread_bonus": self.unread_bonus,
            "unassigned_penalty": self.unassigned_penalty,
            "hot_min_score": self.hot_min_score,
            "warm_min_score": self.warm_min_score,
            "reply_after_days": self.reply_after_days,
            "reply_sla_hours": self.reply_sla_hours,
            "archive_after_days": self.archive_after_days,
        }


DEFAULT_THRESHOLDS = Thresholds(
    stalled_after_days=14,
    stale_penalty=15,
    recency_bands=(RecencyBand(max_days=2, points=20), RecencyBand(max_days=7, points=10)),
    stage_scores={
        LeadStage.NEW: 30,
        LeadStage.STALLED: 10,
        LeadStage.QUOTE_DRAFT: 30,
        LeadStage.QUOTE_REQUESTED: 35,
        LeadStage.PRICING_RECEIVED: 40,
        LeadStage.QUOTE_SENT: 45,
        LeadStage.QUOTE_APPROVED: 55,
        LeadStage.WON: 0,
        LeadStage.LOST: 0,
        LeadStage.CANCELLED: 0,
    },
    unread_bonus=15,
    unassigned_penalty=5,
    hot_min_score=60,
    warm_min_score=30,
    reply_after_days=2,
    reply_sla_hours=24,
    archive_after_days=21,
)


def ensure_thresholds(thresholds: Any) -> Thresholds:
    if not isinstance(thresholds, Thresholds):
        raise InvalidConfiguration(
            f"thresholds must be a Thresholds instance, got {type(thresholds).__name__}."
        )
    return thresholds


@dataclass(frozen=True)
class EventsConfig:
    path: Path
    enabled: bool


@dataclass(frozen=True)
class LeadviewConfig:
    thresholds: Thresholds
    excluded_statuses: tuple[str, ...]
    events: EventsConfig
    path: Path | None


class ConfigError(RuntimeError):
    pass


def default_config() -> LeadviewConfig:
    return LeadviewConfig(
        thresholds=DEFAULT_THRESHOLDS,
        excluded_statuses=DEFAULT_EXCLUDED_STATUSES,
        events=EventsConfig(path=DEFAULT_EVENTS_PATH, enabled=False),
        path=None,
    )


def load_config(config_path: Path | None = None) -> LeadviewConfig:
    if config_path is None:
        config_path = Path(CONFIG_FILENAME)
        if not config_path.exists():
            return default_config()
    if not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config is not valid YAML: {config_path}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping.")
    try:
        thresholds = _parse_thresholds(data.get("thresholds"))
    except InvalidConfiguration as exc:
        raise ConfigError(f"Invalid thresholds: {exc}") from exc
    return LeadviewConfig(
        thresholds=thresholds,
        excluded_statuses=_parse_eligibility(data.get("eligibility")),
        events=_parse_events(data.get("events"), config_path),
        path=config_path,
    )


def write_default_config(config_path: Path) -> Path:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "thresholds": DEFAULT_THRESHOLDS.to_mapping(),
        "eligibility": {"excluded_statuses": list(DEFAULT_EXCLUDED_STATUSES)},
        "events": {"path": str(DEFAULT_EVENTS_PATH), "enabled": True},
    }
    config_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    return config_path


def _parse_thresholds(thresholds_data: Any) -> Thresholds:
    # A config without a thresholds section runs with the shipped defaults.
    if thresholds_data is None:
        return DEFAULT_THRESHOLDS
    return Thresholds.from_mapping(thresholds_data)


def _parse_eligibility(eligibility_data: Any) -> tuple[str, ...]:
    if eligibility_data is None:
        return DEFAULT_EXCLUDED_STATUSES
    if not isinstance(eligibility_data, dict):
        raise ConfigError("Invalid eligibility configuration.")
    statuses = eligibility_data.get("excluded_statuses", list(DEFAULT_EXCLUDED_STATUSES))
    if not isinstance(statuses, list) or not all(isinstance(s, str) for s in statuses):
        raise ConfigError("eligibility.excluded_statuses must be a list of strings.")
    return tuple(statuses)


def _parse_events(events_data: Any, config_path: Path) -> EventsConfig:
    if events_data is None:
        return EventsConfig(path=DEFAULT_EVENTS_PATH, enabled=False)
    if not isinstance(events_data, dict):
        raise ConfigError("Invalid events configuration.")
    raw_path = events_data.get("path") or str(DEFAULT_EVENTS_PATH)
    if not isinstance(raw_path, str):
        raise ConfigError("events.path must be a string.")
    path = Path(raw_path)
    if not path.is_absolute():
        # Relative to the directory holding the config file.
        path = (config_path.parent / path).resolve()
    return EventsConfig(path=path, enabled=bool(events_data.get("enabled", True)))


def _count(data: Mapping[str, Any], key: str) -> int | None:
    return _check_count(key, data.get(key))


def _hours(data: Mapping[str, Any], key: str) -> float | None:
    return _check_hours(key, data.get(key))


def _recency_bands(bands_data: Any) -> tuple[RecencyBand, ...]:
    if bands_data is None:
        return ()
    if not isinstance(bands_data, list):
        raise InvalidConfiguration("recency_bands must be a list.")
    bands = []
    for entry in bands_data:
        if not isinstance(entry, Mapping):
            raise InvalidConfiguration("recency_bands entries must be mappings.")
        max_days = _count(entry, "max_days")
        points = entry.get("points")
        if max_days is None:
            raise InvalidConfiguration("recency_bands entries need max_days.")
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise InvalidConfiguration("recency_bands points must be a non-negative integer.")
        bands.append(RecencyBand(max_days=max_days, points=points))
    bands.sort(key=lambda band: band.max_days)
    return tuple(bands)


def _stage_scores(scores_data: Any) -> dict[LeadStage, int]:
    if scores_data is None:
        return {}
    if not isinstance(scores_data, Mapping):
        raise InvalidConfiguration("stage_scores must be a mapping.")
    scores: dict[LeadStage, int] = {}
    for raw_stage, score in scores_data.items():
        try:
            stage = LeadStage(raw_stage)
        except ValueError as exc:
            raise InvalidConfiguration(f"Unknown stage in stage_scores: {raw_stage}") from exc
        if isinstance(score, bool) or not isinstance(score, int):
            raise InvalidConfiguration(f"stage_scores.{stage.value} must be an integer.")
        scores[stage] = score
    return scores
