from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from leadview.config import RecencyBand, Thresholds, ensure_thresholds
from leadview.domain.models import CommsRollup, TemperatureResult
from leadview.domain.stages import TERMINAL_STAGES, LeadStage, TemperatureBucket


@dataclass(frozen=True)
class _ScoreInputs:
    stage: LeadStage
    rollup: CommsRollup
    thresholds: Thresholds

    @property
    def active(self) -> bool:
        return self.stage not in TERMINAL_STAGES

    @property
    def days(self) -> int | None:
        return self.rollup.days_since_customer_contact

    @property
    def recency_band(self) -> RecencyBand | None:
        if self.days is None:
            return None
        for band in self.thresholds.recency_bands:
            if self.days <= band.max_days:
                return band
        return None


@dataclass(frozen=True)
class Contribution:
    """An independently labeled score adjustment; every one that applies is added."""

    predicate: Callable[[_ScoreInputs], bool]
    points: Callable[[_ScoreInputs], int]
    label: Callable[[_ScoreInputs], str]


CONTRIBUTIONS: tuple[Contribution, ...] = (
    Contribution(
        lambda c: c.stage in c.thresholds.stage_scores,
        lambda c: c.thresholds.stage_scores[c.stage],
        lambda c: f"Stage {c.stage.value.replace('_', ' ')}",
    ),
    Contribution(
        lambda c: c.active and c.recency_band is not None,
        lambda c: c.recency_band.points,
        lambda c: f"Customer contact within {c.recency_band.max_days} days",
    ),
    Contribution(
        lambda c: c.active
        and c.days is not None
        and c.thresholds.stalled_after_days is not None
        and c.thresholds.stale_penalty is not None
        and c.days >= c.thresholds.stalled_after_days,
        lambda c: -c.thresholds.stale_penalty,
        lambda c: f"No customer contact for {c.thresholds.stalled_after_days}+ days",
    ),
    Contribution(
        lambda c: c.active and c.rollup.has_unread and c.thresholds.unread_bonus is not None,
        lambda c: c.thresholds.unread_bonus,
        lambda c: "Unread customer message",
    ),
    Contribution(
        lambda c: c.active
        and c.rollup.thread_count > 0
        and not c.rollup.is_assigned
        and c.thresholds.unassigned_penalty is not None,
        lambda c: -c.thresholds.unassigned_penalty,
        lambda c: "No owner assigned",
    ),
)


def compute_temperature(
    stage: LeadStage,
    rollup: CommsRollup | None,
    thresholds: Thresholds,
) -> TemperatureResult:
    ensure_thresholds(thresholds)
    inputs = _ScoreInputs(stage=stage, rollup=rollup or CommsRollup(), thresholds=thresholds)

    score = 0
    reasons: list[str] = []
    for contribution in CONTRIBUTIONS:
        if not contribution.predicate(inputs):
            continue
        points = contribution.points(inputs)
        score += points
        reasons.append(f"{contribution.label(inputs)} ({points:+d})")

    score = max(score, 0)
    return TemperatureResult(
        temperature_score=score,
        temperature_bucket=bucket_for(score, thresholds),
        temperature_reasons=tuple(reasons),
    )


def bucket_for(score: int, thresholds: Thresholds) -> TemperatureBucket:
    if thresholds.hot_min_score is not None and score >= thresholds.hot_min_score:
        return TemperatureBucket.HOT
    if thresholds.warm_min_score is not None and score >= thresholds.warm_min_score:
        return TemperatureBucket.WARM
    return TemperatureBucket.COLD
