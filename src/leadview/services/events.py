from __future__ import annotations

import json
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from leadview.domain.models import LeadView, TaskCreationRequest
from leadview.services.utils import utc_now_iso


@dataclass
class EventLogger:
    path: Path
    source: str
    enabled: bool = True

    def log(self, *, event_type: str, **fields: object) -> None:
        if not self.enabled:
            return
        payload = {
            "ts": utc_now_iso(),
            "source": self.source,
            "event_type": event_type,
            **fields,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, sort_keys=True) + "\n")

    def lead_views_computed(self, views: Iterable[LeadView], *, opportunity_count: int) -> None:
        views = list(views)
        self.log(
            event_type="lead_views.computed",
            opportunity_count=opportunity_count,
            lead_count=len(views),
            stages=dict(sorted(Counter(v.lead_stage.value for v in views).items())),
            buckets=dict(sorted(Counter(v.temperature_bucket.value for v in views).items())),
        )

    def task_requested(self, request: TaskCreationRequest) -> None:
        self.log(
            event_type="task.requested",
            opportunity_id=request.opportunity_id,
            task_type=request.task_type.value,
            due_at=request.due_at.isoformat() if request.due_at else None,
        )
