from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from leadview.domain.models import Opportunity

SECTIONS = ("opportunities", "quotes", "conversations")


@dataclass(frozen=True)
class RecordSnapshot:
    """Already-fetched records handed to the composer."""

    opportunities: list[dict[str, Any]]
    quotes: list[dict[str, Any]]
    conversations: list[dict[str, Any]]

    def find_opportunity(self, opportunity_id: str) -> dict[str, Any] | None:
        for record in self.opportunities:
            if Opportunity.from_record(record).opportunity_id == opportunity_id:
                return record
        return None


class SnapshotError(RuntimeError):
    pass


def load_snapshot(path: Path) -> RecordSnapshot:
    """Read a YAML or JSON file with opportunities, quotes and conversations lists."""
    if not path.exists():
        raise SnapshotError(f"Snapshot not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise SnapshotError(f"Snapshot is not valid YAML/JSON: {path}") from exc
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a mapping of record lists.")
    sections = {}
    for name in SECTIONS:
        records = data.get(name) or []
        if not isinstance(records, list):
            raise SnapshotError(f"Snapshot {name} must be a list.")
        sections[name] = [record for record in records if isinstance(record, dict)]
    return RecordSnapshot(**sections)
