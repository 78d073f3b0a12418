from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from openpyxl import Workbook

from leadview.domain.models import LeadView

COLUMNS = [
    "opportunity_id",
    "opportunity_number",
    "customer_name",
    "customer_email",
    "customer_phone",
    "title",
    "lead_stage",
    "is_active",
    "temperature_score",
    "temperature_bucket",
    "next_action",
    "next_action_reason",
    "follow_up_due_at",
    "primary_quote_status",
    "primary_quote_value",
    "thread_count",
    "has_unread",
    "last_touch_direction",
    "days_since_customer_contact",
    "temperature_reasons",
]


def lead_view_row(view: LeadView) -> dict[str, Any]:
    """Flatten a lead view into one spreadsheet row."""
    record = view.to_record()
    quote = record["primary_quote_snapshot"] or {}
    comms = record["comms_rollup"]
    return {
        "opportunity_id": record["opportunity_id"],
        "opportunity_number": record["opportunity_number"],
        "customer_name": record["customer_name"],
        "customer_email": record["customer_email"],
        "customer_phone": record["customer_phone"],
        "title": record["title"],
        "lead_stage": record["lead_stage"],
        "is_active": record["is_active"],
        "temperature_score": record["temperature_score"],
        "temperature_bucket": record["temperature_bucket"],
        "next_action": record["next_action"],
        "next_action_reason": record["next_action_reason"],
        "follow_up_due_at": record["follow_up_due_at"],
        "primary_quote_status": quote.get("status"),
        "primary_quote_value": quote.get("value"),
        "thread_count": comms["thread_count"],
        "has_unread": comms["has_unread"],
        "last_touch_direction": comms["last_touch_direction"],
        "days_since_customer_contact": comms["days_since_customer_contact"],
        "temperature_reasons": "; ".join(record["temperature_reasons"]),
    }


def export_excel(views: Iterable[LeadView], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.title = "leads"
    ws.append(COLUMNS)
    for view in views:
        row = lead_view_row(view)
        ws.append([row[column] for column in COLUMNS])
    wb.save(out_path)


def export_csv(views: Iterable[LeadView], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=COLUMNS)
        writer.writeheader()
        for view in views:
            writer.writerow(lead_view_row(view))
