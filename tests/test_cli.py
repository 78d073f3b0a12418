import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from leadview import __version__
from leadview.cli import app

runner = CliRunner()
NOW = "2026-03-10T12:00:00+00:00"


def _snapshot(tmp_path: Path) -> Path:
    records = {
        "opportunities": [
            {"id": "opp-sent", "status": "Quote Sent", "customer_name": "Acme Bio"},
            {"id": "opp-won", "status": "Won", "customer_name": "Cedar Co"},
            {"id": "opp-spam", "status": "Spam"},
        ],
        "quotes": [
            {
                "id": "q-1",
                "opportunity_id": "opp-sent",
                "status": "Sent",
                "created_at": "2026-03-07T12:00:00+00:00",
            }
        ],
        "conversations": [
            {
                "id": "t-1",
                "opportunity_id": "opp-sent",
                "last_customer_message_at": "2026-03-05T12:00:00+00:00",
            }
        ],
    }
    path = tmp_path / "records.yaml"
    path.write_text(yaml.safe_dump(records), encoding="utf-8")
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_compute_json(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["compute", str(_snapshot(tmp_path)), "--now", NOW, "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert [lead["opportunity_id"] for lead in payload] == ["opp-sent", "opp-won"]
    assert payload[0]["next_action"] == "follow_up_with_customer"
    assert payload[0]["follow_up_due_at"] == "2026-03-06T12:00:00+00:00"


def test_compute_filters_by_stage(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(
        app, ["compute", str(_snapshot(tmp_path)), "--now", NOW, "--stage", "won"]
    )
    assert result.exit_code == 0, result.output
    assert "opp-won" in result.output
    assert "opp-sent" not in result.output


def test_compute_rejects_unknown_stage(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["compute", str(_snapshot(tmp_path)), "--stage", "hot"])
    assert result.exit_code == 1
    assert "stage must be one of" in result.output


def test_task_for_active_lead(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(
        app, ["task", "opp-sent", str(_snapshot(tmp_path)), "--now", NOW, "--json"]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["title"] == "Follow up: Acme Bio"
    assert payload["task_type"] == "call"


def test_task_for_won_lead_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["task", "opp-won", str(_snapshot(tmp_path)), "--now", NOW])
    assert result.exit_code == 1
    assert "no next action" in result.output


def test_task_for_ineligible_lead_fails(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["task", "opp-spam", str(_snapshot(tmp_path)), "--now", NOW])
    assert result.exit_code == 1
    assert "not eligible" in result.output


def test_events_written_when_enabled(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert runner.invoke(app, ["init"]).exit_code == 0
    result = runner.invoke(app, ["compute", str(_snapshot(tmp_path)), "--now", NOW])
    assert result.exit_code == 0, result.output
    events = (tmp_path / "data" / "events.ndjson").read_text(encoding="utf-8").splitlines()
    assert json.loads(events[-1])["lead_count"] == 2


def test_export_csv(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    out = tmp_path / "leads.csv"
    result = runner.invoke(
        app, ["export", "csv", str(_snapshot(tmp_path)), "--out", str(out), "--now", NOW]
    )
    assert result.exit_code == 0, result.output
    assert out.read_text(encoding="utf-8").startswith("opportunity_id,")


def test_thresholds_show_uses_config(tmp_path: Path) -> None:
    config = tmp_path / "custom.yaml"
    config.write_text("thresholds:\n  stalled_after_days: 5\n", encoding="utf-8")
    result = runner.invoke(app, ["thresholds", "show", "--config", str(config)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["stalled_after_days"] == 5
    assert payload["hot_min_score"] is None
