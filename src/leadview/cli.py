from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from leadview import __version__
from leadview.config import (
    CONFIG_FILENAME,
    ConfigError,
    LeadviewConfig,
    load_config,
    write_default_config,
)
from leadview.domain import rules
from leadview.domain.models import LeadView
from leadview.domain.rules import InvalidConfiguration, InvalidState, ValidationError
from leadview.domain.stages import LeadStage, TemperatureBucket
from leadview.services import exports
from leadview.services.compose import compute_lead_views
from leadview.services.events import EventLogger
from leadview.services.ranking import rank_lead_views
from leadview.services.snapshot import RecordSnapshot, SnapshotError, load_snapshot
from leadview.services.tasks import create_follow_up_task

app = typer.Typer(help="Lead view CLI")
export_app = typer.Typer(help="Exports")
thresholds_app = typer.Typer(help="Threshold configuration")

app.add_typer(export_app, name="export")
app.add_typer(thresholds_app, name="thresholds")

CONFIG_OPTION = typer.Option(None, "--config", help=f"Config file (default ./{CONFIG_FILENAME}).")
NOW_OPTION = typer.Option(None, "--now", help="Evaluation time, ISO 8601 (default: now).")


@app.callback()
def main_callback(
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("init")
def init(
    config: Path = typer.Option(Path(CONFIG_FILENAME), "--config"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config."),
) -> None:
    """Write a config file with the default thresholds."""
    if config.exists() and not force:
        raise typer.BadParameter(f"Config already exists: {config}. Use --force to overwrite.")
    write_default_config(config)
    typer.echo(f"Config created: {config}")


@app.command("compute")
def compute(
    snapshot: Path = typer.Argument(..., help="YAML/JSON file of records."),
    config: Path | None = CONFIG_OPTION,
    now: str | None = NOW_OPTION,
    stage: str | None = typer.Option(None, "--stage", help="Only show this lead stage."),
    bucket: str | None = typer.Option(None, "--bucket", help="Only show this temperature."),
    ranked: bool = typer.Option(
        False, "--ranked/--input-order", help="Sort by follow-up due date and temperature."
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Write events when enabled in config."
    ),
) -> None:
    """Compute lead views from a record snapshot."""
    try:
        rules.validate_enum(stage, [s.value for s in LeadStage], "stage")
        rules.validate_enum(bucket, [b.value for b in TemperatureBucket], "bucket")
    except ValidationError as exc:
        _exit_with_error(str(exc))
    cfg = _load_config(config)
    records = _load_snapshot(snapshot)
    views = _compute(cfg, records, now)
    _event_logger(cfg, enabled=events).lead_views_computed(
        views, opportunity_count=len(records.opportunities)
    )

    if stage:
        views = [v for v in views if v.lead_stage.value == stage]
    if bucket:
        views = [v for v in views if v.temperature_bucket.value == bucket]
    if ranked:
        views = rank_lead_views(views)

    if json_output:
        typer.echo(json.dumps([v.to_record() for v in views], indent=2))
        return
    if not views:
        typer.echo("No leads.")
        return
    for view in views:
        due = view.follow_up_due_at.isoformat() if view.follow_up_due_at else "-"
        typer.echo(
            f"{view.opportunity_id} | {view.customer_name or '-'} | {view.lead_stage.value} | "
            f"{view.temperature_bucket.value} {view.temperature_score} | "
            f"{view.next_action.value} | {due}"
        )


@app.command("task")
def task(
    opportunity_id: str = typer.Argument(...),
    snapshot: Path = typer.Argument(..., help="YAML/JSON file of records."),
    config: Path | None = CONFIG_OPTION,
    now: str | None = NOW_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Emit JSON output."),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Write events when enabled in config."
    ),
) -> None:
    """Build the follow-up task request for one lead."""
    cfg = _load_config(config)
    records = _load_snapshot(snapshot)
    opportunity = records.find_opportunity(opportunity_id)
    if opportunity is None:
        _exit_with_error(f"Opportunity not found: {opportunity_id}")
    views = _compute(cfg, records, now)
    view = next((v for v in views if v.opportunity_id == opportunity_id), None)
    if view is None:
        _exit_with_error(f"Opportunity {opportunity_id} is not eligible for the lead console.")
    try:
        request = create_follow_up_task(view, opportunity)
    except InvalidState as exc:
        _exit_with_error(str(exc))
    _event_logger(cfg, enabled=events).task_requested(request)

    if json_output:
        typer.echo(json.dumps(request.to_record(), indent=2))
        return
    due = request.due_at.isoformat() if request.due_at else "-"
    typer.echo(f"{request.title} | {request.task_type.value} | {request.priority.value} | {due}")
    typer.echo(request.description)


@export_app.command("csv")
def export_csv(
    snapshot: Path = typer.Argument(...),
    out: str = typer.Option(..., "--out"),
    config: Path | None = CONFIG_OPTION,
    now: str | None = NOW_OPTION,
) -> None:
    views = _compute(_load_config(config), _load_snapshot(snapshot), now)
    exports.export_csv(rank_lead_views(views), Path(out))
    typer.echo(f"Exported CSV to {out}")


@export_app.command("excel")
def export_excel(
    snapshot: Path = typer.Argument(...),
    out: str = typer.Option(..., "--out"),
    config: Path | None = CONFIG_OPTION,
    now: str | None = NOW_OPTION,
) -> None:
    views = _compute(_load_config(config), _load_snapshot(snapshot), now)
    exports.export_excel(rank_lead_views(views), Path(out))
    typer.echo(f"Exported Excel to {out}")


@thresholds_app.command("show")
def thresholds_show(config: Path | None = CONFIG_OPTION) -> None:
    cfg = _load_config(config)
    typer.echo(json.dumps(cfg.thresholds.to_mapping(), indent=2))


def _compute(cfg: LeadviewConfig, records: RecordSnapshot, now: str | None) -> list[LeadView]:
    try:
        evaluated_at = rules.parse_datetime(now, "now")
        return compute_lead_views(
            records.opportunities,
            records.quotes,
            records.conversations,
            cfg.thresholds,
            now=evaluated_at,
            excluded_statuses=cfg.excluded_statuses,
        )
    except (ValidationError, InvalidConfiguration) as exc:
        _exit_with_error(str(exc))


def _load_config(path: Path | None) -> LeadviewConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        _exit_with_error(str(exc))


def _load_snapshot(path: Path) -> RecordSnapshot:
    try:
        return load_snapshot(path)
    except SnapshotError as exc:
        _exit_with_error(str(exc))


def _exit_with_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _event_logger(cfg: LeadviewConfig, enabled: bool) -> EventLogger:
    return EventLogger(
        path=cfg.events.path, source="leadview", enabled=enabled and cfg.events.enabled
    )


if __name__ == "__main__":
    app()
