from __future__ import annotations

import logging
from datetime import date as date_cls
from pathlib import Path
from typing import Optional

import typer

from .config import as_dict as config_as_dict
from .models import RecordValidationError, ValidationError, parse_iso_date
from .results import CorrelationResult, InsufficientData, OptimalRange, UndefinedStatistic
from .services import build_analysis_report, dashboard_summary
from .storage import JsonRecordStore, open_store
from .strength import exercise_progress
from .weekly import weekly_buckets, weekly_frame

app = typer.Typer(help="Analyse nutrition, blood pressure, body and workout logs.")

RecordsOption = typer.Option(
    None,
    "--records",
    "-r",
    help="Path to the records JSON file (defaults to $HEALTH_OPTIMIZER_RECORDS_FILE).",
)


def _fail(message: str, *, code: int = 1) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log analysis steps to stderr."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open_store(records: Optional[Path]) -> JsonRecordStore:
    try:
        return open_store(records)
    except ValueError as exc:
        _fail(f"Could not read records: {exc}")


def _as_of(text: Optional[str], *, option: str = "as-of") -> date_cls:
    if not text:
        return date_cls.today()
    try:
        return parse_iso_date(text, field=option)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_hint=f"--{option}") from exc


def _describe_correlation(label: str, result: object) -> str:
    if isinstance(result, CorrelationResult):
        return f"{label}: r={result.coefficient:.2f} ({result.strength.value}, n={result.n})"
    if isinstance(result, UndefinedStatistic):
        return f"{label}: undefined ({result.reason})"
    if isinstance(result, InsufficientData):
        return f"{label}: insufficient data ({result.available}/{result.required})"
    return f"{label}: n/a"


@app.command()
def analyze(
    records: Optional[Path] = RecordsOption,
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Analysis date (YYYY-MM-DD); defaults to today."),
) -> None:
    """
    Correlate nutrition with blood pressure, strength and weight, then print recommendations.
    """
    store = _open_store(records)
    try:
        report = build_analysis_report(store.snapshot(), as_of=_as_of(as_of))
    except RecordValidationError as exc:
        _fail(str(exc))

    typer.echo(report.status_message)
    typer.echo(_describe_correlation("Carbs vs systolic", report.carbs_bp))
    typer.echo(_describe_correlation("Protein vs strength gain", report.protein_strength))
    typer.echo(_describe_correlation("Calories vs weight", report.calories_weight))
    if isinstance(report.carb_range, OptimalRange):
        typer.echo(f"Optimal carb range: {report.carb_range.low}-{report.carb_range.high} g")
    typer.echo(f"Recomp status: {report.trend.status.value}")
    typer.echo("")
    typer.echo(report.recommendation.render())


@app.command()
def strength(
    exercise: str = typer.Argument(..., help="Exercise name, e.g. 'Bench Press'."),
    records: Optional[Path] = RecordsOption,
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Reference date for the 8-week comparison."),
) -> None:
    """
    Show e1RM, volume and PR history for one exercise.
    """
    store = _open_store(records)
    try:
        progress = exercise_progress(store.snapshot(), exercise, as_of=_as_of(as_of))
    except RecordValidationError as exc:
        _fail(str(exc))
    if isinstance(progress, InsufficientData):
        _fail(progress.reason)

    change = f"{progress.percent_change:+.1f}%" if progress.percent_change is not None else "n/a"
    typer.echo(
        f"{progress.exercise}: current e1RM {progress.current_e1rm:.1f}, "
        f"PR {progress.all_time_pr:.1f}, change {change}"
    )
    typer.echo(
        f"Loaded {progress.total_sets} sets across {progress.workouts} workouts "
        f"(last {progress.last_workout.isoformat()})."
    )
    history = progress.history.assign(date=progress.history["date"].dt.date)
    typer.echo(history.to_string(index=False))


@app.command()
def dashboard(records: Optional[Path] = RecordsOption) -> None:
    """
    Headline averages across all logged days and readings.
    """
    summary = dashboard_summary(_open_store(records).snapshot())
    typer.echo(f"Days logged: {summary.days_logged}")
    if summary.average_weight is not None:
        typer.echo(
            f"Average weight {summary.average_weight:.1f}, calories {summary.average_calories:.0f}, "
            f"carbs {summary.average_carbs:.1f} g"
        )
    typer.echo(f"BP readings: {summary.bp_readings}")
    if summary.average_bp is not None and summary.bp_category is not None:
        typer.echo(f"Average BP: {summary.average_bp} ({summary.bp_category.value})")


@app.command()
def weekly(records: Optional[Path] = RecordsOption) -> None:
    """
    Print Monday-start weekly averages and best session strength.
    """
    snapshot = _open_store(records).snapshot()
    try:
        snapshot.validate()
    except RecordValidationError as exc:
        _fail(str(exc))
    frame = weekly_frame(weekly_buckets(snapshot.daily_metrics, snapshot.sessions, snapshot.sets_by_session()))
    if frame.empty:
        typer.echo("No records to bucket yet.")
        return
    frame["week_start"] = frame["week_start"].dt.date
    typer.echo(frame.to_string(index=False))


@app.command("log-set")
def log_set(
    exercise: str = typer.Option(..., "--exercise", "-e", help="Exercise name (created if missing)."),
    reps: int = typer.Option(..., "--reps", help="Repetitions per set."),
    weight: float = typer.Option(..., "--weight", "-w", help="Load lifted."),
    sets: int = typer.Option(1, "--sets", "-s", help="Number of identical sets."),
    day: Optional[str] = typer.Option(None, "--date", "-d", help="Workout date (YYYY-MM-DD); defaults to today."),
    workout_type: str = typer.Option("", "--type", help="Workout label such as Push, Pull or Legs."),
    records: Optional[Path] = RecordsOption,
) -> None:
    """
    Log sets under the day's workout session.
    """
    store = _open_store(records)
    try:
        created = store.log_workout_set(
            day=_as_of(day, option="date"),
            exercise_name=exercise,
            reps=reps,
            weight=weight,
            sets=sets,
            workout_type=workout_type,
        )
    except ValidationError as exc:
        _fail(f"Could not log set: {exc}")
    store.save()
    typer.echo(f"Logged {len(created)}x{reps} @ {weight:g} - {exercise}")


@app.command("config")
def config_show() -> None:
    """
    Show the effective configuration (correlation bands, trend windows, data minimums).
    """
    config = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    typer.echo(f"Normal systolic below: {config.get('normal_systolic')}")
    bands = config.get("correlation", {})
    typer.echo(f"Correlation bands: moderate>={bands.get('moderate')}, strong>={bands.get('strong')}")
    trend = config.get("trend", {})
    typer.echo(
        f"Trend windows: recent={trend.get('recent_weeks')}w, prior={trend.get('prior_weeks')}w, "
        f"weight margin={trend.get('weight_loss_margin')}"
    )
    needs = config.get("requirements", {})
    typer.echo(
        "Minimums: "
        + ", ".join(f"{key}={value}" for key, value in sorted(needs.items()))
    )


if __name__ == "__main__":  # pragma: no cover
    app()
