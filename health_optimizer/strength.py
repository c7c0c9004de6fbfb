from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Union

import pandas as pd

from .config import AppConfig, get_config
from .models import InvalidInput, RecordSnapshot, WorkoutSet
from .results import InsufficientData

LOGGER = logging.getLogger(__name__)

PROGRESS_COLUMNS = ["date", "e1rm", "volume", "max_weight", "sets"]


def _check_set(weight: float, reps: int) -> None:
    if isinstance(reps, bool) or not isinstance(reps, int) or reps <= 0:
        raise InvalidInput(f"reps must be a positive integer; received {reps!r}.")
    if weight < 0:
        raise InvalidInput(f"weight must be non-negative; received {weight!r}.")


def e1rm(weight: float, reps: int) -> float:
    """
    Estimated one-rep max using the Epley formula.

    A single is returned as-is since it is a true max, not an estimate.
    """
    _check_set(weight, reps)
    if reps == 1:
        return weight
    return round(weight * (1 + reps / 30.0), 1)


def volume(weight: float, reps: int) -> float:
    """Load moved in a set (weight × reps)."""
    _check_set(weight, reps)
    return weight * reps


def session_strength(sets: Iterable[WorkoutSet]) -> float:
    """Sum of set e1RMs, the per-session strength score."""
    return sum(e1rm(item.weight, item.reps) for item in sets)


@dataclass(frozen=True)
class ExerciseProgress:
    exercise: str
    history: pd.DataFrame
    current_e1rm: float
    all_time_pr: float
    percent_change: Optional[float]
    total_sets: int
    last_workout: date

    @property
    def workouts(self) -> int:
        return int(self.history.shape[0])


def exercise_progress(
    snapshot: RecordSnapshot,
    exercise_name: str,
    *,
    as_of: date,
    config: AppConfig | None = None,
) -> Union[ExerciseProgress, InsufficientData]:
    """
    Build per-workout strength history for one exercise.

    The history frame holds one row per workout date: best set e1RM, total
    volume, heaviest weight, and set count. `percent_change` compares the
    average e1RM of the recent window to the window before it, falling back to
    first-vs-last when either window is empty. A snapshot that fails
    validation raises `RecordValidationError` before any set is scored.
    """
    cfg = config or get_config()
    snapshot.validate()
    exercise = snapshot.exercise_named(exercise_name)
    if exercise is None:
        return InsufficientData(reason=f"Exercise {exercise_name!r} has not been logged.", required=1, available=0)

    session_dates = snapshot.session_dates()
    rows: list[dict[str, object]] = []
    for item in snapshot.sets_for_exercise(exercise.id):
        session_date = session_dates.get(item.session_id)
        if session_date is None:
            continue
        rows.append(
            {
                "date": pd.Timestamp(session_date),
                "e1rm": e1rm(item.weight, item.reps),
                "volume": volume(item.weight, item.reps),
                "weight": item.weight,
            }
        )

    if not rows:
        return InsufficientData(reason=f"No sets logged for {exercise.name}.", required=1, available=0)

    df = pd.DataFrame(rows)
    history = (
        df.groupby("date", as_index=False)
        .agg(
            e1rm=("e1rm", "max"),
            volume=("volume", "sum"),
            max_weight=("weight", "max"),
            sets=("e1rm", "count"),
        )
        .sort_values("date")
        .reset_index(drop=True)
    )
    history = history[PROGRESS_COLUMNS]

    percent = _percent_change(history, as_of, cfg)
    LOGGER.debug("Progress for %s: %d workouts, change=%s", exercise.name, history.shape[0], percent)
    return ExerciseProgress(
        exercise=exercise.name,
        history=history,
        current_e1rm=float(history["e1rm"].iloc[-1]),
        all_time_pr=float(history["e1rm"].max()),
        percent_change=percent,
        total_sets=len(rows),
        last_workout=history["date"].iloc[-1].date(),
    )


def _percent_change(history: pd.DataFrame, as_of: date, cfg: AppConfig) -> float | None:
    recent_start = pd.Timestamp(as_of - timedelta(weeks=cfg.trend.recent_weeks))
    prior_start = recent_start - pd.Timedelta(weeks=cfg.trend.prior_weeks)

    recent = history.loc[history["date"] >= recent_start, "e1rm"]
    previous = history.loc[(history["date"] >= prior_start) & (history["date"] < recent_start), "e1rm"]

    if not recent.empty and not previous.empty:
        baseline = float(previous.mean())
        current = float(recent.mean())
    elif history.shape[0] >= 2:
        baseline = float(history["e1rm"].iloc[0])
        current = float(history["e1rm"].iloc[-1])
    else:
        return None

    if baseline == 0:
        return None
    return round((current - baseline) / baseline * 100, 1)
