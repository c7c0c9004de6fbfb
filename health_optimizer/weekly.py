"""Week bucketing for daily records and workout sessions.

Two week rules live here side by side and are deliberately not reconciled:

* `week_number` counts days since 1 January of the same year and takes the
  ceiling of ``days / 7``. 1 January is week 0, the count restarts every year,
  and it has nothing to do with ISO weeks.
* `week_start` snaps a date back to the Monday on or before it, independent of
  the year.

Strength series are keyed by `week_number`; nutrition and weight averages are
taken over the Monday-aligned `week_start` window. Around New Year the two
rules disagree (late-December and early-January sessions can share a week
number across years), and callers that mix them inherit that behaviour.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .models import DailyMetric, InvalidInput, WorkoutSession, WorkoutSet
from .results import WeeklyPair
from .strength import session_strength

LOGGER = logging.getLogger(__name__)

AVERAGED_FIELDS = ("weight", "calories", "protein_grams")
BUCKET_COLUMNS = [
    "week_number",
    "week_start",
    "avg_weight",
    "avg_calories",
    "avg_protein",
    "max_strength",
    "days_logged",
]


@dataclass(frozen=True)
class DerivedWeeklyBucket:
    week_number: int
    week_start: date
    avg_weight: Optional[float]
    avg_calories: Optional[float]
    avg_protein: Optional[float]
    max_strength: Optional[float]
    days_logged: int

    @property
    def week_end(self) -> date:
        """Exclusive upper bound of the bucket window."""
        return self.week_start + timedelta(days=7)


def week_number(day: date) -> int:
    jan1 = date(day.year, 1, 1)
    return math.ceil((day - jan1).days / 7)


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def weekly_strength(
    sessions: Iterable[WorkoutSession],
    sets_by_session: Mapping[int, Sequence[WorkoutSet]],
) -> Dict[int, float]:
    """Best session strength (summed set e1RM) per week number.

    Sessions without sets do not count as a performance for their week.
    """
    by_week: Dict[int, float] = {}
    for session in sessions:
        sets = sets_by_session.get(session.id, ())
        if not sets:
            continue
        total = session_strength(sets)
        key = week_number(session.date)
        by_week[key] = max(by_week.get(key, total), total)
    return by_week


def window_average(metrics: Iterable[DailyMetric], field: str, start: date) -> Optional[float]:
    """Average of a positive daily field over ``[start, start + 7 days)``."""
    if field not in AVERAGED_FIELDS:
        raise InvalidInput(f"Unsupported field {field!r}.")
    end = start + timedelta(days=7)
    values = [
        getattr(metric, field)
        for metric in metrics
        if start <= metric.date < end and getattr(metric, field) > 0
    ]
    if not values:
        return None
    return sum(values) / len(values)


def weekly_buckets(
    metrics: Sequence[DailyMetric],
    sessions: Sequence[WorkoutSession] = (),
    sets_by_session: Mapping[int, Sequence[WorkoutSet]] | None = None,
) -> List[DerivedWeeklyBucket]:
    """
    Bucket daily records into Monday-start weeks.

    Averages ignore zero (unlogged) values, strength takes the best session in
    the window, and weeks without any record are left out rather than
    zero-filled.
    """
    frame = pd.DataFrame(
        [
            {
                "week_start": week_start(metric.date),
                "weight": metric.weight,
                "calories": metric.calories,
                "protein_grams": metric.protein_grams,
            }
            for metric in metrics
        ],
        columns=["week_start", *AVERAGED_FIELDS],
    )
    averages = pd.DataFrame(columns=["week_start", "avg_weight", "avg_calories", "avg_protein", "days_logged"])
    if not frame.empty:
        positive = frame[list(AVERAGED_FIELDS)].astype(float)
        frame[list(AVERAGED_FIELDS)] = positive.where(positive > 0)
        averages = (
            frame.groupby("week_start", as_index=False)
            .agg(
                avg_weight=("weight", "mean"),
                avg_calories=("calories", "mean"),
                avg_protein=("protein_grams", "mean"),
                days_logged=("weight", "size"),
            )
        )

    strength: Dict[date, float] = {}
    grouped_sets = sets_by_session or {}
    for session in sessions:
        sets = grouped_sets.get(session.id, ())
        if not sets:
            continue
        key = week_start(session.date)
        total = session_strength(sets)
        strength[key] = max(strength.get(key, total), total)

    rows = {row["week_start"]: row for row in averages.to_dict("records")}
    buckets: List[DerivedWeeklyBucket] = []
    for start in sorted(set(rows) | set(strength)):
        row = rows.get(start, {})
        buckets.append(
            DerivedWeeklyBucket(
                week_number=week_number(start),
                week_start=start,
                avg_weight=_optional(row.get("avg_weight")),
                avg_calories=_optional(row.get("avg_calories")),
                avg_protein=_optional(row.get("avg_protein")),
                max_strength=strength.get(start),
                days_logged=int(row.get("days_logged", 0) or 0),
            )
        )
    LOGGER.debug("Built %d weekly buckets from %d daily records", len(buckets), len(metrics))
    return buckets


def weekly_frame(buckets: Iterable[DerivedWeeklyBucket]) -> pd.DataFrame:
    """Tabulate buckets for charts and CLI output."""
    records = [
        {
            "week_number": bucket.week_number,
            "week_start": pd.Timestamp(bucket.week_start),
            "avg_weight": bucket.avg_weight,
            "avg_calories": bucket.avg_calories,
            "avg_protein": bucket.avg_protein,
            "max_strength": bucket.max_strength,
            "days_logged": bucket.days_logged,
        }
        for bucket in buckets
    ]
    df = pd.DataFrame(records, columns=BUCKET_COLUMNS)
    for column in ("avg_weight", "avg_calories", "avg_protein", "max_strength"):
        df[column] = pd.to_numeric(df[column], errors="coerce").round(1)
    return df


def protein_strength_pairs(
    metrics: Sequence[DailyMetric],
    sessions: Sequence[WorkoutSession],
    sets_by_session: Mapping[int, Sequence[WorkoutSet]],
    *,
    gain_limit: float = 100.0,
) -> List[WeeklyPair]:
    """
    Pair weekly protein intake with the week-over-week strength change.

    Strength is the best session per week number. Protein is averaged over the
    Monday window of the first session seen for that week number. Gains are
    taken between consecutive recorded week numbers; swings of ``gain_limit``
    or more are treated as logging noise and dropped.
    """
    strength = weekly_strength(sessions, sets_by_session)
    protein: Dict[int, float] = {}
    for session in sessions:
        key = week_number(session.date)
        if key in protein:
            continue
        average = window_average(metrics, "protein_grams", week_start(session.date))
        if average is not None:
            protein[key] = average

    weeks = sorted(strength)
    pairs: List[WeeklyPair] = []
    for previous, current in zip(weeks, weeks[1:]):
        if current not in protein:
            continue
        gain = strength[current] - strength[previous]
        if -gain_limit < gain < gain_limit:
            pairs.append(WeeklyPair(week_number=current, predictor=protein[current], outcome=gain))
    return pairs


def _optional(value: object) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)
