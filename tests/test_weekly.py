from __future__ import annotations

from datetime import date

import pytest

from health_optimizer.models import DailyMetric, InvalidInput, WorkoutSession, WorkoutSet
from health_optimizer.weekly import (
    protein_strength_pairs,
    week_number,
    week_start,
    weekly_buckets,
    weekly_frame,
    weekly_strength,
    window_average,
)


def _single(session_id: int, weight: float) -> WorkoutSet:
    return WorkoutSet(id=session_id, session_id=session_id, exercise_id=1, set_number=1, reps=1, weight=weight)


@pytest.mark.parametrize(
    ("day", "expected"),
    [
        (date(2024, 1, 1), 0),
        (date(2024, 1, 2), 1),
        (date(2024, 1, 8), 1),
        (date(2024, 1, 9), 2),
        (date(2023, 12, 31), 52),
    ],
)
def test_week_number_counts_from_january_first(day: date, expected: int) -> None:
    assert week_number(day) == expected


def test_week_start_snaps_to_monday() -> None:
    assert week_start(date(2024, 1, 7)) == date(2024, 1, 1)
    assert week_start(date(2024, 1, 8)) == date(2024, 1, 8)


def test_weekly_strength_keeps_best_session_per_week() -> None:
    sessions = [
        WorkoutSession(id=1, date=date(2024, 1, 2)),
        WorkoutSession(id=2, date=date(2024, 1, 5)),
        WorkoutSession(id=3, date=date(2024, 1, 6)),
    ]
    sets = {1: (_single(1, 100.0),), 2: (_single(2, 120.0),)}
    assert weekly_strength(sessions, sets) == {1: 120.0}


def test_window_average_ignores_unlogged_days() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 1), protein_grams=150.0),
        DailyMetric(date=date(2024, 1, 2), protein_grams=0.0),
        DailyMetric(date=date(2024, 1, 3), protein_grams=170.0),
        DailyMetric(date=date(2024, 1, 8), protein_grams=999.0),
    ]
    assert window_average(metrics, "protein_grams", date(2024, 1, 1)) == pytest.approx(160.0)
    assert window_average(metrics, "weight", date(2024, 1, 1)) is None
    with pytest.raises(InvalidInput):
        window_average(metrics, "notes", date(2024, 1, 1))


def test_weekly_buckets_merge_monday_windows() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 1), weight=80.0, calories=2000),
        DailyMetric(date=date(2024, 1, 3), weight=82.0, calories=0),
        DailyMetric(date=date(2024, 1, 8), weight=81.0, calories=2200),
    ]
    sessions = [WorkoutSession(id=1, date=date(2024, 1, 16))]
    buckets = weekly_buckets(metrics, sessions, {1: (_single(1, 140.0),)})

    assert [bucket.week_start for bucket in buckets] == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]
    first, second, third = buckets
    assert first.avg_weight == pytest.approx(81.0)
    assert first.avg_calories == pytest.approx(2000.0)
    assert first.avg_protein is None
    assert first.days_logged == 2
    assert first.week_number == 0
    assert second.days_logged == 1
    assert third.max_strength == pytest.approx(140.0)
    assert third.avg_weight is None
    assert third.days_logged == 0
    assert first.week_end == date(2024, 1, 8)


def test_weekly_frame_rounds_values() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 1), weight=80.04),
        DailyMetric(date=date(2024, 1, 2), weight=80.12),
    ]
    frame = weekly_frame(weekly_buckets(metrics))
    assert list(frame.columns)[:2] == ["week_number", "week_start"]
    assert frame.loc[0, "avg_weight"] == pytest.approx(80.1)


def test_weekly_buckets_empty() -> None:
    assert weekly_buckets([]) == []
    assert weekly_frame([]).empty


def test_protein_strength_pairs_drops_outlier_gains() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 2), protein_grams=140.0),
        DailyMetric(date=date(2024, 1, 9), protein_grams=150.0),
        DailyMetric(date=date(2024, 1, 16), protein_grams=160.0),
    ]
    sessions = [
        WorkoutSession(id=1, date=date(2024, 1, 2)),
        WorkoutSession(id=2, date=date(2024, 1, 9)),
        WorkoutSession(id=3, date=date(2024, 1, 16)),
    ]
    sets = {1: (_single(1, 100.0),), 2: (_single(2, 110.0),), 3: (_single(3, 300.0),)}

    pairs = protein_strength_pairs(metrics, sessions, sets)

    assert len(pairs) == 1
    assert pairs[0].week_number == 2
    assert pairs[0].predictor == pytest.approx(150.0)
    assert pairs[0].outcome == pytest.approx(10.0)


def test_week_rules_disagree_across_new_year() -> None:
    new_year = date(2025, 1, 1)
    # The Monday window reaches back into 2024 while the week number restarts.
    assert week_start(new_year) == date(2024, 12, 30)
    assert week_number(new_year) == 0
    assert week_number(week_start(new_year)) == 52

    sessions = [
        WorkoutSession(id=1, date=date(2024, 1, 3)),
        WorkoutSession(id=2, date=date(2025, 1, 3)),
    ]
    sets = {1: (_single(1, 100.0),), 2: (_single(2, 90.0),)}
    # Same week number in different years collapses into one strength entry.
    assert weekly_strength(sessions, sets) == {1: 100.0}
