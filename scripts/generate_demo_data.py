from __future__ import annotations

import argparse
import random
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Sequence

from health_optimizer.models import (
    BloodPressureSample,
    BodyMeasurement,
    DailyMetric,
    Exercise,
    RecordSnapshot,
    WorkoutSession,
    WorkoutSet,
)
from health_optimizer.storage import save_snapshot

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_JSON = ROOT / "demo" / "demo_records.json"
DEFAULT_EXERCISES = ["Bench Press", "Back Squat", "Deadlift", "Overhead Press"]
SPLIT = ["Push", "Legs", "Pull"]


def _build_snapshot(days: int, start: date, seed: int, exercises: Sequence[str]) -> RecordSnapshot:
    rng = random.Random(seed)
    catalogue = tuple(Exercise(id=index + 1, name=name, category="Compound") for index, name in enumerate(exercises))

    metrics: list[DailyMetric] = []
    readings: list[BloodPressureSample] = []
    sessions: list[WorkoutSession] = []
    sets: list[WorkoutSet] = []
    measurements: list[BodyMeasurement] = []

    weight = 92.0
    waist = 98.0
    for offset in range(days):
        day = start + timedelta(days=offset)
        carbs = round(rng.uniform(40, 180), 1)
        weight = round(weight - rng.uniform(-0.1, 0.2), 1)
        metrics.append(
            DailyMetric(
                date=day,
                weight=weight,
                calories=int(rng.uniform(1900, 2600)),
                protein_grams=round(rng.uniform(120, 200), 1),
                carbs_grams=carbs,
                fat_grams=round(rng.uniform(50, 90), 1),
                steps=rng.randint(4000, 14000),
                energy_level=rng.randint(4, 9),
                sleep_hours=round(rng.uniform(5.5, 8.5), 1),
            )
        )
        # Morning readings track the previous day's carbs loosely.
        if rng.random() < 0.7:
            systolic = int(100 + carbs * 0.2 + rng.uniform(-4, 4))
            readings.append(
                BloodPressureSample(
                    timestamp=datetime.combine(day, time(7, rng.randint(0, 59))),
                    systolic=systolic,
                    diastolic=int(systolic * 0.66),
                    pulse=rng.randint(55, 75),
                )
            )
        if offset % 2 == 0:
            session_id = len(sessions) + 1
            sessions.append(WorkoutSession(id=session_id, date=day, workout_type=SPLIT[len(sessions) % len(SPLIT)]))
            exercise = catalogue[len(sessions) % len(catalogue)]
            load = round(60 + offset * 0.25 + rng.uniform(-2.5, 2.5), 1)
            for set_number in range(1, rng.randint(3, 5) + 1):
                sets.append(
                    WorkoutSet(
                        id=len(sets) + 1,
                        session_id=session_id,
                        exercise_id=exercise.id,
                        set_number=set_number,
                        reps=rng.randint(4, 10),
                        weight=load,
                        rpe=rng.randint(6, 9),
                    )
                )
        if offset % 7 == 0:
            waist = round(waist - rng.uniform(0.0, 0.4), 1)
            measurements.append(BodyMeasurement(date=day, waist=waist, chest=round(rng.uniform(104, 108), 1)))

    return RecordSnapshot(
        daily_metrics=tuple(metrics),
        blood_pressure=tuple(readings),
        sessions=tuple(sessions),
        sets=tuple(sets),
        exercises=catalogue,
        measurements=tuple(measurements),
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate synthetic demo health records.")
    parser.add_argument("--days", type=int, default=120, help="Number of sequential days to generate.")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=(date.today() - timedelta(days=119)).isoformat(),
        help="Start date (YYYY-MM-DD). Defaults to 119 days before today.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility.")
    parser.add_argument("--json", type=Path, default=DEFAULT_JSON, help="Destination records .json file.")
    parser.add_argument(
        "--exercises",
        nargs="+",
        default=DEFAULT_EXERCISES,
        help="Exercise names to rotate through (default: %(default)s).",
    )
    args = parser.parse_args(argv)

    if isinstance(args.start_date, str):
        start = date.fromisoformat(args.start_date)
    else:
        start = args.start_date

    snapshot = _build_snapshot(days=args.days, start=start, seed=args.seed, exercises=args.exercises)
    save_snapshot(snapshot, args.json)

    print(
        f"Wrote {len(snapshot.daily_metrics)} daily logs, {len(snapshot.blood_pressure)} BP readings "
        f"and {len(snapshot.sessions)} workouts to {args.json}"
    )


if __name__ == "__main__":
    main()
