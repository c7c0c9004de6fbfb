from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Callable, Iterable, List, Mapping, Optional, Protocol, Tuple, TypeVar

from .env import get_env
from .models import (
    MEASUREMENT_FIELDS,
    BloodPressureSample,
    BodyMeasurement,
    DailyMetric,
    Exercise,
    RecordSnapshot,
    ValidationError,
    WorkoutSession,
    WorkoutSet,
    coerce_number,
)

DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_RECORDS_FILENAME = "records.json"
LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

COLLECTIONS: Tuple[Tuple[str, Any], ...] = (
    ("daily_metrics", DailyMetric),
    ("blood_pressure", BloodPressureSample),
    ("workout_sessions", WorkoutSession),
    ("workout_sets", WorkoutSet),
    ("exercises", Exercise),
    ("body_measurements", BodyMeasurement),
)


class RecordStore(Protocol):
    """Read access the analytics engine needs from persistence."""

    def daily_metrics(self, start: date | None = None, end: date | None = None) -> Tuple[DailyMetric, ...]: ...

    def blood_pressure(
        self, start: date | None = None, end: date | None = None
    ) -> Tuple[BloodPressureSample, ...]: ...

    def sessions(self, start: date | None = None, end: date | None = None) -> Tuple[WorkoutSession, ...]: ...

    def sets(self) -> Tuple[WorkoutSet, ...]: ...

    def exercises(self) -> Tuple[Exercise, ...]: ...

    def measurements(self, start: date | None = None, end: date | None = None) -> Tuple[BodyMeasurement, ...]: ...

    def snapshot(self) -> RecordSnapshot: ...


def _in_range(items: Iterable[T], key: Callable[[T], date], start: date | None, end: date | None) -> Tuple[T, ...]:
    return tuple(
        item
        for item in items
        if (start is None or key(item) >= start) and (end is None or key(item) <= end)
    )


class InMemoryRecordStore:
    """Record store over an in-memory snapshot; date ranges are inclusive."""

    def __init__(self, snapshot: RecordSnapshot | None = None) -> None:
        self._snapshot = snapshot or RecordSnapshot()

    def daily_metrics(self, start: date | None = None, end: date | None = None) -> Tuple[DailyMetric, ...]:
        return _in_range(self._snapshot.daily_metrics, lambda item: item.date, start, end)

    def blood_pressure(self, start: date | None = None, end: date | None = None) -> Tuple[BloodPressureSample, ...]:
        return _in_range(self._snapshot.blood_pressure, lambda item: item.day, start, end)

    def sessions(self, start: date | None = None, end: date | None = None) -> Tuple[WorkoutSession, ...]:
        return _in_range(self._snapshot.sessions, lambda item: item.date, start, end)

    def sets(self) -> Tuple[WorkoutSet, ...]:
        return self._snapshot.sets

    def exercises(self) -> Tuple[Exercise, ...]:
        return self._snapshot.exercises

    def measurements(self, start: date | None = None, end: date | None = None) -> Tuple[BodyMeasurement, ...]:
        return _in_range(self._snapshot.measurements, lambda item: item.date, start, end)

    def snapshot(self) -> RecordSnapshot:
        # Frozen dataclasses with tuple collections, safe to share.
        return self._snapshot

    def _replace(self, **changes: Any) -> None:
        self._snapshot = replace(self._snapshot, **changes)

    def upsert_daily_metric(self, metric: DailyMetric) -> None:
        """Insert or overwrite the log for ``metric.date``."""
        others = tuple(item for item in self._snapshot.daily_metrics if item.date != metric.date)
        self._replace(daily_metrics=others + (metric,))

    def add_blood_pressure(self, sample: BloodPressureSample) -> None:
        self._replace(blood_pressure=self._snapshot.blood_pressure + (sample,))

    def upsert_measurement(self, measurement: BodyMeasurement) -> BodyMeasurement:
        """Merge into the same-day entry; fields left empty keep their stored value."""
        existing = next((item for item in self._snapshot.measurements if item.date == measurement.date), None)
        if existing is not None:
            changes = {
                name: getattr(measurement, name)
                for name in MEASUREMENT_FIELDS
                if getattr(measurement, name) is not None and getattr(measurement, name) > 0
            }
            measurement = replace(existing, notes=measurement.notes, **changes)
        others = tuple(item for item in self._snapshot.measurements if item.date != measurement.date)
        self._replace(measurements=others + (measurement,))
        return measurement

    def log_workout_set(
        self,
        *,
        day: date,
        exercise_name: str,
        reps: int,
        weight: float,
        sets: int = 1,
        rpe: int | None = None,
        workout_type: str = "",
        notes: str = "",
    ) -> List[WorkoutSet]:
        """
        Record ``sets`` identical sets of an exercise on ``day``.

        The day's session and the exercise are created when missing; set
        numbers continue from the sets already logged for that exercise in the
        session.
        """
        name = (exercise_name or "").strip()
        if not name:
            raise ValidationError("exercise_name is required.")
        reps_value = int(coerce_number(reps, field="reps", minimum=1, allow_float=False))
        weight_value = coerce_number(weight, field="weight", minimum=0.0)
        count = int(coerce_number(sets, field="sets", minimum=1, allow_float=False))

        snapshot = self._snapshot
        session = next((item for item in snapshot.sessions if item.date == day), None)
        new_sessions = snapshot.sessions
        if session is None:
            session = WorkoutSession(
                id=_next_id(item.id for item in snapshot.sessions),
                date=day,
                workout_type=workout_type,
                notes=notes,
            )
            new_sessions = new_sessions + (session,)

        exercise = snapshot.exercise_named(name)
        new_exercises = snapshot.exercises
        if exercise is None:
            exercise = Exercise(
                id=_next_id(item.id for item in snapshot.exercises),
                name=name,
                category="Compound",
                muscle_group="Various",
            )
            new_exercises = new_exercises + (exercise,)

        existing = sum(
            1 for item in snapshot.sets if item.session_id == session.id and item.exercise_id == exercise.id
        )
        first_id = _next_id(item.id for item in snapshot.sets)
        created = [
            WorkoutSet(
                id=first_id + offset,
                session_id=session.id,
                exercise_id=exercise.id,
                set_number=existing + offset + 1,
                reps=reps_value,
                weight=weight_value,
                rpe=rpe,
            )
            for offset in range(count)
        ]
        self._replace(sessions=new_sessions, exercises=new_exercises, sets=snapshot.sets + tuple(created))
        LOGGER.info("Logged %dx%d @ %s - %s on %s", count, reps_value, weight_value, exercise.name, day)
        return created


def _next_id(ids: Iterable[int]) -> int:
    return max(ids, default=0) + 1


def _data_dir() -> Path:
    override = get_env("DATA_DIR")
    base = Path(override).expanduser() if override else DEFAULT_DATA_DIR
    base.mkdir(parents=True, exist_ok=True)
    return base


def _records_file() -> Path:
    override = get_env("RECORDS_FILE")
    if override:
        target = Path(override).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        return target
    return _data_dir() / DEFAULT_RECORDS_FILENAME


def _save_payload(records_file: Path, payload: Mapping[str, Any]) -> None:
    records_file.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(payload, indent=2, sort_keys=True) + "\n"

    with NamedTemporaryFile("w", dir=records_file.parent, delete=False, encoding="utf-8") as tmp:
        tmp.write(text)
        temp_path = Path(tmp.name)
    temp_path.replace(records_file)


def _load_payload(records_file: Path) -> dict[str, Any]:
    if not records_file.exists():
        return {}

    raw = records_file.read_text(encoding="utf-8").strip() or "{}"
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not parse {records_file}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ValueError(f"{records_file} must contain a JSON object")
    return payload


def snapshot_from_payload(payload: Mapping[str, Any]) -> RecordSnapshot:
    """Build a snapshot from the JSON layout, naming every row that fails to parse."""
    parsed: dict[str, list[Any]] = {}
    failures: list[str] = []
    for key, model in COLLECTIONS:
        rows = payload.get(key) or []
        if not isinstance(rows, list):
            raise ValueError(f"{key} must be a JSON list")
        items: list[Any] = []
        for index, row in enumerate(rows):
            try:
                if not isinstance(row, Mapping):
                    raise ValidationError("expected an object")
                items.append(model.from_dict(row))
            except ValidationError as exc:
                failures.append(f"{key}[{index}]: {exc}")
        parsed[key] = items
    if failures:
        raise ValidationError("Invalid records: " + "; ".join(failures))
    return RecordSnapshot(
        daily_metrics=tuple(parsed["daily_metrics"]),
        blood_pressure=tuple(parsed["blood_pressure"]),
        sessions=tuple(parsed["workout_sessions"]),
        sets=tuple(parsed["workout_sets"]),
        exercises=tuple(parsed["exercises"]),
        measurements=tuple(parsed["body_measurements"]),
    )


def snapshot_to_payload(snapshot: RecordSnapshot) -> dict[str, Any]:
    return {
        "daily_metrics": [item.to_dict() for item in snapshot.daily_metrics],
        "blood_pressure": [item.to_dict() for item in snapshot.blood_pressure],
        "workout_sessions": [item.to_dict() for item in snapshot.sessions],
        "workout_sets": [item.to_dict() for item in snapshot.sets],
        "exercises": [item.to_dict() for item in snapshot.exercises],
        "body_measurements": [item.to_dict() for item in snapshot.measurements],
        "saved_at": datetime.now().isoformat(timespec="seconds"),
    }


def save_snapshot(snapshot: RecordSnapshot, path: Path | str) -> Path:
    """Write a snapshot to ``path`` in the store layout, replacing the file atomically."""
    records_file = Path(path).expanduser()
    _save_payload(records_file, snapshot_to_payload(snapshot))
    return records_file


class JsonRecordStore(InMemoryRecordStore):
    """Record store persisted as one JSON document.

    The file defaults to ``$HEALTH_OPTIMIZER_RECORDS_FILE`` or ``records.json``
    inside ``$HEALTH_OPTIMIZER_DATA_DIR``. Writes go through a temporary file
    and an atomic rename.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path).expanduser() if path else _records_file()
        super().__init__(snapshot_from_payload(_load_payload(self.path)))

    def save(self) -> Path:
        save_snapshot(self.snapshot(), self.path)
        LOGGER.debug("Saved records to %s", self.path)
        return self.path


def open_store(path: Optional[Path | str] = None) -> JsonRecordStore:
    return JsonRecordStore(path)
