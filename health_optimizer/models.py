from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

__all__ = [
    "parse_iso_date",
    "parse_iso_datetime",
    "coerce_number",
    "bp_category",
    "BPCategory",
    "DailyMetric",
    "BloodPressureSample",
    "WorkoutSession",
    "WorkoutSet",
    "Exercise",
    "BodyMeasurement",
    "RecordSnapshot",
    "ValidationError",
    "InvalidInput",
    "InsufficientDataError",
    "RecordValidationError",
]

MEASUREMENT_FIELDS = (
    "waist",
    "chest",
    "left_arm",
    "right_arm",
    "left_thigh",
    "right_thigh",
    "neck",
    "hips",
)


class ValidationError(ValueError):
    """Raised when user-supplied data cannot be normalised safely."""


class InvalidInput(ValidationError):
    """Raised when a caller passes arguments outside a computation's domain."""


class InsufficientDataError(ValueError):
    """Raised when a low-level statistic is asked to run on too few observations."""


class RecordValidationError(ValueError):
    """Raised when a record snapshot violates its own invariants.

    ``failures`` holds ``(record label, message)`` pairs for every offending
    input so callers can report them together.
    """

    def __init__(self, failures: Iterable[Tuple[str, str]]) -> None:
        self.failures: List[Tuple[str, str]] = list(failures)
        lines = [f"{label}: {message}" for label, message in self.failures]
        super().__init__(
            f"{len(self.failures)} record(s) failed validation: " + "; ".join(lines)
        )


def parse_iso_date(value: Any, *, field: str = "date") -> date:
    """
    Parse user-supplied ISO-8601 dates.

    Accepts `datetime.date`, `datetime.datetime`, or strings. Raises `ValidationError`
    with a friendlier message if the payload cannot be parsed.
    """
    if isinstance(value, date):
        return value if not isinstance(value, datetime) else value.date()

    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be provided as YYYY-MM-DD text; received {value!r}."
        )

    candidate = value.strip()
    if not candidate:
        raise ValidationError(f"{field} cannot be empty.")

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a valid ISO date (YYYY-MM-DD); received {candidate!r}."
        ) from exc

    return parsed.date()


def parse_iso_datetime(value: Any, *, field: str = "timestamp") -> datetime:
    """Parse an ISO-8601 timestamp; a bare date is read as midnight."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field} must be provided as ISO-8601 text; received {value!r}."
        )
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a valid ISO timestamp; received {value.strip()!r}."
        ) from exc


def coerce_number(
    value: Any,
    *,
    field: str = "value",
    minimum: float | None = None,
    maximum: float | None = None,
    allow_empty: bool = False,
    allow_float: bool = True,
) -> float:
    """
    Convert arbitrary input into a float with guardrails.

    The `minimum` and `maximum` bounds (inclusive) trigger a ValidationError when
    breached. When `allow_float` is False, the coerced number must be whole.
    """
    if value is None:
        if allow_empty:
            return float("nan")
        raise ValidationError(f"{field} is required.")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            if allow_empty:
                return float("nan")
            raise ValidationError(f"{field} is required.")
        try:
            number = float(stripped)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a number; received {value!r}.") from exc
    else:
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be finite; received {value!r}.")

    if not allow_float and number != round(number):
        raise ValidationError(f"{field} must be an integer; received {value!r}.")

    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}; received {number}.")

    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be <= {maximum}; received {number}.")

    return number


def _optional_number(payload: Mapping[str, Any], key: str, **kwargs: Any) -> float | None:
    raw = payload.get(key)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return coerce_number(raw, field=key, **kwargs)


def _optional_int(payload: Mapping[str, Any], key: str, **kwargs: Any) -> int | None:
    number = _optional_number(payload, key, allow_float=False, **kwargs)
    return None if number is None else int(number)


class BPCategory(str, Enum):
    NORMAL = "Normal"
    ELEVATED = "Elevated"
    STAGE_1 = "High BP Stage 1"
    STAGE_2 = "High BP Stage 2"
    CRISIS = "Hypertensive Crisis"


def bp_category(systolic: float, diastolic: float) -> BPCategory:
    """Classify a reading into the standard blood-pressure bands."""
    if systolic < 120 and diastolic < 80:
        return BPCategory.NORMAL
    if systolic < 130 and diastolic < 80:
        return BPCategory.ELEVATED
    if systolic < 140 or diastolic < 90:
        return BPCategory.STAGE_1
    if systolic < 180 or diastolic < 120:
        return BPCategory.STAGE_2
    return BPCategory.CRISIS


@dataclass(frozen=True)
class DailyMetric:
    """One day of nutrition and activity logging."""

    date: date
    weight: float = 0.0
    calories: int = 0
    protein_grams: float = 0.0
    carbs_grams: float = 0.0
    fat_grams: float = 0.0
    steps: int = 0
    energy_level: Optional[int] = None  # 1-10
    sleep_hours: Optional[float] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DailyMetric":
        return cls(
            date=parse_iso_date(payload.get("date"), field="date"),
            weight=coerce_number(payload.get("weight", 0.0), field="weight", minimum=0.0),
            calories=int(
                coerce_number(payload.get("calories", 0), field="calories", minimum=0, allow_float=False)
            ),
            protein_grams=coerce_number(payload.get("protein_grams", 0.0), field="protein_grams", minimum=0.0),
            carbs_grams=coerce_number(payload.get("carbs_grams", 0.0), field="carbs_grams", minimum=0.0),
            fat_grams=coerce_number(payload.get("fat_grams", 0.0), field="fat_grams", minimum=0.0),
            steps=int(coerce_number(payload.get("steps", 0), field="steps", minimum=0, allow_float=False)),
            energy_level=_optional_int(payload, "energy_level", minimum=1, maximum=10),
            sleep_hours=_optional_number(payload, "sleep_hours", minimum=0.0, maximum=24.0),
            notes=str(payload.get("notes") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "date": self.date.isoformat(),
            "weight": self.weight,
            "calories": self.calories,
            "protein_grams": self.protein_grams,
            "carbs_grams": self.carbs_grams,
            "fat_grams": self.fat_grams,
            "steps": self.steps,
        }
        if self.energy_level is not None:
            payload["energy_level"] = self.energy_level
        if self.sleep_hours is not None:
            payload["sleep_hours"] = self.sleep_hours
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class BloodPressureSample:
    timestamp: datetime
    systolic: int
    diastolic: int
    pulse: Optional[int] = None
    notes: str = ""

    @property
    def day(self) -> date:
        return self.timestamp.date()

    @property
    def category(self) -> BPCategory:
        return bp_category(self.systolic, self.diastolic)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BloodPressureSample":
        return cls(
            timestamp=parse_iso_datetime(payload.get("timestamp"), field="timestamp"),
            systolic=int(coerce_number(payload.get("systolic"), field="systolic", minimum=1, allow_float=False)),
            diastolic=int(coerce_number(payload.get("diastolic"), field="diastolic", minimum=1, allow_float=False)),
            pulse=_optional_int(payload, "pulse", minimum=1),
            notes=str(payload.get("notes") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "systolic": self.systolic,
            "diastolic": self.diastolic,
        }
        if self.pulse is not None:
            payload["pulse"] = self.pulse
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class WorkoutSession:
    id: int
    date: date
    workout_type: str = ""
    overall_rpe: Optional[int] = None
    fatigue_level: Optional[int] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WorkoutSession":
        return cls(
            id=int(coerce_number(payload.get("id"), field="id", allow_float=False)),
            date=parse_iso_date(payload.get("date"), field="date"),
            workout_type=str(payload.get("workout_type") or ""),
            overall_rpe=_optional_int(payload, "overall_rpe", minimum=1, maximum=10),
            fatigue_level=_optional_int(payload, "fatigue_level", minimum=1, maximum=10),
            notes=str(payload.get("notes") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "date": self.date.isoformat(),
            "workout_type": self.workout_type,
        }
        if self.overall_rpe is not None:
            payload["overall_rpe"] = self.overall_rpe
        if self.fatigue_level is not None:
            payload["fatigue_level"] = self.fatigue_level
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class WorkoutSet:
    id: int
    session_id: int
    exercise_id: int
    set_number: int
    reps: int
    weight: float
    rpe: Optional[int] = None
    is_warmup: bool = False
    is_failure: bool = False

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WorkoutSet":
        # reps/weight stay loosely typed here; snapshot validation reports bad values.
        return cls(
            id=int(coerce_number(payload.get("id"), field="id", allow_float=False)),
            session_id=int(coerce_number(payload.get("session_id"), field="session_id", allow_float=False)),
            exercise_id=int(coerce_number(payload.get("exercise_id"), field="exercise_id", allow_float=False)),
            set_number=int(coerce_number(payload.get("set_number", 1), field="set_number", allow_float=False)),
            reps=int(coerce_number(payload.get("reps"), field="reps", allow_float=False)),
            weight=coerce_number(payload.get("weight"), field="weight"),
            rpe=_optional_int(payload, "rpe", minimum=1, maximum=10),
            is_warmup=bool(payload.get("is_warmup", False)),
            is_failure=bool(payload.get("is_failure", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "set_number": self.set_number,
            "reps": self.reps,
            "weight": self.weight,
        }
        if self.rpe is not None:
            payload["rpe"] = self.rpe
        if self.is_warmup:
            payload["is_warmup"] = True
        if self.is_failure:
            payload["is_failure"] = True
        return payload


@dataclass(frozen=True)
class Exercise:
    id: int
    name: str
    category: str = ""  # Compound, Isolation
    muscle_group: str = ""
    movement_pattern: str = ""  # Push, Pull, Hinge, Squat
    equipment: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Exercise":
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required.")
        return cls(
            id=int(coerce_number(payload.get("id"), field="id", allow_float=False)),
            name=name,
            category=str(payload.get("category") or ""),
            muscle_group=str(payload.get("muscle_group") or ""),
            movement_pattern=str(payload.get("movement_pattern") or ""),
            equipment=str(payload.get("equipment") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "muscle_group": self.muscle_group,
            "movement_pattern": self.movement_pattern,
            "equipment": self.equipment,
        }


@dataclass(frozen=True)
class BodyMeasurement:
    """Circumference measurements for one day; every field is optional."""

    date: date
    waist: Optional[float] = None
    chest: Optional[float] = None
    left_arm: Optional[float] = None
    right_arm: Optional[float] = None
    left_thigh: Optional[float] = None
    right_thigh: Optional[float] = None
    neck: Optional[float] = None
    hips: Optional[float] = None
    notes: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BodyMeasurement":
        values = {
            name: _optional_number(payload, name, minimum=0.0) for name in MEASUREMENT_FIELDS
        }
        return cls(
            date=parse_iso_date(payload.get("date"), field="date"),
            notes=str(payload.get("notes") or ""),
            **values,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"date": self.date.isoformat()}
        for name in MEASUREMENT_FIELDS:
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        if self.notes:
            payload["notes"] = self.notes
        return payload


def _by_key(items: Iterable[Any], key) -> Tuple[Any, ...]:
    return tuple(sorted(items, key=key))


@dataclass(frozen=True)
class RecordSnapshot:
    """Immutable, date-ordered view of every record collection.

    Collections are sorted on construction. Navigation between sessions, sets
    and exercises goes through the identifier-keyed helpers below.
    """

    daily_metrics: Tuple[DailyMetric, ...] = ()
    blood_pressure: Tuple[BloodPressureSample, ...] = ()
    sessions: Tuple[WorkoutSession, ...] = ()
    sets: Tuple[WorkoutSet, ...] = ()
    exercises: Tuple[Exercise, ...] = ()
    measurements: Tuple[BodyMeasurement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "daily_metrics", _by_key(self.daily_metrics, lambda item: item.date))
        object.__setattr__(self, "blood_pressure", _by_key(self.blood_pressure, lambda item: item.timestamp))
        object.__setattr__(self, "sessions", _by_key(self.sessions, lambda item: (item.date, item.id)))
        object.__setattr__(self, "sets", _by_key(self.sets, lambda item: (item.session_id, item.set_number, item.id)))
        object.__setattr__(self, "exercises", _by_key(self.exercises, lambda item: item.id))
        object.__setattr__(self, "measurements", _by_key(self.measurements, lambda item: item.date))

    def sets_by_session(self) -> Dict[int, Tuple[WorkoutSet, ...]]:
        grouped: Dict[int, List[WorkoutSet]] = defaultdict(list)
        for workout_set in self.sets:
            grouped[workout_set.session_id].append(workout_set)
        return {key: tuple(values) for key, values in grouped.items()}

    def sets_for_exercise(self, exercise_id: int) -> Tuple[WorkoutSet, ...]:
        return tuple(item for item in self.sets if item.exercise_id == exercise_id)

    def exercise_named(self, name: str) -> Exercise | None:
        target = name.strip().lower()
        for exercise in self.exercises:
            if exercise.name.strip().lower() == target:
                return exercise
        return None

    def session_dates(self) -> Dict[int, date]:
        return {session.id: session.date for session in self.sessions}

    def validate(self) -> None:
        """Check record invariants, raising one `RecordValidationError` listing every failure."""
        failures: List[Tuple[str, str]] = []

        seen_days: set[date] = set()
        for metric in self.daily_metrics:
            label = f"daily_metric[{metric.date.isoformat()}]"
            if metric.date in seen_days:
                failures.append((label, "duplicate date"))
            seen_days.add(metric.date)
            for name in ("weight", "calories", "protein_grams", "carbs_grams", "fat_grams", "steps"):
                if getattr(metric, name) < 0:
                    failures.append((label, f"{name} must be non-negative"))

        for sample in self.blood_pressure:
            if sample.systolic <= 0 or sample.diastolic <= 0:
                failures.append(
                    (f"blood_pressure[{sample.timestamp.isoformat()}]", "pressures must be positive")
                )

        session_ids = {session.id for session in self.sessions}
        if len(session_ids) != len(self.sessions):
            failures.append(("workout_sessions", "duplicate session id"))
        exercise_ids = {exercise.id for exercise in self.exercises}
        names = [exercise.name.strip().lower() for exercise in self.exercises]
        if len(set(names)) != len(names):
            failures.append(("exercises", "duplicate exercise name"))

        for workout_set in self.sets:
            label = f"workout_set[{workout_set.id}]"
            if isinstance(workout_set.reps, bool) or not isinstance(workout_set.reps, int) or workout_set.reps <= 0:
                failures.append((label, f"reps must be a positive integer; received {workout_set.reps!r}"))
            if workout_set.weight < 0:
                failures.append((label, f"weight must be non-negative; received {workout_set.weight!r}"))
            if workout_set.session_id not in session_ids:
                failures.append((label, f"unknown session {workout_set.session_id}"))
            if workout_set.exercise_id not in exercise_ids:
                failures.append((label, f"unknown exercise {workout_set.exercise_id}"))

        seen_measurements: set[date] = set()
        for measurement in self.measurements:
            label = f"body_measurement[{measurement.date.isoformat()}]"
            if measurement.date in seen_measurements:
                failures.append((label, "duplicate date"))
            seen_measurements.add(measurement.date)

        if failures:
            raise RecordValidationError(failures)
