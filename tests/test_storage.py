from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from health_optimizer.models import (
    BloodPressureSample,
    BodyMeasurement,
    DailyMetric,
    RecordSnapshot,
    ValidationError,
)
from health_optimizer.storage import InMemoryRecordStore, JsonRecordStore, save_snapshot, snapshot_from_payload


def test_date_range_queries_are_inclusive() -> None:
    store = InMemoryRecordStore(
        RecordSnapshot(
            daily_metrics=tuple(DailyMetric(date=date(2024, 1, day), weight=80.0) for day in range(1, 6)),
            blood_pressure=(
                BloodPressureSample(timestamp=datetime(2024, 1, 2, 23, 59), systolic=120, diastolic=80),
                BloodPressureSample(timestamp=datetime(2024, 1, 6, 7, 0), systolic=118, diastolic=76),
            ),
        )
    )
    days = [metric.date.day for metric in store.daily_metrics(date(2024, 1, 2), date(2024, 1, 4))]
    assert days == [2, 3, 4]
    assert len(store.blood_pressure(end=date(2024, 1, 2))) == 1


def test_upsert_daily_metric_replaces_same_day() -> None:
    store = InMemoryRecordStore()
    store.upsert_daily_metric(DailyMetric(date=date(2024, 1, 1), weight=80.0))
    store.upsert_daily_metric(DailyMetric(date=date(2024, 1, 1), weight=79.5))
    (metric,) = store.daily_metrics()
    assert metric.weight == pytest.approx(79.5)


def test_upsert_measurement_keeps_stored_values_for_empty_fields() -> None:
    store = InMemoryRecordStore()
    store.upsert_measurement(BodyMeasurement(date=date(2024, 1, 1), waist=90.0, chest=104.0))
    merged = store.upsert_measurement(BodyMeasurement(date=date(2024, 1, 1), waist=89.0, notes="after cut"))

    assert merged.waist == pytest.approx(89.0)
    assert merged.chest == pytest.approx(104.0)
    assert merged.notes == "after cut"
    assert len(store.measurements()) == 1


def test_log_workout_set_continues_set_numbers() -> None:
    store = InMemoryRecordStore()
    first = store.log_workout_set(day=date(2024, 2, 1), exercise_name="Bench Press", reps=5, weight=100.0, sets=3)
    second = store.log_workout_set(day=date(2024, 2, 1), exercise_name="bench press", reps=3, weight=105.0, sets=2)

    assert [item.set_number for item in first] == [1, 2, 3]
    assert [item.set_number for item in second] == [4, 5]
    assert len(store.sessions()) == 1
    assert len(store.exercises()) == 1
    assert {item.session_id for item in store.sets()} == {1}
    assert len({item.id for item in store.sets()}) == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"exercise_name": " ", "reps": 5, "weight": 100.0},
        {"exercise_name": "Row", "reps": 0, "weight": 100.0},
        {"exercise_name": "Row", "reps": 5, "weight": -1.0},
        {"exercise_name": "Row", "reps": 5, "weight": 60.0, "sets": 0},
    ],
)
def test_log_workout_set_validates_input(kwargs: dict[str, object]) -> None:
    store = InMemoryRecordStore()
    with pytest.raises(ValidationError):
        store.log_workout_set(day=date(2024, 2, 1), **kwargs)  # type: ignore[arg-type]
    assert store.sets() == ()


def test_json_store_round_trip(monkeypatch, tmp_path) -> None:
    records_file = tmp_path / "nested" / "records.json"
    monkeypatch.setenv("HEALTH_OPTIMIZER_RECORDS_FILE", str(records_file))

    store = JsonRecordStore()
    assert store.snapshot() == RecordSnapshot()
    store.upsert_daily_metric(DailyMetric(date=date(2024, 1, 1), weight=82.3, carbs_grams=110.0, sleep_hours=7.0))
    store.add_blood_pressure(
        BloodPressureSample(timestamp=datetime(2024, 1, 2, 7, 15), systolic=122, diastolic=79, pulse=61)
    )
    store.log_workout_set(day=date(2024, 1, 2), exercise_name="Deadlift", reps=3, weight=180.0, rpe=8)
    assert store.save() == records_file

    payload = json.loads(records_file.read_text(encoding="utf-8"))
    assert payload["workout_sets"][0]["rpe"] == 8
    assert "saved_at" in payload

    reloaded = JsonRecordStore(records_file)
    assert reloaded.snapshot() == store.snapshot()


def test_json_store_names_invalid_rows(tmp_path) -> None:
    records_file = tmp_path / "records.json"
    records_file.write_text(
        json.dumps(
            {
                "daily_metrics": [{"date": "2024-01-01"}, {"date": "yesterday"}],
                "blood_pressure": [{"timestamp": "2024-01-01T07:00:00", "systolic": "high", "diastolic": 80}],
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError) as excinfo:
        JsonRecordStore(records_file)
    message = str(excinfo.value)
    assert "daily_metrics[1]" in message
    assert "blood_pressure[0]" in message


def test_json_store_rejects_malformed_documents(tmp_path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonRecordStore(broken)

    listed = tmp_path / "listed.json"
    listed.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonRecordStore(listed)


def test_snapshot_from_payload_requires_lists() -> None:
    with pytest.raises(ValueError):
        snapshot_from_payload({"exercises": {"id": 1}})


def test_save_snapshot_writes_store_layout(tmp_path) -> None:
    target = tmp_path / "nested" / "records.json"
    snapshot = RecordSnapshot(daily_metrics=(DailyMetric(date=date(2024, 1, 1), carbs_grams=90.0),))

    assert save_snapshot(snapshot, target) == target
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["daily_metrics"][0]["date"] == "2024-01-01"
    assert "saved_at" in payload
    assert JsonRecordStore(target).snapshot().daily_metrics == snapshot.daily_metrics
    assert list(target.parent.iterdir()) == [target]
