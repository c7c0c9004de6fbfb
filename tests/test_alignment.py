from __future__ import annotations

from datetime import date, datetime

import pytest

from health_optimizer.alignment import align_by_date
from health_optimizer.models import BloodPressureSample, DailyMetric, InvalidInput


def _reading(day: date, systolic: int, hour: int = 7) -> BloodPressureSample:
    return BloodPressureSample(
        timestamp=datetime(day.year, day.month, day.day, hour),
        systolic=systolic,
        diastolic=80,
    )


def test_same_day_is_preferred() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 2), carbs_grams=100.0),
        DailyMetric(date=date(2024, 1, 3), carbs_grams=50.0),
    ]
    pairs = align_by_date([_reading(date(2024, 1, 3), 118)], metrics)

    assert len(pairs) == 1
    assert pairs[0].predictor == pytest.approx(50.0)
    assert pairs[0].outcome == pytest.approx(118.0)
    assert not pairs[0].from_previous_day


def test_falls_back_to_previous_day_when_unlogged() -> None:
    metrics = [
        DailyMetric(date=date(2024, 1, 1), carbs_grams=100.0),
        DailyMetric(date=date(2024, 1, 2), carbs_grams=0.0),
    ]
    pairs = align_by_date([_reading(date(2024, 1, 2), 124)], metrics)

    assert len(pairs) == 1
    assert pairs[0].predictor == pytest.approx(100.0)
    assert pairs[0].sample_date == date(2024, 1, 2)
    assert pairs[0].source_date == date(2024, 1, 1)
    assert pairs[0].from_previous_day


def test_unmatched_samples_are_dropped() -> None:
    metrics = [DailyMetric(date=date(2024, 1, 1), carbs_grams=100.0)]
    readings = [_reading(date(2024, 1, 1), 120), _reading(date(2024, 1, 10), 130)]
    pairs = align_by_date(readings, metrics)
    assert [pair.sample_date for pair in pairs] == [date(2024, 1, 1)]


def test_each_reading_of_a_day_gets_its_own_pair() -> None:
    metrics = [DailyMetric(date=date(2024, 1, 1), carbs_grams=90.0)]
    readings = [_reading(date(2024, 1, 1), 118, hour=7), _reading(date(2024, 1, 1), 126, hour=21)]
    assert [pair.outcome for pair in align_by_date(readings, metrics)] == [118.0, 126.0]


def test_alternate_fields() -> None:
    metrics = [DailyMetric(date=date(2024, 1, 1), protein_grams=160.0)]
    pairs = align_by_date([_reading(date(2024, 1, 1), 118)], metrics, predictor="protein_grams", outcome="diastolic")
    assert pairs[0].predictor == pytest.approx(160.0)
    assert pairs[0].outcome == pytest.approx(80.0)


@pytest.mark.parametrize(("predictor", "outcome"), [("notes", "systolic"), ("carbs_grams", "timestamp")])
def test_unknown_fields_are_rejected(predictor: str, outcome: str) -> None:
    with pytest.raises(InvalidInput):
        align_by_date([], [], predictor=predictor, outcome=outcome)
