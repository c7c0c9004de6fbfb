from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from health_optimizer.config import AppConfig
from health_optimizer.models import (
    BloodPressureSample,
    BPCategory,
    DailyMetric,
    RecordSnapshot,
    RecordValidationError,
)
from health_optimizer.results import (
    CorrelationResult,
    CorrelationStrength,
    InsufficientData,
    MetricSource,
    OptimalRange,
    RecompStatus,
    WeightDirection,
    WeightTrend,
)
from health_optimizer.services import build_analysis_report, dashboard_summary

CARBS = [40.0, 60.0, 80.0, 120.0, 160.0]
SYSTOLIC = [110, 112, 118, 128, 140]


def _carb_snapshot() -> RecordSnapshot:
    start = date(2024, 1, 1)
    metrics = []
    readings = []
    for offset, (carbs, systolic) in enumerate(zip(CARBS, SYSTOLIC)):
        day = start + timedelta(days=offset)
        metrics.append(DailyMetric(date=day, carbs_grams=carbs, weight=85.0))
        readings.append(
            BloodPressureSample(
                timestamp=datetime(day.year, day.month, day.day, 7, 30),
                systolic=systolic,
                diastolic=78,
            )
        )
    return RecordSnapshot(daily_metrics=tuple(metrics), blood_pressure=tuple(readings))


def _calorie_snapshot() -> RecordSnapshot:
    weeks = [(2500, 90.0), (2300, 89.0), (2100, 88.0)]
    metrics = []
    for week, (calories, weight) in enumerate(weeks):
        for day in range(7):
            metrics.append(
                DailyMetric(
                    date=date(2024, 1, 1) + timedelta(days=week * 7 + day),
                    calories=calories,
                    weight=weight,
                )
            )
    return RecordSnapshot(daily_metrics=tuple(metrics))


def test_carbs_and_blood_pressure_end_to_end() -> None:
    report = build_analysis_report(_carb_snapshot(), as_of=date(2024, 1, 31), config=AppConfig())

    assert isinstance(report.carbs_bp, CorrelationResult)
    assert report.carbs_bp.coefficient > 0.9
    assert report.carbs_bp.strength is CorrelationStrength.STRONG

    assert isinstance(report.carb_range, OptimalRange)
    assert report.carb_range.high <= 80
    assert (report.carb_range.low, report.carb_range.high) == (40, 80)
    assert report.carb_range.avg_outcome_in_range == pytest.approx(113.3)
    assert report.carb_range.avg_outcome_outside_range == pytest.approx(134.0)

    assert report.status_message == "Analysis complete. Analyzed 5 data points."
    assert isinstance(report.protein_strength, InsufficientData)
    assert isinstance(report.calories_weight, InsufficientData)
    assert report.trend.status is RecompStatus.MAINTAINING

    (finding,) = report.recommendation.by_source(MetricSource.CARBS_BLOOD_PRESSURE)
    assert not finding.placeholder
    (calories,) = report.recommendation.by_source(MetricSource.CALORIES_WEIGHT)
    assert calories.placeholder


def test_sparse_readings_report_missing_data() -> None:
    snapshot = RecordSnapshot(
        daily_metrics=(DailyMetric(date=date(2024, 1, 1), carbs_grams=90.0),),
        blood_pressure=(BloodPressureSample(timestamp=datetime(2024, 1, 1, 8), systolic=121, diastolic=79),),
    )
    report = build_analysis_report(snapshot, as_of=date(2024, 1, 2), config=AppConfig())

    assert isinstance(report.carbs_bp, InsufficientData)
    assert (report.carbs_bp.required, report.carbs_bp.available) == (3, 1)
    assert report.carb_range == report.carbs_bp
    assert report.status_message.startswith("Not enough matched data.")
    placeholders = [
        fragment.source
        for fragment in report.recommendation.fragments
        if fragment.placeholder
    ]
    assert placeholders == [
        MetricSource.CARBS_BLOOD_PRESSURE,
        MetricSource.CARB_RANGE,
        MetricSource.PROTEIN_STRENGTH,
        MetricSource.CALORIES_WEIGHT,
        MetricSource.ACTION,
    ]


def test_calories_against_weekly_weight() -> None:
    report = build_analysis_report(_calorie_snapshot(), as_of=date(2024, 1, 21), config=AppConfig())

    assert len(report.calorie_weeks) == 3
    assert isinstance(report.calories_weight, CorrelationResult)
    assert report.calories_weight.coefficient == pytest.approx(1.0)
    assert report.calorie_range == (2100, 2500)
    assert isinstance(report.weight_trend, WeightTrend)
    assert report.weight_trend.direction is WeightDirection.LOSING
    assert len(report.weekly) == 3


def test_too_few_calorie_days() -> None:
    snapshot = RecordSnapshot(
        daily_metrics=tuple(
            DailyMetric(date=date(2024, 1, 1) + timedelta(days=offset), calories=2000, weight=80.0)
            for offset in range(9)
        )
    )
    report = build_analysis_report(snapshot, as_of=date(2024, 1, 10), config=AppConfig())
    assert isinstance(report.calories_weight, InsufficientData)
    assert (report.calories_weight.required, report.calories_weight.available) == (10, 9)
    assert report.calorie_range is None


def test_invalid_snapshot_is_rejected_before_analysis() -> None:
    snapshot = RecordSnapshot(
        daily_metrics=(DailyMetric(date=date(2024, 1, 1)), DailyMetric(date=date(2024, 1, 1), weight=80.0))
    )
    with pytest.raises(RecordValidationError):
        build_analysis_report(snapshot, as_of=date(2024, 1, 2), config=AppConfig())


def test_dashboard_summary_averages() -> None:
    summary = dashboard_summary(_carb_snapshot())
    assert summary.days_logged == 5
    assert summary.average_weight == pytest.approx(85.0)
    assert summary.average_carbs == pytest.approx(92.0)
    assert summary.bp_readings == 5
    assert summary.average_bp == "122/78"
    assert summary.bp_category is BPCategory.ELEVATED


def test_dashboard_summary_empty() -> None:
    summary = dashboard_summary(RecordSnapshot())
    assert summary.days_logged == 0
    assert summary.average_weight is None
    assert summary.average_bp is None


def test_weekly_calories_are_truncated_before_pairing() -> None:
    metrics = []
    for week, (calories, weight) in enumerate([(2500, 90.0), (2300, 89.0), (2100, 88.0)]):
        for day in range(7):
            # Odd days log one extra calorie, so each weekly mean lands 3/7 above the base.
            metrics.append(
                DailyMetric(
                    date=date(2024, 1, 1) + timedelta(days=week * 7 + day),
                    calories=calories + day % 2,
                    weight=weight,
                )
            )
    report = build_analysis_report(
        RecordSnapshot(daily_metrics=tuple(metrics)), as_of=date(2024, 1, 21), config=AppConfig()
    )

    assert report.calorie_weeks[0].avg_calories == pytest.approx(2500 + 3 / 7)
    assert isinstance(report.calories_weight, CorrelationResult)
    assert report.calories_weight.xs == (2500.0, 2300.0, 2100.0)
    assert report.calorie_range == (2100, 2500)
