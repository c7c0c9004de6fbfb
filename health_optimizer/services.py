from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Union

from .alignment import align_by_date
from .config import AppConfig, get_config
from .correlation import correlate
from .models import BPCategory, RecordSnapshot, bp_category
from .ranges import above, below, observed_range, optimal_range
from .recommendations import Recommendation, compose
from .results import (
    AlignedPair,
    Correlation,
    InsufficientData,
    RangeOutcome,
    TrendClassification,
    WeeklyPair,
    WeightTrend,
)
from .trends import classify_trend, weight_trend
from .weekly import DerivedWeeklyBucket, protein_strength_pairs, weekly_buckets

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    """Everything the presentation layer needs from one analysis run."""

    as_of: date
    aligned_pairs: Tuple[AlignedPair, ...]
    carbs_bp: Correlation
    carb_range: RangeOutcome
    protein_pairs: Tuple[WeeklyPair, ...]
    protein_strength: Correlation
    protein_range: RangeOutcome
    calorie_weeks: Tuple[DerivedWeeklyBucket, ...]
    calories_weight: Correlation
    calorie_range: Optional[Tuple[int, int]]
    weight_trend: Union[WeightTrend, InsufficientData]
    weekly: Tuple[DerivedWeeklyBucket, ...]
    trend: TrendClassification
    recommendation: Recommendation

    @property
    def status_message(self) -> str:
        if isinstance(self.carbs_bp, InsufficientData):
            return (
                "Not enough matched data. Need at least "
                f"{self.carbs_bp.required} BP readings with corresponding carb data."
            )
        return f"Analysis complete. Analyzed {len(self.aligned_pairs)} data points."


@dataclass(frozen=True)
class DashboardSummary:
    days_logged: int
    average_weight: Optional[float]
    average_calories: Optional[float]
    average_carbs: Optional[float]
    bp_readings: int
    average_bp: Optional[str]
    bp_category: Optional[BPCategory]


def _insufficient(reason: str, required: int, available: int) -> InsufficientData:
    LOGGER.info("%s (%d of %d)", reason, available, required)
    return InsufficientData(reason=reason, required=required, available=available)


def build_analysis_report(
    snapshot: RecordSnapshot,
    *,
    as_of: date,
    config: AppConfig | None = None,
) -> AnalysisReport:
    """
    Run every analysis over a record snapshot.

    Sparse data never raises: each analysis reports `InsufficientData` or
    `UndefinedStatistic` instead. A snapshot whose records break their own
    invariants raises `RecordValidationError` before anything is computed.
    """
    cfg = config or get_config()
    needs = cfg.requirements
    snapshot.validate()
    LOGGER.debug(
        "Analysing %d daily logs, %d BP samples, %d sessions as of %s",
        len(snapshot.daily_metrics),
        len(snapshot.blood_pressure),
        len(snapshot.sessions),
        as_of,
    )

    # Carbs vs systolic pressure.
    aligned = align_by_date(snapshot.blood_pressure, snapshot.daily_metrics)
    if len(aligned) < needs.min_aligned_pairs:
        carbs_bp: Correlation = _insufficient(
            "Not enough BP readings matched to carb data", needs.min_aligned_pairs, len(aligned)
        )
        carb_range: RangeOutcome = carbs_bp
    else:
        carbs_bp = correlate(aligned, minimum=needs.min_aligned_pairs, bands=cfg.correlation)
        carb_range = optimal_range(aligned, below(cfg.normal_systolic))

    # Protein vs week-over-week strength.
    sets_by_session = snapshot.sets_by_session()
    protein_pairs = protein_strength_pairs(
        snapshot.daily_metrics,
        snapshot.sessions,
        sets_by_session,
        gain_limit=needs.strength_gain_limit,
    )
    if len(protein_pairs) < needs.min_weekly_points:
        protein_strength: Correlation = _insufficient(
            "Not enough weekly protein/strength pairs", needs.min_weekly_points, len(protein_pairs)
        )
        protein_range: RangeOutcome = protein_strength
    else:
        protein_strength = correlate(protein_pairs, minimum=needs.min_weekly_points, bands=cfg.correlation)
        protein_range = optimal_range(protein_pairs, above(0.0))

    # Calories vs weekly average weight.
    logged = [m for m in snapshot.daily_metrics if m.calories > 0 and m.weight > 0]
    calorie_weeks: Tuple[DerivedWeeklyBucket, ...] = ()
    calorie_range: Optional[Tuple[int, int]] = None
    if len(logged) < needs.min_calorie_days:
        calories_weight: Correlation = _insufficient(
            "Not enough calorie/weight days", needs.min_calorie_days, len(logged)
        )
        trend_of_weight: Union[WeightTrend, InsufficientData] = calories_weight
    else:
        calorie_weeks = tuple(weekly_buckets(logged))
        if len(calorie_weeks) < needs.min_weekly_points:
            calories_weight = _insufficient(
                "Not enough weeks of calorie/weight data", needs.min_weekly_points, len(calorie_weeks)
            )
            trend_of_weight = calories_weight
        else:
            # Weekly calories are whole numbers, truncated toward zero.
            weekly_pairs = [
                WeeklyPair(
                    week_number=bucket.week_number,
                    predictor=float(math.trunc(bucket.avg_calories)),
                    outcome=bucket.avg_weight,
                )
                for bucket in calorie_weeks
            ]
            calories_weight = correlate(weekly_pairs, minimum=needs.min_weekly_points, bands=cfg.correlation)
            calorie_range = observed_range(pair.predictor for pair in weekly_pairs)
            trend_of_weight = weight_trend(
                [pair.outcome for pair in weekly_pairs],
                margin=cfg.trend.weight_trend_margin,
            )

    weekly = tuple(weekly_buckets(snapshot.daily_metrics, snapshot.sessions, sets_by_session))
    trend = classify_trend(snapshot, as_of=as_of, config=cfg)
    recommendation = compose(
        carbs_bp=carbs_bp,
        carb_range=carb_range,
        protein_strength=protein_strength,
        protein_range=protein_range,
        calories_weight=calories_weight,
        calorie_range=calorie_range,
        weight_trend=trend_of_weight,
        trend=trend,
    )
    LOGGER.info("Analysis as of %s finished with status %s", as_of, trend.status.value)
    return AnalysisReport(
        as_of=as_of,
        aligned_pairs=tuple(aligned),
        carbs_bp=carbs_bp,
        carb_range=carb_range,
        protein_pairs=tuple(protein_pairs),
        protein_strength=protein_strength,
        protein_range=protein_range,
        calorie_weeks=calorie_weeks,
        calories_weight=calories_weight,
        calorie_range=calorie_range,
        weight_trend=trend_of_weight,
        weekly=weekly,
        trend=trend,
        recommendation=recommendation,
    )


def dashboard_summary(snapshot: RecordSnapshot) -> DashboardSummary:
    """Headline averages across every logged day and reading."""
    logs = snapshot.daily_metrics
    readings = snapshot.blood_pressure

    average_weight = average_calories = average_carbs = None
    if logs:
        average_weight = round(sum(m.weight for m in logs) / len(logs), 1)
        average_calories = float(round(sum(m.calories for m in logs) / len(logs)))
        average_carbs = round(sum(m.carbs_grams for m in logs) / len(logs), 1)

    average_bp = category = None
    if readings:
        systolic = round(sum(r.systolic for r in readings) / len(readings))
        diastolic = round(sum(r.diastolic for r in readings) / len(readings))
        average_bp = f"{systolic}/{diastolic}"
        category = bp_category(systolic, diastolic)

    return DashboardSummary(
        days_logged=len(logs),
        average_weight=average_weight,
        average_calories=average_calories,
        average_carbs=average_carbs,
        bp_readings=len(readings),
        average_bp=average_bp,
        bp_category=category,
    )
