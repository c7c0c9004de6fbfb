"""Deterministic text guidance assembled from analysis outcomes.

The composer never drops a section: when an upstream analysis could not run,
its slot holds the fixed "continue tracking" placeholder for that metric, so
every report has the same shape and order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .results import (
    Correlation,
    CorrelationResult,
    InsufficientData,
    MetricSource,
    NoQualifyingObservations,
    OptimalRange,
    RangeOutcome,
    RecompStatus,
    TrendClassification,
    WeightDirection,
    WeightTrend,
)

PLACEHOLDERS = {
    MetricSource.CARBS_BLOOD_PRESSURE: "Continue tracking carbs and blood pressure to measure how they relate.",
    MetricSource.CARB_RANGE: "Continue tracking to identify your optimal carb range.",
    MetricSource.PROTEIN_STRENGTH: "Continue tracking protein and workouts to measure their effect on strength.",
    MetricSource.CALORIES_WEIGHT: "Continue tracking calories and weight for at least 10 days across 3 weeks.",
    MetricSource.RECOMPOSITION: "Continue tracking to establish a recomposition trend.",
    MetricSource.ACTION: "Continue tracking consistently; recommendations sharpen as data accumulates.",
}

ELEVATED_BP_TEXT = (
    "Your BP has been elevated in all readings. "
    "Consider reducing carbs further and consult your doctor."
)


@dataclass(frozen=True)
class Fragment:
    source: MetricSource
    text: str
    placeholder: bool = False


@dataclass(frozen=True)
class Recommendation:
    fragments: Tuple[Fragment, ...]

    def by_source(self, source: MetricSource) -> Tuple[Fragment, ...]:
        return tuple(fragment for fragment in self.fragments if fragment.source is source)

    def render(self) -> str:
        return "\n".join(f"- {fragment.text}" for fragment in self.fragments)


def _placeholder(source: MetricSource) -> Fragment:
    return Fragment(source=source, text=PLACEHOLDERS[source], placeholder=True)


def _describe(result: CorrelationResult) -> str:
    return f"{result.strength.value} ({result.coefficient:.2f})"


def _carbs_bp_fragment(result: Correlation) -> Fragment:
    if not isinstance(result, CorrelationResult):
        return _placeholder(MetricSource.CARBS_BLOOD_PRESSURE)
    direction = "increases" if result.positive else "decreases"
    return Fragment(
        MetricSource.CARBS_BLOOD_PRESSURE,
        f"Carbs vs blood pressure: {_describe(result)}. "
        f"Your BP {direction} as carb intake increases ({result.n} readings).",
    )


def _carb_range_fragment(result: RangeOutcome) -> Fragment:
    if isinstance(result, NoQualifyingObservations):
        return Fragment(MetricSource.CARB_RANGE, ELEVATED_BP_TEXT)
    if not isinstance(result, OptimalRange):
        return _placeholder(MetricSource.CARB_RANGE)
    text = f"Optimal carb range: {result.low}-{result.high} g/day."
    if result.outcome_gap is not None:
        text += (
            f" Avg BP in range {result.avg_outcome_in_range:.1f} mmHg vs "
            f"{result.avg_outcome_outside_range:.1f} mmHg outside "
            f"(difference {result.outcome_gap:.1f} mmHg)."
        )
    return Fragment(MetricSource.CARB_RANGE, text)


def _protein_fragment(correlation: Correlation, protein_range: RangeOutcome) -> Fragment:
    if not isinstance(correlation, CorrelationResult):
        return _placeholder(MetricSource.PROTEIN_STRENGTH)
    text = f"Protein vs strength gains: {_describe(correlation)}."
    if isinstance(protein_range, OptimalRange):
        text = f"Protein: {protein_range.low}-{protein_range.high} g/day. " + text
    return Fragment(MetricSource.PROTEIN_STRENGTH, text)


def _calorie_fragment(
    correlation: Correlation,
    calorie_range: Optional[Tuple[int, int]],
    trend: Union[WeightTrend, InsufficientData],
) -> Fragment:
    if not isinstance(correlation, CorrelationResult) or calorie_range is None:
        return _placeholder(MetricSource.CALORIES_WEIGHT)
    low, high = calorie_range
    text = f"Calories: {low}-{high}/day; correlation with weight: {_describe(correlation)}."
    if isinstance(trend, WeightTrend):
        if trend.direction is WeightDirection.MAINTAINING:
            text += " Weight trend: Maintaining."
        else:
            text += f" Weight trend: {trend.direction.value} {trend.rate_per_week:.1f}/week."
    return Fragment(MetricSource.CALORIES_WEIGHT, text)


def _status_fragment(trend: Optional[TrendClassification]) -> Fragment:
    if trend is None:
        return _placeholder(MetricSource.RECOMPOSITION)
    return Fragment(MetricSource.RECOMPOSITION, f"Recomp status: {trend.status.value}.")


def _action_fragments(
    trend: Optional[TrendClassification],
    carb_range: RangeOutcome,
    protein_range: RangeOutcome,
    calorie_range: Optional[Tuple[int, int]],
) -> List[Fragment]:
    actions: List[str] = []
    if isinstance(carb_range, OptimalRange):
        actions.append(
            f"Stay within {carb_range.low}-{carb_range.high} g carbs daily to maintain healthy BP."
        )
    if trend is not None:
        signals = trend.signals
        if trend.status is RecompStatus.EXCELLENT_RECOMPOSITION:
            actions.append("Keep doing what you're doing; you're achieving ideal recomp.")
            actions.append("Maintain current protein and calorie ranges.")
        elif not signals.strength_increasing and isinstance(protein_range, OptimalRange):
            actions.append(
                f"Consider increasing protein toward {protein_range.high} g for better strength gains."
            )
        if not (signals.weight_decreasing or signals.waist_decreasing) and calorie_range is not None:
            actions.append(
                f"If fat loss is your goal, try the lower end of your calorie range ({calorie_range[0]})."
            )
    if not actions:
        return [_placeholder(MetricSource.ACTION)]
    return [Fragment(MetricSource.ACTION, text) for text in actions]


def compose(
    *,
    carbs_bp: Correlation,
    carb_range: RangeOutcome,
    protein_strength: Correlation,
    protein_range: RangeOutcome,
    calories_weight: Correlation,
    calorie_range: Optional[Tuple[int, int]],
    weight_trend: Union[WeightTrend, InsufficientData],
    trend: Optional[TrendClassification],
) -> Recommendation:
    """Assemble the ordered recommendation; identical inputs give identical output."""
    fragments = [
        _carbs_bp_fragment(carbs_bp),
        _carb_range_fragment(carb_range),
        _protein_fragment(protein_strength, protein_range),
        _calorie_fragment(calories_weight, calorie_range, weight_trend),
        _status_fragment(trend),
    ]
    fragments.extend(_action_fragments(trend, carb_range, protein_range, calorie_range))
    return Recommendation(fragments=tuple(fragments))
