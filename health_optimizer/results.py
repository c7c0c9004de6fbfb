"""Outcome types returned by the analytics functions.

Every analysis returns either a populated result or one of the explicit
"no answer" markers below (`InsufficientData`, `UndefinedStatistic`,
`NoQualifyingObservations`). Callers branch on the type with `isinstance`
or `match`; nothing in this module carries NaN.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Tuple, Union


class CorrelationStrength(str, Enum):
    WEAK = "Weak"
    MODERATE = "Moderate"
    STRONG = "Strong"


class RecompStatus(str, Enum):
    EXCELLENT_RECOMPOSITION = "Excellent Recomp"
    BUILDING_STRENGTH = "Building Strength"
    LOSING_WEIGHT = "Losing Weight"
    MAINTAINING = "Maintaining"


class WeightDirection(str, Enum):
    LOSING = "Losing"
    GAINING = "Gaining"
    MAINTAINING = "Maintaining"


class MetricSource(str, Enum):
    """Metric a recommendation fragment refers to."""

    CARBS_BLOOD_PRESSURE = "carbs_blood_pressure"
    CARB_RANGE = "carb_range"
    PROTEIN_STRENGTH = "protein_strength"
    CALORIES_WEIGHT = "calories_weight"
    RECOMPOSITION = "recomposition"
    ACTION = "action"


@dataclass(frozen=True)
class InsufficientData:
    reason: str
    required: int
    available: int


@dataclass(frozen=True)
class UndefinedStatistic:
    reason: str


@dataclass(frozen=True)
class NoQualifyingObservations:
    """No observation met the outcome threshold, so no range exists."""

    observations: int


@dataclass(frozen=True)
class AlignedPair:
    predictor: float
    outcome: float
    sample_date: date
    source_date: date

    @property
    def from_previous_day(self) -> bool:
        return self.source_date != self.sample_date


@dataclass(frozen=True)
class CorrelationResult:
    coefficient: float
    strength: CorrelationStrength
    xs: Tuple[float, ...]
    ys: Tuple[float, ...]

    @property
    def n(self) -> int:
        return len(self.xs)

    @property
    def positive(self) -> bool:
        return self.coefficient > 0

    @property
    def points(self) -> Tuple[Tuple[float, float], ...]:
        """Paired series for scatter plots."""
        return tuple(zip(self.xs, self.ys))


@dataclass(frozen=True)
class OptimalRange:
    low: int
    high: int
    avg_outcome_in_range: Optional[float]
    avg_outcome_outside_range: Optional[float]
    qualifying: int
    observations: int

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    @property
    def outcome_gap(self) -> Optional[float]:
        if self.avg_outcome_in_range is None or self.avg_outcome_outside_range is None:
            return None
        return round(self.avg_outcome_outside_range - self.avg_outcome_in_range, 1)


@dataclass(frozen=True)
class WeightTrend:
    direction: WeightDirection
    change: float
    weeks: int

    @property
    def rate_per_week(self) -> float:
        return abs(self.change / self.weeks) if self.weeks else 0.0


@dataclass(frozen=True)
class TrendSignals:
    strength_increasing: bool
    weight_decreasing: bool
    waist_decreasing: bool
    cutoff: date


@dataclass(frozen=True)
class TrendClassification:
    status: RecompStatus
    signals: TrendSignals


@dataclass(frozen=True)
class WeeklyPair:
    """Predictor/outcome pair keyed by year-relative week number."""

    week_number: int
    predictor: float
    outcome: float


Correlation = Union[CorrelationResult, InsufficientData, UndefinedStatistic]
RangeOutcome = Union[OptimalRange, NoQualifyingObservations, InsufficientData]
