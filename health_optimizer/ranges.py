from __future__ import annotations

import math
from typing import Callable, Iterable, Optional, Sequence, Tuple

from .models import InvalidInput
from .results import InsufficientData, NoQualifyingObservations, OptimalRange, RangeOutcome

Threshold = Callable[[float], bool]


def below(limit: float) -> Threshold:
    """Outcome predicate ``outcome < limit`` (e.g. normal systolic pressure)."""
    return lambda value: value < limit


def above(limit: float) -> Threshold:
    """Outcome predicate ``outcome > limit`` (e.g. a positive strength gain)."""
    return lambda value: value > limit


def _mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


def optimal_range(pairs: Iterable[object], threshold: Threshold) -> RangeOutcome:
    """
    Derive the predictor range seen among observations meeting ``threshold``.

    The range is ``[floor(min), ceil(max)]`` of the qualifying predictors. The
    two outcome averages then split *all* observations by whether the predictor
    falls inside that range, not by the threshold itself, so a non-qualifying
    observation whose predictor lands in the range counts as "in range".
    """
    items = [(float(item.predictor), float(item.outcome)) for item in pairs]  # type: ignore[attr-defined]
    if not items:
        return InsufficientData(reason="No observations to search for a range.", required=1, available=0)

    qualifying = [predictor for predictor, outcome in items if threshold(outcome)]
    if not qualifying:
        return NoQualifyingObservations(observations=len(items))

    low = math.floor(min(qualifying))
    high = math.ceil(max(qualifying))
    inside = [outcome for predictor, outcome in items if low <= predictor <= high]
    outside = [outcome for predictor, outcome in items if predictor < low or predictor > high]
    return OptimalRange(
        low=low,
        high=high,
        avg_outcome_in_range=_mean(inside),
        avg_outcome_outside_range=_mean(outside),
        qualifying=len(qualifying),
        observations=len(items),
    )


def observed_range(values: Iterable[float]) -> Tuple[int, int]:
    """Integer envelope ``(floor(min), ceil(max))`` of a series."""
    data = [float(value) for value in values]
    if not data:
        raise InvalidInput("observed_range needs at least one value.")
    return math.floor(min(data)), math.ceil(max(data))
