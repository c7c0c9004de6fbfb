from __future__ import annotations

import logging
from typing import Iterable, Sequence, Union

import numpy as np

from .config import CorrelationBands, get_config
from .models import InsufficientDataError, InvalidInput
from .results import (
    Correlation,
    CorrelationResult,
    CorrelationStrength,
    InsufficientData,
    UndefinedStatistic,
)

LOGGER = logging.getLogger(__name__)


def pearson(xs: Sequence[float], ys: Sequence[float]) -> Union[float, UndefinedStatistic]:
    """
    Pearson correlation coefficient of two equal-length series.

    Returns `UndefinedStatistic` when either series is constant, so NaN never
    escapes. The result is clamped to [-1, 1] against rounding drift.
    """
    if len(xs) != len(ys):
        raise InvalidInput(f"Series lengths differ ({len(xs)} != {len(ys)}).")
    if len(xs) < 2:
        raise InsufficientDataError(f"Correlation needs at least 2 points; received {len(xs)}.")

    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvalidInput("Series must contain finite numbers only.")
    if np.all(x == x[0]) or np.all(y == y[0]):
        return UndefinedStatistic(reason="One of the series has zero variance.")

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denominator == 0:
        return UndefinedStatistic(reason="One of the series has zero variance.")
    coefficient = float(np.sum(dx * dy) / denominator)
    return max(-1.0, min(1.0, coefficient))


def classify(coefficient: float, bands: CorrelationBands | None = None) -> CorrelationStrength:
    """Band |r| into weak / moderate / strong; upper cut points are inclusive."""
    cuts = bands or get_config().correlation
    magnitude = abs(coefficient)
    if magnitude < cuts.moderate:
        return CorrelationStrength.WEAK
    if magnitude < cuts.strong:
        return CorrelationStrength.MODERATE
    return CorrelationStrength.STRONG


def correlate(
    pairs: Iterable[object],
    *,
    minimum: int = 3,
    bands: CorrelationBands | None = None,
) -> Correlation:
    """
    Correlate the predictor/outcome attributes of aligned pairs.

    Too few pairs yields `InsufficientData`; constant series yield
    `UndefinedStatistic`. Neither case raises.
    """
    items = list(pairs)
    required = max(2, minimum)
    if len(items) < required:
        LOGGER.info("Skipping correlation: %d of %d required pairs", len(items), required)
        return InsufficientData(
            reason="Not enough paired observations to correlate.",
            required=required,
            available=len(items),
        )

    xs = tuple(float(item.predictor) for item in items)  # type: ignore[attr-defined]
    ys = tuple(float(item.outcome) for item in items)  # type: ignore[attr-defined]
    coefficient = pearson(xs, ys)
    if isinstance(coefficient, UndefinedStatistic):
        LOGGER.info("Correlation undefined: %s", coefficient.reason)
        return coefficient
    return CorrelationResult(
        coefficient=coefficient,
        strength=classify(coefficient, bands),
        xs=xs,
        ys=ys,
    )
