from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Sequence

from .models import BloodPressureSample, DailyMetric, InvalidInput
from .results import AlignedPair

LOGGER = logging.getLogger(__name__)

PREDICTOR_FIELDS = ("carbs_grams", "protein_grams", "fat_grams", "calories", "steps", "weight", "sleep_hours")
OUTCOME_FIELDS = ("systolic", "diastolic", "pulse")


def align_by_date(
    samples: Sequence[BloodPressureSample],
    metrics: Sequence[DailyMetric],
    *,
    predictor: str = "carbs_grams",
    outcome: str = "systolic",
) -> List[AlignedPair]:
    """
    Pair each blood-pressure sample with a daily predictor value.

    The same calendar day is preferred; otherwise the day before is used, since
    intake tends to show up in the next morning's reading. Days whose predictor
    is missing or zero never match, and a sample with no match is dropped.
    """
    if predictor not in PREDICTOR_FIELDS:
        raise InvalidInput(f"Unsupported predictor {predictor!r}.")
    if outcome not in OUTCOME_FIELDS:
        raise InvalidInput(f"Unsupported outcome {outcome!r}.")

    by_day = {metric.date: metric for metric in metrics}
    pairs: List[AlignedPair] = []
    for sample in samples:
        outcome_value = getattr(sample, outcome)
        if outcome_value is None:
            continue
        for candidate_day in (sample.day, sample.day - timedelta(days=1)):
            metric = by_day.get(candidate_day)
            value = getattr(metric, predictor) if metric is not None else None
            if value is not None and value > 0:
                pairs.append(
                    AlignedPair(
                        predictor=float(value),
                        outcome=float(outcome_value),
                        sample_date=sample.day,
                        source_date=candidate_day,
                    )
                )
                break

    LOGGER.debug(
        "Aligned %d of %d samples on %s -> %s", len(pairs), len(samples), predictor, outcome
    )
    return pairs
