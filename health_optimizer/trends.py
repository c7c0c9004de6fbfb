from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence, Tuple, Union

from .config import AppConfig, TrendPolicy, get_config
from .models import RecordSnapshot
from .results import (
    InsufficientData,
    RecompStatus,
    TrendClassification,
    TrendSignals,
    WeightDirection,
    WeightTrend,
)
from .strength import session_strength

LOGGER = logging.getLogger(__name__)


def decide_status(strength_up: bool, weight_down: bool, waist_down: bool) -> RecompStatus:
    """Resolve the three trend signals into one status, highest priority first."""
    losing = weight_down or waist_down
    if strength_up and losing:
        return RecompStatus.EXCELLENT_RECOMPOSITION
    if strength_up:
        return RecompStatus.BUILDING_STRENGTH
    if losing:
        return RecompStatus.LOSING_WEIGHT
    return RecompStatus.MAINTAINING


def windows(as_of: date, policy: TrendPolicy) -> Tuple[date, date]:
    """Return ``(prior_start, cutoff)``; the recent window is ``[cutoff, as_of]``."""
    cutoff = as_of - timedelta(weeks=policy.recent_weeks)
    return cutoff - timedelta(weeks=policy.prior_weeks), cutoff


def _average(values: Iterable[float]) -> Optional[float]:
    data = list(values)
    if not data:
        return None
    return sum(data) / len(data)


def _split(items: Iterable, key, prior_start: date, cutoff: date, as_of: date):
    recent, prior = [], []
    for item in items:
        day = key(item)
        if cutoff <= day <= as_of:
            recent.append(item)
        elif prior_start <= day < cutoff:
            prior.append(item)
    return recent, prior


def classify_trend(
    snapshot: RecordSnapshot,
    *,
    as_of: date,
    config: AppConfig | None = None,
) -> TrendClassification:
    """
    Compare the recent window with the one before it.

    Strength counts as rising on any increase in average session strength,
    weight only when it dropped by at least the configured margin, and waist on
    any decrease. A signal without data on both sides stays False.
    """
    policy = (config or get_config()).trend
    prior_start, cutoff = windows(as_of, policy)

    sets_by_session = snapshot.sets_by_session()
    recent_sessions, prior_sessions = _split(snapshot.sessions, lambda s: s.date, prior_start, cutoff, as_of)

    def _session_average(sessions) -> Optional[float]:
        totals = [session_strength(sets_by_session.get(session.id, ())) for session in sessions]
        return _average(total for total in totals if total > 0)

    recent_strength = _session_average(recent_sessions)
    prior_strength = _session_average(prior_sessions)
    strength_up = (
        recent_strength is not None and prior_strength is not None and recent_strength > prior_strength
    )

    recent_logs, prior_logs = _split(snapshot.daily_metrics, lambda m: m.date, prior_start, cutoff, as_of)
    recent_weight = _average(m.weight for m in recent_logs if m.weight > 0)
    prior_weight = _average(m.weight for m in prior_logs if m.weight > 0)
    weight_down = (
        recent_weight is not None
        and prior_weight is not None
        and recent_weight <= prior_weight - policy.weight_loss_margin
    )

    recent_body, prior_body = _split(snapshot.measurements, lambda m: m.date, prior_start, cutoff, as_of)
    recent_waist = _average(m.waist for m in recent_body if m.waist is not None)
    prior_waist = _average(m.waist for m in prior_body if m.waist is not None)
    waist_down = recent_waist is not None and prior_waist is not None and recent_waist < prior_waist

    status = decide_status(strength_up, weight_down, waist_down)
    LOGGER.debug(
        "Trend as of %s: strength_up=%s weight_down=%s waist_down=%s -> %s",
        as_of,
        strength_up,
        weight_down,
        waist_down,
        status.value,
    )
    return TrendClassification(
        status=status,
        signals=TrendSignals(
            strength_increasing=strength_up,
            weight_decreasing=weight_down,
            waist_decreasing=waist_down,
            cutoff=cutoff,
        ),
    )


def weight_trend(
    weekly_weights: Sequence[float],
    *,
    margin: float = 1.0,
) -> Union[WeightTrend, InsufficientData]:
    """Direction of travel between the first and last weekly average weight."""
    if not weekly_weights:
        return InsufficientData(reason="No weekly weights to compare.", required=1, available=0)
    change = float(weekly_weights[-1]) - float(weekly_weights[0])
    if change < -margin:
        direction = WeightDirection.LOSING
    elif change > margin:
        direction = WeightDirection.GAINING
    else:
        direction = WeightDirection.MAINTAINING
    return WeightTrend(direction=direction, change=round(change, 2), weeks=len(weekly_weights))
