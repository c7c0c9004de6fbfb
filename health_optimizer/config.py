from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .env import get_env

try:  # pragma: no cover - Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib  # type: ignore


@dataclass(frozen=True)
class CorrelationBands:
    """Absolute-coefficient cut points separating weak/moderate/strong."""

    moderate: float = 0.3
    strong: float = 0.7


@dataclass(frozen=True)
class TrendPolicy:
    recent_weeks: int = 8
    prior_weeks: int = 8
    weight_loss_margin: float = 1.0
    weight_trend_margin: float = 1.0


@dataclass(frozen=True)
class DataRequirements:
    min_aligned_pairs: int = 3
    min_calorie_days: int = 10
    min_weekly_points: int = 3
    strength_gain_limit: float = 100.0


@dataclass(frozen=True)
class AppConfig:
    normal_systolic: float = 120.0
    correlation: CorrelationBands = field(default_factory=CorrelationBands)
    trend: TrendPolicy = field(default_factory=TrendPolicy)
    requirements: DataRequirements = field(default_factory=DataRequirements)


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/health_optimizer.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else {}


def _coerce_bands(raw: Mapping[str, Any]) -> CorrelationBands:
    base = CorrelationBands()
    try:
        moderate = float(raw.get("moderate", base.moderate))
        strong = float(raw.get("strong", base.strong))
    except (TypeError, ValueError):
        return base
    if not 0.0 <= moderate <= strong <= 1.0:
        return base
    return CorrelationBands(moderate=moderate, strong=strong)


def _coerce_trend(raw: Mapping[str, Any]) -> TrendPolicy:
    base = TrendPolicy()
    try:
        return TrendPolicy(
            recent_weeks=int(raw.get("recent_weeks", base.recent_weeks)),
            prior_weeks=int(raw.get("prior_weeks", base.prior_weeks)),
            weight_loss_margin=float(raw.get("weight_loss_margin", base.weight_loss_margin)),
            weight_trend_margin=float(raw.get("weight_trend_margin", base.weight_trend_margin)),
        )
    except (TypeError, ValueError):
        return base


def _coerce_requirements(raw: Mapping[str, Any]) -> DataRequirements:
    base = DataRequirements()
    try:
        return DataRequirements(
            # pearson itself needs two points, so lower minimums are raised to that.
            min_aligned_pairs=max(2, int(raw.get("min_aligned_pairs", base.min_aligned_pairs))),
            min_calorie_days=int(raw.get("min_calorie_days", base.min_calorie_days)),
            min_weekly_points=int(raw.get("min_weekly_points", base.min_weekly_points)),
            strength_gain_limit=float(raw.get("strength_gain_limit", base.strength_gain_limit)),
        )
    except (TypeError, ValueError):
        return base


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    base = AppConfig()
    try:
        normal_systolic = float(raw.get("normal_systolic", base.normal_systolic))
    except (TypeError, ValueError):
        normal_systolic = base.normal_systolic
    return AppConfig(
        normal_systolic=normal_systolic,
        correlation=_coerce_bands(_section(raw, "correlation")),
        trend=_coerce_trend(_section(raw, "trend")),
        requirements=_coerce_requirements(_section(raw, "requirements")),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    if not path:
        return AppConfig()
    data = _load_toml(path)
    return _build_config(data)


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "normal_systolic": config.normal_systolic,
        "correlation": {
            "moderate": config.correlation.moderate,
            "strong": config.correlation.strong,
        },
        "trend": {
            "recent_weeks": config.trend.recent_weeks,
            "prior_weeks": config.trend.prior_weeks,
            "weight_loss_margin": config.trend.weight_loss_margin,
            "weight_trend_margin": config.trend.weight_trend_margin,
        },
        "requirements": {
            "min_aligned_pairs": config.requirements.min_aligned_pairs,
            "min_calorie_days": config.requirements.min_calorie_days,
            "min_weekly_points": config.requirements.min_weekly_points,
            "strength_gain_limit": config.requirements.strength_gain_limit,
        },
        "source": str(_config_path() or "defaults"),
    }
