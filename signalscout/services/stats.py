from __future__ import annotations

import math
from statistics import median
from typing import Optional, Sequence

from signalscout.services.models import Series, SeriesStats

MIN_VOLATILITY_POINTS = 10
RANK_VOLATILITY_CAP = 150.0
RANK_STABILITY_CAP = 1.5

MIN_TREND_POINTS = 4
TREND_THRESHOLD = 0.05


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def mean_or_none(xs: Sequence[float]) -> Optional[float]:
    xs = [x for x in xs if x is not None]
    if not xs:
        return None
    m = sum(xs) / len(xs)
    return m if math.isfinite(m) else None


def median_or_none(xs: Sequence[float]) -> Optional[float]:
    xs = [x for x in xs if x is not None]
    return median(xs) if xs else None


def round_or_none(x: Optional[float], ndigits: int = 1) -> Optional[float]:
    if x is None or not math.isfinite(x):
        return None
    return round(x, ndigits)


def _pstdev(xs: Sequence[float], mean: float) -> float:
    return math.sqrt(sum((x - mean) ** 2 for x in xs) / len(xs))


def series_stats(points: Series) -> SeriesStats:
    values = [p.value for p in points if p.value is not None]
    if not values:
        return SeriesStats()

    # trailing points may be absent, so walk back to the last real reading
    current = None
    for p in reversed(points):
        if p.value is not None:
            current = p.value
            break

    return SeriesStats(
        current=current,
        avg=mean_or_none(values),
        min=min(values),
        max=max(values),
    )


def volatility_pct(values: Sequence[float], min_points: int = MIN_VOLATILITY_POINTS) -> Optional[float]:
    """Coefficient of variation in percent (population stddev / mean)."""
    if len(values) < min_points:
        return None
    mean = sum(values) / len(values)
    if not math.isfinite(mean) or mean == 0:
        return None
    return round_or_none(_pstdev(values, mean) / mean * 100.0)


def rank_volatility_pct(values: Sequence[float], min_points: int = MIN_VOLATILITY_POINTS) -> Optional[float]:
    """
    Dispersion of log(rank) in percent, clamped to [0, 150].

    Ranks are heavy-tailed (a jump from 1,000 to 50,000 is a multiplicative
    move), so the spread is measured on the log scale.
    """
    if len(values) < min_points:
        return None
    logs = [math.log(v) for v in values if v > 0]
    if len(logs) < min_points:
        return None
    mean = sum(logs) / len(logs)
    v = round_or_none(_pstdev(logs, mean) * 100.0)
    return clamp(v, 0.0, RANK_VOLATILITY_CAP) if v is not None else None


def stability_score(volatility: Optional[float]) -> Optional[float]:
    if volatility is None or not math.isfinite(volatility):
        return None
    return clamp(1 - clamp(volatility / 100.0, 0.0, 1.0), 0.0, 1.0)


def rank_stability_score(volatility: Optional[float]) -> Optional[float]:
    if volatility is None or not math.isfinite(volatility):
        return None
    return clamp(1 - clamp(volatility / 100.0, 0.0, RANK_STABILITY_CAP), 0.0, 1.0)


def _half_change(values: Sequence[float]) -> Optional[float]:
    """Relative change between the means of the first and second half."""
    if len(values) < MIN_TREND_POINTS:
        return None
    mid = len(values) // 2
    first, second = values[:mid], values[mid:]
    avg_first = sum(first) / len(first)
    avg_second = sum(second) / len(second)
    change = (avg_second - avg_first) / max(1.0, abs(avg_first))
    return change if math.isfinite(change) else None


def trend_direction(values: Sequence[float]) -> str:
    # Two-window comparison, not a regression: cheap and easy to explain.
    change = _half_change(values)
    if change is None:
        return "stable"
    if change > TREND_THRESHOLD:
        return "up"
    if change < -TREND_THRESHOLD:
        return "down"
    return "stable"


def rank_trend_label(values: Sequence[float]) -> str:
    # lower rank is better, so a rising rank is a declining product
    change = _half_change(values)
    if change is None:
        return "flat"
    if change < -TREND_THRESHOLD:
        return "improving"
    if change > TREND_THRESHOLD:
        return "declining"
    return "flat"


def trend_strength(volatility: Optional[float]) -> float:
    if volatility is None:
        return 0.0
    return min(1.0, abs(volatility / 100.0))


def rank_confidence(sample_count: int) -> float:
    if sample_count > 30:
        return 0.8
    if sample_count >= 10:
        return 0.6
    return 0.4
