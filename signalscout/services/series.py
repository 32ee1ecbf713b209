from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from signalscout.services.models import Series, SignalPoint

# A "month" is a flat 30 days here, so a 12-month window covers 360 days.
DAYS_PER_MONTH = 30
DEFAULT_MAX_POINTS = 365


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def cutoff_months(months: int, now: Optional[datetime] = None) -> datetime:
    return (now or now_utc()) - timedelta(days=months * DAYS_PER_MONTH)


def trim_to_months(points: Series, months: int, now: Optional[datetime] = None) -> Series:
    if not points:
        return points
    cut = cutoff_months(months, now)
    return [p for p in points if p.timestamp >= cut]


def downsample(points: Series, max_points: int = DEFAULT_MAX_POINTS) -> Series:
    """Keep every Nth point, N = ceil(len / max_points). First point always survives."""
    if max_points <= 0 or len(points) <= max_points:
        return points
    step = math.ceil(len(points) / max_points)
    return points[::step]


def to_dollars(points: Series) -> Series:
    return [
        SignalPoint(p.timestamp, p.value / 100 if p.value is not None else None)
        for p in points
    ]


def window(points: Series, months: int, max_points: int = DEFAULT_MAX_POINTS, now: Optional[datetime] = None) -> Series:
    return downsample(trim_to_months(points, months, now), max_points)


def present_values(points: Series) -> list:
    return [p.value for p in points if p.value is not None]


def present_points(points: Series) -> Series:
    return [p for p in points if p.value is not None]


def days_between(a: datetime, b: datetime) -> float:
    return (b - a).total_seconds() / 86400.0


def month_key(ts: datetime) -> str:
    return ts.strftime("%Y-%m")
