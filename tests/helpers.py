from datetime import datetime, timedelta, timezone

from signalscout.services.models import SignalPoint
from signalscout.services.normalize import KEEPA_EPOCH

DAY_MINUTES = 24 * 60


def keepa_minutes(ts: datetime) -> int:
    return int((ts - KEEPA_EPOCH).total_seconds() // 60)


def flat(pairs):
    """[(minutes, value), ...] -> Keepa flat list."""
    out = []
    for m, v in pairs:
        out.extend([m, v])
    return out


def daily(values, start=None):
    """One SignalPoint per day starting at `start`."""
    start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [SignalPoint(start + timedelta(days=i), v) for i, v in enumerate(values)]


def at(day: float, value, start=None):
    start = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
    return SignalPoint(start + timedelta(days=day), value)
