"""
Promotion cadence from price history.

Each price is compared with the median of the strictly preceding prices in a
trailing 30-day window. A drop of 10% or more below that baseline is "in
promotion"; consecutive promotional points form one episode, and only episodes
lasting at least five days (and at most ``max_promo_days`` when given, to keep
long clearance markdowns out) count.

A series has no baseline during its first ~30 days, so no promotion can be
detected there.
"""
from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Tuple

from signalscout.services.models import PromoEpisode, PromoSignals, Series
from signalscout.services.series import days_between, present_points
from signalscout.services.stats import clamp, median_or_none, round_or_none

WINDOW_DAYS = 30
DROP_THRESHOLD = 0.10
MIN_PROMO_DAYS = 5
MIN_WINDOW_POINTS = 4
MIN_PRICE_POINTS = 10


def _counts(duration_days: float, max_promo_days: Optional[float]) -> bool:
    if duration_days < MIN_PROMO_DAYS:
        return False
    return not max_promo_days or duration_days <= max_promo_days


def detect_promo_episodes(price: Series, max_promo_days: Optional[float] = None) -> List[PromoEpisode]:
    points = sorted(present_points(price), key=lambda p: p.timestamp)
    if len(points) < MIN_PRICE_POINTS:
        return []

    window = timedelta(days=WINDOW_DAYS)
    episodes: List[PromoEpisode] = []
    start = None  # (point, baseline) at episode start
    lo = 0

    def close(end_ts):
        first, baseline = start
        duration = days_between(first.timestamp, end_ts)
        if _counts(duration, max_promo_days):
            drop = (baseline - first.value) / baseline * 100.0
            episodes.append(PromoEpisode(first.timestamp, end_ts, duration, drop, "inferred"))

    for i, point in enumerate(points):
        window_start = point.timestamp - window
        while points[lo].timestamp < window_start:
            lo += 1
        window_values = [q.value for q in points[lo:i] if q.timestamp < point.timestamp]
        if len(window_values) < MIN_WINDOW_POINTS:
            continue
        baseline = median_or_none(window_values)
        if not baseline:
            continue

        is_promo = point.value <= baseline * (1 - DROP_THRESHOLD)
        if is_promo and start is None:
            start = (point, baseline)
        elif not is_promo and start is not None:
            close(point.timestamp)
            start = None

    if start is not None:
        close(points[-1].timestamp)

    return episodes


def percent_time_active(points: Series, is_active=lambda v: v > 0) -> Optional[float]:
    valid = sorted(present_points(points), key=lambda p: p.timestamp)
    if len(valid) < 2:
        return None
    total = (valid[-1].timestamp - valid[0].timestamp).total_seconds()
    if total <= 0:
        return None
    active = 0.0
    for prev, cur in zip(valid, valid[1:]):
        duration = (cur.timestamp - prev.timestamp).total_seconds()
        if duration > 0 and is_active(prev.value):
            active += duration
    return clamp(active / total * 100.0, 0.0, 100.0)


def lightning_episodes(points: Series) -> List[PromoEpisode]:
    valid = sorted(present_points(points), key=lambda p: p.timestamp)
    if len(valid) < 2:
        return []
    episodes: List[PromoEpisode] = []
    start = None
    for p in valid:
        if p.value > 0 and start is None:
            start = p.timestamp
        elif p.value <= 0 and start is not None:
            episodes.append(PromoEpisode(start, p.timestamp, days_between(start, p.timestamp), None, "explicit"))
            start = None
    if start is not None:
        end = valid[-1].timestamp
        episodes.append(PromoEpisode(start, end, days_between(start, end), None, "explicit"))
    return episodes


def _frequency(price: Series, episodes: List[PromoEpisode]) -> Tuple[Optional[float], Optional[float]]:
    points = sorted(present_points(price), key=lambda p: p.timestamp)
    if len(points) < MIN_PRICE_POINTS:
        return None, None
    total_days = days_between(points[0].timestamp, points[-1].timestamp)
    if total_days <= 0:
        return None, None
    promo_days = sum(e.duration_days for e in episodes)
    frequency = round(clamp(promo_days / total_days * 100.0, 0.0, 100.0), 1)
    drops = [e.drop_pct for e in episodes if e.drop_pct is not None]
    avg_drop = round_or_none(sum(drops) / len(drops)) if drops else None
    return frequency, avg_drop


def promo_signals(
    price: Series,
    lightning: Optional[Series] = None,
    max_promo_days: Optional[float] = None,
) -> PromoSignals:
    """
    Promo frequency (% of observed time) and average depth from a dollar price series.

    When the lightning-deal flag series was ever active, its time share is
    taken as the frequency instead; the depth still comes from the price method.
    """
    episodes = detect_promo_episodes(price, max_promo_days=max_promo_days)
    frequency, avg_drop = _frequency(price, episodes)
    source = "price" if frequency is not None else None

    if lightning and any(p.value is not None and p.value > 0 for p in lightning):
        active = percent_time_active(lightning)
        if active is not None:
            frequency = round(active, 1)
            source = "lightning_deal"
            episodes = sorted(episodes + lightning_episodes(lightning), key=lambda e: e.start)

    return PromoSignals(
        frequency_pct=frequency,
        avg_drop_pct=avg_drop,
        episodes=tuple(episodes),
        source=source,
    )
