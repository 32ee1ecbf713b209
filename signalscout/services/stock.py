"""
Out-of-stock exposure.

Every measure is time-weighted: the interval between two consecutive points
takes the state of the point that opens it. Keepa samples on change, so
counting points would badly misstate real downtime.
"""
from __future__ import annotations

import math
from typing import Callable, Optional

from signalscout.services.models import Series, SignalPoint, StockSignals
from signalscout.services.series import present_points
from signalscout.services.stats import clamp

DAY_SECONDS = 86400.0
GAP_DAYS = 7


def _time_weighted_oos(points: Series, is_down: Callable[[SignalPoint, float], bool]) -> Optional[StockSignals]:
    if len(points) < 2:
        return None
    ordered = sorted(points, key=lambda p: p.timestamp)
    total = (ordered[-1].timestamp - ordered[0].timestamp).total_seconds()
    if total <= 0:
        return None

    down = 0.0
    run = 0.0
    longest = 0.0
    for prev, cur in zip(ordered, ordered[1:]):
        duration = (cur.timestamp - prev.timestamp).total_seconds()
        if duration <= 0:
            continue
        if is_down(prev, duration):
            down += duration
            run += duration
            longest = max(longest, run)
        else:
            run = 0.0

    oos_percent = round(clamp(down / total * 100.0, 0.0, 100.0), 1)
    longest_days = min(int(round(longest / DAY_SECONDS)), math.floor(total / DAY_SECONDS))
    return StockSignals(oos_percent=oos_percent, longest_oos_days=max(0, longest_days))


def availability_oos(points: Series, is_oos_value: Callable[[float], bool]) -> StockSignals:
    """OOS from an explicit availability series; is_oos_value picks the 'unavailable' reading."""
    result = _time_weighted_oos(present_points(points), lambda prev, _d: is_oos_value(prev.value))
    return result or StockSignals()


def price_gap_oos(points: Series) -> StockSignals:
    # a missing price or a silent week both mean nobody could buy it
    gap = GAP_DAYS * DAY_SECONDS
    result = _time_weighted_oos(points, lambda prev, d: prev.value is None or d > gap)
    return result or StockSignals()


def rank_gap_oos(points: Series) -> StockSignals:
    gap = GAP_DAYS * DAY_SECONDS
    result = _time_weighted_oos(present_points(points), lambda _prev, d: d > gap)
    return result or StockSignals()


def _found(s: StockSignals) -> bool:
    return s.oos_percent is not None or s.longest_oos_days is not None


def stock_signals(
    buy_box_shipping: Series,
    count_new: Series,
    price: Series,
    rank: Series,
) -> StockSignals:
    """Walk the sources from most to least explicit; first usable answer wins."""
    candidates = [
        ("buy_box_shipping", lambda: availability_oos(buy_box_shipping, lambda v: v == -1)),
        ("count_new", lambda: availability_oos(count_new, lambda v: v == 0)),
        ("price_gaps", lambda: price_gap_oos(price)),
        ("rank_gaps", lambda: rank_gap_oos(rank)),
    ]
    for source, compute in candidates:
        s = compute()
        if _found(s):
            return StockSignals(s.oos_percent, s.longest_oos_days, source)
    return StockSignals()
