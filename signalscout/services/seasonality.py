from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, List, Tuple

from signalscout.services.models import SeasonalitySignals, Series
from signalscout.services.series import month_key

MIN_MONTHS_WITH_DATA = 6
TOP_MONTHS = 3


def build_seasonality(rank: Series, min_months: int = MIN_MONTHS_WITH_DATA) -> SeasonalitySignals:
    """
    Calendar-month demand index from rank history (100 = average month).

    Demand proxy is 1/rank. Readings are averaged per YYYY-MM bucket, then the
    buckets are pooled per calendar month across years, so three Decembers
    give one recurring December figure rather than three points on a curve.
    """
    buckets: Dict[str, Tuple[int, List[float]]] = {}
    for p in rank:
        if p.value is None or p.value <= 0:
            continue
        key = month_key(p.timestamp)
        if key not in buckets:
            buckets[key] = (p.timestamp.month, [])
        buckets[key][1].append(1.0 / max(p.value, 1))

    monthly = [(month, sum(ds) / len(ds)) for month, ds in buckets.values()]
    monthly = [(m, d) for m, d in monthly if math.isfinite(d)]
    months_with_data = len(monthly)

    if months_with_data < min_months:
        return SeasonalitySignals(months_with_data=months_with_data, enough_history=False)

    overall = sum(d for _, d in monthly) / months_with_data
    if not math.isfinite(overall) or overall <= 0:
        return SeasonalitySignals(months_with_data=months_with_data, enough_history=True)

    by_month = defaultdict(list)
    for m, d in monthly:
        by_month[m].append(d)

    index_by_month = tuple(
        (sum(by_month[m]) / len(by_month[m])) / overall * 100.0 if by_month[m] else None
        for m in range(1, 13)
    )

    valid = [(i + 1, v) for i, v in enumerate(index_by_month) if v is not None]
    if len(valid) < 2:
        return SeasonalitySignals(
            index_by_month=index_by_month,
            months_with_data=months_with_data,
            enough_history=True,
        )

    values = [v for _, v in valid]
    # sorted() is stable, so ties keep calendar order
    peaks = tuple(m for m, _ in sorted(valid, key=lambda mv: -mv[1])[:TOP_MONTHS])
    troughs = tuple(m for m, _ in sorted(valid, key=lambda mv: mv[1])[:TOP_MONTHS])

    return SeasonalitySignals(
        score=max(values) - min(values),
        peak_months=peaks,
        trough_months=troughs,
        index_by_month=index_by_month,
        months_with_data=months_with_data,
        enough_history=True,
    )
