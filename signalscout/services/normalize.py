"""
Keepa history decoding.

Keepa ships each history as one flat list of alternating
``[keepa_minutes, value, keepa_minutes, value, ...]`` integers, where
``keepa_minutes`` counts minutes since 2011-01-01 UTC. The meaning of the
sentinels ``-1`` and ``0`` depends on the field, so every field's rules live
in ``FIELDS`` below instead of at the call sites.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from signalscout.services.models import Series, SignalPoint

KEEPA_EPOCH = datetime(2011, 1, 1, tzinfo=timezone.utc)

# Keepa csv indices
AMAZON = 0
NEW = 1
USED = 2
SALES = 3
NEW_FBM_SHIPPING = 7
LIGHTNING_DEAL = 8
COUNT_NEW = 11
BUY_BOX_SHIPPING = 18


class FieldRule(NamedTuple):
    index: int
    allow_zero: bool = False
    allow_negative_one: bool = False


# allow_zero: 0 is a real reading (no offers, deal inactive), not "no data".
# allow_negative_one: -1 means "unavailable" rather than "no data".
FIELDS: Dict[str, FieldRule] = {
    "rank": FieldRule(SALES),
    "amazon_price": FieldRule(AMAZON),
    "new_price": FieldRule(NEW),
    "used_price": FieldRule(USED),
    "fbm_price": FieldRule(NEW_FBM_SHIPPING),
    "buy_box_price": FieldRule(BUY_BOX_SHIPPING),
    "buy_box_shipping": FieldRule(BUY_BOX_SHIPPING, allow_negative_one=True),
    "count_new": FieldRule(COUNT_NEW, allow_zero=True),
    "lightning_deal": FieldRule(LIGHTNING_DEAL, allow_zero=True, allow_negative_one=True),
}

# first non-empty wins
PRICE_SOURCES = ["buy_box_price", "new_price", "amazon_price", "used_price", "fbm_price"]
PRICE_SOURCE_LABELS = {
    "buy_box_price": "buyBox",
    "new_price": "new",
    "amazon_price": "amazon",
    "used_price": "used",
    "fbm_price": "fbm",
}


def to_float(x) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except Exception:
        return None
    return v if math.isfinite(v) else None


def normalize_value(value, allow_zero: bool = False, allow_negative_one: bool = False):
    v = to_float(value)
    if v is None:
        return None
    if v == -1 and allow_negative_one:
        return -1
    if v <= -1:
        return None
    if v == 0 and not allow_zero:
        return None
    return int(v) if v.is_integer() else v


def decode_series(
    raw,
    allow_zero: bool = False,
    allow_negative_one: bool = False,
    include_nulls: bool = False,
) -> Series:
    """
    Decode a flat Keepa history into SignalPoints sorted by timestamp.

    Pairs with a negative, non-numeric or out-of-range offset are skipped
    and a trailing unpaired offset is ignored. With include_nulls, points
    whose value normalizes to None are kept so gap logic can see the
    timeline shape.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return []

    points: List[SignalPoint] = []
    for i in range(0, len(raw) - 1, 2):
        minutes = to_float(raw[i])
        if minutes is None or minutes < 0:
            continue
        value = normalize_value(raw[i + 1], allow_zero=allow_zero, allow_negative_one=allow_negative_one)
        if value is None and not include_nulls:
            continue
        try:
            ts = KEEPA_EPOCH + timedelta(minutes=minutes)
        except OverflowError:
            continue
        points.append(SignalPoint(timestamp=ts, value=value))

    points.sort(key=lambda p: p.timestamp)
    return points


def raw_field(csv, index: int) -> list:
    """Pull one raw history out of a csv container (list by index, or dict keyed by int/str)."""
    if isinstance(csv, dict):
        arr = csv.get(index, csv.get(str(index)))
    elif isinstance(csv, (list, tuple)):
        arr = csv[index] if 0 <= index < len(csv) else None
    else:
        arr = None
    return arr if isinstance(arr, (list, tuple)) else []


def decode_field(csv, name: str, include_nulls: bool = True) -> Series:
    rule = FIELDS[name]
    return decode_series(
        raw_field(csv, rule.index),
        allow_zero=rule.allow_zero,
        allow_negative_one=rule.allow_negative_one,
        include_nulls=include_nulls,
    )


def select_price_series(decoded: Dict[str, Series]) -> Tuple[Series, Optional[str]]:
    for name in PRICE_SOURCES:
        series = decoded.get(name) or []
        if series:
            return series, PRICE_SOURCE_LABELS[name]
    return [], None


def validate_record(record: Any) -> Optional[str]:
    """Returns an error message for structurally unusable records, else None."""
    if not isinstance(record, dict):
        return "Invalid product data"
    if not record.get("asin"):
        return "Invalid product data: missing asin"
    if not isinstance(record.get("csv"), (list, tuple, dict)):
        return "Invalid product data: missing csv history"
    return None


def normalize_product(record: Dict[str, Any]) -> Dict[str, Any]:
    """Decode every known field of a Keepa product record (untrimmed)."""
    csv = record.get("csv")
    decoded = {name: decode_field(csv, name) for name in FIELDS}
    price, source = select_price_series(decoded)

    return {
        "asin": str(record.get("asin")),
        "title": record.get("title") or "Unknown Product",
        "brand": record.get("brand") or record.get("manufacturer") or None,
        "series": decoded,
        "price": price,
        "price_source": source,
    }
