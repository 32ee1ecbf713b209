"""
Market-level labels and plain-English takeaways built on top of the signals.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from signalscout.services.models import (
    MarketInsights,
    MonthlyPoint,
    PriceDrop,
    ProductSignalBundle,
    SeasonalitySignals,
    Series,
)
from signalscout.services.series import month_key
from signalscout.services.stats import mean_or_none, median_or_none, round_or_none

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_months(months: Sequence[int]) -> str:
    unique = sorted({m for m in months if 1 <= m <= 12})
    return ", ".join(MONTH_LABELS[m - 1] for m in unique)


# -------- labels --------

def pricing_behavior(volatility: Optional[float]) -> str:
    if volatility is None: return "Unknown"
    if volatility < 8: return "Stable"
    if volatility <= 20: return "Moderate"
    return "Volatile"


def discount_pressure(frequency: Optional[float]) -> str:
    if frequency is None: return "Unknown"
    if frequency < 10: return "Low"
    if frequency <= 30: return "Medium"
    return "High"


def rank_behavior(volatility: Optional[float]) -> str:
    if volatility is None: return "Unknown"
    return "Stable" if volatility < 30 else "Unstable"


def stockout_level(oos: Optional[float]) -> str:
    if oos is None: return "Unknown"
    if oos < 1: return "None detected"
    if oos < 7: return "Low"
    if oos <= 15: return "Medium"
    return "High"


def seasonality_level(score: Optional[float]) -> str:
    if score is None: return "Unknown"
    if score >= 60: return "High"
    if score >= 30: return "Medium"
    return "Low"


# -------- monthly series --------

def aggregate_monthly(points: Series) -> Dict[str, float]:
    buckets: Dict[str, List[float]] = defaultdict(list)
    for p in points:
        if p.value is not None:
            buckets[month_key(p.timestamp)].append(p.value)
    return {k: median_or_none(v) for k, v in sorted(buckets.items())}


def monthly_series(price: Series, rank: Series) -> List[MonthlyPoint]:
    prices = aggregate_monthly(price)
    ranks = aggregate_monthly(rank)
    months = sorted(set(prices) | set(ranks))
    return [MonthlyPoint(month=m, price=prices.get(m), rank=ranks.get(m)) for m in months]


def market_series(products: Sequence[ProductSignalBundle]) -> List[MonthlyPoint]:
    merged: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: {"price": [], "rank": []})
    for product in products:
        for item in product.monthly_series:
            if item.price is not None:
                merged[item.month]["price"].append(item.price)
            if item.rank is not None:
                merged[item.month]["rank"].append(item.rank)
    return [
        MonthlyPoint(month=m, price=mean_or_none(v["price"]), rank=mean_or_none(v["rank"]))
        for m, v in sorted(merged.items())
    ]


def _percentile(ordered: List[float], pct: float) -> float:
    pos = (len(ordered) - 1) * pct / 100.0
    below = int(pos)
    above = min(below + 1, len(ordered) - 1)
    return ordered[below] + (ordered[above] - ordered[below]) * (pos - below)


def typical_price_range(prices: List[float]):
    """5th to 95th percentile of observed prices; the full span under 6 points."""
    if not prices:
        return None, None
    ordered = sorted(prices)
    if len(ordered) < 6:
        return round_or_none(ordered[0], 2), round_or_none(ordered[-1], 2)
    return round_or_none(_percentile(ordered, 5), 2), round_or_none(_percentile(ordered, 95), 2)


def largest_price_drop(series: Sequence[MonthlyPoint]) -> PriceDrop:
    priced = [m for m in series if m.price is not None]
    best_pct, best_month = 0.0, None
    for prev, cur in zip(priced, priced[1:]):
        if not prev.price:
            continue
        drop = (prev.price - cur.price) / prev.price * 100.0
        if drop > best_pct:
            best_pct, best_month = drop, cur.month
    if best_month is None:
        return PriceDrop()
    return PriceDrop(pct=round(best_pct, 1), month=best_month)


# -------- text --------

def promo_interpretation(frequency: Optional[float], avg_drop: Optional[float]) -> str:
    if frequency is None:
        return "Not enough promo data to detect discounts reliably."
    if frequency >= 25 and (avg_drop or 0) >= 12:
        return "Promotions are frequent and deep."
    if frequency >= 15:
        return "Promotions show up regularly with moderate depth."
    if frequency >= 5:
        return "Promotions appear occasionally and are mostly shallow."
    return "Promotions are rare and shallow."


def seasonality_takeaway(seasonality: SeasonalitySignals) -> str:
    if seasonality.score is None or not seasonality.peak_months:
        return "Not enough history to identify a clear demand pattern."
    peak = format_months(seasonality.peak_months[:2])
    if seasonality.trough_months:
        return f"Demand tends to peak in {peak} and soften around {format_months(seasonality.trough_months[:2])}."
    return f"Demand tends to peak in {peak}."


def build_market_story(insights: MarketInsights, peak_months: Optional[Sequence[int]]) -> str:
    sentences: List[str] = []
    peaks = format_months(peak_months or ())

    level = insights.seasonality_level
    if level == "High":
        sentences.append(
            f"Demand is strongly seasonal, with the strongest months in {peaks} and slower off-season periods."
            if peaks else "Demand is strongly seasonal, with clear peak and off-season swings."
        )
    elif level == "Medium":
        sentences.append(
            f"Demand shows some seasonality, peaking in {peaks} while staying active the rest of the year."
            if peaks else "Demand shows some seasonality, with modest peaks and troughs."
        )
    elif level == "Low":
        sentences.append(
            f"Demand is relatively steady, with slightly stronger months in {peaks}."
            if peaks else "Demand is relatively steady throughout the year."
        )
    else:
        sentences.append("Demand seasonality is unclear due to limited history.")

    sentences.append({
        "Stable": "Pricing is stable overall, so competitors tend to hold price with less frequent repricing.",
        "Moderate": "Pricing is moderately volatile, so expect periodic repricing as competitors react.",
        "Volatile": "Pricing is volatile, with frequent repricing that can pressure margins.",
    }.get(insights.pricing_behavior, "Pricing behavior is unclear due to limited history."))

    if insights.promo_frequency_pct is not None:
        promo = {
            "Low": "Discounting is low overall",
            "Medium": "Discounting is moderate overall",
            "High": "Discounting is high overall",
        }.get(insights.discount_pressure, "Discounting appears in this market")
        if insights.avg_promo_drop_pct is not None:
            promo += f", with typical promo depth around {round(insights.avg_promo_drop_pct)}%."
        else:
            promo += "."
        sentences.append(promo)
    else:
        sentences.append("Discount history is limited, so promo pressure is unclear.")

    sentences.append({
        "Stable": "Demand looks steady based on historical BSR swings, which supports consistent inventory planning.",
        "Unstable": "Demand is choppy based on historical BSR swings, so plan inventory with buffer around peak months.",
    }.get(insights.rank_behavior, "Demand stability is unclear due to limited history."))

    sentences.append({
        "None detected": "Stockouts were not meaningful in this window, suggesting supply is generally consistent.",
        "Low": "Some minor stockouts appear, but supply looks mostly consistent.",
        "Medium": "Stockouts show up regularly, which can create opportunities when competitors run out during peak demand.",
        "High": "Stockouts are common, which can create opportunities when competitors run out during peak demand.",
    }.get(insights.stockout_level, "Stockout signals are unclear due to limited history."))

    return " ".join(sentences[:5])


def build_market_insights(
    products: Sequence[ProductSignalBundle],
    seasonality: SeasonalitySignals,
    series: Sequence[MonthlyPoint],
    average_oos: Optional[float],
) -> MarketInsights:
    price_vol = mean_or_none([p.signals.price.volatility_pct for p in products])
    rank_vol = mean_or_none([p.signals.rank.volatility_pct for p in products])
    promo_freq = mean_or_none([p.signals.price.promo_frequency_pct for p in products])
    drops = [e.drop_pct for p in products for e in p.signals.price.promo_episodes if e.drop_pct is not None]
    avg_drop = mean_or_none(drops)

    lo, hi = typical_price_range([m.price for m in series if m.price is not None])

    insights = MarketInsights(
        seasonality_level=seasonality_level(seasonality.score),
        pricing_behavior=pricing_behavior(price_vol),
        discount_pressure=discount_pressure(promo_freq),
        rank_behavior=rank_behavior(rank_vol),
        stockout_level=stockout_level(average_oos),
        price_volatility_pct=round_or_none(price_vol),
        rank_volatility_pct=round_or_none(rank_vol),
        promo_frequency_pct=round_or_none(promo_freq),
        avg_promo_drop_pct=round_or_none(avg_drop),
        typical_price_min=lo,
        typical_price_max=hi,
        largest_price_drop=largest_price_drop(series),
        promo_interpretation=promo_interpretation(promo_freq, avg_drop),
        seasonality_takeaway=seasonality_takeaway(seasonality),
    )
    story = build_market_story(insights, seasonality.peak_months)
    return replace(insights, story=story)
