from datetime import datetime, timezone

from signalscout.services.insights import (
    build_market_story,
    discount_pressure,
    format_months,
    largest_price_drop,
    monthly_series,
    pricing_behavior,
    promo_interpretation,
    rank_behavior,
    seasonality_level,
    seasonality_takeaway,
    stockout_level,
    typical_price_range,
)
from signalscout.services.models import MarketInsights, MonthlyPoint, SeasonalitySignals, SignalPoint


def test_labels():
    assert pricing_behavior(None) == "Unknown"
    assert pricing_behavior(5) == "Stable"
    assert pricing_behavior(20) == "Moderate"
    assert pricing_behavior(21) == "Volatile"
    assert discount_pressure(9.9) == "Low"
    assert discount_pressure(30) == "Medium"
    assert discount_pressure(31) == "High"
    assert rank_behavior(29) == "Stable"
    assert rank_behavior(30) == "Unstable"
    assert stockout_level(0.5) == "None detected"
    assert stockout_level(6) == "Low"
    assert stockout_level(15) == "Medium"
    assert stockout_level(16) == "High"
    assert seasonality_level(60) == "High"
    assert seasonality_level(30) == "Medium"
    assert seasonality_level(10) == "Low"
    assert seasonality_level(None) == "Unknown"


def test_format_months_sorts_and_dedupes():
    assert format_months([12, 1, 12, 13]) == "Jan, Dec"
    assert format_months([]) == ""


def test_monthly_series_uses_medians():
    ts = lambda m, d: datetime(2024, m, d, tzinfo=timezone.utc)
    price = [SignalPoint(ts(1, 1), 10.0), SignalPoint(ts(1, 2), 30.0), SignalPoint(ts(1, 3), 11.0)]
    rank = [SignalPoint(ts(2, 1), 500), SignalPoint(ts(2, 2), None)]
    out = monthly_series(price, rank)
    assert out == [MonthlyPoint("2024-01", price=11.0), MonthlyPoint("2024-02", rank=500)]


def test_price_range_and_drop():
    assert typical_price_range([]) == (None, None)
    assert typical_price_range([3.0, 1.0]) == (1.0, 3.0)
    lo, hi = typical_price_range([float(x) for x in range(1, 22)])
    assert lo == 2.0 and hi == 20.0
    # interpolates between neighbours, order of input does not matter
    assert typical_price_range([float(x) for x in range(11, 0, -1)]) == (1.5, 10.5)

    series = [MonthlyPoint("2024-01", price=20.0), MonthlyPoint("2024-02", price=15.0), MonthlyPoint("2024-03", price=16.0)]
    drop = largest_price_drop(series)
    assert drop.pct == 25.0 and drop.month == "2024-02"
    assert largest_price_drop(series[2:]).pct is None


def test_text_helpers():
    assert promo_interpretation(None, None).startswith("Not enough")
    assert promo_interpretation(30, 15) == "Promotions are frequent and deep."
    assert promo_interpretation(3, None) == "Promotions are rare and shallow."

    assert seasonality_takeaway(SeasonalitySignals()).startswith("Not enough")
    s = SeasonalitySignals(score=80.0, peak_months=(12, 11, 1), trough_months=(6, 7, 5))
    assert seasonality_takeaway(s) == "Demand tends to peak in Nov, Dec and soften around Jun, Jul."


def test_market_story_sentences():
    insights = MarketInsights(
        seasonality_level="High",
        pricing_behavior="Volatile",
        discount_pressure="Medium",
        rank_behavior="Stable",
        stockout_level="None detected",
        promo_frequency_pct=12.0,
        avg_promo_drop_pct=18.4,
    )
    story = build_market_story(insights, [12])
    assert story.startswith("Demand is strongly seasonal, with the strongest months in Dec")
    assert "typical promo depth around 18%" in story
    assert "Stockouts were not meaningful" in story

    unknown = build_market_story(MarketInsights(), None)
    assert "unclear due to limited history" in unknown
    assert "Discount history is limited" in unknown
