from __future__ import annotations

import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from signalscout import config
from signalscout.services.insights import build_market_insights, market_series, monthly_series
from signalscout.services.models import (
    CompetitivePosition,
    MarketSignalBundle,
    PriceSignals,
    ProductSignalBundle,
    ProductSignals,
    RankSignals,
    SeasonalitySignals,
    SeriesBundle,
    SignalMeta,
    StockSignals,
    TrendSummary,
)
from signalscout.services.normalize import normalize_product, validate_record
from signalscout.services.promo import promo_signals
from signalscout.services.seasonality import build_seasonality
from signalscout.services.series import now_utc, present_values, to_dollars, window
from signalscout.services.stats import (
    clamp,
    mean_or_none,
    rank_confidence,
    rank_stability_score,
    rank_trend_label,
    rank_volatility_pct,
    round_or_none,
    series_stats,
    stability_score,
    trend_direction,
    trend_strength,
    volatility_pct,
)
from signalscout.services.stock import stock_signals

logger = logging.getLogger(__name__)

PRICE_WAR_PROMO_PCT = 15.0
PRICE_WAR_STABILITY = 0.6


def risk_label(ratio: Optional[float], high: float, medium: float) -> str:
    if ratio is None:
        return "Unknown"
    if ratio >= high: return "High"
    if ratio >= medium: return "Medium"
    return "Low"


def competitive_position(avg_rank: Optional[float]) -> CompetitivePosition:
    if avg_rank is None or avg_rank <= 0:
        return CompetitivePosition(score=0.0, factors=("Insufficient BSR data",))
    score = clamp(10 - math.log10(avg_rank), 1.0, 10.0)
    return CompetitivePosition(score=score, factors=(f"Average BSR: {round(avg_rank):,}",))


def _error_bundle(record: Any, message: str, range_months: int, now: datetime) -> ProductSignalBundle:
    rec = record if isinstance(record, dict) else {}
    title = rec.get("title") or "Unknown Product"
    return ProductSignalBundle(
        asin=str(rec.get("asin") or "unknown"),
        title=title,
        brand=rec.get("brand") or rec.get("manufacturer") or None,
        status="error",
        error=message,
        signals=ProductSignals(
            price=PriceSignals(),
            rank=RankSignals(),
            stock=StockSignals(),
            seasonality=SeasonalitySignals(),
            meta=SignalMeta(last_updated=now, range_months=range_months),
        ),
        competitive_position=CompetitivePosition(score=0.0, factors=("Insufficient data",)),
    )


def build_product_signals(
    record: Dict[str, Any],
    range_months: Optional[int] = None,
    now: Optional[datetime] = None,
    max_points: Optional[int] = None,
    max_promo_days: Optional[float] = None,
) -> ProductSignalBundle:
    """
    Full signal bundle for one Keepa product record.

    Only a structurally broken record (no asin, no csv container) yields
    status "error"; thin history just leaves fields as None.
    """
    range_months = range_months or config.RANGE_MONTHS
    max_points = max_points or config.MAX_POINTS
    max_promo_days = config.MAX_PROMO_DAYS if max_promo_days is None else max_promo_days
    now = now or now_utc()

    problem = validate_record(record)
    if problem:
        bundle = _error_bundle(record, problem, range_months, now)
        logger.warning("Skipping product %s: %s", bundle.asin, problem)
        return bundle

    product = normalize_product(record)
    raw = product["series"]

    def win(points):
        return window(points, range_months, max_points, now)

    rank = win(raw["rank"])
    price = to_dollars(win(product["price"]))
    count_new = win(raw["count_new"])
    buy_box_shipping = win(raw["buy_box_shipping"])
    lightning = win(raw["lightning_deal"])

    price_values = present_values(price)
    rank_values = present_values(rank)

    price_stats = series_stats(price)
    rank_stats = series_stats(rank)
    price_vol = volatility_pct(price_values)
    rank_vol = rank_volatility_pct(rank_values)
    price_trend = trend_direction(price_values)
    rank_trend = trend_direction(rank_values)
    promo = promo_signals(price, lightning, max_promo_days=max_promo_days)

    signals = ProductSignals(
        price=PriceSignals(
            current=price_stats.current,
            avg=price_stats.avg,
            min=price_stats.min,
            max=price_stats.max,
            volatility_pct=price_vol,
            stability_score=stability_score(price_vol),
            promo_frequency_pct=promo.frequency_pct,
            avg_promo_drop_pct=promo.avg_drop_pct,
            trend=price_trend,
            promo_episodes=promo.episodes,
        ),
        rank=RankSignals(
            current=rank_stats.current,
            avg=rank_stats.avg,
            min=rank_stats.min,
            max=rank_stats.max,
            volatility_pct=rank_vol,
            stability_score=rank_stability_score(rank_vol),
            trend=rank_trend,
            trend_label=rank_trend_label(rank_values),
        ),
        stock=stock_signals(buy_box_shipping, count_new, price, rank),
        seasonality=build_seasonality(rank),
        meta=SignalMeta(last_updated=now, range_months=range_months),
    )

    series = SeriesBundle(
        rank=tuple(rank),
        price=tuple(price),
        price_source=product["price_source"],
        buy_box_price=tuple(to_dollars(win(raw["buy_box_price"]))),
        new_price=tuple(to_dollars(win(raw["new_price"]))),
        amazon_price=tuple(to_dollars(win(raw["amazon_price"]))),
        count_new=tuple(count_new),
        buy_box_shipping=tuple(buy_box_shipping),
        lightning_deal=tuple(lightning),
    )

    logger.debug(
        "Normalized %s: price points=%d (%s) rank points=%d current price=%s current rank=%s",
        product["asin"], len(price), product["price_source"], len(rank),
        price_stats.current, rank_stats.current,
    )

    return ProductSignalBundle(
        asin=product["asin"],
        title=product["title"],
        brand=product["brand"],
        status="complete",
        signals=signals,
        series=series,
        rank_trend=TrendSummary(
            direction=rank_trend,
            strength=trend_strength(rank_vol),
            confidence=rank_confidence(len(rank_values)),
        ),
        price_trend=TrendSummary(direction=price_trend, strength=trend_strength(price_vol)),
        competitive_position=competitive_position(rank_stats.avg),
        monthly_series=tuple(monthly_series(price, rank)),
    )


def build_market_signals(products: List[ProductSignalBundle]) -> MarketSignalBundle:
    """
    Market view across products.

    Seasonality pools every product's rank history into one run of the
    builder; it is not an average of per-product seasonality.
    """
    complete = [p for p in products if p.status == "complete"]

    pooled = sorted((pt for p in complete for pt in p.series.rank), key=lambda pt: pt.timestamp)
    seasonality = build_seasonality(pooled)

    oos_values = [p.signals.stock.oos_percent for p in complete if p.signals.stock.oos_percent is not None]
    average_oos = mean_or_none(oos_values)

    candidates = [
        p for p in complete
        if p.signals.price.promo_frequency_pct is not None and p.signals.price.stability_score is not None
    ]
    warring = [
        p for p in candidates
        if p.signals.price.promo_frequency_pct >= PRICE_WAR_PROMO_PCT
        and p.signals.price.stability_score <= PRICE_WAR_STABILITY
    ]
    war_ratio = len(warring) / len(candidates) if candidates else None

    series = tuple(market_series(complete))

    return MarketSignalBundle(
        seasonality=seasonality,
        price_war_risk=risk_label(war_ratio, 0.5, 0.25),
        stockout_pressure=risk_label(average_oos, 15.0, 7.0),
        average_oos_percent=round_or_none(average_oos),
        product_count=len(complete),
        market_series=series,
        insights=build_market_insights(complete, seasonality, series, average_oos),
    )


def analyze_products(
    records: Iterable[Dict[str, Any]],
    range_months: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Tuple[List[ProductSignalBundle], MarketSignalBundle]:
    now = now or now_utc()
    t = time.time()
    products = [build_product_signals(r, range_months=range_months, now=now) for r in records]
    market = build_market_signals(products)
    errors = sum(1 for p in products if p.status == "error")
    logger.info(
        "Analyzed %d products (%d errors) in %.2fs", len(products), errors, time.time() - t
    )
    return products, market
