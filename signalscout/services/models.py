from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class SignalPoint:
    timestamp: datetime
    value: Optional[float]


Series = List[SignalPoint]
FrozenSeries = Tuple[SignalPoint, ...]


@dataclass(frozen=True)
class SeriesBundle:
    """Decoded, trimmed and downsampled series for one product (chart input)."""
    rank: FrozenSeries = ()
    price: FrozenSeries = ()
    price_source: Optional[str] = None
    buy_box_price: FrozenSeries = ()
    new_price: FrozenSeries = ()
    amazon_price: FrozenSeries = ()
    count_new: FrozenSeries = ()
    buy_box_shipping: FrozenSeries = ()
    lightning_deal: FrozenSeries = ()


@dataclass(frozen=True)
class SeriesStats:
    current: Optional[float] = None
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True)
class PromoEpisode:
    start: datetime
    end: datetime
    duration_days: float
    drop_pct: Optional[float]
    source: str  # "inferred" | "explicit"


@dataclass(frozen=True)
class PromoSignals:
    frequency_pct: Optional[float] = None
    avg_drop_pct: Optional[float] = None
    episodes: Tuple[PromoEpisode, ...] = ()
    source: Optional[str] = None  # "price" | "lightning_deal"


@dataclass(frozen=True)
class PriceSignals:
    current: Optional[float] = None
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    volatility_pct: Optional[float] = None
    stability_score: Optional[float] = None
    promo_frequency_pct: Optional[float] = None
    avg_promo_drop_pct: Optional[float] = None
    trend: str = "stable"
    promo_episodes: Tuple[PromoEpisode, ...] = ()


@dataclass(frozen=True)
class RankSignals:
    current: Optional[float] = None
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    volatility_pct: Optional[float] = None
    stability_score: Optional[float] = None
    trend: str = "stable"
    trend_label: str = "flat"


@dataclass(frozen=True)
class StockSignals:
    oos_percent: Optional[float] = None
    longest_oos_days: Optional[int] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class SeasonalitySignals:
    score: Optional[float] = None
    peak_months: Optional[Tuple[int, ...]] = None
    trough_months: Optional[Tuple[int, ...]] = None
    index_by_month: Tuple[Optional[float], ...] = (None,) * 12
    months_with_data: int = 0
    enough_history: bool = False


@dataclass(frozen=True)
class SignalMeta:
    last_updated: datetime
    range_months: int


@dataclass(frozen=True)
class ProductSignals:
    price: PriceSignals
    rank: RankSignals
    stock: StockSignals
    seasonality: SeasonalitySignals
    meta: SignalMeta


@dataclass(frozen=True)
class TrendSummary:
    direction: str = "stable"
    strength: float = 0.0
    confidence: Optional[float] = None


@dataclass(frozen=True)
class CompetitivePosition:
    score: float = 0.0
    factors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MonthlyPoint:
    month: str  # "YYYY-MM"
    price: Optional[float] = None
    rank: Optional[float] = None


@dataclass(frozen=True)
class ProductSignalBundle:
    asin: str
    title: str
    status: str  # "complete" | "error"
    signals: ProductSignals
    brand: Optional[str] = None
    error: Optional[str] = None
    series: SeriesBundle = field(default_factory=SeriesBundle)
    rank_trend: TrendSummary = field(default_factory=TrendSummary)
    price_trend: TrendSummary = field(default_factory=TrendSummary)
    competitive_position: CompetitivePosition = field(default_factory=CompetitivePosition)
    monthly_series: Tuple[MonthlyPoint, ...] = ()


@dataclass(frozen=True)
class PriceDrop:
    pct: Optional[float] = None
    month: Optional[str] = None


@dataclass(frozen=True)
class MarketInsights:
    seasonality_level: str = "Unknown"
    pricing_behavior: str = "Unknown"
    discount_pressure: str = "Unknown"
    rank_behavior: str = "Unknown"
    stockout_level: str = "Unknown"
    price_volatility_pct: Optional[float] = None
    rank_volatility_pct: Optional[float] = None
    promo_frequency_pct: Optional[float] = None
    avg_promo_drop_pct: Optional[float] = None
    typical_price_min: Optional[float] = None
    typical_price_max: Optional[float] = None
    largest_price_drop: PriceDrop = field(default_factory=PriceDrop)
    promo_interpretation: str = ""
    seasonality_takeaway: str = ""
    story: str = ""


@dataclass(frozen=True)
class MarketSignalBundle:
    seasonality: SeasonalitySignals
    price_war_risk: str = "Unknown"
    stockout_pressure: str = "Unknown"
    average_oos_percent: Optional[float] = None
    product_count: int = 0
    market_series: Tuple[MonthlyPoint, ...] = ()
    insights: MarketInsights = field(default_factory=MarketInsights)

    @property
    def seasonality_score(self) -> Optional[float]:
        return self.seasonality.score

    @property
    def peak_months(self) -> Optional[Tuple[int, ...]]:
        return self.seasonality.peak_months

    @property
    def trough_months(self) -> Optional[Tuple[int, ...]]:
        return self.seasonality.trough_months
