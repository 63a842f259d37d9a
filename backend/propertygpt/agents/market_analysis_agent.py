"""
Market Analysis Engine - Derives market reports from raw time-series data.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..config import get_settings
from ..exceptions import CacheError
from ..models.market import (
    MarketData,
    PricePoint,
    InventoryDataPoint,
    MarketAnalysis,
    MarketSummary,
    PriceTrend,
    InventoryAnalysis,
    NeighborhoodComparison,
    PredictiveInsight,
    MarketRecommendation,
)
from ..services.cache import CacheBackend, NullCache, get_cache
from ..services.market_data_provider import MarketDataProvider, get_market_data_provider

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "market_analysis"
DEFAULT_CACHE_TTL = 1800

# Thresholds
PRICE_TREND_THRESHOLD = 0.02  # mean recent change (fraction) that triggers a price forecast
INVENTORY_TREND_THRESHOLD = 0.10  # change that flips inventory trend off "stable"
INVENTORY_FORECAST_THRESHOLD = 0.15
PRICE_CHANGE_THRESHOLD = 0.05  # change across the window that triggers a pricing recommendation


def classify_inventory_level(inventory_months: float) -> str:
    """Classify months of supply as low, balanced or high."""
    if inventory_months < 3:
        return "low"
    if inventory_months > 6:
        return "high"
    return "balanced"


def assess_market_tempo(days_on_market: float, inventory_months: float) -> str:
    """
    Classify sale velocity. Checks run in order; the first match wins.
    """
    if days_on_market < 20 and inventory_months < 2:
        return "hot"
    if days_on_market < 35 and inventory_months < 4:
        return "warm"
    if days_on_market < 60 and inventory_months < 8:
        return "cool"
    return "cold"


def calculate_price_change(price_history: List[PricePoint]) -> float:
    """
    Fractional price change from the first to the last period.

    Returns 0 with fewer than two periods or a missing/zero price.
    """
    if not price_history or len(price_history) < 2:
        return 0.0

    latest_price = price_history[-1].median_price
    earliest_price = price_history[0].median_price

    if not latest_price or not earliest_price:
        return 0.0

    return (latest_price - earliest_price) / earliest_price


def calculate_price_trends(price_history: List[PricePoint]) -> List[PriceTrend]:
    """
    Period-over-period changes. The first period has no predecessor and
    produces no entry.
    """
    trends = []

    for i in range(1, len(price_history)):
        current = price_history[i]
        previous = price_history[i - 1]

        current_price = current.median_price or 0
        previous_price = previous.median_price or 0

        trends.append(PriceTrend(
            period=current.period,
            median_price=current.median_price,
            change_pct=((current_price - previous_price) / previous_price) * 100 if previous_price else 0.0,
            change_amount=current_price - previous_price,
            volume=current.volume,
        ))

    return trends


def calculate_inventory_trend(inventory_data: List[InventoryDataPoint]) -> float:
    """Fractional change between the two most recent supply readings."""
    if not inventory_data or len(inventory_data) < 2:
        return 0.0

    latest_supply = inventory_data[-1].months_supply or 0
    previous_supply = inventory_data[-2].months_supply or 0

    if previous_supply == 0:
        return 0.0

    return (latest_supply - previous_supply) / previous_supply


def calculate_trend_direction(trends: List[PriceTrend]) -> float:
    """Mean change_pct of the given trends, as a fraction."""
    if len(trends) < 2:
        return 0.0

    changes = [t.change_pct or 0.0 for t in trends]
    return sum(changes) / len(changes) / 100


class NeighborhoodFallbackPolicy(ABC):
    """Supplies neighborhood comparisons when the provider has none."""

    @abstractmethod
    def compare(self, location: str, data: MarketData) -> List[NeighborhoodComparison]:
        """Return comparisons for the area around ``location``."""


class DeterministicNeighborhoodFallback(NeighborhoodFallbackPolicy):
    """
    Placeholder comparisons built from fixed offsets around the subject
    median price. Used when no external comparison data exists.
    """

    DEFAULT_BASE_PRICE = 750000

    # (name, price multiplier, price change, days on market)
    NEIGHBORHOODS = [
        ("Downtown", 0.92, 0.031, 38),
        ("Westside", 1.08, 0.045, 33),
        ("Hollywood", 0.97, 0.022, 47),
        ("Beverly Hills", 1.20, 0.080, 35),
        ("Santa Monica", 1.12, 0.050, 42),
    ]

    def compare(self, location: str, data: MarketData) -> List[NeighborhoodComparison]:
        base_price = data.median_price or self.DEFAULT_BASE_PRICE
        return [
            NeighborhoodComparison(
                name=name,
                median_price=round(base_price * multiplier, -2),
                price_change_pct=change,
                days_on_market=days,
            )
            for name, multiplier, change, days in self.NEIGHBORHOODS
        ]


class MarketAnalysisEngine:
    """
    Builds MarketAnalysis reports and caches them per (location, timeframe).

    The cache is a performance layer only: hits are returned verbatim and
    cache failures fall through to an uncached derivation.
    """

    def __init__(
        self,
        provider: Optional[MarketDataProvider] = None,
        cache: Optional[CacheBackend] = None,
        neighborhood_fallback: Optional[NeighborhoodFallbackPolicy] = None,
        cache_ttl: Optional[int] = None
    ):
        """
        Args:
            provider: Source of raw market data
            cache: Cache backend (NullCache disables caching)
            neighborhood_fallback: Policy used when the provider has no comparisons
            cache_ttl: Seconds a report stays cached
        """
        self.provider = provider or get_market_data_provider()
        self.cache = cache if cache is not None else NullCache()
        self.neighborhood_fallback = neighborhood_fallback or DeterministicNeighborhoodFallback()
        self.cache_ttl = cache_ttl or DEFAULT_CACHE_TTL

    @staticmethod
    def cache_key(location: str, timeframe: str) -> str:
        return f"{CACHE_KEY_PREFIX}:{location}:{timeframe}"

    def generate_market_analysis(self, location: str, timeframe: str = "6m") -> MarketAnalysis:
        """
        Produce the market analysis report for a location.

        Args:
            location: City, neighborhood or ZIP code
            timeframe: One of 1m, 3m, 6m, 1y, 2y

        Returns:
            MarketAnalysis report

        Raises:
            ProviderError: If the raw market data cannot be fetched
        """
        cache_key = self.cache_key(location, timeframe)

        cached = self._read_cache(cache_key)
        if cached is not None:
            logger.debug(f"Market analysis cache hit: {cache_key}")
            return cached

        data = self.provider.get_market_data(location, timeframe)
        analysis = self.analyze(location, timeframe, data)

        self._write_cache(cache_key, analysis)
        return analysis

    def analyze(self, location: str, timeframe: str, data: MarketData) -> MarketAnalysis:
        """Derive a report from already-fetched market data."""
        price_trends = calculate_price_trends(data.price_history)

        return MarketAnalysis(
            location=location,
            timeframe=timeframe,
            summary=self._generate_market_summary(data),
            price_trends=price_trends,
            inventory_analysis=self._analyze_inventory(data),
            neighborhood_comparison=self._compare_neighborhoods(location, data),
            predictive_insights=self._generate_predictive_insights(data, price_trends),
            recommendations=self._generate_recommendations(data),
        )

    def _read_cache(self, cache_key: str) -> Optional[MarketAnalysis]:
        try:
            cached = self.cache.get(cache_key)
        except CacheError as e:
            logger.warning(f"Cache read error: {e}")
            return None

        if not cached:
            return None

        try:
            return MarketAnalysis.model_validate_json(cached)
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry {cache_key}: {e}")
            return None

    def _write_cache(self, cache_key: str, analysis: MarketAnalysis):
        try:
            self.cache.setex(cache_key, self.cache_ttl, analysis.model_dump_json())
        except CacheError as e:
            logger.warning(f"Cache write error: {e}")

    def _generate_market_summary(self, data: MarketData) -> MarketSummary:
        return MarketSummary(
            median_price=data.median_price,
            average_price=data.average_price,
            price_change_pct=calculate_price_change(data.price_history),
            days_on_market=data.days_on_market,
            inventory_level=classify_inventory_level(data.inventory_months),
            market_tempo=assess_market_tempo(data.days_on_market, data.inventory_months),
            buyer_seller_ratio=data.buyer_seller_ratio,
        )

    def _analyze_inventory(self, data: MarketData) -> InventoryAnalysis:
        change = calculate_inventory_trend(data.inventory_trend)

        if change > INVENTORY_TREND_THRESHOLD:
            trend = "increasing"
        elif change < -INVENTORY_TREND_THRESHOLD:
            trend = "decreasing"
        else:
            trend = "stable"

        return InventoryAnalysis(
            months_supply=data.inventory_months,
            trend=trend,
            monthly_data=list(data.inventory_trend),
        )

    def _compare_neighborhoods(self, location: str, data: MarketData) -> List[NeighborhoodComparison]:
        if data.neighborhood_comparison:
            return list(data.neighborhood_comparison)
        return self.neighborhood_fallback.compare(location, data)

    def _generate_predictive_insights(
        self,
        data: MarketData,
        price_trends: List[PriceTrend]
    ) -> List[PredictiveInsight]:
        insights = []

        # Price prediction based on recent trends
        direction = calculate_trend_direction(price_trends[-3:])
        if abs(direction) > PRICE_TREND_THRESHOLD:
            rising = direction > 0
            insights.append(PredictiveInsight(
                type="price_forecast",
                title="Upward Price Pressure" if rising else "Downward Price Pressure",
                description=(
                    f"Based on recent trends, prices may {'increase' if rising else 'decrease'} "
                    f"by {abs(direction * 100):.1f}% over the next 3 months."
                ),
                confidence=0.75,
                impact="high",
                timeline="3_months",
            ))

        # Inventory predictions
        inventory_change = calculate_inventory_trend(data.inventory_trend)
        if abs(inventory_change) > INVENTORY_FORECAST_THRESHOLD:
            increasing = inventory_change > 0
            insights.append(PredictiveInsight(
                type="inventory_forecast",
                title="Increasing Inventory" if increasing else "Decreasing Inventory",
                description=(
                    f"Inventory levels are trending {'up' if increasing else 'down'}, which typically "
                    f"{'favors buyers' if increasing else 'favors sellers'}."
                ),
                confidence=0.68,
                impact="medium",
                timeline="2_months",
            ))

        # Market tempo insights
        if assess_market_tempo(data.days_on_market, data.inventory_months) == "hot":
            insights.append(PredictiveInsight(
                type="market_tempo",
                title="Competitive Market Alert",
                description=(
                    "Market is moving quickly with high demand. "
                    "Consider acting fast on desirable properties."
                ),
                confidence=0.82,
                impact="high",
                timeline="1_month",
            ))

        return insights

    def _generate_recommendations(self, data: MarketData) -> List[MarketRecommendation]:
        recommendations = []

        tempo = assess_market_tempo(data.days_on_market, data.inventory_months)
        inventory_level = classify_inventory_level(data.inventory_months)

        # Timing recommendations
        if tempo == "hot" and inventory_level == "low":
            recommendations.append(MarketRecommendation(
                title="Act Quickly",
                description="Hot market with low inventory. Be prepared to make competitive offers.",
                priority="high",
                category="timing",
            ))
        if tempo == "cool" and inventory_level == "high":
            recommendations.append(MarketRecommendation(
                title="Buyer's Market",
                description="Take your time and negotiate. Multiple options available.",
                priority="medium",
                category="strategy",
            ))

        # Price recommendations
        price_change = calculate_price_change(data.price_history)
        if price_change > PRICE_CHANGE_THRESHOLD:
            recommendations.append(MarketRecommendation(
                title="Rising Prices",
                description="Prices have increased recently. Consider buying sooner rather than later.",
                priority="high",
                category="pricing",
            ))
        elif price_change < -PRICE_CHANGE_THRESHOLD:
            recommendations.append(MarketRecommendation(
                title="Price Opportunity",
                description="Prices have declined. Good opportunity for value-conscious buyers.",
                priority="medium",
                category="pricing",
            ))

        return recommendations


# Singleton instance
_market_analysis_engine: Optional[MarketAnalysisEngine] = None


def get_market_analysis_engine() -> MarketAnalysisEngine:
    """Get or create the market analysis engine singleton."""
    global _market_analysis_engine
    if _market_analysis_engine is None:
        settings = get_settings()
        _market_analysis_engine = MarketAnalysisEngine(
            provider=get_market_data_provider(),
            cache=get_cache(),
            cache_ttl=settings.MARKET_ANALYSIS_CACHE_TTL,
        )
    return _market_analysis_engine
