"""
Market data providers.

Providers fetch raw market records and normalize them into the canonical
``MarketData`` model, so analysis code never deals with field-name variants.
"""

import logging
import random
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from ..config import get_settings
from ..exceptions import ProviderError
from ..models.market import MarketData, PricePoint, InventoryDataPoint, NeighborhoodComparison

logger = logging.getLogger(__name__)

DEFAULT_DAYS_ON_MARKET = 45
DEFAULT_INVENTORY_MONTHS = 3

# Number of monthly periods generated for each timeframe
TIMEFRAME_PERIODS = {"1m": 2, "3m": 3, "6m": 6, "1y": 12, "2y": 24}


def _first(*values: Any) -> Any:
    """Return the first truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> int:
    try:
        return int(float(value or 0))
    except (TypeError, ValueError):
        return 0


def _normalize_price_point(item: Dict[str, Any]) -> PricePoint:
    return PricePoint(
        period=str(item.get("period") or item.get("month") or item.get("date") or ""),
        median_price=_to_float(_first(item.get("median_price"), item.get("price"))),
        volume=_to_int(_first(item.get("sales_volume"), item.get("volume"))),
    )


def _normalize_inventory_point(item: Dict[str, Any]) -> InventoryDataPoint:
    return InventoryDataPoint(
        period=str(item.get("period") or item.get("month") or item.get("date") or ""),
        months_supply=_to_float(_first(item.get("months_supply"), item.get("inventory_months"))) or 0.0,
        new_listings=_to_int(item.get("new_listings")),
    )


def _normalize_neighborhood(item: Dict[str, Any]) -> NeighborhoodComparison:
    return NeighborhoodComparison(
        name=item.get("name") or item.get("neighborhood"),
        median_price=_to_float(_first(item.get("median_price"), item.get("price"))),
        price_change_pct=_to_float(_first(item.get("price_change_pct"), item.get("price_change"))) or 0.0,
        days_on_market=_to_float(_first(
            item.get("days_on_market"),
            item.get("average_days_on_market"),
        )) or DEFAULT_DAYS_ON_MARKET,
    )


def normalize_market_data(raw: Dict[str, Any], location: str, timeframe: str) -> MarketData:
    """
    Map a raw provider payload onto the canonical MarketData schema.

    Accepts both flat payloads and payloads with a nested ``summary``
    block, and the common aliases for prices, volumes and days on market.

    Args:
        raw: Raw payload from the provider
        location: Requested location (used when the payload omits it)
        timeframe: Requested timeframe (used when the payload omits it)

    Returns:
        Normalized MarketData

    Raises:
        ProviderError: If the payload cannot be interpreted
    """
    if not isinstance(raw, dict):
        raise ProviderError(
            f"Unexpected market data payload type: {type(raw).__name__}",
            location=location,
            timeframe=timeframe,
        )

    summary = raw.get("summary") or {}

    try:
        history = raw.get("price_history") or raw.get("price_trends") or []
        inventory = raw.get("inventory_trend") or raw.get("inventory_history") or []
        neighborhoods = raw.get("neighborhood_comparison")

        return MarketData(
            location=raw.get("location") or location,
            timeframe=raw.get("timeframe") or timeframe,
            median_price=_to_float(_first(summary.get("median_price"), raw.get("median_price"), raw.get("price"))),
            average_price=_to_float(_first(summary.get("average_price"), raw.get("average_price"))),
            price_change_pct=_to_float(_first(summary.get("price_change_pct"), raw.get("price_change_pct"))),
            days_on_market=_to_float(_first(
                raw.get("average_days_on_market"),
                summary.get("days_on_market"),
                raw.get("days_on_market"),
            )) or DEFAULT_DAYS_ON_MARKET,
            inventory_months=_to_float(_first(
                raw.get("inventory_months"),
                summary.get("inventory_months"),
                raw.get("months_supply"),
            )) or DEFAULT_INVENTORY_MONTHS,
            buyer_seller_ratio=_to_float(_first(
                raw.get("buyer_seller_ratio"),
                summary.get("buyer_seller_ratio"),
            )) or 1.0,
            price_history=[_normalize_price_point(item) for item in history],
            inventory_trend=[_normalize_inventory_point(item) for item in inventory],
            neighborhood_comparison=(
                [_normalize_neighborhood(item) for item in neighborhoods] if neighborhoods else None
            ),
        )
    except (ValidationError, TypeError, AttributeError) as e:
        raise ProviderError(
            f"Malformed market data for {location} ({timeframe}): {e}",
            location=location,
            timeframe=timeframe,
        ) from e


class MarketDataProvider(ABC):
    """Source of raw market time-series for a location."""

    name: str = "base"

    @abstractmethod
    def get_market_data(self, location: str, timeframe: str) -> MarketData:
        """
        Fetch normalized market data.

        Raises:
            ProviderError: If the data cannot be fetched
        """


class HTTPMarketDataProvider(MarketDataProvider):
    """Fetches market data from a REST endpoint."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_market_data(self, location: str, timeframe: str) -> MarketData:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = self._session.get(
                f"{self.base_url}/market/analysis",
                params={
                    "location": location,
                    "timeframe": timeframe,
                    "include_forecasts": "true",
                },
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(
                f"Market data request failed for {location} ({timeframe}): {e}",
                location=location,
                timeframe=timeframe,
            ) from e

        # Some deployments wrap the record as {"success": ..., "data": {...}}
        if isinstance(payload, dict) and "data" in payload and "success" in payload:
            if not payload.get("success"):
                raise ProviderError(
                    f"Market data provider error: {payload.get('error', 'unknown error')}",
                    location=location,
                    timeframe=timeframe,
                )
            payload = payload["data"]

        return normalize_market_data(payload, location, timeframe)


class SampleMarketDataProvider(MarketDataProvider):
    """
    Generates plausible market data for demos and local development.

    Output is seeded from the location and timeframe, so repeated calls
    return identical series.
    """

    name = "sample"

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()

    def _period_labels(self, count: int) -> List[str]:
        labels = []
        year, month = self.as_of.year, self.as_of.month
        for _ in range(count):
            labels.append(f"{year:04d}-{month:02d}")
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        return list(reversed(labels))

    def get_market_data(self, location: str, timeframe: str) -> MarketData:
        periods = TIMEFRAME_PERIODS.get(timeframe)
        if periods is None:
            raise ProviderError(
                f"Unsupported timeframe: {timeframe}",
                location=location,
                timeframe=timeframe,
            )

        rng = random.Random(f"{location.lower().strip()}:{timeframe}")

        base_price = round(rng.uniform(450_000, 1_400_000), -3)
        monthly_drift = rng.uniform(-0.015, 0.02)
        labels = self._period_labels(periods)

        price_history = []
        price = base_price
        for label in labels:
            price = price * (1 + monthly_drift + rng.uniform(-0.01, 0.01))
            price_history.append({
                "period": label,
                "median_price": round(price, -2),
                "sales_volume": 150 + rng.randint(0, 100),
            })

        supply = rng.uniform(1.5, 7.5)
        inventory_trend = []
        for label in labels:
            supply = max(0.5, supply * (1 + rng.uniform(-0.12, 0.12)))
            inventory_trend.append({
                "period": label,
                "months_supply": round(supply, 2),
                "new_listings": 200 + rng.randint(0, 100),
            })

        latest_median = price_history[-1]["median_price"]
        raw = {
            "location": location,
            "timeframe": timeframe,
            "median_price": latest_median,
            "average_price": round(latest_median * 1.1, -2),
            "average_days_on_market": 15 + rng.randint(0, 60),
            "inventory_months": inventory_trend[-1]["months_supply"],
            "buyer_seller_ratio": round(0.8 + rng.uniform(0, 0.4), 2),
            "price_history": price_history,
            "inventory_trend": inventory_trend,
        }

        logger.debug(f"Generated sample market data for {location} ({timeframe})")
        return normalize_market_data(raw, location, timeframe)


# Singleton instance
_market_data_provider: Optional[MarketDataProvider] = None


def get_market_data_provider() -> MarketDataProvider:
    """
    Get or create the market data provider singleton.

    Uses the HTTP provider when MARKET_DATA_API_URL is configured,
    otherwise the sample provider.
    """
    global _market_data_provider

    if _market_data_provider is None:
        settings = get_settings()
        if settings.MARKET_DATA_API_URL:
            _market_data_provider = HTTPMarketDataProvider(
                base_url=settings.MARKET_DATA_API_URL,
                api_key=settings.MARKET_DATA_API_KEY,
                timeout=settings.MARKET_DATA_TIMEOUT,
            )
            logger.info(f"Using market data API at {settings.MARKET_DATA_API_URL}")
        else:
            _market_data_provider = SampleMarketDataProvider()
            logger.info("MARKET_DATA_API_URL not configured - using sample market data")

    return _market_data_provider
