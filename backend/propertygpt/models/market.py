"""
Pydantic models for market data and derived market analysis reports.
"""

from typing import Optional, List, Literal
from pydantic import BaseModel, Field


Timeframe = Literal["1m", "3m", "6m", "1y", "2y"]
InventoryLevel = Literal["low", "balanced", "high"]
MarketTempo = Literal["hot", "warm", "cool", "cold"]
InventoryTrend = Literal["increasing", "stable", "decreasing"]
Impact = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high"]


# ============================================================
# Canonical provider record
# ============================================================

class PricePoint(BaseModel):
    """One period of the provider's price history."""

    period: str = Field(..., description="Period label, e.g. 'Jan' or '2024-01'")
    median_price: Optional[float] = Field(None, description="Median sale price for the period")
    volume: int = Field(0, description="Number of sales in the period")


class InventoryDataPoint(BaseModel):
    """One period of inventory supply data."""

    period: str = Field(..., description="Period label")
    months_supply: float = Field(0.0, description="Months of supply at current sales pace")
    new_listings: int = Field(0, description="New listings in the period")


class NeighborhoodComparison(BaseModel):
    """Headline metrics for a nearby neighborhood."""

    name: str
    median_price: float
    price_change_pct: float = Field(..., description="Price change as a fraction")
    days_on_market: float = Field(..., description="Average days on market")


class MarketData(BaseModel):
    """
    Raw market data normalized into one schema.

    Provider payloads use inconsistent field names; the provider adapter
    maps them onto this model before any derivation happens.
    """

    location: str
    timeframe: str
    median_price: Optional[float] = None
    average_price: Optional[float] = None
    price_change_pct: Optional[float] = None
    days_on_market: float = 45
    inventory_months: float = 3
    buyer_seller_ratio: float = 1.0
    price_history: List[PricePoint] = Field(default_factory=list)
    inventory_trend: List[InventoryDataPoint] = Field(default_factory=list)
    neighborhood_comparison: Optional[List[NeighborhoodComparison]] = None


# ============================================================
# Derived report
# ============================================================

class MarketSummary(BaseModel):
    """Headline market metrics."""

    median_price: Optional[float] = Field(None, description="Median listing price")
    average_price: Optional[float] = Field(None, description="Average listing price")
    price_change_pct: float = Field(0.0, description="Change across the price history, as a fraction")
    days_on_market: float = Field(..., description="Average days on market")
    inventory_level: InventoryLevel
    market_tempo: MarketTempo
    buyer_seller_ratio: float = 1.0


class PriceTrend(BaseModel):
    """Period-over-period price movement."""

    period: str
    median_price: Optional[float] = None
    change_pct: float = Field(..., description="Change from the previous period, in percent")
    change_amount: float
    volume: int = 0


class InventoryAnalysis(BaseModel):
    """Supply position and direction."""

    months_supply: float
    trend: InventoryTrend
    monthly_data: List[InventoryDataPoint] = Field(default_factory=list)


class PredictiveInsight(BaseModel):
    """A forward-looking observation with a confidence score."""

    type: Literal["price_forecast", "inventory_forecast", "market_tempo"]
    title: str
    description: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    impact: Impact
    timeline: Literal["1_month", "2_months", "3_months", "6_months"]


class MarketRecommendation(BaseModel):
    """Actionable advice derived from market conditions."""

    title: str
    description: str
    priority: Priority
    category: Literal["timing", "strategy", "pricing"]


class MarketAnalysis(BaseModel):
    """Complete market analysis report for a location and timeframe."""

    location: str
    timeframe: str
    summary: MarketSummary
    price_trends: List[PriceTrend] = Field(default_factory=list)
    inventory_analysis: InventoryAnalysis
    neighborhood_comparison: List[NeighborhoodComparison] = Field(default_factory=list)
    predictive_insights: List[PredictiveInsight] = Field(default_factory=list)
    recommendations: List[MarketRecommendation] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "location": "Los Angeles, CA",
                "timeframe": "6m",
                "summary": {
                    "median_price": 750000,
                    "average_price": 825000,
                    "price_change_pct": 0.042,
                    "days_on_market": 38,
                    "inventory_level": "balanced",
                    "market_tempo": "cool",
                    "buyer_seller_ratio": 1.05,
                },
                "price_trends": [],
                "inventory_analysis": {
                    "months_supply": 3.4,
                    "trend": "stable",
                    "monthly_data": [],
                },
                "neighborhood_comparison": [],
                "predictive_insights": [],
                "recommendations": [],
            }
        }
