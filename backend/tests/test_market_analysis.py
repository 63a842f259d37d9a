"""
Tests for the market analysis engine and its pure derivation helpers.
"""

import pytest

from propertygpt.agents.market_analysis_agent import (
    DeterministicNeighborhoodFallback,
    MarketAnalysisEngine,
    assess_market_tempo,
    calculate_inventory_trend,
    calculate_price_change,
    calculate_price_trends,
    classify_inventory_level,
)
from propertygpt.exceptions import ProviderError
from propertygpt.models.market import MarketAnalysis, NeighborhoodComparison, PricePoint
from propertygpt.services.cache import InMemoryCache, NullCache

from conftest import FailingCache, FakeProvider, make_market_data


@pytest.mark.parametrize("months, expected", [
    (2.9, "low"),
    (3, "balanced"),
    (6, "balanced"),
    (6.1, "high"),
])
def test_classify_inventory_level(months, expected):
    assert classify_inventory_level(months) == expected


@pytest.mark.parametrize("days, months, expected", [
    (15, 1.5, "hot"),
    (15, 3, "warm"),
    (50, 5, "cool"),
    (90, 10, "cold"),
    (30, 1.0, "warm"),
    (10, 9, "cold"),
])
def test_assess_market_tempo(days, months, expected):
    assert assess_market_tempo(days, months) == expected


def test_price_trends_one_entry_per_consecutive_pair():
    history = [
        PricePoint(period="2024-01", median_price=100000, volume=10),
        PricePoint(period="2024-02", median_price=105000, volume=12),
        PricePoint(period="2024-03", median_price=102900, volume=9),
    ]

    trends = calculate_price_trends(history)

    assert len(trends) == 2
    assert [t.period for t in trends] == ["2024-02", "2024-03"]
    assert trends[0].change_amount == 5000
    assert trends[0].change_pct == pytest.approx(5.0)
    assert trends[0].volume == 12
    assert trends[1].change_amount == -2100
    assert trends[1].change_pct == pytest.approx(-2.0)


def test_price_trend_with_missing_previous_price_has_zero_change_pct():
    history = [
        PricePoint(period="2024-01", median_price=None),
        PricePoint(period="2024-02", median_price=400000),
    ]

    trends = calculate_price_trends(history)

    assert trends[0].change_pct == 0.0
    assert trends[0].change_amount == 400000


@pytest.mark.parametrize("prices", [[], [500000]])
def test_price_change_is_zero_with_fewer_than_two_points(prices):
    history = [PricePoint(period=f"p{i}", median_price=p) for i, p in enumerate(prices)]
    assert calculate_price_change(history) == 0.0
    assert calculate_price_trends(history) == []


def test_price_change_is_fraction_of_first_price():
    history = [
        PricePoint(period="a", median_price=400000),
        PricePoint(period="b", median_price=410000),
        PricePoint(period="c", median_price=432000),
    ]
    assert calculate_price_change(history) == pytest.approx(0.08)


def test_inventory_trend_uses_two_most_recent_points():
    data = make_market_data([1, 2], supply=[5.0, 2.0, 2.5])
    assert calculate_inventory_trend(data.inventory_trend) == pytest.approx(0.25)

    assert calculate_inventory_trend(make_market_data([1], supply=[2.0]).inventory_trend) == 0.0
    assert calculate_inventory_trend(make_market_data([1], supply=[0.0, 3.0]).inventory_trend) == 0.0


class TestMarketAnalysisEngine:

    def test_summary_with_single_price_point(self):
        engine = MarketAnalysisEngine(provider=FakeProvider(make_market_data([650000])))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert analysis.summary.price_change_pct == 0
        assert analysis.price_trends == []
        assert analysis.timeframe == "6m"

    def test_summary_classification_follows_inputs(self):
        data = make_market_data([500000, 520000], days_on_market=50, inventory_months=7)
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        summary = engine.generate_market_analysis("Austin, TX").summary

        assert summary.inventory_level == "high"
        assert summary.market_tempo == "cool"
        assert summary.days_on_market == 50
        assert summary.price_change_pct == pytest.approx(0.04)

    def test_cache_hit_skips_provider(self):
        provider = FakeProvider()
        engine = MarketAnalysisEngine(provider=provider, cache=InMemoryCache())

        first = engine.generate_market_analysis("Denver, CO", "3m")
        second = engine.generate_market_analysis("Denver, CO", "3m")

        assert provider.calls == [("Denver, CO", "3m")]
        assert second == first

    def test_cache_is_keyed_by_location_and_timeframe(self):
        provider = FakeProvider()
        cache = InMemoryCache()
        engine = MarketAnalysisEngine(provider=provider, cache=cache, cache_ttl=60)

        engine.generate_market_analysis("Denver, CO", "3m")
        engine.generate_market_analysis("Denver, CO", "1y")
        engine.generate_market_analysis("Boulder, CO", "3m")

        assert len(provider.calls) == 3
        cached = cache.get("market_analysis:Denver, CO:3m")
        assert MarketAnalysis.model_validate_json(cached).location == "Denver, CO"

    def test_cache_failure_does_not_fail_request(self):
        provider = FakeProvider()
        engine = MarketAnalysisEngine(provider=provider, cache=FailingCache())

        analysis = engine.generate_market_analysis("Denver, CO")
        engine.generate_market_analysis("Denver, CO")

        assert analysis.location == "Denver, CO"
        assert len(provider.calls) == 2

    def test_unreadable_cache_entry_is_a_miss(self):
        provider = FakeProvider()
        cache = InMemoryCache()
        cache.setex("market_analysis:Denver, CO:6m", 60, "not json")
        engine = MarketAnalysisEngine(provider=provider, cache=cache)

        engine.generate_market_analysis("Denver, CO")

        assert len(provider.calls) == 1

    def test_provider_error_propagates(self, failing_provider):
        engine = MarketAnalysisEngine(provider=failing_provider, cache=NullCache())

        with pytest.raises(ProviderError):
            engine.generate_market_analysis("Nowhere")

    def test_neighborhood_fallback_is_deterministic(self):
        engine = MarketAnalysisEngine(provider=FakeProvider(make_market_data([None])))

        first = engine.generate_market_analysis("Los Angeles, CA").neighborhood_comparison
        second = engine.generate_market_analysis("Los Angeles, CA").neighborhood_comparison

        assert first == second
        assert [n.name for n in first] == [n[0] for n in DeterministicNeighborhoodFallback.NEIGHBORHOODS]
        # Base price defaults to 750,000 without a subject median
        assert first[0].median_price == 690000

    def test_provider_neighborhoods_take_precedence(self):
        comparison = [NeighborhoodComparison(name="Eastside", median_price=610000, price_change_pct=0.01, days_on_market=30)]
        data = make_market_data([600000, 610000], neighborhood_comparison=comparison)
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Los Angeles, CA")

        assert analysis.neighborhood_comparison == comparison

    def test_hot_rising_market_insights_and_recommendations(self):
        data = make_market_data(
            [100000, 105000, 110250, 115762.5],
            days_on_market=15,
            inventory_months=1.5,
        )
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert [i.type for i in analysis.predictive_insights] == ["price_forecast", "market_tempo"]
        forecast = analysis.predictive_insights[0]
        assert forecast.title == "Upward Price Pressure"
        assert forecast.confidence == 0.75
        assert forecast.impact == "high"
        assert forecast.timeline == "3_months"
        assert "increase by 5.0%" in forecast.description

        tempo = analysis.predictive_insights[1]
        assert (tempo.confidence, tempo.impact, tempo.timeline) == (0.82, "high", "1_month")

        assert [(r.title, r.priority, r.category) for r in analysis.recommendations] == [
            ("Act Quickly", "high", "timing"),
            ("Rising Prices", "high", "pricing"),
        ]

    def test_falling_prices(self):
        data = make_market_data([500000, 480000, 460000, 440000])
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert analysis.predictive_insights[0].title == "Downward Price Pressure"
        assert [r.title for r in analysis.recommendations] == ["Price Opportunity"]

    def test_price_forecast_needs_two_trends(self):
        data = make_market_data([500000, 600000])
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert all(i.type != "price_forecast" for i in analysis.predictive_insights)

    def test_inventory_forecast_and_buyers_market(self):
        data = make_market_data([500000, 500000], days_on_market=50, inventory_months=7, supply=[5.6, 7.0])
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert analysis.inventory_analysis.trend == "increasing"
        assert analysis.inventory_analysis.months_supply == 7
        assert len(analysis.inventory_analysis.monthly_data) == 2

        insight = analysis.predictive_insights[0]
        assert insight.type == "inventory_forecast"
        assert insight.title == "Increasing Inventory"
        assert (insight.confidence, insight.impact, insight.timeline) == (0.68, "medium", "2_months")

        assert [(r.title, r.priority, r.category) for r in analysis.recommendations] == [
            ("Buyer's Market", "medium", "strategy"),
        ]

    def test_small_inventory_change_is_stable(self):
        data = make_market_data([500000, 500000], supply=[4.0, 4.2])
        engine = MarketAnalysisEngine(provider=FakeProvider(data))

        analysis = engine.generate_market_analysis("Austin, TX")

        assert analysis.inventory_analysis.trend == "stable"
        assert analysis.predictive_insights == []
