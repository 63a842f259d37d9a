"""
Shared fixtures and fakes for the PropertyGPT test suite.
"""

import json
import os
from types import SimpleNamespace
from typing import List, Optional

import pytest

# Keep tests offline: heuristic routing, memory cache, sample market data
os.environ["OPENAI_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["MARKET_DATA_API_URL"] = ""

from propertygpt import config  # noqa: E402
from propertygpt.agents import intent_handlers, market_analysis_agent, router_agent  # noqa: E402
from propertygpt.exceptions import CacheError, ProviderError  # noqa: E402
from propertygpt.models.market import InventoryDataPoint, MarketData, PricePoint  # noqa: E402
from propertygpt.services import cache, llm_service, market_data_provider, session_service  # noqa: E402
from propertygpt.services.cache import CacheBackend  # noqa: E402
from propertygpt.workflow import graph  # noqa: E402


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Give every test fresh settings and service singletons."""
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("MARKET_DATA_API_URL", "")
    config.get_settings.cache_clear()

    monkeypatch.setattr(cache, "_cache", None)
    monkeypatch.setattr(market_data_provider, "_market_data_provider", None)
    monkeypatch.setattr(llm_service, "_llm_service", None)
    monkeypatch.setattr(session_service, "_session_service", None)
    monkeypatch.setattr(market_analysis_agent, "_market_analysis_engine", None)
    monkeypatch.setattr(router_agent, "_conversation_router", None)
    monkeypatch.setattr(intent_handlers, "_property_search_handler", None)
    monkeypatch.setattr(intent_handlers, "_market_analysis_handler", None)
    monkeypatch.setattr(intent_handlers, "_compliance_handler", None)
    monkeypatch.setattr(intent_handlers, "_crm_handler", None)
    monkeypatch.setattr(graph, "_workflow", None)

    yield

    config.get_settings.cache_clear()


def make_market_data(
    prices: List[Optional[float]],
    days_on_market: float = 45,
    inventory_months: float = 3,
    supply: Optional[List[float]] = None,
    location: str = "Austin, TX",
    timeframe: str = "6m",
    **kwargs
) -> MarketData:
    """Build canonical market data from a list of monthly median prices."""
    return MarketData(
        location=location,
        timeframe=timeframe,
        median_price=prices[-1] if prices else None,
        days_on_market=days_on_market,
        inventory_months=inventory_months,
        price_history=[
            PricePoint(period=f"2024-{i + 1:02d}", median_price=price, volume=100 + i)
            for i, price in enumerate(prices)
        ],
        inventory_trend=[
            InventoryDataPoint(period=f"2024-{i + 1:02d}", months_supply=value, new_listings=200)
            for i, value in enumerate(supply or [])
        ],
        **kwargs
    )


class FakeProvider(market_data_provider.MarketDataProvider):
    """Returns fixed market data and records every call."""

    name = "fake"

    def __init__(self, data: Optional[MarketData] = None, error: Optional[Exception] = None):
        self.data = data or make_market_data([500000, 510000, 520000])
        self.error = error
        self.calls = []

    def get_market_data(self, location: str, timeframe: str) -> MarketData:
        self.calls.append((location, timeframe))
        if self.error is not None:
            raise self.error
        return self.data.model_copy(update={"location": location, "timeframe": timeframe})


class FailingCache(CacheBackend):
    """Cache whose every operation fails."""

    name = "failing"

    def get(self, key):
        raise CacheError("cache is down")

    def setex(self, key, ttl_seconds, value):
        raise CacheError("cache is down")


class FakeClock:
    """Manual clock; ``sleep`` advances time instead of blocking."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeOpenAIClient:
    """
    Minimal stand-in for ``openai.OpenAI`` that answers every request with
    a canned function call (or raises).
    """

    def __init__(self, arguments=None, function_name="process_real_estate_query", error=None, tool_calls=True):
        self.requests = []
        self._arguments = arguments
        self._function_name = function_name
        self._error = error
        self._tool_calls = tool_calls
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error

        arguments = self._arguments
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)

        tool_calls = None
        if self._tool_calls:
            tool_calls = [SimpleNamespace(
                id="call_1",
                type="function",
                function=SimpleNamespace(name=self._function_name, arguments=arguments),
            )]

        message = SimpleNamespace(role="assistant", content=None, tool_calls=tool_calls)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def failing_provider():
    return FakeProvider(error=ProviderError("upstream unavailable", location="Nowhere", timeframe="6m"))
