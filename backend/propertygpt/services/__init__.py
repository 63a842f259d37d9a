"""
Services for the PropertyGPT core.

- LLMService: Language model interactions (rate limited)
- CacheBackend: Best-effort report cache (Redis, memory or none)
- MarketDataProvider: Raw market data sources
- SessionService: User session management
"""

from .llm_service import LLMService, get_llm_service
from .rate_limiter import SlidingWindowRateLimiter
from .cache import (
    CacheBackend,
    NullCache,
    InMemoryCache,
    RedisCache,
    create_cache,
    get_cache,
)
from .market_data_provider import (
    MarketDataProvider,
    HTTPMarketDataProvider,
    SampleMarketDataProvider,
    normalize_market_data,
    get_market_data_provider,
)
from .session_service import SessionService, SessionData, get_session_service

__all__ = [
    "LLMService",
    "get_llm_service",
    "SlidingWindowRateLimiter",
    "CacheBackend",
    "NullCache",
    "InMemoryCache",
    "RedisCache",
    "create_cache",
    "get_cache",
    "MarketDataProvider",
    "HTTPMarketDataProvider",
    "SampleMarketDataProvider",
    "normalize_market_data",
    "get_market_data_provider",
    "SessionService",
    "SessionData",
    "get_session_service",
]
