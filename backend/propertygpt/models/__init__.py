"""
Data models for the PropertyGPT core.
"""

from .market import (
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
from .schemas import (
    ExtractedEntities,
    PriceRange,
    AnticipatedAction,
    Prediction,
    ConversationResponse,
    ConversationMessage,
    RichContent,
    ChatRequest,
    ChatResponse,
    PredictionRequest,
    PredictionResponse,
    MarketAnalysisRequest,
    HealthResponse,
    HistoryResponse,
)
from .state import (
    ChatTurnState,
    ConversationContext,
    ConversationStage,
    IntentType,
    InteractionPattern,
    UserExpertise,
)

__all__ = [
    "MarketData",
    "PricePoint",
    "InventoryDataPoint",
    "MarketAnalysis",
    "MarketSummary",
    "PriceTrend",
    "InventoryAnalysis",
    "NeighborhoodComparison",
    "PredictiveInsight",
    "MarketRecommendation",
    "ExtractedEntities",
    "PriceRange",
    "AnticipatedAction",
    "Prediction",
    "ConversationResponse",
    "ConversationMessage",
    "RichContent",
    "ChatRequest",
    "ChatResponse",
    "PredictionRequest",
    "PredictionResponse",
    "MarketAnalysisRequest",
    "HealthResponse",
    "HistoryResponse",
    "ChatTurnState",
    "ConversationContext",
    "ConversationStage",
    "IntentType",
    "InteractionPattern",
    "UserExpertise",
]
