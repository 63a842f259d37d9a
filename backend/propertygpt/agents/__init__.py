"""
Agent modules for the PropertyGPT core.

The router classifies each turn; intent handlers attach rich content;
the market analysis engine produces market reports.
"""

from .router_agent import (
    ConversationRouter,
    IntentClassifier,
    HeuristicIntentClassifier,
    GenerativeIntentClassifier,
    generate_predictions,
    get_conversation_router,
    router_agent_node,
)
from .market_analysis_agent import (
    MarketAnalysisEngine,
    NeighborhoodFallbackPolicy,
    DeterministicNeighborhoodFallback,
    get_market_analysis_engine,
)
from .intent_handlers import (
    PropertySearchHandler,
    MarketAnalysisHandler,
    ComplianceHandler,
    CRMHandler,
    property_search_node,
    market_analysis_node,
    compliance_node,
    crm_node,
    general_node,
)

__all__ = [
    "ConversationRouter",
    "IntentClassifier",
    "HeuristicIntentClassifier",
    "GenerativeIntentClassifier",
    "generate_predictions",
    "get_conversation_router",
    "router_agent_node",
    "MarketAnalysisEngine",
    "NeighborhoodFallbackPolicy",
    "DeterministicNeighborhoodFallback",
    "get_market_analysis_engine",
    "PropertySearchHandler",
    "MarketAnalysisHandler",
    "ComplianceHandler",
    "CRMHandler",
    "property_search_node",
    "market_analysis_node",
    "compliance_node",
    "crm_node",
    "general_node",
]
