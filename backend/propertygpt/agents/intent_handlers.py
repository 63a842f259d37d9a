"""
Intent handlers - attach rich content to a routed turn.

Each handler runs after the router and adds typed ``RichContent`` items
for the UI. Handlers never replace the router's response text; a failing
handler is logged and the turn goes out without rich content.
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional

from .base_agent import BaseAgent
from .market_analysis_agent import MarketAnalysisEngine, get_market_analysis_engine
from ..models.schemas import RichContent
from ..models.state import ChatTurnState, ConversationContext
from ..utils.helpers import format_price

logger = logging.getLogger(__name__)

SAMPLE_LISTING_COUNT = 3
DEFAULT_LISTING_PRICE = 750_000
DEFAULT_BEDROOMS = 3
DEFAULT_BATHROOMS = 2

STREET_NAMES = ["Ocean Ave", "Maple St", "Sunset Blvd", "Park Pl", "Cedar Ln"]


def merged_entities(state: ChatTurnState) -> Dict[str, Any]:
    """Session entities overlaid with the ones extracted from this turn."""
    context = state.get("context") or ConversationContext()
    entities = dict(context.extracted_entities)
    for key, value in (state.get("extracted_entities") or {}).items():
        if value not in (None, "", {}):
            entities[key] = value
    return entities


def _append_rich_content(state: ChatTurnState, content: RichContent) -> ChatTurnState:
    state["rich_content"] = list(state.get("rich_content") or []) + [content.model_dump()]
    return state


class PropertySearchHandler(BaseAgent):
    """
    Builds a property grid from the search criteria.

    Listing search is an external service; the grid holds sample listings
    shaped by the extracted criteria so the UI contract is exercised.
    """

    def __init__(self, default_location: Optional[str] = None):
        super().__init__("property_search")
        self.default_location = default_location or self._settings.DEFAULT_MARKET_LOCATION

    def build_listings(self, entities: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Create sample listings matching the given criteria.

        Args:
            entities: Search criteria (location, price range, beds, baths, type)

        Returns:
            List of listing dictionaries
        """
        location = entities.get("location") or self.default_location
        price_range = entities.get("price_range") or {}
        low = price_range.get("min")
        high = price_range.get("max")

        if low and high:
            base_price = (low + high) / 2
        elif high:
            base_price = high * 0.9
        elif low:
            base_price = low * 1.1
        else:
            base_price = DEFAULT_LISTING_PRICE

        bedrooms = entities.get("bedrooms") or DEFAULT_BEDROOMS
        bathrooms = entities.get("bathrooms") or DEFAULT_BATHROOMS
        property_type = entities.get("property_type") or "single_family"
        seed = int(hashlib.md5(location.lower().encode("utf-8")).hexdigest(), 16)

        listings = []
        for i in range(SAMPLE_LISTING_COUNT):
            price = round(base_price * (0.95 + 0.05 * i), -3)
            if high:
                price = min(price, high)
            if low:
                price = max(price, low)

            street = STREET_NAMES[(seed + i) % len(STREET_NAMES)]
            listings.append({
                "id": f"sample_{seed % 100000}_{i + 1}",
                "address": f"{100 + (seed + 37 * i) % 900} {street}",
                "location": location,
                "price": price,
                "price_display": format_price(price),
                "bedrooms": bedrooms,
                "bathrooms": bathrooms,
                "property_type": property_type,
                "features": list(entities.get("features") or []),
            })
        return listings

    def process(self, state: ChatTurnState) -> ChatTurnState:
        try:
            entities = merged_entities(state)
            listings = self.build_listings(entities)
            return _append_rich_content(state, RichContent(
                type="property_grid",
                component="PropertyGrid",
                data={"criteria": entities, "properties": listings},
            ))
        except Exception as e:
            return self.fail(state, e)


class MarketAnalysisHandler(BaseAgent):
    """Attaches a market analysis report for the requested location."""

    def __init__(self, engine: Optional[MarketAnalysisEngine] = None, default_location: Optional[str] = None):
        super().__init__("market_analysis")
        self._engine = engine
        self.default_location = default_location or self._settings.DEFAULT_MARKET_LOCATION

    @property
    def engine(self) -> MarketAnalysisEngine:
        if self._engine is None:
            self._engine = get_market_analysis_engine()
        return self._engine

    def process(self, state: ChatTurnState) -> ChatTurnState:
        entities = merged_entities(state)
        location = entities.get("location") or self.default_location

        try:
            analysis = self.engine.generate_market_analysis(location, "6m")
        except Exception as e:
            return self.fail(state, e)

        return _append_rich_content(state, RichContent(
            type="market_chart",
            component="MarketAnalysisChart",
            data=analysis.model_dump(),
        ))


class ComplianceHandler(BaseAgent):
    """
    Answers compliance questions.

    Regulatory search is an external service; the answer is a placeholder
    with an empty citations list until one is connected.
    """

    ANSWER_TEXT = (
        "Compliance requirements vary by state and municipality. "
        "Please confirm details with your broker or a licensed real estate attorney."
    )

    def __init__(self):
        super().__init__("compliance")

    def process(self, state: ChatTurnState) -> ChatTurnState:
        entities = merged_entities(state)
        return _append_rich_content(state, RichContent(
            type="compliance_answer",
            component="ComplianceAnswer",
            data={
                "question": state.get("user_query", ""),
                "jurisdiction": entities.get("location"),
                "answer": self.ANSWER_TEXT,
                "citations": [],
            },
        ))


class CRMHandler(BaseAgent):
    """Summarizes what is known about the lead for CRM actions."""

    def __init__(self):
        super().__init__("crm")

    def process(self, state: ChatTurnState) -> ChatTurnState:
        context = state.get("context") or ConversationContext()
        return _append_rich_content(state, RichContent(
            type="lead_summary",
            component="LeadSummary",
            data={
                "session_id": state.get("session_id", ""),
                "criteria": merged_entities(state),
                "intents": list(context.user_intent) + [state.get("intent", "crm_action")],
                "market_focus": sorted(context.market_focus),
                "user_expertise": context.user_expertise,
            },
        ))


# Singleton instances
_property_search_handler: Optional[PropertySearchHandler] = None
_market_analysis_handler: Optional[MarketAnalysisHandler] = None
_compliance_handler: Optional[ComplianceHandler] = None
_crm_handler: Optional[CRMHandler] = None


def get_property_search_handler() -> PropertySearchHandler:
    global _property_search_handler
    if _property_search_handler is None:
        _property_search_handler = PropertySearchHandler()
    return _property_search_handler


def get_market_analysis_handler() -> MarketAnalysisHandler:
    global _market_analysis_handler
    if _market_analysis_handler is None:
        _market_analysis_handler = MarketAnalysisHandler()
    return _market_analysis_handler


def get_compliance_handler() -> ComplianceHandler:
    global _compliance_handler
    if _compliance_handler is None:
        _compliance_handler = ComplianceHandler()
    return _compliance_handler


def get_crm_handler() -> CRMHandler:
    global _crm_handler
    if _crm_handler is None:
        _crm_handler = CRMHandler()
    return _crm_handler


def property_search_node(state: ChatTurnState) -> ChatTurnState:
    """LangGraph node function for property searches."""
    return get_property_search_handler().process(state)


def market_analysis_node(state: ChatTurnState) -> ChatTurnState:
    """LangGraph node function for market analysis."""
    return get_market_analysis_handler().process(state)


def compliance_node(state: ChatTurnState) -> ChatTurnState:
    """LangGraph node function for compliance questions."""
    return get_compliance_handler().process(state)


def crm_node(state: ChatTurnState) -> ChatTurnState:
    """LangGraph node function for CRM actions."""
    return get_crm_handler().process(state)


def general_node(state: ChatTurnState) -> ChatTurnState:
    """General inquiries carry the router's text only."""
    logger.debug("General inquiry - no rich content attached")
    return state
