"""
Router Agent - Classifies user intent, extracts entities and anticipates
follow-up needs.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from .base_agent import BaseAgent
from ..config import get_settings, load_system_prompt
from ..exceptions import GenerativeBackendError
from ..models.schemas import (
    AnticipatedAction,
    ConversationMessage,
    ConversationResponse,
    ExtractedEntities,
    Prediction,
)
from ..models.state import ChatTurnState, ConversationContext, IntentType, get_intent_type
from ..services.llm_service import LLMService, get_llm_service
from ..utils.helpers import clean_llm_response, extract_entities

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE_TEXT = (
    "I'm here to help with your real estate needs. Could you please rephrase your question?"
)
FALLBACK_CONFIDENCE = 0.5

INTENT_VALUES = [intent.value for intent in IntentType]

HistoryEntry = Union[ConversationMessage, Dict[str, Any]]

# Structured output contract for the language model
PROCESS_QUERY_FUNCTION = {
    "name": "process_real_estate_query",
    "description": "Process real estate conversation with structured response",
    "parameters": {
        "type": "object",
        "properties": {
            "intent": {
                "type": "string",
                "enum": INTENT_VALUES,
            },
            "extracted_entities": {
                "type": "object",
                "properties": {
                    "location": {"type": "string"},
                    "price_range": {
                        "type": "object",
                        "properties": {
                            "min": {"type": "number"},
                            "max": {"type": "number"},
                        },
                    },
                    "property_type": {"type": "string"},
                    "bedrooms": {"type": "number"},
                    "bathrooms": {"type": "number"},
                    "features": {"type": "array", "items": {"type": "string"}},
                },
            },
            "response_text": {"type": "string"},
            "anticipatory_actions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "label": {"type": "string"},
                        "action": {"type": "string"},
                        "confidence": {"type": "number"},
                    },
                },
            },
            "follow_up_predictions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "content": {"type": "string"},
                        "confidence": {"type": "number"},
                        "category": {"type": "string"},
                    },
                },
            },
            "confidence": {"type": "number"},
        },
        "required": ["intent", "response_text", "confidence"],
    },
}


def fallback_response() -> ConversationResponse:
    """Low-confidence general response used when classification fails."""
    return ConversationResponse(
        intent=IntentType.GENERAL_INQUIRY.value,
        response_text=FALLBACK_RESPONSE_TEXT,
        extracted_entities={},
        anticipatory_actions=[],
        follow_up_predictions=[],
        confidence=FALLBACK_CONFIDENCE,
    )


def _to_message(entry: HistoryEntry) -> ConversationMessage:
    """Read a session history entry (dict or model) as a ConversationMessage."""
    if isinstance(entry, ConversationMessage):
        return entry
    return ConversationMessage.model_validate(entry)


def generate_predictions(utterance: str, context: ConversationContext) -> List[Prediction]:
    """
    Suggest likely next requests from the utterance and session context.

    Every matching trigger contributes one prediction, in a fixed order.

    Args:
        utterance: Current (possibly partial) user input
        context: Session conversation context

    Returns:
        List of predictions
    """
    predictions = []
    text = (utterance or "").lower()

    # Context-based predictions
    if "looking for" in text:
        predictions.append(Prediction(
            content="Set up automated alerts for similar properties?",
            confidence=0.85,
            trigger="context_cue",
            category="property_search",
        ))

    # Pattern-based predictions
    if context.has_pattern("market_analysis_frequent"):
        predictions.append(Prediction(
            content="Generate market snapshot for this area?",
            confidence=0.78,
            trigger="temporal_pattern",
            category="market_analysis",
        ))

    # Expertise-based predictions
    if context.user_expertise == "expert" and "compliance" in text:
        predictions.append(Prediction(
            content="Check recent regulatory updates?",
            confidence=0.82,
            trigger="context_cue",
            category="compliance",
        ))

    return predictions


class IntentClassifier(ABC):
    """Strategy that turns one utterance into a ConversationResponse."""

    name: str = "base"

    @abstractmethod
    def classify(
        self,
        utterance: str,
        context: ConversationContext,
        history: Sequence[HistoryEntry]
    ) -> ConversationResponse:
        """Classify the utterance and build the turn's response."""


class HeuristicIntentClassifier(IntentClassifier):
    """
    Keyword classifier used when no language model is configured.

    Keyword groups are checked in priority order; the first group with a
    match decides the intent.
    """

    name = "heuristic"

    INTENT_KEYWORDS = [
        (IntentType.PROPERTY_SEARCH, ["search", "property", "home"]),
        (IntentType.MARKET_ANALYSIS, ["market", "trend", "price"]),
        (IntentType.COMPLIANCE_QUESTION, ["compliance", "regulation", "law"]),
    ]

    RESPONSE_TEXT = {
        IntentType.PROPERTY_SEARCH: (
            "I'd be happy to help you search for properties! "
            "Here are some options based on your criteria."
        ),
        IntentType.MARKET_ANALYSIS: (
            "Let me provide you with current market analysis and trends "
            "for the area you're interested in."
        ),
        IntentType.COMPLIANCE_QUESTION: (
            "I can help you with compliance and regulatory questions. "
            "Here's what you need to know."
        ),
        IntentType.GENERAL_INQUIRY: (
            "Thank you for your question. I'm here to help with your real estate needs."
        ),
    }

    def classify_intent(self, utterance: str) -> IntentType:
        text = (utterance or "").lower()
        for intent, keywords in self.INTENT_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return intent
        return IntentType.GENERAL_INQUIRY

    def classify(
        self,
        utterance: str,
        context: ConversationContext,
        history: Sequence[HistoryEntry]
    ) -> ConversationResponse:
        intent = self.classify_intent(utterance)

        return ConversationResponse(
            intent=intent.value,
            response_text=self.RESPONSE_TEXT[intent],
            extracted_entities=extract_entities(utterance),
            anticipatory_actions=[
                AnticipatedAction(label="View More Details", action="view_details", confidence=0.8),
                AnticipatedAction(label="Save This Search", action="save_search", confidence=0.7),
            ],
            follow_up_predictions=[
                Prediction(
                    content="Would you like to see similar properties?",
                    confidence=0.75,
                    trigger="context_cue",
                    category="property_search",
                ),
            ],
            confidence=0.8,
        )


class GenerativeIntentClassifier(IntentClassifier):
    """
    Classifier backed by an OpenAI function call.

    Backend failures never escape: they are logged and answered with the
    low-confidence fallback response.
    """

    name = "generative"

    def __init__(
        self,
        llm_service: LLMService,
        system_prompt_template: Optional[str] = None,
        history_window: int = 5
    ):
        """
        Args:
            llm_service: Rate-limited LLM service
            system_prompt_template: Prompt with context placeholders
                (loaded from the prompts directory if omitted)
            history_window: Number of history messages included in the prompt
        """
        self.llm = llm_service
        self._system_prompt_template = system_prompt_template
        self.history_window = history_window

    @property
    def system_prompt_template(self) -> str:
        if self._system_prompt_template is None:
            self._system_prompt_template = load_system_prompt("conversation_router")
        return self._system_prompt_template

    def build_system_prompt(self, context: ConversationContext) -> str:
        """Embed the session context into the system prompt."""
        return self.system_prompt_template.format(
            user_expertise=context.user_expertise,
            conversation_stage=context.conversation_stage,
            market_focus=", ".join(sorted(context.market_focus)),
            previous_intents=", ".join(context.user_intent),
        )

    def build_conversation_prompt(self, utterance: str, history: Sequence[HistoryEntry]) -> str:
        """Recent history followed by the new utterance."""
        recent = list(history or [])[-self.history_window:] if self.history_window else []
        history_text = "\n".join(
            f"{message.role}: {message.content}" for message in (_to_message(m) for m in recent)
        )
        return f"Recent conversation:\n{history_text}\n\nUser: {utterance}"

    def classify(
        self,
        utterance: str,
        context: ConversationContext,
        history: Sequence[HistoryEntry]
    ) -> ConversationResponse:
        try:
            result = self.llm.call_function(
                system_prompt=self.build_system_prompt(context),
                user_prompt=self.build_conversation_prompt(utterance, history),
                function_schema=PROCESS_QUERY_FUNCTION,
            )
            return self.format_response(result)
        except GenerativeBackendError as e:
            logger.error(f"OpenAI processing error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during intent classification: {e}", exc_info=True)

        return fallback_response()

    def format_response(self, result: Dict[str, Any]) -> ConversationResponse:
        """
        Validate raw function-call arguments into a ConversationResponse.

        Unknown intents become general_inquiry, missing lists become empty
        and a missing confidence becomes 0.5. Malformed list items and
        entity values are dropped.
        """
        entities = ExtractedEntities.clean(result.get("extracted_entities"))

        confidence = result.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not confidence:
            confidence = FALLBACK_CONFIDENCE
        confidence = min(max(float(confidence), 0.0), 1.0)

        response_text = result.get("response_text")
        if not isinstance(response_text, str):
            response_text = ""

        return ConversationResponse(
            intent=get_intent_type(result.get("intent")).value,
            response_text=clean_llm_response(response_text),
            extracted_entities=entities,
            anticipatory_actions=self._parse_items(result.get("anticipatory_actions"), AnticipatedAction),
            follow_up_predictions=self._parse_items(result.get("follow_up_predictions"), Prediction),
            confidence=confidence,
        )

    @staticmethod
    def _parse_items(items: Any, model):
        parsed = []
        if not isinstance(items, list):
            return parsed

        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                parsed.append(model(**item))
            except ValidationError as e:
                logger.debug(f"Dropping malformed {model.__name__} from model output: {e}")
        return parsed


class ConversationRouter(BaseAgent):
    """
    Router Agent that classifies user intent and anticipates follow-ups.

    The classification strategy is chosen at construction time. The router
    only reads the conversation context; the caller records the turn.
    """

    def __init__(self, classifier: Optional[IntentClassifier] = None):
        """
        Initialize the Router Agent.

        Args:
            classifier: Intent classification strategy (default: heuristic)
        """
        super().__init__("conversation_router")
        self.classifier = classifier or HeuristicIntentClassifier()

    def process_conversational_input(
        self,
        utterance: str,
        context: ConversationContext,
        history: Optional[Sequence[HistoryEntry]] = None
    ) -> ConversationResponse:
        """
        Classify one utterance and build the turn's response.

        Args:
            utterance: User message
            context: Session conversation context
            history: Previous messages, oldest first

        Returns:
            ConversationResponse for the turn
        """
        return self.classifier.classify(utterance, context, history or [])

    def generate_predictions(self, utterance: str, context: ConversationContext) -> List[Prediction]:
        """Typing-time suggestions; see ``generate_predictions``."""
        return generate_predictions(utterance, context)

    def process(self, state: ChatTurnState) -> ChatTurnState:
        """
        Classify the turn and write the router output to the state.

        Args:
            state: Current workflow state

        Returns:
            Updated state with intent, response text, actions and predictions
        """
        user_query = state.get("user_query", "")
        context = state.get("context") or ConversationContext()

        response = self.process_conversational_input(user_query, context, state.get("history", []))

        predictions = list(response.follow_up_predictions)
        seen = {p.content for p in predictions}
        for prediction in self.generate_predictions(user_query, context):
            if prediction.content not in seen:
                predictions.append(prediction)
                seen.add(prediction.content)

        state["intent"] = response.intent
        state["response_text"] = response.response_text
        state["extracted_entities"] = response.extracted_entities
        state["anticipatory_actions"] = [a.model_dump() for a in response.anticipatory_actions]
        state["predictions"] = [p.model_dump() for p in predictions]
        state["confidence"] = response.confidence

        self.logger.info(
            f"Classified turn as {response.intent} "
            f"({self.classifier.name}, confidence {response.confidence:.2f})"
        )
        return state


def create_conversation_router(llm_service: Optional[LLMService] = None) -> ConversationRouter:
    """
    Build a router with the strategy the configuration calls for.

    The generative strategy is used when an OpenAI key is configured and
    USE_LLM_ROUTER is enabled; otherwise the heuristic strategy.
    """
    settings = get_settings()

    if settings.USE_LLM_ROUTER and settings.llm_configured:
        classifier = GenerativeIntentClassifier(
            llm_service=llm_service or get_llm_service(),
            history_window=settings.HISTORY_WINDOW,
        )
    else:
        logger.info("OpenAI not configured - using heuristic intent classification")
        classifier = HeuristicIntentClassifier()

    return ConversationRouter(classifier=classifier)


# Singleton instance
_conversation_router: Optional[ConversationRouter] = None


def get_conversation_router() -> ConversationRouter:
    """Get or create the conversation router singleton."""
    global _conversation_router
    if _conversation_router is None:
        _conversation_router = create_conversation_router()
    return _conversation_router


def router_agent_node(state: ChatTurnState) -> ChatTurnState:
    """
    LangGraph node function for the Router Agent.

    Args:
        state: Current workflow state

    Returns:
        Updated state with intent
    """
    router = get_conversation_router()
    return router.process(state)
