"""
Conversation state definitions: intents, session context and the
LangGraph state passed through the chat workflow.
"""

from typing import TypedDict, List, Optional, Dict, Any, Set
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime


class IntentType(str, Enum):
    """Enumeration of possible user intents."""

    PROPERTY_SEARCH = "property_search"
    MARKET_ANALYSIS = "market_analysis"
    COMPLIANCE_QUESTION = "compliance_question"
    CRM_ACTION = "crm_action"
    GENERAL_INQUIRY = "general_inquiry"


class ConversationStage(str, Enum):
    """Where the user is in the conversation."""

    GREETING = "greeting"
    DISCOVERY = "discovery"
    SEARCH = "search"
    ANALYSIS = "analysis"
    ACTION = "action"


class UserExpertise(str, Enum):
    """How much real estate background the user has."""

    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


# Entity keys tracked on the session context
CONTEXT_ENTITY_KEYS = ("location", "price_range", "property_type", "bedrooms", "bathrooms")


@dataclass
class InteractionPattern:
    """A recurring behaviour observed for a user."""

    type: str  # 'market_analysis_frequent', 'property_search_repeat', 'compliance_focus'
    frequency: int = 1
    last_occurrence: str = field(default_factory=lambda: datetime.now().isoformat())
    confidence: float = 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "frequency": self.frequency,
            "last_occurrence": self.last_occurrence,
            "confidence": self.confidence,
        }


@dataclass
class ConversationContext:
    """
    Running context for a chat session.

    Owned by the session store. The router reads it to tailor prompts;
    the caller updates it after every turn with ``record_turn``.
    """

    user_intent: List[str] = field(default_factory=list)
    extracted_entities: Dict[str, Any] = field(default_factory=dict)
    conversation_stage: str = ConversationStage.GREETING.value
    user_expertise: str = UserExpertise.INTERMEDIATE.value
    market_focus: Set[str] = field(default_factory=set)
    interaction_patterns: List[InteractionPattern] = field(default_factory=list)

    def record_turn(self, intent: str, entities: Optional[Dict[str, Any]] = None):
        """
        Merge a turn's classification into the context.

        Args:
            intent: Intent classified for the turn
            entities: Entities extracted from the turn (None values are ignored)
        """
        self.user_intent.append(intent)

        for key, value in (entities or {}).items():
            if key in CONTEXT_ENTITY_KEYS and value not in (None, "", {}):
                self.extracted_entities[key] = value

        location = self.extracted_entities.get("location")
        if location:
            self.market_focus.add(location)

    def has_pattern(self, pattern_type: str) -> bool:
        """Check whether an interaction pattern has been observed."""
        return any(p.type == pattern_type for p in self.interaction_patterns)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to a JSON-friendly dictionary."""
        return {
            "user_intent": list(self.user_intent),
            "extracted_entities": dict(self.extracted_entities),
            "conversation_stage": self.conversation_stage,
            "user_expertise": self.user_expertise,
            "market_focus": sorted(self.market_focus),
            "interaction_patterns": [p.to_dict() for p in self.interaction_patterns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationContext":
        """Rebuild a context from ``to_dict`` output."""
        return cls(
            user_intent=list(data.get("user_intent", [])),
            extracted_entities=dict(data.get("extracted_entities", {})),
            conversation_stage=data.get("conversation_stage", ConversationStage.GREETING.value),
            user_expertise=data.get("user_expertise", UserExpertise.INTERMEDIATE.value),
            market_focus=set(data.get("market_focus", [])),
            interaction_patterns=[
                InteractionPattern(**p) for p in data.get("interaction_patterns", [])
            ],
        )


class ChatTurnState(TypedDict, total=False):
    """
    State object passed through the LangGraph chat workflow.

    Holds the inputs of one turn and everything the router and the
    intent handler produce for it.
    """

    # Input
    user_query: str
    session_id: str
    context: ConversationContext
    history: List[Dict[str, Any]]

    # Router output
    intent: str
    response_text: str
    extracted_entities: Dict[str, Any]
    anticipatory_actions: List[Dict[str, Any]]
    predictions: List[Dict[str, Any]]
    confidence: float

    # Handler output
    rich_content: List[Dict[str, Any]]

    # Error Handling
    error: Optional[str]
    error_agent: Optional[str]


def create_initial_state(
    user_query: str,
    session_id: str,
    context: Optional[ConversationContext] = None,
    history: Optional[List[Dict[str, Any]]] = None
) -> ChatTurnState:
    """
    Create an initial state object for a new turn.

    Args:
        user_query: The user's message
        session_id: Session identifier
        context: Session conversation context
        history: Conversation history from session

    Returns:
        Initialized ChatTurnState
    """
    return ChatTurnState(
        user_query=user_query,
        session_id=session_id,
        context=context or ConversationContext(),
        history=history or [],
        intent="",
        response_text="",
        extracted_entities={},
        anticipatory_actions=[],
        predictions=[],
        confidence=0.0,
        rich_content=[],
        error=None,
        error_agent=None
    )


def get_intent_type(intent_string: Optional[str]) -> IntentType:
    """
    Convert an intent string to IntentType enum.

    Unknown or missing values map to GENERAL_INQUIRY.

    Args:
        intent_string: String representation of intent

    Returns:
        Corresponding IntentType enum value
    """
    if not isinstance(intent_string, str):
        return IntentType.GENERAL_INQUIRY

    normalized = intent_string.lower().strip()
    try:
        return IntentType(normalized)
    except ValueError:
        return IntentType.GENERAL_INQUIRY
