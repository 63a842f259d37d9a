"""
Pydantic schemas for conversation payloads and API request/response models.
"""

from typing import Optional, List, Any, Dict, Literal
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from datetime import datetime

from .market import Timeframe


IntentLiteral = Literal[
    "property_search",
    "market_analysis",
    "compliance_question",
    "crm_action",
    "general_inquiry",
]


class PriceRange(BaseModel):
    """Budget bounds mentioned by the user."""

    min: Optional[float] = None
    max: Optional[float] = None


class ExtractedEntities(BaseModel):
    """Structured details pulled from an utterance."""

    location: Optional[str] = None
    price_range: Optional[PriceRange] = None
    property_type: Optional[str] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    features: List[str] = Field(default_factory=list)

    class Config:
        extra = "ignore"

    @classmethod
    def clean(cls, raw: Any) -> Dict[str, Any]:
        """
        Keep the well-formed fields of a raw entity mapping.

        Each field is validated on its own, so a malformed value (say a
        price range given as "500k-700k") is dropped without losing the
        rest. Empty values and unknown keys are dropped too.

        Args:
            raw: Entity mapping as produced by a classifier

        Returns:
            Dict of validated entity values
        """
        if not isinstance(raw, dict):
            return {}

        entities = {}
        for key in cls.model_fields:
            value = raw.get(key)
            if value in (None, "", [], {}):
                continue
            try:
                parsed = cls(**{key: value})
            except ValidationError:
                continue
            cleaned = parsed.model_dump(exclude_none=True).get(key)
            if cleaned not in (None, "", [], {}):
                entities[key] = cleaned
        return entities


class AnticipatedAction(BaseModel):
    """A suggested next action surfaced alongside a response."""

    label: str
    action: str
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class Prediction(BaseModel):
    """A predicted follow-up need."""

    content: str
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    trigger: Literal["typing_pattern", "context_cue", "temporal_pattern"] = "context_cue"
    category: Literal["property_search", "market_analysis", "compliance", "crm"] = "property_search"


class ConversationResponse(BaseModel):
    """Router output for a single turn."""

    intent: IntentLiteral = "general_inquiry"
    response_text: str = ""
    extracted_entities: Dict[str, Any] = Field(default_factory=dict)
    anticipatory_actions: List[AnticipatedAction] = Field(default_factory=list)
    follow_up_predictions: List[Prediction] = Field(default_factory=list)
    confidence: float = 0.5


class RichContent(BaseModel):
    """Typed payload attached to an assistant response for UI rendering."""

    type: Literal["property_grid", "market_chart", "compliance_answer", "lead_summary"]
    component: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ConversationMessage(BaseModel):
    """A single message in the conversation history."""

    role: str = Field(
        ...,
        validation_alias=AliasChoices("role", "sender"),
        description="Role of the message sender: 'user' or 'assistant'"
    )
    content: str = Field(..., description="Content of the message")
    timestamp: Optional[datetime] = Field(default_factory=datetime.now, description="When the message was sent")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Rich content, actions and predictions of a response")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "role": "user",
                "content": "Find me 3-bedroom homes in Santa Monica under $1.2M",
                "timestamp": "2024-01-15T10:30:00"
            }
        }


class ChatRequest(BaseModel):
    """Request model for the chat endpoint."""

    session_id: Optional[str] = Field(None, description="Session identifier; a new one is issued if omitted")
    message: str = Field(..., min_length=1, max_length=1000, description="User's message")

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "sess_abc123",
                "message": "What are price trends in Santa Monica?"
            }
        }


class ChatResponse(BaseModel):
    """Response model for the chat endpoint."""

    session_id: str = Field(..., description="Session identifier")
    response: str = Field(..., description="Assistant's response text")
    intent: IntentLiteral = Field(..., description="Classified intent of the message")
    confidence: float = Field(..., description="Router confidence for this turn")
    rich_content: List[RichContent] = Field(default_factory=list)
    anticipated_actions: List[AnticipatedAction] = Field(default_factory=list)
    predictions: List[Prediction] = Field(default_factory=list)


class PredictionRequest(BaseModel):
    """Request model for typing-time predictions."""

    session_id: Optional[str] = None
    message: str = Field(..., max_length=1000)


class PredictionResponse(BaseModel):
    """Response model for typing-time predictions."""

    predictions: List[Prediction] = Field(default_factory=list)


class MarketAnalysisRequest(BaseModel):
    """Request model for the market analysis endpoint."""

    location: str = Field(..., min_length=1, description="City, neighborhood or ZIP code")
    timeframe: Timeframe = Field("6m", description="Analysis window")

    class Config:
        json_schema_extra = {
            "example": {
                "location": "Santa Monica, CA",
                "timeframe": "6m"
            }
        }


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="Application version")
    llm_configured: bool = Field(..., description="Whether an OpenAI key is configured")
    cache_backend: str = Field(..., description="Active cache backend")
    market_data_provider: str = Field(..., description="Active market data provider")


class HistoryResponse(BaseModel):
    """Response model for the session history endpoint."""

    session_id: str = Field(..., description="Session identifier")
    history: List[ConversationMessage] = Field(default_factory=list, description="Messages, oldest first")
    count: int = Field(..., description="Number of messages returned")
