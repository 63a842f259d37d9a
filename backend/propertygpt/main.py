"""
FastAPI main application for PropertyGPT.

This is the entry point for the backend API server.
"""

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from .config import get_settings
from .exceptions import ProviderError
from .models.market import MarketAnalysis, Timeframe
from .models.schemas import (
    AnticipatedAction,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    HistoryResponse,
    MarketAnalysisRequest,
    Prediction,
    PredictionRequest,
    PredictionResponse,
    RichContent,
)
from .models.state import ConversationContext, get_intent_type
from .services import get_session_service
from .agents import get_conversation_router, get_market_analysis_engine
from .workflow import get_workflow
from .utils import generate_session_id
from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Settings
settings = get_settings()

FALLBACK_ANSWER = "I'm sorry, I couldn't process your request."


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.
    """
    # Startup
    logger.info("Starting PropertyGPT API...")
    logger.info(f"Version: {__version__}")

    router = get_conversation_router()
    logger.info(f"Intent classification: {router.classifier.name}")

    # Cache and provider are resolved lazily; a bad REDIS_URL should not block startup
    try:
        engine = get_market_analysis_engine()
        logger.info(
            f"Market analysis ready (cache: {engine.cache.name}, provider: {engine.provider.name})"
        )
    except Exception as e:
        logger.warning(f"Market analysis initialization deferred: {e}")

    logger.info("PropertyGPT API started successfully")

    yield

    # Shutdown
    removed = get_session_service().cleanup_stale_sessions()
    logger.info(f"Shutting down PropertyGPT API ({removed} stale sessions dropped)...")


# Create FastAPI application
app = FastAPI(
    title="PropertyGPT API",
    description="""
    A conversational real estate assistant.

    Features:
    - Intent routing with entity extraction
    - Anticipatory actions and typing-time predictions
    - Market analysis reports with trends, forecasts and recommendations
    """,
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# API Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "PropertyGPT API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """
    Health check endpoint to verify service status.
    """
    cache_backend = "unavailable"
    provider_name = "unavailable"

    try:
        engine = get_market_analysis_engine()
        cache_backend = engine.cache.name
        provider_name = engine.provider.name
    except Exception as e:
        logger.warning(f"Market analysis unavailable for health check: {e}")

    return HealthResponse(
        status="healthy" if provider_name != "unavailable" else "degraded",
        version=__version__,
        llm_configured=get_settings().llm_configured,
        cache_backend=cache_backend,
        market_data_provider=provider_name,
    )


@app.post("/chat", response_model=ChatResponse, tags=["Chat"])
def chat(request: ChatRequest):
    """
    Main endpoint for chatting with the assistant.

    The message is routed to an intent, the matching handler attaches
    rich content, and the session history and context are updated.
    """
    session_id = request.session_id or generate_session_id()
    logger.info(f"Chat from session {session_id}: {request.message[:50]}...")

    session_service = get_session_service()
    session = session_service.get_or_create_session(session_id)
    history = session_service.get_history(session_id, limit=get_settings().HISTORY_WINDOW)

    try:
        workflow = get_workflow()
        result = workflow.run(
            user_query=request.message,
            session_id=session_id,
            context=session.context,
            history=history,
        )
    except Exception as e:
        logger.error(f"Error processing chat message: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="Failed to process message"
        )

    if result.get("error"):
        logger.warning(f"{result.get('error_agent')} produced no content: {result['error']}")

    intent = get_intent_type(result.get("intent")).value
    answer = result.get("response_text") or FALLBACK_ANSWER
    rich_content = [RichContent(**item) for item in result.get("rich_content") or []]
    actions = [AnticipatedAction(**item) for item in result.get("anticipatory_actions") or []]
    predictions = [Prediction(**item) for item in result.get("predictions") or []]

    session_service.update_context(session_id, intent, result.get("extracted_entities"))
    session_service.add_to_history(
        session_id,
        request.message,
        answer,
        metadata={
            "intent": intent,
            "confidence": result.get("confidence", 0.0),
            "rich_content": [item.model_dump() for item in rich_content],
            "anticipated_actions": [a.model_dump() for a in actions],
            "predictions": [p.model_dump() for p in predictions],
        },
    )

    logger.info(f"Response generated for session {session_id}, intent: {intent}")

    return ChatResponse(
        session_id=session_id,
        response=answer,
        intent=intent,
        confidence=result.get("confidence", 0.0),
        rich_content=rich_content,
        anticipated_actions=actions,
        predictions=predictions,
    )


@app.post("/predictions", response_model=PredictionResponse, tags=["Chat"])
async def get_predictions(request: PredictionRequest):
    """
    Typing-time suggestions for a partial message.
    """
    context = ConversationContext()
    if request.session_id:
        session = get_session_service().get_session(request.session_id)
        if session:
            context = session.context

    router = get_conversation_router()
    return PredictionResponse(predictions=router.generate_predictions(request.message, context))


def _run_market_analysis(location: str, timeframe: str) -> MarketAnalysis:
    location = location.strip()
    if not location:
        raise HTTPException(status_code=400, detail="Location is required")

    try:
        return get_market_analysis_engine().generate_market_analysis(location, timeframe)
    except ProviderError as e:
        logger.error(f"Market analysis error for {location} ({timeframe}): {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Market analysis failed")
    except Exception as e:
        logger.error(f"Unexpected market analysis error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Market analysis failed")


@app.post("/market/analysis", response_model=MarketAnalysis, tags=["Market"])
def market_analysis(request: MarketAnalysisRequest):
    """
    Generate a market analysis report for a location.
    """
    return _run_market_analysis(request.location, request.timeframe)


@app.get("/market/analysis", response_model=MarketAnalysis, tags=["Market"])
def market_analysis_query(
    location: str = Query(..., min_length=1, description="City, neighborhood or ZIP code"),
    timeframe: Timeframe = Query("6m", description="Analysis window"),
):
    """
    Generate a market analysis report (query-string form).
    """
    return _run_market_analysis(location, timeframe)


@app.get("/history/{session_id}", response_model=HistoryResponse, tags=["Session"])
async def get_history(session_id: str, limit: int = 20):
    """
    Get conversation history for a session.
    """
    session_service = get_session_service()
    history = session_service.get_history(session_id, limit)

    return HistoryResponse(
        session_id=session_id,
        history=history,
        count=len(history),
    )


@app.delete("/session/{session_id}", tags=["Session"])
async def delete_session(session_id: str):
    """
    Delete a session and all its data.
    """
    session_service = get_session_service()
    deleted = session_service.delete_session(session_id)

    return {
        "success": deleted,
        "message": "Session deleted" if deleted else "Session not found",
    }


@app.get("/stats", tags=["Debug"])
async def get_stats():
    """
    Get system statistics (for debugging/monitoring).
    """
    return {
        "active_sessions": get_session_service().get_active_session_count(),
        "intent_classifier": get_conversation_router().classifier.name,
    }


# ============================================================
# Run with Uvicorn (for development)
# ============================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "propertygpt.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
