"""
Session management service for keeping chat history and conversation
context across requests.
"""

from typing import Dict, Any, List, Optional
from datetime import datetime, timedelta
from collections import Counter
import threading
from dataclasses import dataclass, field

from ..models.state import ConversationContext, InteractionPattern, IntentType


# Intent repetitions needed before a pattern is recorded
PATTERN_THRESHOLD = 3

INTENT_PATTERNS = {
    IntentType.MARKET_ANALYSIS.value: "market_analysis_frequent",
    IntentType.PROPERTY_SEARCH.value: "property_search_repeat",
    IntentType.COMPLIANCE_QUESTION.value: "compliance_focus",
}


@dataclass
class SessionData:
    """Data structure for a user session."""

    session_id: str
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)
    history: List[Dict[str, Any]] = field(default_factory=list)
    context: ConversationContext = field(default_factory=ConversationContext)

    def touch(self):
        """Update last accessed time."""
        self.last_accessed = datetime.now()

    def add_to_history(self, role: str, content: str, metadata: Optional[Dict[str, Any]] = None):
        """Add a message to conversation history."""
        entry = {
            "role": role,
            "content": content,
            "timestamp": datetime.now().isoformat()
        }
        if metadata:
            entry["metadata"] = metadata
        self.history.append(entry)
        # Keep history manageable
        if len(self.history) > 100:
            self.history = self.history[-50:]

    def to_dict(self) -> Dict[str, Any]:
        """Convert session to dictionary."""
        return {
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
            "last_accessed": self.last_accessed.isoformat(),
            "history": self.history,
            "context": self.context.to_dict(),
        }


class SessionService:
    """
    Service for managing user sessions.

    Maintains session data in memory with optional cleanup of stale sessions.
    For production, this should be replaced with Redis or a database.
    """

    def __init__(self, session_timeout_hours: int = 24):
        self._sessions: Dict[str, SessionData] = {}
        self._lock = threading.Lock()
        self._session_timeout = timedelta(hours=session_timeout_hours)

    def get_or_create_session(self, session_id: str) -> SessionData:
        """
        Get existing session or create a new one.

        Args:
            session_id: Session identifier

        Returns:
            SessionData object
        """
        with self._lock:
            if session_id not in self._sessions:
                self._sessions[session_id] = SessionData(session_id=session_id)

            session = self._sessions[session_id]
            session.touch()
            return session

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """
        Get existing session if it exists.

        Args:
            session_id: Session identifier

        Returns:
            SessionData or None
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session:
                session.touch()
            return session

    def delete_session(self, session_id: str) -> bool:
        """
        Delete a session.

        Args:
            session_id: Session identifier

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            if session_id in self._sessions:
                del self._sessions[session_id]
                return True
            return False

    def cleanup_stale_sessions(self) -> int:
        """
        Remove sessions that have been inactive for too long.

        Returns:
            Number of sessions removed
        """
        now = datetime.now()

        with self._lock:
            stale_ids = [
                sid for sid, session in self._sessions.items()
                if now - session.last_accessed > self._session_timeout
            ]

            for sid in stale_ids:
                del self._sessions[sid]

        return len(stale_ids)

    def get_active_session_count(self) -> int:
        """Get the number of active sessions."""
        with self._lock:
            return len(self._sessions)

    def add_to_history(
        self,
        session_id: str,
        user_message: str,
        assistant_response: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Add a conversation exchange to session history.

        Args:
            session_id: Session identifier
            user_message: User's message
            assistant_response: Assistant's response
            metadata: Rich content, actions and predictions for the response
        """
        session = self.get_or_create_session(session_id)
        with self._lock:
            session.add_to_history("user", user_message)
            session.add_to_history("assistant", assistant_response, metadata)

    def get_history(
        self,
        session_id: str,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Get conversation history for a session.

        Args:
            session_id: Session identifier
            limit: Maximum number of messages to return

        Returns:
            Copy of the most recent messages, oldest first
        """
        if limit <= 0:
            return []

        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return []
            session.touch()
            return [dict(message) for message in session.history[-limit:]]

    def update_context(
        self,
        session_id: str,
        intent: str,
        entities: Optional[Dict[str, Any]] = None
    ) -> ConversationContext:
        """
        Record a classified turn on the session context.

        Args:
            session_id: Session identifier
            intent: Intent classified for the turn
            entities: Entities extracted for the turn

        Returns:
            Updated ConversationContext
        """
        session = self.get_or_create_session(session_id)
        with self._lock:
            session.context.record_turn(intent, entities)
            self._update_interaction_patterns(session.context)
        return session.context

    def _update_interaction_patterns(self, context: ConversationContext):
        """Derive recurring-behaviour patterns from the intent history."""
        counts = Counter(context.user_intent)
        now = datetime.now().isoformat()
        last_intent = context.user_intent[-1] if context.user_intent else None

        for intent, pattern_type in INTENT_PATTERNS.items():
            count = counts.get(intent, 0)
            if count < PATTERN_THRESHOLD:
                continue

            confidence = min(0.5 + 0.1 * count, 0.95)
            existing = next(
                (p for p in context.interaction_patterns if p.type == pattern_type), None
            )
            if existing is None:
                context.interaction_patterns.append(InteractionPattern(
                    type=pattern_type,
                    frequency=count,
                    last_occurrence=now,
                    confidence=confidence,
                ))
            else:
                existing.frequency = count
                existing.confidence = confidence
                if intent == last_intent:
                    existing.last_occurrence = now


# Singleton instance
_session_service: Optional[SessionService] = None


def get_session_service() -> SessionService:
    """
    Get or create the session service singleton.

    Returns:
        SessionService instance
    """
    global _session_service

    if _session_service is None:
        _session_service = SessionService()

    return _session_service
