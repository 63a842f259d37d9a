"""
Tests for the in-memory session store and conversation context.
"""

from datetime import datetime, timedelta

import pytest

from propertygpt.models.state import ConversationContext
from propertygpt.services.session_service import SessionService, get_session_service


def test_get_or_create_returns_same_session():
    service = SessionService()

    first = service.get_or_create_session("abc")
    second = service.get_or_create_session("abc")

    assert first is second
    assert service.get_active_session_count() == 1


def test_history_records_exchanges_with_metadata():
    service = SessionService()

    service.add_to_history("abc", "Hi", "Hello! How can I help?", metadata={"intent": "general_inquiry"})
    service.add_to_history("abc", "Homes in Austin", "Here are some options.")

    history = service.get_history("abc")
    assert [m["role"] for m in history] == ["user", "assistant", "user", "assistant"]
    assert history[1]["metadata"] == {"intent": "general_inquiry"}
    assert "metadata" not in history[3]
    assert service.get_history("abc", limit=1)[0]["content"] == "Here are some options."
    assert service.get_history("missing") == []


def test_get_history_returns_a_snapshot():
    service = SessionService()
    service.add_to_history("abc", "Hi", "Hello!", metadata={"intent": "general_inquiry"})

    snapshot = service.get_history("abc")
    service.add_to_history("abc", "Homes in Austin", "Here are some options.")
    snapshot.append({"role": "user", "content": "stray"})
    snapshot[0]["content"] = "edited"

    assert len(snapshot) == 3
    history = service.get_history("abc")
    assert [m["content"] for m in history] == ["Hi", "Hello!", "Homes in Austin", "Here are some options."]
    assert service.get_history("abc", limit=0) == []


def test_history_is_capped():
    service = SessionService()
    for i in range(51):
        service.add_to_history("abc", f"q{i}", f"a{i}")

    history = service.get_session("abc").history
    assert len(history) <= 100
    assert history[-1]["content"] == "a50"


def test_delete_session():
    service = SessionService()
    service.get_or_create_session("abc")

    assert service.delete_session("abc") is True
    assert service.delete_session("abc") is False
    assert service.get_session("abc") is None


def test_cleanup_stale_sessions():
    service = SessionService(session_timeout_hours=1)
    session = service.get_or_create_session("old")
    session.last_accessed = datetime.now() - timedelta(hours=2)
    service.get_or_create_session("fresh")

    assert service.cleanup_stale_sessions() == 1
    assert service.get_session("fresh") is not None


def test_update_context_merges_entities_and_market_focus():
    service = SessionService()

    service.update_context("abc", "property_search", {"location": "Austin, TX", "bedrooms": 3.0})
    context = service.update_context("abc", "property_search", {"bedrooms": None, "price_range": {"max": 600000}})

    assert context.user_intent == ["property_search", "property_search"]
    assert context.extracted_entities == {
        "location": "Austin, TX",
        "bedrooms": 3.0,
        "price_range": {"max": 600000},
    }
    assert context.market_focus == {"Austin, TX"}


def test_repeated_market_analysis_becomes_a_pattern():
    service = SessionService()

    for _ in range(2):
        context = service.update_context("abc", "market_analysis")
    assert not context.has_pattern("market_analysis_frequent")

    context = service.update_context("abc", "market_analysis")
    pattern = context.interaction_patterns[0]
    assert pattern.type == "market_analysis_frequent"
    assert pattern.frequency == 3
    assert pattern.confidence == pytest.approx(0.8)

    context = service.update_context("abc", "market_analysis")
    assert len(context.interaction_patterns) == 1
    assert context.interaction_patterns[0].frequency == 4


def test_context_serialization_round_trip():
    context = ConversationContext()
    context.record_turn("market_analysis", {"location": "Austin, TX"})

    restored = ConversationContext.from_dict(context.to_dict())

    assert restored == context


def test_session_service_singleton():
    assert get_session_service() is get_session_service()
