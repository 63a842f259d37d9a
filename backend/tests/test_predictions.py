"""
Tests for typing-time predictive suggestions.
"""

from propertygpt.agents.router_agent import ConversationRouter, generate_predictions
from propertygpt.models.state import ConversationContext, InteractionPattern


def test_looking_for_yields_single_property_search_prediction():
    context = ConversationContext()

    predictions = generate_predictions("I'm looking for a condo", context)

    assert len(predictions) == 1
    prediction = predictions[0]
    assert prediction.content == "Set up automated alerts for similar properties?"
    assert prediction.category == "property_search"
    assert prediction.trigger == "context_cue"
    assert prediction.confidence == 0.85


def test_predictions_are_deterministic():
    context = ConversationContext()

    first = generate_predictions("I'm looking for a condo", context)
    second = generate_predictions("I'm looking for a condo", context)

    assert first == second


def test_looking_for_is_case_insensitive():
    assert len(generate_predictions("LOOKING FOR a loft", ConversationContext())) == 1


def test_frequent_market_analysis_pattern():
    context = ConversationContext(interaction_patterns=[InteractionPattern(type="market_analysis_frequent")])

    predictions = generate_predictions("what about", context)

    assert [(p.category, p.trigger, p.confidence) for p in predictions] == [
        ("market_analysis", "temporal_pattern", 0.78),
    ]


def test_expert_compliance_prediction():
    expert = ConversationContext(user_expertise="expert")
    novice = ConversationContext(user_expertise="novice")

    assert [p.content for p in generate_predictions("compliance for flips", expert)] == [
        "Check recent regulatory updates?",
    ]
    assert generate_predictions("compliance for flips", novice) == []


def test_all_matching_predictions_in_order():
    context = ConversationContext(
        user_expertise="expert",
        interaction_patterns=[InteractionPattern(type="market_analysis_frequent")],
    )

    predictions = generate_predictions("looking for compliance guidance", context)

    assert [p.category for p in predictions] == ["property_search", "market_analysis", "compliance"]


def test_no_triggers_no_predictions():
    assert generate_predictions("", ConversationContext()) == []


def test_router_method_matches_module_function():
    router = ConversationRouter()
    context = ConversationContext()

    assert router.generate_predictions("I'm looking for a condo", context) == generate_predictions(
        "I'm looking for a condo", context
    )
