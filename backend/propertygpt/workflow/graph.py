"""
LangGraph workflow definition for the PropertyGPT chat turn.
"""

from typing import Any, Dict, List, Optional

from langgraph.graph import StateGraph, END

from ..models.state import ChatTurnState, ConversationContext, IntentType, create_initial_state
from ..agents import (
    router_agent_node,
    property_search_node,
    market_analysis_node,
    compliance_node,
    crm_node,
    general_node,
)

# Intent -> handler node
INTENT_TO_NODE = {
    IntentType.PROPERTY_SEARCH.value: "property_search",
    IntentType.MARKET_ANALYSIS.value: "market_analysis",
    IntentType.COMPLIANCE_QUESTION.value: "compliance",
    IntentType.CRM_ACTION.value: "crm",
    IntentType.GENERAL_INQUIRY.value: "general",
}


class ChatWorkflow:
    """
    Orchestrates one chat turn.

    The router node classifies the utterance, then a conditional edge
    dispatches to exactly one intent handler before the graph ends.
    """

    def __init__(self):
        self._graph = None
        self._compiled_app = None
        self._build_graph()

    def _build_graph(self):
        """Build the LangGraph workflow graph."""
        self._graph = StateGraph(ChatTurnState)

        self._graph.add_node("router", router_agent_node)
        self._graph.add_node("property_search", property_search_node)
        self._graph.add_node("market_analysis", market_analysis_node)
        self._graph.add_node("compliance", compliance_node)
        self._graph.add_node("crm", crm_node)
        self._graph.add_node("general", general_node)

        self._graph.set_entry_point("router")

        # Conditional edges from router to intent handlers
        self._graph.add_conditional_edges(
            "router",
            self._route_by_intent,
            {node: node for node in INTENT_TO_NODE.values()}
        )

        # Every handler ends the turn
        for node in INTENT_TO_NODE.values():
            self._graph.add_edge(node, END)

        self._compiled_app = self._graph.compile()

    @staticmethod
    def _route_by_intent(state: ChatTurnState) -> str:
        """
        Route to the handler for the classified intent.

        Args:
            state: Current workflow state with intent field populated

        Returns:
            Name of the next node to execute
        """
        intent = (state.get("intent") or "").lower()
        return INTENT_TO_NODE.get(intent, "general")

    def run(
        self,
        user_query: str,
        session_id: str,
        context: Optional[ConversationContext] = None,
        history: Optional[List[Dict[str, Any]]] = None
    ) -> ChatTurnState:
        """
        Run the workflow for a user message.

        Args:
            user_query: The user's message
            session_id: Session identifier
            context: Session conversation context (read, not updated)
            history: Conversation history, oldest first

        Returns:
            Final state after workflow execution
        """
        initial_state = create_initial_state(
            user_query=user_query,
            session_id=session_id,
            context=context,
            history=history
        )
        return self._compiled_app.invoke(initial_state)


# Singleton workflow instance
_workflow: Optional[ChatWorkflow] = None


def create_workflow() -> ChatWorkflow:
    """
    Create a new workflow instance.

    Returns:
        ChatWorkflow instance
    """
    return ChatWorkflow()


def get_workflow() -> ChatWorkflow:
    """
    Get or create the singleton workflow instance.

    Returns:
        ChatWorkflow singleton
    """
    global _workflow

    if _workflow is None:
        _workflow = create_workflow()

    return _workflow
