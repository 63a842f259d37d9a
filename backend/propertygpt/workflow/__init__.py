"""
LangGraph workflow for the PropertyGPT chat turn.
"""

from .graph import (
    ChatWorkflow,
    INTENT_TO_NODE,
    create_workflow,
    get_workflow,
)

__all__ = [
    "ChatWorkflow",
    "INTENT_TO_NODE",
    "create_workflow",
    "get_workflow",
]
