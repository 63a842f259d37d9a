"""
Utility functions for the PropertyGPT core.
"""

from .helpers import (
    generate_session_id,
    format_price,
    parse_price_string,
    extract_entities,
    clean_llm_response,
)

__all__ = [
    "generate_session_id",
    "format_price",
    "parse_price_string",
    "extract_entities",
    "clean_llm_response",
]
