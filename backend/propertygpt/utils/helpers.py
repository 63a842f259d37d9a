"""
Helper utility functions.
"""

import uuid
import re
from typing import Dict, Any, Optional


PROPERTY_TYPE_KEYWORDS = {
    "condo": "condo",
    "condominium": "condo",
    "townhouse": "townhouse",
    "townhome": "townhouse",
    "apartment": "apartment",
    "loft": "loft",
    "single family": "single_family",
    "single-family": "single_family",
    "house": "single_family",
    "multi family": "multi_family",
    "multi-family": "multi_family",
    "duplex": "multi_family",
    "land": "land",
}

FEATURE_KEYWORDS = [
    "pool", "garage", "garden", "backyard", "yard", "view", "fireplace",
    "balcony", "basement", "office", "waterfront", "gym", "parking",
]

_PRICE = r'\$?\s*(\d[\d,]*(?:\.\d+)?\s*[kKmM]?)\b'


def generate_session_id() -> str:
    """
    Generate a unique session ID.

    Returns:
        Unique session identifier string
    """
    return f"session_{uuid.uuid4().hex}"


def format_price(price: Optional[float]) -> str:
    """
    Format a price value for display.

    Args:
        price: Price value (can be None)

    Returns:
        Formatted price string
    """
    if price is None:
        return "N/A"

    if price >= 1_000_000:
        return f"${price / 1_000_000:.2f}M"
    elif price >= 1_000:
        return f"${price / 1_000:.0f}K"
    else:
        return f"${price:,.0f}"


def parse_price_string(price_str: str) -> Optional[int]:
    """
    Parse a price string into an integer value.

    Handles formats like:
    - $500,000
    - 500k
    - 500K
    - $1.5M
    - 1500000

    Args:
        price_str: Price string to parse

    Returns:
        Integer price value or None if unparseable
    """
    if not price_str:
        return None

    # Clean the string
    price_str = price_str.strip().lower()
    price_str = price_str.replace('$', '').replace(',', '').replace(' ', '')

    try:
        # Check for millions (M)
        if 'm' in price_str:
            price_str = price_str.replace('m', '')
            return int(round(float(price_str) * 1_000_000))

        # Check for thousands (K)
        if 'k' in price_str:
            price_str = price_str.replace('k', '')
            return int(round(float(price_str) * 1_000))

        # Plain number
        value = float(price_str)

        # If value is small, assume it's in thousands
        if value < 10000:
            return int(round(value * 1000))

        return int(value)

    except (ValueError, TypeError):
        return None


def extract_entities(text: str) -> Dict[str, Any]:
    """
    Pull search details out of a free-text message.

    Only keys that were found are returned. Recognizes bedroom and
    bathroom counts, price bounds, property types, features and a
    capitalized location after "in", "near" or "around".

    Args:
        text: User message

    Returns:
        Dictionary of extracted entities
    """
    if not text:
        return {}

    entities: Dict[str, Any] = {}
    lowered = text.lower()

    beds = re.search(r'(\d+(?:\.\d+)?)\s*-?\s*(?:bed(?:room)?s?|br|bd)\b', lowered)
    if beds:
        entities["bedrooms"] = float(beds.group(1))

    baths = re.search(r'(\d+(?:\.\d+)?)\s*-?\s*(?:bath(?:room)?s?|ba)\b', lowered)
    if baths:
        entities["bathrooms"] = float(baths.group(1))

    price_range: Dict[str, int] = {}
    between = re.search(r'between\s+' + _PRICE + r'\s+(?:and|to|-)\s+' + _PRICE, lowered)
    if between:
        low, high = parse_price_string(between.group(1)), parse_price_string(between.group(2))
        if low is not None:
            price_range["min"] = low
        if high is not None:
            price_range["max"] = high
    else:
        upper = re.search(r'(?:under|below|less than|max(?:imum)?|up to|no more than)\s+' + _PRICE, lowered)
        if upper:
            value = parse_price_string(upper.group(1))
            if value is not None:
                price_range["max"] = value
        lower = re.search(r'(?:over|above|more than|at least|min(?:imum)?|starting at)\s+' + _PRICE, lowered)
        if lower:
            value = parse_price_string(lower.group(1))
            if value is not None:
                price_range["min"] = value
    if price_range:
        entities["price_range"] = price_range

    for keyword, property_type in PROPERTY_TYPE_KEYWORDS.items():
        if re.search(r'\b' + re.escape(keyword) + r's?\b', lowered):
            entities["property_type"] = property_type
            break

    features = [f for f in FEATURE_KEYWORDS if re.search(r'\b' + f + r'\b', lowered)]
    if features:
        entities["features"] = features

    location = re.search(
        r"\b(?:in|near|around)\s+([A-Z][A-Za-z.'-]*(?:\s+[A-Z][A-Za-z.'-]*)*(?:,\s*[A-Z]{2})?)",
        text
    )
    if location:
        entities["location"] = location.group(1).strip()
    else:
        zip_code = re.search(r'\b(\d{5})\b', text)
        if zip_code and not price_range:
            entities["location"] = zip_code.group(1)

    return entities


def clean_llm_response(response: str) -> str:
    """
    Clean up an LLM response by removing common artifacts.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned response
    """
    if not response:
        return ""

    # Remove leading/trailing whitespace
    response = response.strip()

    # Remove common artifacts
    artifacts = [
        "As an AI language model,",
        "As an AI assistant,",
        "Certainly!",
        "Of course!",
    ]

    for artifact in artifacts:
        if response.startswith(artifact):
            response = response[len(artifact):].strip()

    return response
