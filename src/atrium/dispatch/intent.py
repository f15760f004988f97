"""Keyword intent classification for user messages."""

from enum import Enum


class Category(Enum):
    """Topic bucket a message falls into."""

    PROPERTY = "property"
    MARKET = "market"
    FINANCIAL = "financial"
    GENERAL = "general"


# Checked in order; the first bucket with a matching keyword wins.
INTENT_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.PROPERTY, ("property", "real estate")),
    (Category.MARKET, ("market", "analysis")),
    (Category.FINANCIAL, ("irr", "npv", "financial")),
)


def classify_intent(text: str) -> Category:
    """Classify a message into a topic bucket by keyword matching.

    Args:
        text: The raw user message.

    Returns:
        The first matching Category, or GENERAL when nothing matches.
    """
    lowered = text.lower()
    for category, keywords in INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return Category.GENERAL
