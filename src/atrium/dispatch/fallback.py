"""Deterministic offline responses, the last tier of the cascade."""

from .intent import Category, classify_intent

EXCERPT_CHARS = 80
GENERAL_EXCERPT_CHARS = 100

FALLBACK_TEMPLATES: dict[Category, str] = {
    Category.PROPERTY: (
        'I understand you\'re asking about property analysis regarding: "{excerpt}". '
        "I evaluate multifamily properties on location scoring, demographic trends, "
        "cap rates (typically targeting 5-7%), cash flow projections and market comparables. "
        "What specific property metrics would you like me to evaluate?"
    ),
    Category.MARKET: (
        'You\'re inquiring about market analysis for: "{excerpt}". '
        "I look at population growth rates, employment trends, housing supply and demand, "
        "and demographic shifts, with a focus on Sunbelt markets showing 2%+ annual "
        "population growth. Which market metrics matter most for your analysis?"
    ),
    Category.FINANCIAL: (
        'I see you\'re interested in financial modeling related to: "{excerpt}". '
        "For multifamily value-add projects, target IRRs usually sit around 15-20%, "
        "with scenarios stress-tested at 80% occupancy. NPV calculations include "
        "acquisition costs, renovation expenses and exit assumptions. "
        "What financial assumptions should I model?"
    ),
    Category.GENERAL: (
        'I received your message: "{excerpt}". '
        "I'm your real estate analytics assistant, covering multifamily development "
        "analysis, market intelligence and financial modeling. "
        "How can I help with your real estate investment needs today?"
    ),
}


def _excerpt(message: str, limit: int) -> str:
    text = " ".join(message.split())
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class DeterministicFallback:
    """Topic-aware canned response generator. Never fails, never touches the network."""

    name = "fallback"

    def __init__(self, templates: dict[Category, str] | None = None) -> None:
        self.templates = templates or FALLBACK_TEMPLATES

    def respond(self, message: str) -> tuple[str, Category]:
        """Build the fallback response for a message.

        Returns:
            The response text and the detected category.
        """
        category = classify_intent(message)
        limit = GENERAL_EXCERPT_CHARS if category is Category.GENERAL else EXCERPT_CHARS
        template = self.templates.get(category) or FALLBACK_TEMPLATES[category]
        return template.format(excerpt=_excerpt(message, limit)), category
