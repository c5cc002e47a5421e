"""Deterministic keyword classifier used when the LLM is unavailable or fails."""

from ledger.agents.base import BaseAgent, resolve_default_category
from ledger.core.models import CategoryOut, Classification

KEYWORD_CONFIDENCE = 0.7
DEFAULT_CONFIDENCE = 0.3

# Scanned in order; the first keyword found in the description whose category exists wins.
KEYWORD_RULES: list[tuple[tuple[str, ...], str]] = [
    (
        (
            "lidl",
            "rewe",
            "edeka",
            "aldi",
            "grocery",
            "supermarket",
            "market",
            "food store",
            "walmart",
            "safeway",
            "whole foods",
            "netto",
            "penny",
        ),
        "Groceries",
    ),
    (
        (
            "restaurant",
            "cafe",
            "pizza",
            "delivery",
            "uber eats",
            "doordash",
            "lieferando",
            "mcdonalds",
            "burger",
            "kfc",
            "subway",
            "bistro",
        ),
        "Eating out",
    ),
    (
        (
            "movie",
            "netflix",
            "spotify",
            "game",
            "entertainment",
            "cinema",
            "theater",
            "concert",
            "amazon prime",
            "disney",
        ),
        "Entertainment",
    ),
    (("subscription", "monthly", "adobe", "software", "saas", "service", "membership"), "Subscription"),
    (
        (
            "bolt",
            "uber",
            "lyft",
            "taxi",
            "gas",
            "fuel",
            "parking",
            "transit",
            "transport",
            "bvg",
            "db bahn",
            "train",
            "bus",
        ),
        "Transport",
    ),
    (("gift", "present", "flower", "card", "geschenk"), "Gifts"),
    (("hotel", "flight", "travel", "vacation", "airbnb", "booking", "expedia", "urlaub"), "Vacation"),
    (("pharmacy", "medicine", "drug", "vitamin", "health", "apotheke", "dm", "rossmann"), "Supplement/medicine"),
    # General shopping
    (("amazon", "ebay", "zalando", "otto"), "Entertainment"),
]


class KeywordAgent(BaseAgent):
    """Classify descriptions by case-insensitive keyword substring matching."""

    def __init__(self, default_category: str = "Entertainment") -> None:
        """Initialize with the label of the default category."""
        self.default_category = default_category

    def classify(self, description: str, categories: list[CategoryOut], row_info: str = "") -> Classification:
        """Return the first keyword match at 0.7 confidence, else the default category at 0.3."""
        _ = row_info
        default = resolve_default_category(categories, self.default_category)
        by_name = {category.name.lower(): category for category in categories}
        text = description.lower()
        for keywords, label in KEYWORD_RULES:
            category = by_name.get(label.lower())
            if category is None:
                continue
            if any(keyword in text for keyword in keywords):
                return Classification(category_id=category.id, confidence=KEYWORD_CONFIDENCE, method="keyword")
        return Classification(category_id=default.id, confidence=DEFAULT_CONFIDENCE, method="default")
