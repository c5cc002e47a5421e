"""Default category and partner directory inserted into an empty database."""

from ledger.core.db import StatementStore
from ledger.core.utils import get_logger

logger = get_logger("statement-ledger.seed")

DEFAULT_CATEGORIES = [
    ("Groceries", "🛒", "#3B82F6"),
    ("Eating out", "🍽️", "#F59E0B"),
    ("Entertainment", "🎬", "#8B5CF6"),
    ("Subscription", "📱", "#10B981"),
    ("Gifts", "🎁", "#EF4444"),
    ("Potluck", "🫕", "#F97316"),
    ("Charity", "❤️", "#EC4899"),
    ("Transport", "🚗", "#84CC16"),
    ("Vacation", "✈️", "#06B6D4"),
    ("Emergency spending", "🚨", "#DC2626"),
    ("Babysitting", "👶", "#A855F7"),
    ("Housekeeping", "🧹", "#059669"),
    ("Supplement/medicine", "💊", "#0891B2"),
]

DEFAULT_PARTNERS = [
    ("Partner A", "#8B5CF6"),
    ("Partner B", "#F59E0B"),
]


def seed_defaults(store: StatementStore) -> bool:
    """Insert the default directory when no categories exist. Returns True if anything was inserted."""
    if store.get_categories():
        logger.info("Database already initialized")
        return False
    for name, emoji, color in DEFAULT_CATEGORIES:
        store.add_category(name, emoji, color)
    if not store.get_partners():
        for name, color in DEFAULT_PARTNERS:
            store.add_partner(name, color)
    logger.info(f"Created {len(DEFAULT_CATEGORIES)} default categories")
    return True
