"""Base abstraction for transaction category classifiers.

This module defines the abstract base class for all classifiers, enforcing a standard interface for
assigning a category and a confidence score to a transaction description.
"""

from abc import ABC, abstractmethod

from ledger.core.models import CategoryOut, Classification


class BaseAgent(ABC):
    """Abstract base class for all classifiers."""

    @abstractmethod
    def classify(self, description: str, categories: list[CategoryOut], row_info: str = "") -> Classification:
        """Assign a category and confidence to a transaction description."""


def resolve_default_category(categories: list[CategoryOut], label: str) -> CategoryOut:
    """Return the category named ``label`` (case-insensitive), else the first category."""
    if not categories:
        msg = "No categories available for classification"
        raise ValueError(msg)
    wanted = label.lower()
    for category in categories:
        if category.name.lower() == wanted:
            return category
    return categories[0]
