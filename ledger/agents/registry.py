"""Name-to-class lookup for transaction classifiers.

``ledger.agents`` registers ``llm`` (Groq with keyword fallback) and ``keyword`` (rules only). The API
dependency layer resolves one of the two per ingestion job depending on whether a Groq key is configured.
"""

from typing import ClassVar

from ledger.agents.base import BaseAgent


class AgentRegistry:
    """Classifier classes keyed by the short name used in configuration and logs."""

    _registry: ClassVar[dict[str, type[BaseAgent]]] = {}

    @classmethod
    def register(cls, name: str, agent_cls: type[BaseAgent]) -> None:
        """Make a classifier class resolvable under ``name``; a later registration replaces an earlier one."""
        cls._registry[name] = agent_cls

    @classmethod
    def get(cls, name: str) -> type[BaseAgent]:
        """Return the classifier class for ``name``; unknown names raise KeyError."""
        return cls._registry[name]

    @classmethod
    def available(cls) -> list[str]:
        """Names of the classifiers that can categorize transactions."""
        return sorted(cls._registry)
