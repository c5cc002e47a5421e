"""Agents package: provides the classifier registry, base class, and classifier implementations."""

from .base import BaseAgent  # noqa: F401
from .category_agent import CategoryAgent
from .keyword_agent import KeywordAgent
from .registry import AgentRegistry

AgentRegistry.register("llm", CategoryAgent)
AgentRegistry.register("keyword", KeywordAgent)
