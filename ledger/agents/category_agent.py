"""CategoryAgent: assigns spending categories to transaction descriptions using an LLM.

This module defines the CategoryAgent class, which asks a language model (LLM) to pick one category out of
the category directory for a transaction description. Any failure of the LLM call, or output that cannot be
read as the expected JSON object, falls back to the deterministic KeywordAgent.
"""

import json
import re

from colorlog.escape_codes import escape_codes

from ledger.agents.base import BaseAgent, resolve_default_category
from ledger.agents.keyword_agent import KeywordAgent
from ledger.agents.prompts import SYSTEM_PROMPT, USER_PROMPT_LOG_LABEL, USER_PROMPT_TEMPLATE
from ledger.core.models import CategoryOut, Classification
from ledger.core.settings import Settings
from ledger.core.utils import get_logger
from ledger.services.llm_client import RateLimitedClient

DEFAULT_LLM_CONFIDENCE = 0.5

logger = get_logger("statement-ledger.agent")


class CategoryAgent(BaseAgent):
    """Agent responsible for LLM-based categorization of transaction descriptions."""

    def __init__(self, llm_client: RateLimitedClient | None, settings: Settings) -> None:
        """Initialize the CategoryAgent with a (possibly absent) LLM client and settings."""
        self.llm_client = llm_client
        self.settings = settings
        self.fallback = KeywordAgent(settings.default_category)

    def classify(self, description: str, categories: list[CategoryOut], row_info: str = "") -> Classification:
        """Ask the LLM for a category, falling back to keyword matching on any failure."""
        if self.llm_client is None:
            return self.fallback.classify(description, categories, row_info)
        try:
            return self._classify_with_llm(description, categories, row_info)
        except Exception:
            logger.exception(f"{row_info}AI categorization failed, using keyword fallback")
            return self.fallback.classify(description, categories, row_info)

    def _classify_with_llm(self, description: str, categories: list[CategoryOut], row_info: str) -> Classification:
        cyan = escape_codes["cyan"]
        green = escape_codes["green"]
        yellow = escape_codes["yellow"]
        reset = escape_codes["reset"]
        category_list = ", ".join(f"{cat.name} ({cat.emoji})" if cat.emoji else cat.name for cat in categories)
        system_msg = {"role": "system", "content": SYSTEM_PROMPT.format(category_list=category_list)}
        user_msg = {"role": "user", "content": USER_PROMPT_TEMPLATE.format(description=description)}
        logger.info(f"{cyan}{row_info}INPUT: {description}{reset}")
        logger.info(f"{yellow}{row_info}PROMPT: {USER_PROMPT_LOG_LABEL}{reset}")
        raw_output = self.llm_client.complete(
            model=self.settings.classifier_model,
            messages=[system_msg, user_msg],
            temperature=self.settings.classifier_temperature,
            max_completion_tokens=self.settings.classifier_max_completion_tokens,
            response_format={"type": "json_object"},
        )
        logger.info(f"{green}{row_info}OUTPUT: {raw_output}{reset}")
        name, confidence = self._extract_choice(raw_output)
        wanted = name.strip().lower()
        category = next((cat for cat in categories if cat.name.lower() == wanted), None)
        if category is None:
            logger.warning(f"{row_info}LLM suggested unknown category '{name}', using default")
            category = resolve_default_category(categories, self.settings.default_category)
        return Classification(category_id=category.id, confidence=confidence, method="llm")

    @staticmethod
    def _extract_choice(raw_output: str) -> tuple[str, float]:
        """Extract the category name and clamped confidence from the first valid JSON object."""
        for match in re.finditer(r"\{.*?\}", raw_output, re.DOTALL):
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError:
                continue
            if not isinstance(data, dict):
                continue
            name = data.get("categoryName")
            if not isinstance(name, str) or not name.strip():
                msg = f"Missing field 'categoryName' in LLM JSON output: {data}"
                raise ValueError(msg)
            raw_confidence = data.get("confidence")
            try:
                confidence = DEFAULT_LLM_CONFIDENCE if raw_confidence is None else float(raw_confidence)
            except (TypeError, ValueError) as exc:
                msg = f"Could not convert 'confidence' to float: {raw_confidence}"
                raise ValueError(msg) from exc
            return name, min(max(confidence, 0.0), 1.0)
        msg = f"No JSON object in LLM output: {raw_output!r}"
        raise ValueError(msg)
