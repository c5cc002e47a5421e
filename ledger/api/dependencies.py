"""FastAPI dependencies for DI (settings, store, classifier, job queue).

This module provides dependency injection helpers for settings, the statement store, classifier
instantiation and the job queue, enabling modular and testable API endpoints. The LLM client is created
once per process so its rate limit is shared by every ingestion job.
"""

from functools import lru_cache

from fastapi import Request
from groq import Groq

from ledger.agents import AgentRegistry, BaseAgent
from ledger.core.db import SessionLocal, StatementStore
from ledger.core.settings import get_settings
from ledger.services.llm_client import RateLimitedClient
from ledger.workers.job_queue import JobQueue


@lru_cache
def get_llm_client() -> RateLimitedClient | None:
    """Provide the shared rate-limited Groq client, or None when no API key is configured."""
    settings = get_settings()
    if not settings.groq_api_key:
        return None
    client = Groq(api_key=settings.groq_api_key, timeout=settings.classifier_timeout, max_retries=0)
    return RateLimitedClient(client, settings.classifier_min_interval, settings.classifier_backoff)


def get_agent() -> BaseAgent:
    """Provide a classifier: the LLM agent when a client is available, keyword matching otherwise."""
    settings = get_settings()
    llm_client = get_llm_client()
    if llm_client is None:
        return AgentRegistry.get("keyword")(settings.default_category)
    return AgentRegistry.get("llm")(llm_client, settings)


@lru_cache
def get_store() -> StatementStore:
    """Provide the statement store for dependency injection."""
    return StatementStore(SessionLocal)


def get_job_queue(request: Request) -> JobQueue:
    """Provide the job queue started by the application lifespan."""
    return request.app.state.job_queue
