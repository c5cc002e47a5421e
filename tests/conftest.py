"""Shared fixtures: isolated SQLite databases, settings and fake LLM clients."""

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

# Must be set before the application modules read their settings.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="statement-ledger-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'api.db'}"
os.environ["LOG_DIR"] = str(_TMP_DIR / "logs")
os.environ["GROQ_API_KEY"] = ""
os.environ["WORKER_COUNT"] = "1"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ledger.core.db import Base, StatementStore  # noqa: E402
from ledger.core.settings import Settings  # noqa: E402


class FakeLLM:
    """Stand-in for RateLimitedClient returning canned outputs (or raising canned errors) in order."""

    def __init__(self, *outputs: str | Exception) -> None:
        """Store the outputs; the last one repeats."""
        self.outputs = list(outputs)
        self.calls: list[dict] = []

    def complete(self, **kwargs: object) -> str:
        """Record the call and return the next canned output."""
        self.calls.append(kwargs)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, Exception):
            raise output
        return output


@pytest.fixture
def store() -> Iterator[StatementStore]:
    """A statement store over a fresh in-memory database."""
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield StatementStore(sessionmaker(bind=engine, autoflush=False))
    engine.dispose()


@pytest.fixture
def settings() -> Settings:
    """Settings with no LLM key and the default progress flush interval."""
    return Settings(groq_api_key=None, progress_flush_every=10, reject_unparsable_dates=True)


@pytest.fixture
def client() -> Iterator[TestClient]:
    """A TestClient running the app lifespan (tables, seed data, workers)."""
    from main import app

    with TestClient(app) as test_client:
        yield test_client
