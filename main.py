"""Main entrypoint and application factory for the Statement Ledger API.

This module initializes the FastAPI application, configures logging, creates the database tables, seeds the
default category directory, starts the ingestion workers, and exposes the Scalar API reference endpoint for
interactive OpenAPI documentation. It also includes the main entrypoint for running the app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from ledger.api.dependencies import get_store
from ledger.api.routes import router
from ledger.core.db import Base, engine
from ledger.core.seed import seed_defaults
from ledger.core.settings import get_settings
from ledger.core.utils import add_file_handler, get_logger
from ledger.workers.job_queue import JobQueue
from ledger.workers.job_runner import run_job


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to file and console for the whole logger hierarchy."""
    logger = get_logger("statement-ledger")
    logger.setLevel(logging.INFO)
    add_file_handler(logger, get_settings().log_dir)
    for name in ("api", "agent", "llm", "parser", "worker", "queue", "seed"):
        child = get_logger(f"statement-ledger.{name}")
        child.setLevel(logging.INFO)
        add_file_handler(child, get_settings().log_dir)


setup_logging()
logger = get_logger("statement-ledger")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the tables, seed the directory and run the ingestion workers for the app's lifetime."""
    settings = get_settings()
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError:
        logger.exception("Failed to create database tables")
        raise
    if settings.seed_defaults:
        seed_defaults(get_store())
    job_queue = JobQueue(run_job, settings.worker_count, settings.max_pending_jobs)
    job_queue.start()
    app.state.job_queue = job_queue
    yield
    job_queue.shutdown()


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Statement Ledger API",
    description="""
    The Statement Ledger API ingests bank and card statement exports, normalizes every line into a transaction,
    categorizes it with an LLM (keyword matching as fallback) and stores it as an expense pending review.

    **Endpoints:**
    - `POST /statements/upload`: Upload a statement and queue its ingestion. Returns a `statement_id`.
    - `GET /statements/{{statement_id}}`: Poll the ingestion status of a statement.
    - `GET /statements/{{statement_id}}/expenses`: List the expenses created from a statement.
    - `POST /statements/{{statement_id}}/cancel`: Cancel a queued or running ingestion.
    - `GET /statements`: List statements.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
