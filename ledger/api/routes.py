"""FastAPI endpoints for the Statement Ledger API.

This module defines the API routes for uploading statements, polling ingestion status, listing statements
and the expenses created from them, cancelling an ingestion, and health checks. It wires together the
statement store and the job queue.
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from ledger.api.dependencies import get_job_queue, get_store
from ledger.core.db import StatementStore
from ledger.core.errors import QueueFullError, StatusTransitionError
from ledger.core.models import ExpenseOut, StatementOut, StatementStatus, UploadAccepted
from ledger.core.settings import Settings, get_settings
from ledger.core.utils import get_logger, utcnow
from ledger.workers.job_queue import JobQueue

router = APIRouter()
logger = get_logger("statement-ledger.api")

ACCEPTED_EXTENSIONS = (".csv", ".txt")
ACCEPTED_CONTENT_TYPES = ("text/csv", "application/csv", "text/plain")

STATEMENT_EXAMPLE = {
    "id": "123e4567-e89b-12d3-a456-426614174000",
    "file_name": "march.csv",
    "file_type": "csv",
    "source": "bank",
    "status": "completed_with_errors",
    "total_transactions": 25,
    "processed_transactions": 24,
    "error_message": "1 errors occurred",
    "issues": [{"line": 7, "reason": "Unparsable date 'n/a'", "stage": "parse"}],
    "uploaded_at": "2025-03-02T10:30:49Z",
    "processed_at": "2025-03-02T10:31:10Z",
}


def _get_statement_or_404(store: StatementStore, statement_id: str) -> StatementOut:
    statement = store.get_statement(statement_id)
    if statement is None:
        raise HTTPException(404, "Statement not found")
    return statement


@router.post(
    "/statements/upload",
    status_code=202,
    response_model=UploadAccepted,
    summary="Upload a bank or card statement and start ingestion",
    description=(
        "Upload a delimited statement export. "
        "The server records the statement and queues a background job that parses every line, "
        "categorizes it and stores it as a pending expense. "
        "Returns the statement_id to poll with `GET /statements/{statement_id}`.\n\n"
        "**Request:**\n"
        "- Content-Type: multipart/form-data\n"
        "- Form field: `file` (CSV file)\n"
        "- Form field: `source` (issuing bank or card brand, e.g. `amex`, `chase`, `bank`)\n"
        "- Form field: `default_partner_id` (optional)\n\n"
        "**Response:**\n"
        "- 202 Accepted: `{ 'statement_id': '<uuid>', 'message': '...' }`.\n"
        "- 400 Bad Request: Missing or empty file, unsupported file type, or missing source.\n"
        "- 413 Content Too Large: File exceeds the configured upload limit (10 MB by default).\n"
        "- 503 Service Unavailable: Too many statements waiting to be processed."
    ),
    response_description="Statement accepted. Returns statement_id.",
    responses={
        202: {
            "description": "Statement accepted.",
            "content": {
                "application/json": {
                    "example": {
                        "statement_id": "123e4567-e89b-12d3-a456-426614174000",
                        "message": "Statement uploaded successfully. Processing started.",
                    }
                }
            },
        },
        400: {
            "description": "Invalid upload.",
            "content": {"application/json": {"example": {"detail": "No file uploaded"}}},
        },
        413: {"description": "File too large."},
        503: {"description": "Job queue full."},
    },
)
async def upload_statement(
    file: UploadFile | None = File(None),
    source: str = Form(""),
    default_partner_id: str | None = Form(None),
    store: StatementStore = Depends(get_store),
    job_queue: JobQueue = Depends(get_job_queue),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Upload a statement and queue its ingestion."""
    if file is None or not file.filename:
        raise HTTPException(400, "No file uploaded")
    logger.info(f"Received upload request: filename={file.filename}, source={source!r}")
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if not file.filename.lower().endswith(ACCEPTED_EXTENSIONS) and content_type not in ACCEPTED_CONTENT_TYPES:
        logger.warning(f"Rejected file (not CSV): {file.filename} ({content_type})")
        raise HTTPException(400, "Only CSV files accepted")
    if not source.strip():
        raise HTTPException(400, "Source is required (e.g., 'amex', 'chase', 'bank')")
    raw = await file.read(settings.max_upload_bytes + 1)
    if len(raw) > settings.max_upload_bytes:
        logger.warning(f"Rejected file (too large): {file.filename}")
        raise HTTPException(413, f"File too large (limit {settings.max_upload_bytes} bytes)")
    content = raw.decode("utf-8-sig", errors="replace")
    if not content.strip():
        raise HTTPException(400, "Uploaded file is empty")
    statement = store.create_statement(file.filename, source.strip())
    try:
        job_queue.submit(statement.id, content, statement.source, default_partner_id or None)
    except QueueFullError as exc:
        logger.warning(f"Rejected statement {statement.id}: {exc}")
        store.update_statement(
            statement.id,
            status=StatementStatus.FAILED,
            error_message=str(exc),
            processed_at=utcnow(),
        )
        raise HTTPException(503, str(exc)) from exc
    logger.info(f"Ingestion queued: statement_id={statement.id}")
    body = UploadAccepted(statement_id=statement.id)
    return JSONResponse(body.model_dump(), status_code=202)


@router.get(
    "/statements",
    response_model=list[StatementOut],
    summary="List uploaded statements",
    description="Return every uploaded statement, newest first.",
)
async def list_statements(store: StatementStore = Depends(get_store)) -> list[StatementOut]:
    """List statements."""
    return store.list_statements()


@router.get(
    "/statements/{statement_id}",
    response_model=StatementOut,
    summary="Get statement ingestion status",
    description=(
        "Check the ingestion status of a statement. Poll every few seconds while the status is "
        "`pending` or `processing` and stop once it is `completed`, `completed_with_errors`, `failed` "
        "or `cancelled`.\n\n"
        "**Response:**\n"
        "- 200 OK: Status, transaction counts, error summary, line issues and timestamps.\n"
        "- 404 Not Found: If the statement_id does not exist."
    ),
    response_description="Statement status and metadata.",
    responses={
        200: {"description": "Statement found.", "content": {"application/json": {"example": STATEMENT_EXAMPLE}}},
        404: {
            "description": "Statement not found.",
            "content": {"application/json": {"example": {"detail": "Statement not found"}}},
        },
    },
)
async def get_statement(statement_id: str, store: StatementStore = Depends(get_store)) -> StatementOut:
    """Get the status of a statement."""
    return _get_statement_or_404(store, statement_id)


@router.get(
    "/statements/{statement_id}/expenses",
    response_model=list[ExpenseOut],
    summary="List expenses created from a statement",
    description="Return the pending expenses created while ingesting the statement.",
    responses={404: {"description": "Statement not found."}},
)
async def get_statement_expenses(statement_id: str, store: StatementStore = Depends(get_store)) -> list[ExpenseOut]:
    """List the expenses of a statement."""
    _get_statement_or_404(store, statement_id)
    return store.get_expenses_by_statement(statement_id)


@router.post(
    "/statements/{statement_id}/cancel",
    status_code=202,
    summary="Cancel a statement ingestion",
    description=(
        "Request cancellation of a queued or running ingestion. Expenses already written are kept and the "
        "statement ends in the `cancelled` state.\n\n"
        "**Response:**\n"
        "- 202 Accepted: Cancellation requested.\n"
        "- 404 Not Found: If the statement_id does not exist.\n"
        "- 409 Conflict: If the ingestion already finished."
    ),
    responses={
        202: {"content": {"application/json": {"example": {"statement_id": "...", "status": "cancelling"}}}},
        404: {"description": "Statement not found."},
        409: {"description": "Statement already finished."},
    },
)
async def cancel_statement(
    statement_id: str,
    store: StatementStore = Depends(get_store),
    job_queue: JobQueue = Depends(get_job_queue),
) -> JSONResponse:
    """Cancel a statement ingestion."""
    statement = _get_statement_or_404(store, statement_id)
    if statement.status.is_terminal:
        raise HTTPException(409, f"Statement already {statement.status}")
    if job_queue.cancel(statement_id):
        return JSONResponse({"statement_id": statement_id, "status": "cancelling"}, status_code=202)
    # No job in this process owns the statement (e.g. it was queued before a restart).
    try:
        store.update_statement(
            statement_id,
            status=StatementStatus.CANCELLED,
            error_message="Ingestion cancelled by client",
            processed_at=utcnow(),
        )
    except StatusTransitionError as exc:
        raise HTTPException(409, str(exc)) from exc
    return JSONResponse({"statement_id": statement_id, "status": StatementStatus.CANCELLED.value}, status_code=202)


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
