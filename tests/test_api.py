"""API integration tests for the Statement Ledger service."""

from fastapi.testclient import TestClient

from ledger.api.dependencies import get_job_queue, get_store
from ledger.core.errors import QueueFullError
from ledger.core.settings import Settings, get_settings

HTTP_200_OK = 200
HTTP_202_ACCEPTED = 202
HTTP_400_BAD_REQUEST = 400
HTTP_404_NOT_FOUND = 404
HTTP_413_CONTENT_TOO_LARGE = 413
HTTP_503_SERVICE_UNAVAILABLE = 503
CSV_CONTENT = 'Date,Description,Amount\n"01/03/2025","Supermarket X","23,40"\n'


class FullQueue:
    """Job queue stand-in that never has room."""

    def submit(self, *_: object) -> None:
        """Reject every submission."""
        msg = "Too many statements are waiting to be processed. Try again later."
        raise QueueFullError(msg)


def test_health(client: TestClient) -> None:
    """Test the /health endpoint returns status ok."""
    response = client.get("/health")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if response.json() != {"status": "ok"}:
        msg = f"Expected response {{'status': 'ok'}}, got {response.json()}"
        raise AssertionError(msg)


def test_scalar_docs(client: TestClient) -> None:
    """Test the /scalar endpoint returns the OpenAPI reference."""
    response = client.get("/scalar")
    if response.status_code != HTTP_200_OK:
        msg = f"Expected status {HTTP_200_OK}, got {response.status_code}"
        raise AssertionError(msg)
    if "openapi" not in response.text:
        msg = "Expected 'openapi' in response text"
        raise AssertionError(msg)


def test_upload_validation(client: TestClient) -> None:
    """Invalid uploads are rejected with 400 and a specific message."""
    cases = [
        ({}, {"source": "bank"}, "No file uploaded"),
        ({"file": ("march.pdf", b"%PDF", "application/pdf")}, {"source": "bank"}, "Only CSV files accepted"),
        ({"file": ("march.csv", CSV_CONTENT, "text/csv")}, {"source": "  "}, "Source is required"),
        ({"file": ("march.csv", b"  \n", "text/csv")}, {"source": "bank"}, "Uploaded file is empty"),
    ]
    for files, data, detail in cases:
        response = client.post("/statements/upload", files=files, data=data)
        if response.status_code != HTTP_400_BAD_REQUEST:
            msg = f"Expected {HTTP_400_BAD_REQUEST} for {detail!r}, got {response.status_code}"
            raise AssertionError(msg)
        if detail not in response.json()["detail"]:
            msg = f"Expected detail containing {detail!r}, got {response.json()}"
            raise AssertionError(msg)


def test_unknown_statement_is_404(client: TestClient) -> None:
    """Status, expenses and cancel all return 404 for an unknown statement."""
    for method, path in (
        ("get", "/statements/does-not-exist"),
        ("get", "/statements/does-not-exist/expenses"),
        ("post", "/statements/does-not-exist/cancel"),
    ):
        response = client.request(method.upper(), path)
        if response.status_code != HTTP_404_NOT_FOUND:
            msg = f"Expected {HTTP_404_NOT_FOUND} for {method.upper()} {path}, got {response.status_code}"
            raise AssertionError(msg)


def test_full_queue_returns_503(client: TestClient) -> None:
    """A saturated queue rejects the upload and marks the statement failed."""
    client.app.dependency_overrides[get_job_queue] = FullQueue
    try:
        response = client.post(
            "/statements/upload",
            files={"file": ("busy.csv", CSV_CONTENT, "text/csv")},
            data={"source": "bank"},
        )
    finally:
        client.app.dependency_overrides.clear()
    if response.status_code != HTTP_503_SERVICE_UNAVAILABLE:
        msg = f"Expected status {HTTP_503_SERVICE_UNAVAILABLE}, got {response.status_code}"
        raise AssertionError(msg)
    failed = [s for s in client.get("/statements").json() if s["file_name"] == "busy.csv"]
    if not failed or failed[0]["status"] != "failed":
        msg = f"Expected the rejected statement to be failed, got {failed}"
        raise AssertionError(msg)


class HeldQueue:
    """Job queue stand-in that accepts jobs without running them."""

    def __init__(self) -> None:
        """Start empty."""
        self.waiting: set[str] = set()

    def submit(self, statement_id: str, *_: object) -> None:
        """Hold the job."""
        self.waiting.add(statement_id)

    def cancel(self, statement_id: str) -> bool:
        """Cancel a held job."""
        return statement_id in self.waiting


def test_oversized_upload_returns_413(client: TestClient) -> None:
    """A file above the configured upload limit is rejected before it is stored."""
    client.app.dependency_overrides[get_settings] = lambda: Settings(max_upload_bytes=16)
    try:
        response = client.post(
            "/statements/upload",
            files={"file": ("huge.csv", CSV_CONTENT, "text/csv")},
            data={"source": "bank"},
        )
    finally:
        client.app.dependency_overrides.clear()
    if response.status_code != HTTP_413_CONTENT_TOO_LARGE:
        msg = f"Expected status {HTTP_413_CONTENT_TOO_LARGE}, got {response.status_code}"
        raise AssertionError(msg)
    if any(s["file_name"] == "huge.csv" for s in client.get("/statements").json()):
        msg = "An oversized upload must not create a statement"
        raise AssertionError(msg)


def test_csv_content_type_is_accepted_without_csv_extension(client: TestClient) -> None:
    """A CSV content type is enough even when the file name has another extension."""
    response = client.post(
        "/statements/upload",
        files={"file": ("export.dat", CSV_CONTENT, "application/csv")},
        data={"source": "bank"},
    )
    if response.status_code != HTTP_202_ACCEPTED:
        msg = f"Expected status {HTTP_202_ACCEPTED}, got {response.status_code}: {response.text}"
        raise AssertionError(msg)


def test_cancel_queued_statement(client: TestClient) -> None:
    """Cancelling a statement whose job is still queued answers 202 cancelling."""
    held = HeldQueue()
    client.app.dependency_overrides[get_job_queue] = lambda: held
    try:
        upload = client.post(
            "/statements/upload",
            files={"file": ("queued.csv", CSV_CONTENT, "text/csv")},
            data={"source": "bank"},
        )
        statement_id = upload.json()["statement_id"]
        response = client.post(f"/statements/{statement_id}/cancel")
    finally:
        client.app.dependency_overrides.clear()
    if response.status_code != HTTP_202_ACCEPTED or response.json()["status"] != "cancelling":
        msg = f"Expected 202 cancelling, got {response.status_code}: {response.json()}"
        raise AssertionError(msg)


def test_cancel_statement_without_live_job(client: TestClient) -> None:
    """A pending statement no worker owns is cancelled directly."""
    statement = get_store().create_statement("orphan.csv", "bank")
    response = client.post(f"/statements/{statement.id}/cancel")
    if response.status_code != HTTP_202_ACCEPTED or response.json()["status"] != "cancelled":
        msg = f"Expected 202 cancelled, got {response.status_code}: {response.json()}"
        raise AssertionError(msg)
    status = client.get(f"/statements/{statement.id}").json()
    if status["status"] != "cancelled" or status["processed_at"] is None:
        msg = f"Expected a cancelled statement with processed_at, got {status}"
        raise AssertionError(msg)
