"""Bounded job queue feeding a fixed pool of ingestion worker threads."""

import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ledger.core.errors import QueueFullError
from ledger.core.utils import get_logger
from ledger.workers.job_runner import CancellationToken

logger = get_logger("statement-ledger.queue")


@dataclass
class QueuedJob:
    """One statement waiting for a worker."""

    statement_id: str
    content: str
    source: str
    default_partner_id: str | None
    token: CancellationToken


class JobQueue:
    """Run ingestion jobs on ``worker_count`` threads, holding at most ``max_pending`` waiting jobs."""

    def __init__(self, runner: Callable[..., object], worker_count: int = 2, max_pending: int = 20) -> None:
        """Initialize the queue; workers start on ``start()``."""
        self.runner = runner
        self.worker_count = max(1, worker_count)
        self._queue: queue.Queue[QueuedJob | None] = queue.Queue(maxsize=max(1, max_pending))
        self._tokens: dict[str, CancellationToken] = {}
        self._lock = threading.Lock()
        self._workers: list[threading.Thread] = []

    def start(self) -> None:
        """Start the worker threads."""
        if self._workers:
            return
        for index in range(self.worker_count):
            worker = threading.Thread(target=self._work, name=f"ingestion-worker-{index}", daemon=True)
            worker.start()
            self._workers.append(worker)
        logger.info(f"Started {self.worker_count} ingestion workers")

    def submit(
        self,
        statement_id: str,
        content: str,
        source: str,
        default_partner_id: str | None = None,
    ) -> CancellationToken:
        """Enqueue a statement for ingestion; raises QueueFullError when no slot is free."""
        token = CancellationToken()
        with self._lock:
            self._tokens[statement_id] = token
        try:
            self._queue.put_nowait(QueuedJob(statement_id, content, source, default_partner_id, token))
        except queue.Full as exc:
            with self._lock:
                self._tokens.pop(statement_id, None)
            msg = "Too many statements are waiting to be processed. Try again later."
            raise QueueFullError(msg) from exc
        logger.info(f"Queued statement {statement_id} ({self._queue.qsize()} waiting)")
        return token

    def cancel(self, statement_id: str) -> bool:
        """Request cancellation of a queued or running job; False when the job is unknown."""
        with self._lock:
            token = self._tokens.get(statement_id)
        if token is None:
            return False
        token.cancel()
        logger.info(f"Cancellation requested for statement {statement_id}")
        return True

    def is_active(self, statement_id: str) -> bool:
        """Whether a job for the statement is queued or running."""
        with self._lock:
            return statement_id in self._tokens

    def join(self) -> None:
        """Block until every submitted job has finished."""
        self._queue.join()

    def shutdown(self, wait: bool = True) -> None:
        """Stop the workers after the jobs already queued."""
        for _ in self._workers:
            self._queue.put(None)
        if wait:
            for worker in self._workers:
                worker.join()
        self._workers = []
        logger.info("Ingestion workers stopped")

    def _work(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is None:
                    return
                self.runner(job.statement_id, job.content, job.source, job.default_partner_id, job.token)
            except Exception:
                logger.exception(f"Ingestion worker crashed on statement {job.statement_id}")
            finally:
                if job is not None:
                    with self._lock:
                        self._tokens.pop(job.statement_id, None)
                self._queue.task_done()
