"""Background job orchestration for statement ingestion."""

import threading
from collections.abc import Callable
from datetime import date

from ledger.agents.base import BaseAgent
from ledger.core.db import StatementStore
from ledger.core.errors import IngestionError, JobCancelledError
from ledger.core.models import (
    LineIssue,
    ParsedTransaction,
    PartnerOut,
    StatementOut,
    StatementStatus,
    VerificationState,
)
from ledger.core.settings import Settings
from ledger.core.utils import get_logger, utcnow
from ledger.services.statement_parser import StatementParser

logger = get_logger("statement-ledger.worker")


class CancellationToken:
    """Cooperative cancellation flag shared between the API and a running job."""

    def __init__(self) -> None:
        """Create an unset token."""
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise JobCancelledError once cancellation was requested."""
        if self._event.is_set():
            msg = "Ingestion cancelled by client"
            raise JobCancelledError(msg)


class IngestionJob:
    """Drive one statement from pending to a terminal status, persisting one expense per transaction."""

    def __init__(
        self,
        store: StatementStore,
        agent: BaseAgent,
        settings: Settings,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the job with its store, classifier and settings."""
        self.store = store
        self.agent = agent
        self.settings = settings
        self.today = today

    def run(
        self,
        statement_id: str,
        content: str,
        source: str,
        default_partner_id: str | None = None,
        token: CancellationToken | None = None,
    ) -> StatementOut | None:
        """Run the ingestion and return the final statement record."""
        token = token or CancellationToken()
        issues: list[LineIssue] = []
        progress = {"processed": 0}
        logger.info(f"Processing statement {statement_id} from {source}")
        try:
            token.raise_if_cancelled()
            self.store.update_statement(statement_id, status=StatementStatus.PROCESSING)
            categories = self.store.get_categories()
            partners = self.store.get_partners()
            if not categories:
                msg = "No categories found. Please add categories first."
                raise IngestionError(msg)
            parser = StatementParser(
                self.agent,
                categories,
                reject_unparsable_dates=self.settings.reject_unparsable_dates,
                today=self.today,
            )
            result = parser.parse(content, source, token.raise_if_cancelled)
            issues.extend(result.issues)
            self.store.update_statement(
                statement_id,
                total_transactions=len(result.transactions),
                processed_transactions=0,
            )
            self._persist(statement_id, result.transactions, partners, default_partner_id, issues, progress, token)
            status = StatementStatus.COMPLETED_WITH_ERRORS if issues else StatementStatus.COMPLETED
            final = self.store.update_statement(
                statement_id,
                status=status,
                processed_transactions=progress["processed"],
                error_message=f"{len(issues)} errors occurred" if issues else None,
                issues=issues,
                processed_at=utcnow(),
            )
            logger.info(
                f"Completed processing statement {statement_id}: "
                f"{progress['processed']}/{len(result.transactions)} transactions processed"
            )
        except JobCancelledError as exc:
            logger.warning(f"Statement {statement_id} cancelled after {progress['processed']} expenses")
            final = self.store.update_statement(
                statement_id,
                status=StatementStatus.CANCELLED,
                processed_transactions=progress["processed"],
                error_message=str(exc),
                issues=issues,
                processed_at=utcnow(),
            )
        except Exception as exc:
            logger.exception(f"Failed to process statement {statement_id}")
            final = self.store.update_statement(
                statement_id,
                status=StatementStatus.FAILED,
                error_message=str(exc) or type(exc).__name__,
                issues=issues,
                processed_at=utcnow(),
            )
        return final

    def _persist(
        self,
        statement_id: str,
        transactions: list[ParsedTransaction],
        partners: list[PartnerOut],
        default_partner_id: str | None,
        issues: list[LineIssue],
        progress: dict[str, int],
        token: CancellationToken,
    ) -> None:
        """Create one expense per transaction in document order, flushing progress periodically."""
        flush_every = max(1, self.settings.progress_flush_every)
        partner_id = default_partner_id or (partners[0].id if partners else None)
        total = len(transactions)
        for index, txn in enumerate(transactions, start=1):
            if token.cancelled:
                self.store.update_statement(statement_id, processed_transactions=progress["processed"])
                token.raise_if_cancelled()
            row_info = f"[EXPENSE {index}/{total}] "
            if not partner_id:
                reason = f"No partner available for transaction: {txn.description}"
                issues.append(LineIssue(line=txn.line, reason=reason, stage="persist"))
                continue
            try:
                self.store.create_expense(
                    amount=txn.amount,
                    description=txn.description,
                    category_id=txn.suggested_category_id,
                    partner_id=partner_id,
                    date=txn.date,
                    statement_id=statement_id,
                    is_verified=VerificationState.PENDING.value,
                    original_amount=txn.original_amount,
                    confidence=txn.confidence,
                )
            except Exception as exc:
                logger.exception(f"{row_info}Failed to create expense: {txn.description}")
                reason = f"Failed to process: {txn.description} ({exc})"
                issues.append(LineIssue(line=txn.line, reason=reason, stage="persist"))
                continue
            progress["processed"] += 1
            if progress["processed"] % flush_every == 0:
                self.store.update_statement(statement_id, processed_transactions=progress["processed"])
                logger.info(f"{row_info}Progress: {progress['processed']}/{total}")


def run_job(
    statement_id: str,
    content: str,
    source: str,
    default_partner_id: str | None,
    token: CancellationToken,
) -> StatementOut | None:
    """Top-level function to run an ingestion with the application's store and classifier (for the job queue)."""
    from ledger.api.dependencies import get_agent, get_settings, get_store

    job = IngestionJob(get_store(), get_agent(), get_settings())
    return job.run(statement_id, content, source, default_partner_id, token)
