"""Pydantic models for the Statement Ledger service.

This module defines the statement lifecycle states, the in-memory ParsedTransaction produced by the
statement parser, the classifier result, and the response models returned by the API.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class StatementStatus(StrEnum):
    """Lifecycle states of a statement ingestion."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed."""
        return self not in (StatementStatus.PENDING, StatementStatus.PROCESSING)

    @property
    def rank(self) -> int:
        """Ordering used to reject regressions."""
        if self is StatementStatus.PENDING:
            return 0
        if self is StatementStatus.PROCESSING:
            return 1
        return 2


class VerificationState(StrEnum):
    """Review state of a persisted expense."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class LineIssue(BaseModel):
    """One statement line that could not be turned into an expense."""

    line: int
    reason: str
    stage: str = "parse"


class Classification(BaseModel):
    """Category suggestion for a transaction description."""

    category_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    method: str = "llm"


class ParsedTransaction(BaseModel):
    """A normalized transaction parsed from one statement line, not yet persisted."""

    date: date
    amount: Decimal
    description: str
    suggested_category_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    original_amount: str
    line: int = 0


class CategoryOut(BaseModel):
    """A category as exposed to the classifier and API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    emoji: str = ""


class StatementOut(BaseModel):
    """Current state of a statement ingestion, returned for polling."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    file_name: str
    file_type: str
    source: str
    status: StatementStatus
    total_transactions: int | None = None
    processed_transactions: int | None = None
    error_message: str | None = None
    issues: list[LineIssue] = Field(default_factory=list)
    uploaded_at: datetime
    processed_at: datetime | None = None


class ExpenseOut(BaseModel):
    """A persisted expense."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: Decimal
    description: str
    category_id: str
    partner_id: str
    date: date
    statement_id: str | None = None
    is_verified: VerificationState
    original_amount: str | None = None
    confidence: float | None = None


class UploadAccepted(BaseModel):
    """Response body for an accepted statement upload."""

    statement_id: str
    message: str = "Statement uploaded successfully. Processing started."


class PartnerOut(BaseModel):
    """A partner (payer) that expenses are attributed to."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
