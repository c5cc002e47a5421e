"""DB models and the statement store for the Statement Ledger service."""

import uuid
from collections.abc import Callable
from typing import Any

from sqlalchemy import JSON, Column, Date, DateTime, Float, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ledger.core.errors import StatusTransitionError
from ledger.core.models import (
    CategoryOut,
    ExpenseOut,
    PartnerOut,
    StatementOut,
    StatementStatus,
    VerificationState,
)
from ledger.core.utils import utcnow

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Category(Base):
    """A spending category used as a classification target."""

    __tablename__ = "categories"
    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    emoji = Column(String, nullable=False, default="")
    color = Column(String, nullable=False, default="#64748B")


class Partner(Base):
    """A person expenses are attributed to."""

    __tablename__ = "partners"
    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#64748B")


class Statement(Base):
    """One uploaded statement and its ingestion lifecycle."""

    __tablename__ = "statements"
    id = Column(String, primary_key=True, default=_new_id)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False, default="csv")
    source = Column(String, nullable=False)
    status = Column(String, nullable=False, default=StatementStatus.PENDING.value)
    total_transactions = Column(Integer, nullable=True)
    processed_transactions = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    issues = Column(JSON, nullable=False, default=list)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True)


class Expense(Base):
    """A persisted financial record."""

    __tablename__ = "expenses"
    id = Column(String, primary_key=True, default=_new_id)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(String, nullable=False)
    partner_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    # Not a hard foreign key: manually entered expenses have no statement.
    statement_id = Column(String, nullable=True, index=True)
    is_verified = Column(String, nullable=False, default=VerificationState.PENDING.value)
    original_amount = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)


def get_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    if url is None:
        from ledger.core.settings import get_settings

        url = get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class StatementStore:
    """Point reads and writes for statements, expenses and the category/partner directories.

    Every method opens its own session so one store can be shared between the API and worker threads.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        """Initialize the store with a session factory."""
        self.session_factory = session_factory

    # --- Statements ---
    def create_statement(self, file_name: str, source: str, file_type: str = "csv") -> StatementOut:
        """Insert a statement in the pending state and return it."""
        with self.session_factory() as session:
            row = Statement(
                file_name=file_name,
                file_type=file_type,
                source=source.lower(),
                status=StatementStatus.PENDING.value,
                issues=[],
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return StatementOut.model_validate(row)

    def get_statement(self, statement_id: str) -> StatementOut | None:
        """Return a statement by id, or None."""
        with self.session_factory() as session:
            row = session.get(Statement, statement_id)
            return StatementOut.model_validate(row) if row else None

    def list_statements(self) -> list[StatementOut]:
        """Return all statements, newest upload first."""
        with self.session_factory() as session:
            rows = session.scalars(select(Statement).order_by(Statement.uploaded_at.desc())).all()
            return [StatementOut.model_validate(row) for row in rows]

    def update_statement(self, statement_id: str, **values: Any) -> StatementOut | None:
        """Apply a point update to a statement; status may only move forward."""
        with self.session_factory() as session:
            row = session.get(Statement, statement_id)
            if row is None:
                return None
            if "status" in values:
                current = StatementStatus(row.status)
                target = StatementStatus(values["status"])
                if target != current and (current.is_terminal or target.rank < current.rank):
                    msg = f"Statement {statement_id} cannot move from '{current}' to '{target}'"
                    raise StatusTransitionError(msg)
                values["status"] = target.value
            if "issues" in values:
                values["issues"] = [
                    issue.model_dump() if hasattr(issue, "model_dump") else dict(issue) for issue in values["issues"]
                ]
            for key, value in values.items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return StatementOut.model_validate(row)

    # --- Expenses ---
    def create_expense(self, **values: Any) -> str:
        """Insert one expense and return its id."""
        with self.session_factory() as session:
            row = Expense(**values)
            session.add(row)
            session.commit()
            return row.id

    def get_expenses_by_statement(self, statement_id: str) -> list[ExpenseOut]:
        """Return the expenses created from a statement, in date order."""
        with self.session_factory() as session:
            stmt = (
                select(Expense)
                .where(Expense.statement_id == statement_id)
                .order_by(Expense.date, Expense.created_at)
            )
            return [ExpenseOut.model_validate(row) for row in session.scalars(stmt).all()]

    # --- Directories ---
    def get_categories(self) -> list[CategoryOut]:
        """Return every category."""
        with self.session_factory() as session:
            return [CategoryOut.model_validate(row) for row in session.scalars(select(Category)).all()]

    def get_partners(self) -> list[PartnerOut]:
        """Return every partner."""
        with self.session_factory() as session:
            return [PartnerOut.model_validate(row) for row in session.scalars(select(Partner)).all()]

    def add_category(self, name: str, emoji: str = "", color: str = "#64748B") -> CategoryOut:
        """Insert a category."""
        with self.session_factory() as session:
            row = Category(name=name, emoji=emoji, color=color)
            session.add(row)
            session.commit()
            session.refresh(row)
            return CategoryOut.model_validate(row)

    def add_partner(self, name: str, color: str = "#64748B") -> PartnerOut:
        """Insert a partner."""
        with self.session_factory() as session:
            row = Partner(name=name, color=color)
            session.add(row)
            session.commit()
            session.refresh(row)
            return PartnerOut.model_validate(row)
