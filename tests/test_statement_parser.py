"""Unit tests for the tokenizer, source profiles and statement parser."""

from datetime import date
from decimal import Decimal

import pytest

from ledger.agents.keyword_agent import KeywordAgent
from ledger.core.errors import JobCancelledError, StatementFormatError
from ledger.core.models import CategoryOut
from ledger.services.statement_parser import StatementParser, resolve_profile, tokenize_line

CATEGORIES = [
    CategoryOut(id="cat-groceries", name="Groceries", emoji="🛒"),
    CategoryOut(id="cat-eating-out", name="Eating out", emoji="🍽️"),
    CategoryOut(id="cat-entertainment", name="Entertainment", emoji="🎬"),
]
FROZEN_TODAY = date(2030, 1, 15)


def make_parser(reject_unparsable_dates: bool = True) -> StatementParser:
    """Build a parser with keyword classification and a frozen clock."""
    return StatementParser(
        KeywordAgent(),
        CATEGORIES,
        reject_unparsable_dates=reject_unparsable_dates,
        today=lambda: FROZEN_TODAY,
    )


def test_tokenize_quoted_field_with_delimiter() -> None:
    """A quoted field keeps its embedded delimiter and loses its quotes."""
    fields = tokenize_line('"Store, Inc.",12.50')
    if fields != ["Store, Inc.", "12.50"]:
        msg = f"Unexpected fields: {fields}"
        raise AssertionError(msg)


def test_tokenize_keeps_empty_trailing_fields() -> None:
    """Empty trailing fields are preserved and every field is trimmed."""
    fields = tokenize_line(" 01/03/2025 , Shop ,, ")
    if fields != ["01/03/2025", "Shop", "", ""]:
        msg = f"Unexpected fields: {fields}"
        raise AssertionError(msg)


def test_tokenize_unbalanced_quote_runs_to_end_of_line() -> None:
    """An unbalanced quote swallows the remaining delimiters without raising."""
    fields = tokenize_line('01/03/2025,"Shop, 12,50')
    if fields != ["01/03/2025", "Shop, 12,50"]:
        msg = f"Unexpected fields: {fields}"
        raise AssertionError(msg)


def test_tokenize_custom_delimiter() -> None:
    """Semicolon-delimited exports split on the semicolon only."""
    fields = tokenize_line("01.03.2025;Lidl Berlin;23,40", ";")
    if fields != ["01.03.2025", "Lidl Berlin", "23,40"]:
        msg = f"Unexpected fields: {fields}"
        raise AssertionError(msg)


@pytest.mark.parametrize(
    ("source", "name", "day_first"),
    [
        ("amex", "amex", True),
        ("American Express Gold", "amex", True),
        ("Chase Sapphire", "chase", True),
        ("bank", "bank", True),
        ("Sparkasse", "generic", True),
        ("us", "us", False),
        ("Amex USA", "us", False),
        ("Business Card", "generic", True),
    ],
)
def test_resolve_profile(source: str, name: str, day_first: bool) -> None:
    """The source label pins the profile and its date convention."""
    profile = resolve_profile(source)
    if (profile.name, profile.day_first) != (name, day_first):
        msg = f"Expected ({name}, {day_first}) for {source!r}, got ({profile.name}, {profile.day_first})"
        raise AssertionError(msg)


def test_parse_skips_header_and_normalizes_lines() -> None:
    """Data lines become transactions with absolute amounts, parsed dates and categories."""
    text = 'Date,Description,Amount\n"01/03/2025","Supermarket X","23,40"\n"02/03/2025","Pizza Place","-8,00"\n'
    result = make_parser().parse(text, "bank")
    if len(result.transactions) != 2 or result.issues:
        msg = f"Expected 2 transactions and no issues, got {result}"
        raise AssertionError(msg)
    first, second = result.transactions
    if (first.date, first.amount, first.suggested_category_id) != (date(2025, 3, 1), Decimal("23.40"), "cat-groceries"):
        msg = f"Unexpected first transaction: {first}"
        raise AssertionError(msg)
    if (second.amount, second.original_amount, second.suggested_category_id) != (
        Decimal("8.00"),
        "-8,00",
        "cat-eating-out",
    ):
        msg = f"Unexpected second transaction: {second}"
        raise AssertionError(msg)
    if (first.line, second.line) != (2, 3):
        msg = f"Expected line numbers 2 and 3, got {first.line} and {second.line}"
        raise AssertionError(msg)


def test_parse_reads_amex_and_chase_day_first() -> None:
    """Amex and chase exports read 05/03/2025 as 5 March."""
    text = "Date,Description,Amount\n05/03/2025,REWE,\"12,50\"\n"
    for source in ("amex", "chase"):
        result = make_parser().parse(text, source)
        if result.transactions[0].date != date(2025, 3, 5):
            msg = f"Expected 2025-03-05 for {source}, got {result.transactions[0].date}"
            raise AssertionError(msg)


def test_parse_uses_month_first_for_us_sources() -> None:
    """An export labelled as US reads 03/01/2025 as March 1."""
    text = "Date,Description,Amount\n03/01/2025,Netflix,15.99\n"
    result = make_parser().parse(text, "US card")
    if result.transactions[0].date != date(2025, 3, 1):
        msg = f"Expected 2025-03-01, got {result.transactions[0].date}"
        raise AssertionError(msg)


def test_parse_discards_zero_amounts_and_empty_descriptions() -> None:
    """Zero-amount and description-less lines are dropped without being reported as issues."""
    text = "Date,Description,Amount\n01/03/2025,Balance,0,00\n01/03/2025,,12.00\n\n01/03/2025,Cafe,3.50\n"
    result = make_parser().parse(text, "bank")
    if [t.description for t in result.transactions] != ["Cafe"] or result.issues:
        msg = f"Expected only the Cafe line, got {result}"
        raise AssertionError(msg)


def test_parse_records_issues_without_aborting() -> None:
    """Short lines and unparsable dates are recorded as issues and the rest is still parsed."""
    text = "Date,Description,Amount\nonly-one-field\nsoon,Cafe,3.50\n01/03/2025,Cafe,3.50\n"
    result = make_parser().parse(text, "bank")
    if len(result.transactions) != 1:
        msg = f"Expected 1 transaction, got {len(result.transactions)}"
        raise AssertionError(msg)
    lines = [(issue.line, issue.stage) for issue in result.issues]
    if lines != [(2, "parse"), (3, "parse")]:
        msg = f"Unexpected issues: {result.issues}"
        raise AssertionError(msg)
    if "Unparsable date" not in result.issues[1].reason:
        msg = f"Expected an unparsable date reason, got {result.issues[1].reason}"
        raise AssertionError(msg)


def test_parse_can_default_unparsable_dates_to_today() -> None:
    """With rejection disabled, an unparsable date becomes today."""
    text = "Date,Description,Amount\nsoon,Cafe,3.50\n"
    result = make_parser(reject_unparsable_dates=False).parse(text, "bank")
    if result.issues or result.transactions[0].date != FROZEN_TODAY:
        msg = f"Expected one transaction dated {FROZEN_TODAY}, got {result}"
        raise AssertionError(msg)


def test_parse_semicolon_export() -> None:
    """A semicolon header switches the delimiter for the whole statement."""
    text = "Buchungstag;Verwendungszweck;Betrag\n01.03.2025;REWE Markt;1.234,56\n"
    result = make_parser().parse(text, "sparkasse")
    txn = result.transactions[0]
    if (txn.date, txn.amount, txn.suggested_category_id) != (date(2025, 3, 1), Decimal("1234.56"), "cat-groceries"):
        msg = f"Unexpected transaction: {txn}"
        raise AssertionError(msg)


def test_parse_header_only_is_rejected() -> None:
    """A statement without data rows is a format error."""
    with pytest.raises(StatementFormatError):
        make_parser().parse("Date,Description,Amount\n\n", "bank")


def test_parse_checks_cancellation_between_lines() -> None:
    """The cancellation callback can stop parsing."""
    calls = []

    def check_cancelled() -> None:
        calls.append(1)
        if len(calls) > 1:
            msg = "cancelled"
            raise JobCancelledError(msg)

    text = "Date,Description,Amount\n01/03/2025,Cafe,3.50\n02/03/2025,Cafe,4.50\n"
    with pytest.raises(JobCancelledError):
        make_parser().parse(text, "bank", check_cancelled)
