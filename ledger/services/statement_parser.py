"""Statement parsing: tokenizes statement lines, normalizes fields and classifies descriptions.

The source label chosen at upload pins the conventions of the export (date order, column positions, whether
amounts are reported as magnitudes) through a SourceProfile. Each line is handled on its own: a line that
cannot be parsed is logged and recorded as a LineIssue, and the rest of the statement carries on.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from ledger.agents.base import BaseAgent
from ledger.core.errors import StatementFormatError
from ledger.core.models import CategoryOut, LineIssue, ParsedTransaction
from ledger.core.utils import get_logger, truncate
from ledger.services.normalizers import ZERO, normalize_amount, normalize_date, parse_date

MAX_LINE_LOG_LEN = 200
MIN_LINES = 2

logger = get_logger("statement-ledger.parser")


def tokenize_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one statement line into trimmed fields.

    A double quote toggles quoted mode, in which the delimiter is literal text. Quotes are not emitted.
    Empty trailing fields are kept, and an unbalanced quote simply runs to the end of the line.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def detect_delimiter(header: str) -> str:
    """Pick ';' for exports whose header uses it more than ',' (common in European banks)."""
    return ";" if header.count(";") > header.count(",") else ","


@dataclass(frozen=True)
class SourceProfile:
    """Conventions of one family of statement exports."""

    name: str
    keywords: tuple[str, ...] = ()
    day_first: bool = True
    absolute_amounts: bool = True
    date_column: int = 0
    description_column: int = 1
    amount_column: int = 2
    delimiter: str | None = None
    whole_words: bool = False

    @property
    def min_fields(self) -> int:
        """Number of fields a line needs to reach every column."""
        return max(self.date_column, self.description_column, self.amount_column) + 1


GENERIC_PROFILE = SourceProfile("generic")

# "us" must be a whole word of the label: "business" and "bus" do not match.
SOURCE_PROFILES = (
    SourceProfile("us", keywords=("us", "usa"), day_first=False, whole_words=True),
    SourceProfile("amex", keywords=("amex", "american express")),
    SourceProfile("chase", keywords=("chase",)),
    SourceProfile("bank", keywords=("bank",)),
)


def _mentions(label: str, profile: SourceProfile) -> bool:
    if profile.whole_words:
        words = re.findall(r"[a-z0-9]+", label)
        return any(keyword in words for keyword in profile.keywords)
    return any(keyword in label for keyword in profile.keywords)


def resolve_profile(source: str) -> SourceProfile:
    """Return the first profile mentioned by the source label, else the generic day-first profile."""
    label = source.lower()
    for profile in SOURCE_PROFILES:
        if _mentions(label, profile):
            return profile
    return GENERIC_PROFILE


@dataclass
class ParseResult:
    """Transactions parsed from a statement plus the lines that were rejected."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    issues: list[LineIssue] = field(default_factory=list)


class StatementParser:
    """Turn full statement text into ParsedTransactions, one line at a time."""

    def __init__(
        self,
        agent: BaseAgent,
        categories: list[CategoryOut],
        *,
        reject_unparsable_dates: bool = True,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the parser with a classifier and the category directory."""
        self.agent = agent
        self.categories = categories
        self.reject_unparsable_dates = reject_unparsable_dates
        self.today = today

    def parse(self, text: str, source: str, check_cancelled: Callable[[], None] | None = None) -> ParseResult:
        """Parse every data line of a statement; the first non-blank line is the header."""
        lines = [(number, line) for number, line in enumerate(text.splitlines(), start=1) if line.strip()]
        if len(lines) < MIN_LINES:
            msg = "Invalid CSV format: no data rows found"
            raise StatementFormatError(msg)
        profile = resolve_profile(source)
        delimiter = profile.delimiter or detect_delimiter(lines[0][1])
        data_lines = lines[1:]
        logger.info(f"Parsing {len(data_lines)} lines from '{source}' using profile '{profile.name}'")
        result = ParseResult()
        for index, (number, line) in enumerate(data_lines, start=1):
            if check_cancelled is not None:
                check_cancelled()
            row_info = f"[LINE {index}/{len(data_lines)}] "
            try:
                transaction = self.parse_line(line, number, profile, delimiter, row_info)
            except Exception as exc:
                logger.warning(f"{row_info}Failed to parse line {number}: {truncate(line, MAX_LINE_LOG_LEN)} ({exc})")
                result.issues.append(LineIssue(line=number, reason=str(exc), stage="parse"))
                continue
            if transaction is not None:
                result.transactions.append(transaction)
        logger.info(f"Parsed {len(result.transactions)} transactions, {len(result.issues)} lines rejected")
        return result

    def parse_line(
        self,
        line: str,
        number: int,
        profile: SourceProfile,
        delimiter: str = ",",
        row_info: str = "",
    ) -> ParsedTransaction | None:
        """Parse one data line; returns None for lines that carry no transaction."""
        fields = tokenize_line(line.strip(), delimiter)
        if len(fields) < profile.min_fields:
            msg = f"Expected at least {profile.min_fields} fields, got {len(fields)}"
            raise ValueError(msg)
        raw_date = fields[profile.date_column]
        description = fields[profile.description_column].replace('"', "").strip()
        original_amount = fields[profile.amount_column].strip()
        amount = normalize_amount(original_amount)
        if profile.absolute_amounts:
            amount = abs(amount)
        if amount == ZERO or not description:
            logger.warning(f"{row_info}Skipping line {number}: zero amount or empty description")
            return None
        parsed_date = parse_date(raw_date, day_first=profile.day_first)
        if parsed_date is None:
            if self.reject_unparsable_dates:
                msg = f"Unparsable date '{raw_date}'"
                raise ValueError(msg)
            logger.warning(f"{row_info}Unparsable date '{raw_date}' on line {number}, using today")
            parsed_date = normalize_date(raw_date, day_first=profile.day_first, today=self.today)
        classification = self.agent.classify(description, self.categories, row_info)
        return ParsedTransaction(
            date=parsed_date,
            amount=amount,
            description=description,
            suggested_category_id=classification.category_id,
            confidence=classification.confidence,
            original_amount=original_amount,
            line=number,
        )
