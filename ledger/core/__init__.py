"""Core package: provides models, database helpers, settings, errors, and shared utilities."""

from .db import StatementStore  # noqa: F401
from .errors import IngestionError, QueueFullError, StatementFormatError  # noqa: F401
from .models import ParsedTransaction, StatementStatus  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
