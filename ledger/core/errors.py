"""Domain exceptions raised by the ingestion pipeline."""


class IngestionError(RuntimeError):
    """A statement cannot be ingested at all."""


class StatementFormatError(IngestionError):
    """The statement text has no usable data rows."""


class JobCancelledError(IngestionError):
    """The ingestion job was cancelled by a client."""


class QueueFullError(RuntimeError):
    """The job queue has no room for another statement."""


class StatusTransitionError(ValueError):
    """A statement status update would regress or leave a terminal state."""
