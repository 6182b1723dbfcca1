# orderdesk/core/errors.py
"""
Domain error taxonomy.

These exceptions carry no HTTP semantics. Services translate them into
HTTPException with the matching status code:

  - MissingInput        -> 400 (not retried)
  - ConstraintViolation -> 409 (storage message surfaced verbatim)
  - PartialFetchFailure -> 503 (whole aggregation aborted)
  - StorageError        -> 502

A confirmation-gate block is NOT an error; it is a normal
`proceed=False` outcome.
"""


class OrderDeskError(Exception):
    """Base class for all domain errors."""


class MissingInput(OrderDeskError):
    """A required header field is blank at submission time."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")


class StorageError(OrderDeskError):
    """The storage collaborator rejected or failed an operation."""


class ConstraintViolation(StorageError):
    """
    A uniqueness constraint was violated (e.g. duplicate order number).

    The message is the storage backend's own text.
    """


class PartialFetchFailure(OrderDeskError):
    """One of the three dashboard reads failed; nothing may be aggregated."""

    def __init__(self, table: str, cause: BaseException | None = None):
        self.table = table
        self.cause = cause
        detail = f"Failed to load '{table}'"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(detail)
