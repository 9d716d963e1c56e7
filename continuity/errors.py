"""Exception hierarchy for continuity.

Every user-facing failure carries a human-readable message. Storage
exceptions are chained (``raise ... from e``) so the original error stays
available to logs without being part of the message contract.
"""


class ContinuityError(Exception):
    """Base class for continuity errors."""


class NotFoundError(ContinuityError):
    """No matching session or artifact. Callers treat this as a fresh start."""


class MalformedRecordError(ContinuityError, ValueError):
    """A stored artifact failed to parse."""

    def __init__(self, source: str, cause: Exception):
        super().__init__(f"Malformed record in {source}: {cause}")
        self.source = source
        self.cause = cause


class StorageError(ContinuityError):
    """I/O or transaction failure on a durable store."""


class ValidationError(ContinuityError, ValueError):
    """A caller request is missing a required field or carries an invalid one."""
