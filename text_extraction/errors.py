"""Error taxonomy for the extraction client.

Every failure surfaced to callers of ``TextExtractionService`` is a subclass
of ``ExtractionError`` so ingestion code can catch the family in one place
and still branch on the concrete class.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for all extraction client errors."""


class EncodingError(ExtractionError):
    """The source document could not be read before submission."""


class TransportError(ExtractionError):
    """Network failure, or the backend answered with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(ExtractionError):
    """The backend answered outside the defined response vocabulary."""


class ExtractionFailed(ExtractionError):
    """The backend reported the task as failed. Never retried."""

    def __init__(self, reason: str, *, task_id: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.task_id = task_id


class ExtractionTimeoutError(ExtractionError, TimeoutError):
    """The poll budget ran out while the task was still pending/processing."""

    def __init__(self, task_id: str, attempts: int) -> None:
        super().__init__(f"Text extraction timed out after {attempts} status checks (task {task_id!r})")
        self.task_id = task_id
        self.attempts = attempts


class CacheError(ExtractionError):
    """The cache store could not be read, written or cleared."""
