"""Domain exceptions raised by the service layer.

Routes translate these into HTTP responses; see
``padel_stats.api.routes.to_http_exception``.
"""

from typing import List, Optional


class PadelStatsError(Exception):
    """Base class for errors a caller can act on."""


class NotFoundError(PadelStatsError):
    """Raised when a match, user, tournament or event does not exist."""


class InvalidStateError(PadelStatsError):
    """Raised when an operation is not allowed in the match's current status.

    Recording an event on a completed match and completing a match twice are
    the two cases.
    """


class ValidationFailure(PadelStatsError, ValueError):
    """Raised when input is malformed, before anything is written.

    ``details`` holds one message per offending field.
    """

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.details = details or [message]
