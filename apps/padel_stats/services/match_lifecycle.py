"""
Match status rules.

A match starts IN_PROGRESS and can only move to COMPLETED, once. Events are
accepted only while it is IN_PROGRESS.
"""

from padel_stats.database.models import MatchStatus
from padel_stats.utils.exceptions import InvalidStateError

MATCH_CLOSED_MESSAGE = "Cannot record events for completed match"
ALREADY_COMPLETED_MESSAGE = "Match is already completed"


def _as_status(status) -> MatchStatus:
    return status if isinstance(status, MatchStatus) else MatchStatus(status)


def accepts_events(status) -> bool:
    return _as_status(status) == MatchStatus.IN_PROGRESS


def ensure_accepts_events(status) -> None:
    """Raise InvalidStateError if events cannot be recorded in this status."""
    if not accepts_events(status):
        raise InvalidStateError(MATCH_CLOSED_MESSAGE)


def complete(status) -> MatchStatus:
    """
    Return the status after completing a match.

    Raises:
        InvalidStateError: If the match is already completed
    """
    if _as_status(status) == MatchStatus.COMPLETED:
        raise InvalidStateError(ALREADY_COMPLETED_MESSAGE)
    return MatchStatus.COMPLETED
