"""
Error taxonomy for playoff bracket and contest operations.
"""


class PlayoffError(Exception):
    """Base class for errors raised by the playoffs package."""


class ValidationError(PlayoffError):
    """Caller supplied input that violates a rule (incomplete seeds, wrong winner, bad picks)."""


class NotFoundError(PlayoffError):
    """Unknown season, game, contest or participant."""


class ConsistencyError(PlayoffError):
    """Stored bracket state violates an internal invariant."""


class LimitError(PlayoffError):
    """A configured capacity limit was reached."""
