"""Exceptions raised by the championship engine."""


class ChampsError(Exception):
    """Base exception for all championship engine errors."""

    pass


class ValidationError(ChampsError):
    """Raised when submitted input is malformed: bad scores, tied games,
    skipped games, a late format change or an unusable advance count."""

    pass


class StateError(ChampsError):
    """Raised when the tournament is in the wrong state for the request,
    e.g. a locked stage or a match without both pairs."""

    pass


class ConsistencyError(ChampsError):
    """Raised when a referenced pair, pool or match is not in the snapshot."""

    pass
