"""
Error taxonomy for the drift scoring engine.

Entry points never raise these for expected conditions. They return typed
results carrying an ErrorCode instead, so callers can tell "team is healthy"
apart from "we don't know". Callers that prefer exceptions call ``unwrap()``
on a result, which raises the matching subclass below.
"""

from typing import Dict, Optional, Type

from drift_engine.models.enums import ErrorCode


class DriftEngineError(Exception):
    """Base class for all engine errors."""

    code: ErrorCode

    def __init__(self, message: str, team_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.team_id = team_id


class NoDataError(DriftEngineError):
    """Zero usable input rows."""

    code = ErrorCode.NO_DATA


class UncalibratedError(DriftEngineError):
    """Detection or scoring requested before a baseline exists."""

    code = ErrorCode.UNCALIBRATED


class InsufficientGroupSizeError(DriftEngineError):
    """Team is below the privacy floor."""

    code = ErrorCode.INSUFFICIENT_GROUP_SIZE


class DivideByZeroGuarded(DriftEngineError):
    """Internal guarded arithmetic edge case. Never surfaced as a crash."""

    code = ErrorCode.DIVIDE_BY_ZERO_GUARDED


_ERRORS_BY_CODE: Dict[ErrorCode, Type[DriftEngineError]] = {
    cls.code: cls
    for cls in (NoDataError, UncalibratedError, InsufficientGroupSizeError, DivideByZeroGuarded)
}


def error_for(code: ErrorCode, message: str, team_id: Optional[str] = None) -> DriftEngineError:
    """Build the exception instance for an error code."""
    return _ERRORS_BY_CODE[code](message, team_id=team_id)
