"""
Error taxonomy for rollsmith.

Every failure raised by the dice engine derives from RollError and carries a
machine-readable ErrorCode. Only the safe evaluation wrapper converts these
into placeholder results; everything else propagates them.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """
    Standard error codes for roll failures.

    Provides machine-readable error classification for callers that want to
    branch on the kind of failure (API responses, chat warnings, logs).
    """

    # Formula errors
    FORMULA_ERROR = "formula_error"
    ARITY_ERROR = "arity_error"
    UNRESOLVED_TERM = "unresolved_term"

    # Evaluation errors
    EVALUATION_ERROR = "evaluation_error"
    DIVISION_BY_ZERO = "division_by_zero"
    MISSING_DATA = "missing_data"
    RESULT_TOO_LARGE = "result_too_large"

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    SERIALIZATION_ERROR = "serialization_error"

    # State errors
    INVALID_STATE = "invalid_state"

    # Generic errors
    UNEXPECTED_ERROR = "unexpected_error"

    def __str__(self) -> str:
        """Return the error code value."""
        return self.value


class RollError(Exception):
    """Base class for all dice engine errors."""

    code = ErrorCode.UNEXPECTED_ERROR

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and chat data."""
        return {
            'error': str(self),
            'error_code': str(self.code),
            'warning': isinstance(self, RollWarning),
        }


class FormulaError(RollError):
    """Raised at construction time for malformed formulas."""

    code = ErrorCode.FORMULA_ERROR


class ArityError(FormulaError):
    """Raised when a function term receives too few arguments."""

    code = ErrorCode.ARITY_ERROR


class EvaluationError(RollError):
    """Raised while evaluating an already constructed roll."""

    code = ErrorCode.EVALUATION_ERROR


class RollStateError(RollError):
    """Raised on illegal roll lifecycle transitions."""

    code = ErrorCode.INVALID_STATE


class RollOptionsError(RollError):
    """Raised when roll options fail schema validation."""

    code = ErrorCode.VALIDATION_ERROR


class SerializationError(RollError):
    """Raised when serialized roll or term data cannot be restored."""

    code = ErrorCode.SERIALIZATION_ERROR


class RollWarning(RollError):
    """
    Soft warning attached to an otherwise successful roll.

    Never raised. It is error-shaped so callers can treat warnings and
    failures the same way (check ``roll.err`` and warn the user).
    """

    code = ErrorCode.MISSING_DATA


__all__ = [
    'ErrorCode',
    'RollError',
    'FormulaError',
    'ArityError',
    'EvaluationError',
    'RollStateError',
    'RollOptionsError',
    'SerializationError',
    'RollWarning',
]
