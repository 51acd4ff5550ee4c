"""Standardized errors for PropSmith.

Every error raised by the uncertainty propagation pipeline derives from
PropSmithError and carries an optional suggestion for fixing the input.
"""

from typing import Any, Optional


class PropSmithError(Exception):
    """Base exception for PropSmith errors."""

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize PropSmith error.

        Args:
            message: Primary error message.
            suggestion: Optional suggestion for fixing the error.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with suggestion if available."""
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class InvalidParameterError(PropSmithError, ValueError):
    """Error raised when model parameters are malformed."""

    pass


class DimensionMismatchError(PropSmithError, ValueError):
    """Error raised when spatial fields are not aligned."""

    pass


class UnsupportedCombinationError(PropSmithError):
    """Error raised for a distribution, correlogram or method pairing with no
    known sampling procedure."""

    pass


class InvalidCountError(PropSmithError, ValueError):
    """Error raised when a realization or run count is out of range."""

    pass


class UnknownMethodError(PropSmithError, ValueError):
    """Error raised for an unrecognized sampling method tag."""

    pass


class TransformError(PropSmithError):
    """Error raised when the user model fails during propagation.

    Attributes:
        index: Realization index at which the model failed.
    """

    def __init__(
        self,
        message: str,
        index: int,
        suggestion: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, suggestion=suggestion, details=details)
        self.index = index


def format_validation_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> str:
    """Format a standardized validation error message.

    Args:
        message: Primary error message.
        expected: What was expected (optional).
        received: What was received (optional).
        suggestion: How to fix the error (optional).

    Returns:
        Formatted error message string.
    """
    parts = [message]
    if expected and received:
        parts.append(f"Expected: {expected}, Received: {received}")
    elif expected:
        parts.append(f"Expected: {expected}")
    elif received:
        parts.append(f"Received: {received}")
    if suggestion:
        parts.append(f"Suggestion: {suggestion}")
    return "\n".join(parts)


def format_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
) -> str:
    """Format a standardized parameter error message.

    Args:
        parameter_name: Name of the invalid parameter.
        value: Invalid value that was provided.
        valid_values: List of valid values (optional).
        constraint: Constraint that was violated (optional).

    Returns:
        Formatted error message string.
    """
    parts = [f"Invalid value for parameter '{parameter_name}': {value}"]
    if valid_values:
        parts.append(f"Valid values: {', '.join(map(str, valid_values))}")
    if constraint:
        parts.append(f"Constraint: {constraint}")
    return "\n".join(parts)


def raise_parameter_error(
    parameter_name: str,
    value: Any,
    valid_values: Optional[list[str]] = None,
    constraint: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized parameter error.

    Raises:
        InvalidParameterError: Always raises this exception.
    """
    error_msg = format_parameter_error(parameter_name, value, valid_values, constraint)
    raise InvalidParameterError(
        error_msg,
        suggestion=suggestion,
        details={"parameter": parameter_name, "value": value},
    )


def raise_dimension_error(
    message: str,
    expected: Optional[str] = None,
    received: Optional[str] = None,
    suggestion: Optional[str] = None,
) -> None:
    """Raise a standardized dimension mismatch error.

    Raises:
        DimensionMismatchError: Always raises this exception.
    """
    error_msg = format_validation_error(message, expected, received)
    raise DimensionMismatchError(error_msg, suggestion=suggestion)
