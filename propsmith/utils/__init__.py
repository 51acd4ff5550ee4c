"""Utility modules for PropSmith."""

from propsmith.utils.errors import (
    DimensionMismatchError,
    InvalidCountError,
    InvalidParameterError,
    PropSmithError,
    TransformError,
    UnknownMethodError,
    UnsupportedCombinationError,
    format_parameter_error,
    format_validation_error,
    raise_dimension_error,
    raise_parameter_error,
)
from propsmith.utils.random import RandomStream, as_stream

__all__ = [
    "PropSmithError",
    "InvalidParameterError",
    "DimensionMismatchError",
    "UnsupportedCombinationError",
    "InvalidCountError",
    "UnknownMethodError",
    "TransformError",
    "format_validation_error",
    "format_parameter_error",
    "raise_parameter_error",
    "raise_dimension_error",
    "RandomStream",
    "as_stream",
]
