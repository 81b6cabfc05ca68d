"""
Allocation pipeline error taxonomy.

Every stage raises the most specific subclass for the precondition it checks.
Callers may catch AllocationError to handle all pipeline failures at once.
"""

from typing import Optional


class AllocationError(Exception):
    """Base class for all allocation pipeline failures."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class InputValidationError(AllocationError, ValueError):
    """Empty, mismatched, out-of-range or non-finite inputs, or a non-positive horizon."""


class InsufficientDataError(AllocationError, ValueError):
    """Forecasting needs more history than was provided."""


class ClusteringError(AllocationError):
    """Requested cluster count exceeds the number of samples."""


class NonFiniteValueError(AllocationError, ArithmeticError):
    """An intermediate value became NaN or infinite."""


class DegenerateAllocationError(AllocationError):
    """Every day scored non-positive, so no allocation can be normalized."""
