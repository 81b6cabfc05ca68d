"""
Tests for the allocation error taxonomy.

Tests:
1. Stage tag in the message
2. Compatibility with built-in exception types
"""

import pytest

from cash_allocation.errors import (
    AllocationError,
    ClusteringError,
    DegenerateAllocationError,
    InputValidationError,
    InsufficientDataError,
    NonFiniteValueError,
)


class TestErrorMessages:
    """str() includes the stage when one is given."""

    def test_with_stage(self):
        error = InputValidationError("returns cannot be empty", stage="FeatureBuilder")

        assert error.stage == "FeatureBuilder"
        assert str(error) == "[FeatureBuilder] returns cannot be empty"

    def test_without_stage(self):
        error = ClusteringError("k too large")

        assert error.stage is None
        assert str(error) == "k too large"


class TestErrorHierarchy:
    """Every error is an AllocationError; validation errors are ValueErrors."""

    @pytest.mark.parametrize("error_cls", [
        InputValidationError,
        InsufficientDataError,
        ClusteringError,
        NonFiniteValueError,
        DegenerateAllocationError,
    ])
    def test_base_class(self, error_cls):
        assert issubclass(error_cls, AllocationError)

    def test_builtin_compatibility(self):
        assert issubclass(InputValidationError, ValueError)
        assert issubclass(InsufficientDataError, ValueError)
        assert issubclass(NonFiniteValueError, ArithmeticError)
