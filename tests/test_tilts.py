"""
Tests for TiltStage.

Tests:
1. Action-value and sentiment tilts multiply the score
2. Absent or all-zero signals leave scores unchanged
3. Longer signals truncated, shorter signals rejected
4. Range and finiteness checks
"""

import pytest
import numpy as np

from cash_allocation.allocator.tilts import TiltStage
from cash_allocation.errors import InputValidationError


SCORES = np.array([0.2, -0.1, 0.4])


class TestTilts:
    """Multiplicative tilts."""

    def test_no_signals(self):
        tilted = TiltStage().apply(SCORES)

        np.testing.assert_array_equal(tilted, SCORES)

    def test_zero_signals_are_identity(self):
        tilted = TiltStage().apply(SCORES, action_values=[0.0] * 3, sentiment=[0.0] * 3)

        np.testing.assert_array_equal(tilted, SCORES)

    def test_both_tilts(self):
        tilted = TiltStage().apply(SCORES, action_values=[1.0, 0.5, 0.0], sentiment=[0.5, 0.0, 1.0])

        np.testing.assert_allclose(tilted, [0.2 * 2.0 * 1.5, -0.1 * 1.5, 0.4 * 2.0])

    def test_input_not_mutated(self):
        scores = SCORES.copy()
        TiltStage().apply(scores, sentiment=[1.0, 1.0, 1.0])

        np.testing.assert_array_equal(scores, SCORES)

    def test_longer_signal_truncated(self):
        tilted = TiltStage().apply(SCORES, sentiment=[0.0, 0.0, 0.0, 1.0, 1.0])

        np.testing.assert_array_equal(tilted, SCORES)


class TestValidation:
    """Malformed tilt signals."""

    def test_shorter_signal_rejected(self):
        with pytest.raises(InputValidationError):
            TiltStage().apply(SCORES, sentiment=[0.5, 0.5])

    @pytest.mark.parametrize("value", [-0.1, 1.1])
    def test_out_of_range(self, value):
        with pytest.raises(InputValidationError):
            TiltStage().apply(SCORES, action_values=[0.5, value, 0.5])

    def test_nan_rejected(self):
        with pytest.raises(InputValidationError):
            TiltStage().apply(SCORES, sentiment=[0.5, np.nan, 0.5])
