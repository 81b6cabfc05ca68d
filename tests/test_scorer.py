"""
Tests for SignalScorer.

Tests:
1. Equal-weight blend of the four signals
2. Custom weights and per-signal contributions
3. Length and finiteness checks
"""

import pytest
import numpy as np

from cash_allocation.allocator.scorer import COMPONENTS, SignalScorer
from cash_allocation.config import ScorerWeights
from cash_allocation.errors import InputValidationError, NonFiniteValueError


@pytest.fixture
def signals():
    return {
        "returns": np.array([0.01, 0.02, -0.01]),
        "market_delta": np.array([0.0, 0.01, -0.005]),
        "fund_characteristics": np.array([0.8, 0.9, 0.85]),
        "regime_signal": np.array([0.01, 0.02, 0.01]),
    }


class TestScore:
    """Score = weighted sum of signals."""

    def test_equal_weights(self, signals):
        scores = SignalScorer().score(**signals)

        expected = 0.25 * (
            signals["returns"] + signals["market_delta"]
            + signals["fund_characteristics"] + signals["regime_signal"]
        )
        np.testing.assert_allclose(scores, expected)

    def test_custom_weights(self, signals):
        weights = ScorerWeights(w_return=1.0, w_market=0.0, w_fund=0.0, w_regime=0.0)
        scores = SignalScorer(weights).score(**signals)

        np.testing.assert_allclose(scores, signals["returns"])

    def test_negative_weight_allowed(self, signals):
        weights = ScorerWeights(w_return=-1.0, w_market=0.0, w_fund=0.0, w_regime=0.0)
        scores = SignalScorer(weights).score(**signals)

        np.testing.assert_allclose(scores, -signals["returns"])

    def test_contributions_sum_to_score(self, signals):
        contrib = SignalScorer().contributions(**signals)

        assert list(contrib.columns) == COMPONENTS + ["score"]
        np.testing.assert_allclose(contrib[COMPONENTS].sum(axis=1), contrib["score"])
        np.testing.assert_allclose(contrib["fund"], 0.25 * signals["fund_characteristics"])


class TestValidation:
    """Malformed signals."""

    def test_length_mismatch(self, signals):
        signals["regime_signal"] = np.array([0.01, 0.02])

        with pytest.raises(InputValidationError):
            SignalScorer().score(**signals)

    def test_non_finite_signal(self, signals):
        signals["market_delta"] = np.array([0.0, np.inf, 0.0])

        with pytest.raises(NonFiniteValueError):
            SignalScorer().score(**signals)

    def test_non_finite_weight_rejected(self):
        with pytest.raises(ValueError):
            ScorerWeights(w_return=float("nan"))
