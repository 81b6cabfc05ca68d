"""
Tests for FeatureBuilder.

Tests:
1. Truncation to min(n_days, shortest input)
2. market_delta derivation
3. Feature matrix column selection
4. Input validation (empty, non-finite, outliers, horizon)
5. Extension with synthetic days
"""

import pytest
import numpy as np

from cash_allocation.allocator.features import FeatureBuilder, RAW_COLUMNS
from cash_allocation.errors import InputValidationError


@pytest.fixture
def inputs():
    return {
        "returns": [0.01, 0.02, -0.01, 0.03],
        "cash_flows": [100.0, 200.0, 150.0, 250.0],
        "market_indices": [1000.0, 1010.0, 1005.0, 1015.0],
        "fund_characteristics": [0.8, 0.9, 0.85, 0.95],
    }


class TestTruncation:
    """All series are cut to one common length."""

    def test_truncates_to_shortest_input(self, inputs):
        inputs["market_indices"] = inputs["market_indices"][:3]
        feature_set = FeatureBuilder().build(n_days=10, **inputs)

        assert feature_set.n_days == 3
        for column in RAW_COLUMNS:
            assert len(feature_set.frame[column]) == 3

    def test_truncates_to_requested_days(self, inputs):
        feature_set = FeatureBuilder().build(n_days=2, **inputs)

        assert feature_set.n_days == 2
        np.testing.assert_allclose(feature_set.returns, [0.01, 0.02])
        np.testing.assert_allclose(feature_set.fund_characteristics, [0.8, 0.9])

    def test_no_synthetic_days_from_history(self, inputs):
        feature_set = FeatureBuilder().build(n_days=4, **inputs)

        assert feature_set.n_synthetic == 0
        assert feature_set.n_historical == 4


class TestDerivedFeatures:
    """market_delta and the feature matrix."""

    def test_market_delta_is_pct_change(self, inputs):
        feature_set = FeatureBuilder().build(n_days=4, **inputs)

        expected = [0.0, 0.01, -5.0 / 1010.0, 10.0 / 1005.0]
        np.testing.assert_allclose(feature_set.market_delta, expected)

    def test_default_feature_columns(self, inputs):
        feature_set = FeatureBuilder().build(n_days=4, **inputs)

        assert list(feature_set.feature_matrix.columns) == ["return", "cash_flow"]
        assert feature_set.feature_matrix.shape == (4, 2)

    def test_extended_feature_columns(self, inputs):
        builder = FeatureBuilder(feature_columns=("return", "cash_flow", "market_delta", "fund_characteristic"))
        feature_set = builder.build(n_days=4, **inputs)

        assert feature_set.feature_matrix.shape == (4, 4)

    def test_unknown_feature_column_rejected(self):
        with pytest.raises(ValueError):
            FeatureBuilder(feature_columns=("return", "volume"))


class TestValidation:
    """Invalid inputs raise InputValidationError."""

    @pytest.mark.parametrize("name", ["returns", "cash_flows", "market_indices", "fund_characteristics"])
    def test_empty_series_rejected(self, inputs, name):
        inputs[name] = []
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=4, **inputs)

    @pytest.mark.parametrize("n_days", [0, -3])
    def test_non_positive_days_rejected(self, inputs, n_days):
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=n_days, **inputs)

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_rejected(self, inputs, bad):
        inputs["cash_flows"] = [100.0, bad, 150.0, 250.0]
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=4, **inputs)

    def test_non_finite_beyond_horizon_ignored(self, inputs):
        inputs["cash_flows"] = [100.0, 200.0, 150.0, np.nan]
        feature_set = FeatureBuilder().build(n_days=3, **inputs)

        assert feature_set.n_days == 3

    def test_return_outlier_rejected(self, inputs):
        inputs["returns"] = [0.01, 1.5, -0.01, 0.03]
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=4, **inputs)

    def test_outlier_check_can_be_disabled(self, inputs):
        inputs["returns"] = [0.01, 1.5, -0.01, 0.03]
        feature_set = FeatureBuilder(max_abs_return=None).build(n_days=4, **inputs)

        assert feature_set.n_days == 4

    def test_cash_flow_outlier_when_configured(self, inputs):
        with pytest.raises(InputValidationError):
            FeatureBuilder(max_abs_cash_flow=200.0).build(n_days=4, **inputs)

    def test_non_positive_market_index_rejected(self, inputs):
        inputs["market_indices"] = [1000.0, 0.0, 1005.0, 1015.0]
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=4, **inputs)

    def test_two_dimensional_series_rejected(self, inputs):
        inputs["returns"] = [[0.01, 0.02], [0.03, 0.04]]
        with pytest.raises(InputValidationError):
            FeatureBuilder().build(n_days=4, **inputs)


class TestExtension:
    """Extended feature sets keep history and flag synthetic days."""

    def test_extend_flags_synthetic_days(self, inputs):
        builder = FeatureBuilder()
        history = builder.build(n_days=4, **inputs)

        extended = {name: np.append(history.frame[name].to_numpy(), [0.5, 0.5]) for name in RAW_COLUMNS}
        extended["market_index"] = np.append(history.market_indices, [1020.0, 1030.0])
        result = builder.extend(history, extended)

        assert result.n_days == 6
        assert result.n_synthetic == 2
        assert result.synthetic.tolist() == [False] * 4 + [True] * 2
        np.testing.assert_allclose(result.market_delta[:4], history.market_delta)

    def test_extend_rejects_modified_history(self, inputs):
        builder = FeatureBuilder()
        history = builder.build(n_days=4, **inputs)

        extended = {name: np.append(history.frame[name].to_numpy(), [0.5]) for name in RAW_COLUMNS}
        extended["return"][0] = 0.5
        with pytest.raises(InputValidationError):
            builder.extend(history, extended)

    def test_extend_rejects_return_outlier(self, inputs):
        builder = FeatureBuilder()
        history = builder.build(n_days=4, **inputs)

        extended = {name: np.append(history.frame[name].to_numpy(), [0.5]) for name in RAW_COLUMNS}
        extended["return"][-1] = 1.5
        with pytest.raises(InputValidationError):
            builder.extend(history, extended)
