"""
Tests for HorizonForecaster.

Tests:
1. Linear and constant histories continue exactly
2. Level-only model forecasts a flat line
3. Historical prefix preserved; truncation when horizon <= history
4. Input validation (short history, NaN, bad steps, bad parameters)
5. Parameter estimation path
"""

import pytest
import numpy as np

from cash_allocation.allocator.forecaster import HorizonForecaster
from cash_allocation.errors import InputValidationError, InsufficientDataError


class TestForecast:
    """Forecast values."""

    def test_linear_history_continues(self):
        forecast = HorizonForecaster().forecast([1.0, 2.0, 3.0, 4.0], steps=3)

        np.testing.assert_allclose(forecast, [5.0, 6.0, 7.0])

    def test_two_point_history(self):
        forecast = HorizonForecaster().forecast([10.0, 8.0], steps=2)

        np.testing.assert_allclose(forecast, [6.0, 4.0])

    def test_constant_history_stays_constant(self):
        forecast = HorizonForecaster().forecast([5.0, 5.0, 5.0], steps=4)

        np.testing.assert_allclose(forecast, [5.0] * 4)

    def test_level_only_is_flat(self):
        forecast = HorizonForecaster(trend=None).forecast([1.0, 2.0, 3.0, 4.0], steps=3)

        assert len(forecast) == 3
        assert np.all(forecast == forecast[0])
        assert np.all(np.isfinite(forecast))

    def test_deterministic(self):
        history = [0.01, -0.02, 0.015, 0.03, -0.01]
        first = HorizonForecaster().forecast(history, steps=5)
        second = HorizonForecaster().forecast(history, steps=5)

        assert first.tobytes() == second.tobytes()


class TestExtend:
    """History extension to a horizon."""

    def test_prefix_preserved(self):
        history = np.array([100.0, 103.0, 101.0, 104.0])
        extended = HorizonForecaster().extend(history, horizon=7)

        assert len(extended) == 7
        np.testing.assert_array_equal(extended[:4], history)
        assert np.all(np.isfinite(extended[4:]))

    def test_horizon_shorter_than_history_truncates(self):
        extended = HorizonForecaster().extend([1.0, 2.0, 3.0, 4.0], horizon=2)

        np.testing.assert_array_equal(extended, [1.0, 2.0])

    def test_horizon_equal_to_history_is_copy(self):
        history = np.array([1.0, 2.0, 3.0])
        extended = HorizonForecaster().extend(history, horizon=3)
        extended[0] = 99.0

        assert history[0] == 1.0

    def test_single_point_cannot_extend(self):
        with pytest.raises(InsufficientDataError):
            HorizonForecaster().extend([1.0], horizon=3)

    @pytest.mark.parametrize("horizon", [0, -2, 2.5])
    def test_invalid_horizon(self, horizon):
        with pytest.raises(InputValidationError):
            HorizonForecaster().extend([1.0, 2.0], horizon=horizon)


class TestValidation:
    """Invalid inputs and parameters."""

    def test_single_point_history(self):
        with pytest.raises(InsufficientDataError):
            HorizonForecaster().forecast([1.0], steps=1)

    def test_nan_history(self):
        with pytest.raises(InputValidationError):
            HorizonForecaster().forecast([1.0, np.nan, 3.0], steps=1)

    @pytest.mark.parametrize("steps", [0, -1, True])
    def test_invalid_steps(self, steps):
        with pytest.raises(InputValidationError):
            HorizonForecaster().forecast([1.0, 2.0, 3.0], steps=steps)

    def test_invalid_trend(self):
        with pytest.raises(ValueError):
            HorizonForecaster(trend="mul")

    def test_min_fit_obs_below_two(self):
        with pytest.raises(ValueError):
            HorizonForecaster(min_fit_obs=1)

    @pytest.mark.parametrize("alpha", [0.0, 1.5])
    def test_invalid_smoothing_level(self, alpha):
        with pytest.raises(ValueError):
            HorizonForecaster(smoothing_level=alpha)

    def test_insufficient_data_is_value_error(self):
        with pytest.raises(ValueError):
            HorizonForecaster().forecast([], steps=1)


class TestForecastDomain:
    """Log-scale forecasts and bounds on the forecast suffix."""

    def test_falling_levels_stay_positive(self):
        extended = HorizonForecaster().extend([1000.0, 800.0, 600.0, 400.0], horizon=12, log_levels=True)

        np.testing.assert_array_equal(extended[:4], [1000.0, 800.0, 600.0, 400.0])
        assert np.all(extended[4:] > 0)
        assert np.all(np.diff(extended[4:]) < 0)

    def test_log_levels_geometric_history(self):
        forecast = HorizonForecaster().forecast([100.0, 50.0, 25.0], steps=2, log_levels=True)

        np.testing.assert_allclose(forecast, [12.5, 6.25])

    def test_log_levels_rejects_non_positive_history(self):
        with pytest.raises(InputValidationError):
            HorizonForecaster().forecast([1.0, 0.0, 2.0], steps=1, log_levels=True)

    def test_bounds_clip_forecast(self):
        extended = HorizonForecaster().extend([0.6, 0.7, 0.8, 0.9], horizon=10, bounds=(0.6, 0.9))

        np.testing.assert_allclose(extended[4:], [0.9] * 6)

    def test_one_sided_bounds(self):
        forecast = HorizonForecaster().forecast([3.0, 2.0, 1.0], steps=3, bounds=(0.0, None))

        np.testing.assert_allclose(forecast, [0.0, 0.0, 0.0], atol=1e-12)


class TestEstimation:
    """optimize=True path."""

    def test_short_history_uses_fixed_parameters(self):
        history = [1.0, 2.5, 2.0, 3.5, 4.0]
        fixed = HorizonForecaster().forecast(history, steps=3)
        estimated = HorizonForecaster(optimize=True, min_fit_obs=10).forecast(history, steps=3)

        np.testing.assert_array_equal(fixed, estimated)

    def test_long_history_estimates(self):
        rng = np.random.default_rng(0)
        history = 100.0 + 0.5 * np.arange(40) + rng.normal(scale=0.2, size=40)
        forecast = HorizonForecaster(optimize=True, min_fit_obs=10).forecast(history, steps=5)

        assert len(forecast) == 5
        assert np.all(np.isfinite(forecast))
        assert forecast[-1] > history[-10]

    def test_describe(self):
        info = HorizonForecaster(optimize=True).describe()

        assert info["agent"] == "HorizonForecaster"
        assert info["optimize"] is True
        assert info["trend"] == "add"
