"""
HorizonForecaster: Exponential-smoothing extension of short histories.

When the requested horizon is longer than the available history, the series
is extended with a level (+ optional additive trend) exponential-smoothing
forecast. No seasonality.

Smoothing parameters are fixed by default so the forecast is deterministic.
With optimize=True they are estimated by statsmodels once the history has
at least min_fit_obs points; shorter histories keep the fixed parameters.

The historical prefix is always returned unchanged; only the suffix is synthetic.

Domain constraints on the suffix:
- log_levels=True smooths log(values) and exponentiates, so strictly positive
  series (index levels) stay positive even when falling
- bounds=(low, high) clips the suffix; either side may be None
"""

import logging
import warnings
from typing import Optional, Sequence, Tuple

import numpy as np
from statsmodels.tools.sm_exceptions import ConvergenceWarning
from statsmodels.tsa.holtwinters import ExponentialSmoothing

from ..config.pipeline_config import (
    DEFAULT_MIN_FIT_OBS,
    DEFAULT_SMOOTHING_LEVEL,
    DEFAULT_SMOOTHING_TREND,
    DEFAULT_TREND,
    check_forecast_params,
)
from ..errors import InputValidationError, InsufficientDataError, NonFiniteValueError
from .validate import as_series_array, require_finite

logger = logging.getLogger(__name__)

MIN_HISTORY = 2


class HorizonForecaster:
    """
    Extends a per-day series to a requested horizon.

    With fixed parameters the model is initialized so that the first fitted
    value equals the first observation: initial trend = y[1] - y[0] and
    initial level = y[0] - initial trend. A perfectly linear history is
    therefore continued exactly, and a constant history stays constant.
    """

    VERSION = "v1.0"

    def __init__(
        self,
        trend: Optional[str] = DEFAULT_TREND,
        smoothing_level: float = DEFAULT_SMOOTHING_LEVEL,
        smoothing_trend: float = DEFAULT_SMOOTHING_TREND,
        optimize: bool = False,
        min_fit_obs: int = DEFAULT_MIN_FIT_OBS,
    ):
        """
        Initialize HorizonForecaster.

        Args:
            trend: "add" for level + additive trend, None for level only
            smoothing_level: Level smoothing alpha in (0, 1]
            smoothing_trend: Trend smoothing beta in [0, 1]
            optimize: Estimate smoothing parameters when history >= min_fit_obs
            min_fit_obs: Minimum history length for parameter estimation
        """
        check_forecast_params(trend, smoothing_level, smoothing_trend, min_fit_obs)

        self.trend = trend
        self.smoothing_level = smoothing_level
        self.smoothing_trend = smoothing_trend
        self.optimize = optimize
        self.min_fit_obs = min_fit_obs

    def forecast(
        self,
        history: Sequence[float],
        steps: int,
        log_levels: bool = False,
        bounds: Optional[Tuple[Optional[float], Optional[float]]] = None,
    ) -> np.ndarray:
        """
        Forecast the next `steps` values after history.

        Args:
            history: Observed values (at least 2, all finite)
            steps: Number of future values (> 0)
            log_levels: Forecast on log scale (history must be strictly positive)
            bounds: (low, high) clip applied to the forecast; None side is open

        Returns:
            Array of length steps

        Raises:
            InsufficientDataError: If history has fewer than 2 points
            InputValidationError: If history is non-finite, steps <= 0, or
                                  log_levels is set and history is not positive
            NonFiniteValueError: If the model produces non-finite forecasts
        """
        y = as_series_array("history", history, stage="HorizonForecaster")
        require_finite("history", y, stage="HorizonForecaster")

        if len(y) < MIN_HISTORY:
            raise InsufficientDataError(
                f"At least {MIN_HISTORY} historical points are required to forecast, got {len(y)}",
                stage="HorizonForecaster",
            )
        if isinstance(steps, bool) or not isinstance(steps, (int, np.integer)) or steps <= 0:
            raise InputValidationError(f"steps must be a positive integer, got {steps!r}", stage="HorizonForecaster")
        if log_levels:
            if (y <= 0).any():
                raise InputValidationError(
                    "log_levels forecast requires strictly positive history", stage="HorizonForecaster"
                )
            y = np.log(y)

        if self.optimize and len(y) >= self.min_fit_obs:
            predicted = self._forecast_estimated(y, steps)
        else:
            if self.optimize:
                logger.debug(
                    f"[HorizonForecaster] {len(y)} points < min_fit_obs={self.min_fit_obs}, "
                    f"using fixed smoothing parameters"
                )
            predicted = self._forecast_fixed(y, steps)

        predicted = np.asarray(predicted, dtype=np.float64)
        if log_levels:
            predicted = np.exp(predicted)
        require_finite("forecast", predicted, stage="HorizonForecaster", error_cls=NonFiniteValueError)

        if bounds is not None:
            low, high = bounds
            clipped = np.clip(
                predicted,
                -np.inf if low is None else low,
                np.inf if high is None else high,
            )
            n_clipped = int((clipped != predicted).sum())
            if n_clipped:
                logger.debug(f"[HorizonForecaster] Clipped {n_clipped}/{steps} forecasts to {bounds}")
            predicted = clipped

        return predicted

    def extend(
        self,
        history: Sequence[float],
        horizon: int,
        log_levels: bool = False,
        bounds: Optional[Tuple[Optional[float], Optional[float]]] = None,
    ) -> np.ndarray:
        """
        Return history extended (or truncated) to exactly `horizon` values.

        The first min(len(history), horizon) values are the history itself;
        log_levels and bounds apply to the forecast suffix (see forecast).
        """
        y = as_series_array("history", history, stage="HorizonForecaster")
        if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon <= 0:
            raise InputValidationError(f"horizon must be a positive integer, got {horizon!r}", stage="HorizonForecaster")

        if horizon <= len(y):
            return y[:horizon].copy()

        steps = horizon - len(y)
        suffix = self.forecast(y, steps, log_levels=log_levels, bounds=bounds)
        logger.debug(f"[HorizonForecaster] Extended {len(y)} -> {horizon} values")
        return np.concatenate([y, suffix])

    def _forecast_fixed(self, y: np.ndarray, steps: int) -> np.ndarray:
        if self.trend is None:
            model = ExponentialSmoothing(
                y,
                trend=None,
                seasonal=None,
                initialization_method="known",
                initial_level=y[0],
            )
            fitted = model.fit(smoothing_level=self.smoothing_level, optimized=False)
        else:
            initial_trend = y[1] - y[0]
            model = ExponentialSmoothing(
                y,
                trend=self.trend,
                seasonal=None,
                initialization_method="known",
                initial_level=y[0] - initial_trend,
                initial_trend=initial_trend,
            )
            fitted = model.fit(
                smoothing_level=self.smoothing_level,
                smoothing_trend=self.smoothing_trend,
                optimized=False,
            )
        return fitted.forecast(steps)

    def _forecast_estimated(self, y: np.ndarray, steps: int) -> np.ndarray:
        model = ExponentialSmoothing(
            y,
            trend=self.trend,
            seasonal=None,
            initialization_method="estimated",
        )
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            fitted = model.fit()

        for w in caught:
            if issubclass(w.category, ConvergenceWarning):
                logger.warning(f"[HorizonForecaster] Parameter estimation: {w.message}")
            else:
                warnings.warn(w.message, w.category)

        logger.debug(
            f"[HorizonForecaster] Estimated alpha={fitted.params.get('smoothing_level')}, "
            f"beta={fitted.params.get('smoothing_trend')}"
        )
        return fitted.forecast(steps)

    def describe(self) -> dict:
        return {
            "agent": "HorizonForecaster",
            "version": self.VERSION,
            "role": "Extend short histories to the allocation horizon",
            "trend": self.trend,
            "smoothing_level": self.smoothing_level,
            "smoothing_trend": self.smoothing_trend,
            "optimize": self.optimize,
            "min_fit_obs": self.min_fit_obs,
        }
