"""
Input preparation: prices -> returns -> cash flows, and allocation -> dollars.

Cash-flow semantics default to the cumulative portfolio value path
(initial_investment compounded by each day's return). The per-period
flow (return * initial_investment) is available as method="per_period".
"""

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from ..errors import InputValidationError
from .validate import as_series_array, require_finite

logger = logging.getLogger(__name__)

CASH_FLOW_METHODS = ("cumulative", "per_period")


def calculate_daily_returns(prices: Sequence[float]) -> np.ndarray:
    """
    Simple daily returns from a price series.

    r[t] = (price[t+1] - price[t]) / price[t], length len(prices) - 1.

    Args:
        prices: Positive prices, one per trading day

    Returns:
        Array of daily returns

    Raises:
        InputValidationError: If fewer than 2 prices, or any price is non-finite or <= 0
    """
    arr = as_series_array("prices", prices, stage="CashFlows")
    require_finite("prices", arr, stage="CashFlows")

    if len(arr) < 2:
        raise InputValidationError(
            f"At least 2 prices are required to compute returns, got {len(arr)}",
            stage="CashFlows",
        )
    if (arr <= 0).any():
        raise InputValidationError("prices must be strictly positive", stage="CashFlows")

    return pd.Series(arr).pct_change().iloc[1:].to_numpy()


def calculate_cash_flows(
    daily_returns: Sequence[float],
    initial_investment: float,
    method: str = "cumulative",
) -> np.ndarray:
    """
    Cash-flow series from daily returns and an initial investment.

    Args:
        daily_returns: Daily simple returns
        initial_investment: Starting portfolio value (> 0)
        method: "cumulative" -> initial_investment * cumprod(1 + r)
                "per_period" -> r * initial_investment

    Returns:
        Array of cash flows, same length as daily_returns
    """
    if method not in CASH_FLOW_METHODS:
        raise InputValidationError(
            f"method must be one of {CASH_FLOW_METHODS}, got {method!r}", stage="CashFlows"
        )
    if not np.isfinite(initial_investment) or initial_investment <= 0:
        raise InputValidationError(
            f"initial_investment must be a positive finite number, got {initial_investment}",
            stage="CashFlows",
        )

    returns = as_series_array("daily_returns", daily_returns, stage="CashFlows")
    require_finite("daily_returns", returns, stage="CashFlows")

    if method == "per_period":
        return returns * initial_investment

    return initial_investment * np.cumprod(1.0 + returns)


def to_dollar_allocation(allocation: Sequence[float], initial_investment: float) -> np.ndarray:
    """Per-day dollar amounts: allocation[t] * initial_investment."""
    if not np.isfinite(initial_investment) or initial_investment < 0:
        raise InputValidationError(
            f"initial_investment must be a non-negative finite number, got {initial_investment}",
            stage="CashFlows",
        )
    weights = as_series_array("allocation", allocation, stage="CashFlows")
    return weights * initial_investment
