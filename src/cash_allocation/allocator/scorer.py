"""
SignalScorer: Linear blend of per-day signals into a raw score.

score[t] = w_r * return[t] + w_m * market_delta[t] + w_f * fund_char[t] + w_c * regime_signal[t]

Pure arithmetic. Non-finite inputs or outputs are rejected with
NonFiniteValueError (an ArithmeticError).
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from ..config.pipeline_config import ScorerWeights
from ..errors import InputValidationError, NonFiniteValueError
from .validate import require_finite

logger = logging.getLogger(__name__)

COMPONENTS = ["return", "market", "fund", "regime"]


class SignalScorer:
    """Combines return, market, fund and regime signals into one score per day."""

    def __init__(self, weights: Optional[ScorerWeights] = None):
        self.weights = weights or ScorerWeights()

    def contributions(
        self,
        returns: np.ndarray,
        market_delta: np.ndarray,
        fund_characteristics: np.ndarray,
        regime_signal: np.ndarray,
    ) -> pd.DataFrame:
        """
        Weighted contribution of each signal, plus their sum.

        Returns:
            DataFrame indexed by day with columns COMPONENTS + ['score']
        """
        signals = {
            "return": np.asarray(returns, dtype=np.float64),
            "market": np.asarray(market_delta, dtype=np.float64),
            "fund": np.asarray(fund_characteristics, dtype=np.float64),
            "regime": np.asarray(regime_signal, dtype=np.float64),
        }

        lengths = {name: len(values) for name, values in signals.items()}
        if len(set(lengths.values())) != 1:
            raise InputValidationError(f"Signal lengths differ: {lengths}", stage="SignalScorer")

        for name, values in signals.items():
            require_finite(f"{name} signal", values, stage="SignalScorer", error_cls=NonFiniteValueError)

        w = self.weights
        contrib = pd.DataFrame(
            {
                "return": w.w_return * signals["return"],
                "market": w.w_market * signals["market"],
                "fund": w.w_fund * signals["fund"],
                "regime": w.w_regime * signals["regime"],
            },
            index=pd.RangeIndex(lengths["return"], name="day"),
        )
        contrib["score"] = contrib[COMPONENTS].sum(axis=1)

        require_finite("score", contrib["score"].to_numpy(), stage="SignalScorer", error_cls=NonFiniteValueError)
        return contrib

    def score(
        self,
        returns: np.ndarray,
        market_delta: np.ndarray,
        fund_characteristics: np.ndarray,
        regime_signal: np.ndarray,
    ) -> np.ndarray:
        """Raw score per day."""
        contrib = self.contributions(returns, market_delta, fund_characteristics, regime_signal)
        logger.debug(
            f"[SignalScorer] Scored {len(contrib)} days: "
            f"min={contrib['score'].min():.6f}, max={contrib['score'].max():.6f}"
        )
        return contrib["score"].to_numpy()
