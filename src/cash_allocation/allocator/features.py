"""
FeatureBuilder: Per-day feature construction for the allocation pipeline.

Aligns the four raw inputs (returns, cash flows, market index levels, fund
characteristics) on a common day index and derives:
- market_delta: day-over-day percentage change of the market index (0 on day 0)

All series are truncated to min(n_days, shortest input) before anything else,
so no day is ever combined with another day's inputs.

No scoring, no clustering - pure feature computation.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config.pipeline_config import (
    DEFAULT_FEATURE_COLUMNS,
    DEFAULT_MAX_ABS_RETURN,
    FEATURE_COLUMN_CHOICES,
)
from ..errors import InputValidationError
from .validate import (
    as_series_array,
    check_outliers,
    common_length,
    require_finite,
    validate_horizon,
)

logger = logging.getLogger(__name__)

# Raw inputs, in canonical order
RAW_COLUMNS = ["return", "cash_flow", "market_index", "fund_characteristic"]

# Full per-day frame layout
FRAME_COLUMNS = RAW_COLUMNS + ["market_delta", "synthetic"]


@dataclass
class FeatureSet:
    """
    Truncated raw series plus the clustering feature matrix.

    frame holds every per-day column (raw inputs, market_delta and the
    synthetic flag); feature_matrix is the subset of columns clustered by
    the segmenter. Both are indexed by `day` (0..n_days-1).
    """

    frame: pd.DataFrame
    feature_columns: Tuple[str, ...]

    @property
    def n_days(self) -> int:
        return len(self.frame)

    @property
    def feature_matrix(self) -> pd.DataFrame:
        return self.frame.loc[:, list(self.feature_columns)]

    @property
    def returns(self) -> np.ndarray:
        return self.frame["return"].to_numpy()

    @property
    def cash_flows(self) -> np.ndarray:
        return self.frame["cash_flow"].to_numpy()

    @property
    def market_indices(self) -> np.ndarray:
        return self.frame["market_index"].to_numpy()

    @property
    def market_delta(self) -> np.ndarray:
        return self.frame["market_delta"].to_numpy()

    @property
    def fund_characteristics(self) -> np.ndarray:
        return self.frame["fund_characteristic"].to_numpy()

    @property
    def synthetic(self) -> np.ndarray:
        return self.frame["synthetic"].to_numpy()

    @property
    def n_synthetic(self) -> int:
        return int(self.frame["synthetic"].sum())

    @property
    def n_historical(self) -> int:
        return self.n_days - self.n_synthetic


class FeatureBuilder:
    """
    Builds the per-day feature frame from caller-supplied series.

    Validation performed here:
    1. Every series is 1-D, numeric, non-empty and finite
    2. n_days is a positive integer
    3. Returns (and optionally cash flows) contain no outliers
    4. Market index levels are strictly positive
    """

    VERSION = "v1.0"

    def __init__(
        self,
        feature_columns: Sequence[str] = DEFAULT_FEATURE_COLUMNS,
        max_abs_return: Optional[float] = DEFAULT_MAX_ABS_RETURN,
        max_abs_cash_flow: Optional[float] = None,
    ):
        """
        Initialize FeatureBuilder.

        Args:
            feature_columns: Columns exposed in the feature matrix
                            (subset of FEATURE_COLUMN_CHOICES)
            max_abs_return: Reject returns with |r| above this (None disables)
            max_abs_cash_flow: Reject cash flows with |cf| above this (None disables)
        """
        unknown = [c for c in feature_columns if c not in FEATURE_COLUMN_CHOICES]
        if unknown or not feature_columns:
            raise ValueError(
                f"feature_columns must be a non-empty subset of {FEATURE_COLUMN_CHOICES}, "
                f"got {list(feature_columns)}"
            )
        self.feature_columns = tuple(feature_columns)
        self.max_abs_return = max_abs_return
        self.max_abs_cash_flow = max_abs_cash_flow

    def build(
        self,
        returns: Sequence[float],
        cash_flows: Sequence[float],
        market_indices: Sequence[float],
        fund_characteristics: Sequence[float],
        n_days: int,
    ) -> FeatureSet:
        """
        Truncate inputs to a common length and build the feature frame.

        Args:
            returns: Daily returns
            cash_flows: Daily cash-flow / portfolio value series
            market_indices: Daily market index levels
            fund_characteristics: Daily fund characteristic scores
            n_days: Requested number of days

        Returns:
            FeatureSet with min(n_days, shortest input) rows
        """
        n_days = validate_horizon(n_days, stage="FeatureBuilder")

        raw = {
            "return": as_series_array("returns", returns, stage="FeatureBuilder"),
            "cash_flow": as_series_array("cash_flows", cash_flows, stage="FeatureBuilder"),
            "market_index": as_series_array("market_indices", market_indices, stage="FeatureBuilder"),
            "fund_characteristic": as_series_array(
                "fund_characteristics", fund_characteristics, stage="FeatureBuilder"
            ),
        }

        n = common_length(raw, n_days)
        raw = {name: arr[:n] for name, arr in raw.items()}

        self._validate(raw)

        feature_set = self._assemble(raw, n_historical=n)
        logger.info(
            f"[FeatureBuilder] Built {feature_set.n_days} days "
            f"(requested {n_days}, features={list(self.feature_columns)})"
        )
        return feature_set

    def extend(self, feature_set: FeatureSet, extended: Dict[str, np.ndarray]) -> FeatureSet:
        """
        Rebuild a FeatureSet over extended raw series.

        Rows beyond the original length are flagged synthetic. The historical
        prefix must be unchanged.

        Args:
            feature_set: FeatureSet built from history
            extended: Raw series keyed by RAW_COLUMNS, all the same length

        Returns:
            FeatureSet covering the extended length
        """
        lengths = {name: len(extended[name]) for name in RAW_COLUMNS}
        if len(set(lengths.values())) != 1:
            raise InputValidationError(
                f"Extended series must share one length, got {lengths}", stage="FeatureBuilder"
            )

        n_hist = feature_set.n_days
        raw = {name: np.asarray(extended[name], dtype=np.float64) for name in RAW_COLUMNS}
        for name, arr in raw.items():
            if not np.array_equal(arr[:n_hist], feature_set.frame[name].to_numpy()):
                raise InputValidationError(
                    f"Extended {name} does not preserve the historical prefix",
                    stage="FeatureBuilder",
                )

        # Synthetic rows pass the same guards as historical ones
        self._validate(raw)

        result = self._assemble(raw, n_historical=n_hist)
        logger.info(
            f"[FeatureBuilder] Extended {n_hist} -> {result.n_days} days "
            f"({result.n_synthetic} synthetic)"
        )
        return result

    def _validate(self, raw: Dict[str, np.ndarray]) -> None:
        for name, arr in raw.items():
            require_finite(name, arr, stage="FeatureBuilder")

        check_outliers("returns", raw["return"], self.max_abs_return, stage="FeatureBuilder")
        check_outliers("cash_flows", raw["cash_flow"], self.max_abs_cash_flow, stage="FeatureBuilder")

        if (raw["market_index"] <= 0).any():
            raise InputValidationError(
                "market_indices must be strictly positive", stage="FeatureBuilder"
            )

    def _assemble(self, raw: Dict[str, np.ndarray], n_historical: int) -> FeatureSet:
        n = len(raw["return"])
        frame = pd.DataFrame(
            {name: raw[name] for name in RAW_COLUMNS},
            index=pd.RangeIndex(n, name="day"),
        )
        frame["market_delta"] = frame["market_index"].pct_change().fillna(0.0)
        frame["synthetic"] = frame.index >= n_historical
        return FeatureSet(frame=frame[FRAME_COLUMNS], feature_columns=self.feature_columns)
