"""
Allocation Pipeline

Stage order:
1. Feature Builder - truncate inputs to a common horizon, derive market_delta
2. Segmenter - k-means regimes -> per-day regime signal
3. Horizon Forecaster - optional extension of short histories (extend_horizon)
4. Signal Scorer - weighted blend of return, market, fund and regime signals
5. Tilt Stage - action-value and sentiment tilts
6. Normalizer - clip negatives, rescale to sum to 1

Each invocation is stateless: components hold only their parameters and
every run builds its entities fresh from the caller's data.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .allocator.cash_flows import to_dollar_allocation
from .allocator.features import RAW_COLUMNS, FeatureBuilder, FeatureSet
from .allocator.forecaster import HorizonForecaster
from .allocator.normalizer import AllocationNormalizer, uniform_allocation
from .allocator.scorer import SignalScorer
from .allocator.segmenter import ClusterAssignment, RegimeSegmenter
from .allocator.tilts import TiltStage
from .allocator.validate import validate_horizon
from .config.pipeline_config import PipelineConfig
from .errors import DegenerateAllocationError

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    """Allocation vector plus every intermediate the pipeline produced."""

    allocation: np.ndarray
    scores: np.ndarray
    tilted_scores: np.ndarray
    regime_signal: np.ndarray
    labels: np.ndarray
    contributions: pd.DataFrame
    assignment: ClusterAssignment
    features: FeatureSet
    used_fallback: bool = False

    @property
    def n_days(self) -> int:
        return len(self.allocation)

    @property
    def n_synthetic_days(self) -> int:
        return self.features.n_synthetic

    def dollar_amounts(self, initial_investment: float) -> np.ndarray:
        """Per-day dollar allocation of initial_investment."""
        return to_dollar_allocation(self.allocation, initial_investment)

    def to_frame(self) -> pd.DataFrame:
        """One row per day: inputs, cluster, signal contributions, scores, allocation."""
        frame = self.features.frame.copy()
        frame["cluster"] = self.labels
        frame["regime_signal"] = self.regime_signal
        for column in self.contributions.columns:
            frame[f"contrib_{column}"] = self.contributions[column].to_numpy()
        frame["tilted_score"] = self.tilted_scores
        frame["allocation"] = self.allocation
        return frame


class AllocationPipeline:
    """
    Runs the six allocation stages for one fund and one horizon.

    The config is read at construction; pass a different PipelineConfig to
    change behaviour rather than mutating this instance.
    """

    VERSION = "v1.0"

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize AllocationPipeline.

        Args:
            config: PipelineConfig. Uses defaults if None.
        """
        self.config = config or PipelineConfig()
        cfg = self.config

        self.builder = FeatureBuilder(
            feature_columns=cfg.feature_columns,
            max_abs_return=cfg.max_abs_return,
            max_abs_cash_flow=cfg.max_abs_cash_flow,
        )
        self.segmenter = RegimeSegmenter(
            k_clusters=cfg.segmenter.k_clusters,
            max_iter=cfg.segmenter.max_iter,
            seed=cfg.segmenter.seed,
            standardize=cfg.segmenter.standardize,
        )
        self.forecaster = HorizonForecaster(
            trend=cfg.forecast.trend,
            smoothing_level=cfg.forecast.smoothing_level,
            smoothing_trend=cfg.forecast.smoothing_trend,
            optimize=cfg.forecast.optimize,
            min_fit_obs=cfg.forecast.min_fit_obs,
        )
        self.scorer = SignalScorer(cfg.weights)
        self.tilts = TiltStage()
        self.normalizer = AllocationNormalizer(tolerance=cfg.tolerance)

        logger.debug(f"[AllocationPipeline] Initialized (version {self.VERSION})")

    def run(
        self,
        returns: Sequence[float],
        cash_flows: Sequence[float],
        market_indices: Sequence[float],
        fund_characteristics: Sequence[float],
        horizon_days: int,
        sentiment: Optional[Sequence[float]] = None,
        action_values: Optional[Sequence[float]] = None,
        k_clusters: Optional[int] = None,
    ) -> AllocationResult:
        """
        Compute an allocation vector and its intermediates.

        Args:
            returns: Daily returns
            cash_flows: Daily cash flows
            market_indices: Daily market index levels
            fund_characteristics: Daily fund characteristic scores
            horizon_days: Requested number of days
            sentiment: Optional per-day sentiment in [0, 1]
            action_values: Optional per-day action values in [0, 1]
            k_clusters: Explicit cluster count (must not exceed the number of days)

        Returns:
            AllocationResult

        Raises:
            InputValidationError, InsufficientDataError, ClusteringError,
            NonFiniteValueError, DegenerateAllocationError
        """
        horizon = validate_horizon(horizon_days, stage="AllocationPipeline")

        # Stage 1: features
        features = self.builder.build(returns, cash_flows, market_indices, fund_characteristics, horizon)
        historical_returns = features.returns

        # Stage 2: regimes
        assignment = self.segmenter.fit(features.feature_matrix, k_clusters=k_clusters)
        labels = assignment.labels

        # Stage 3: horizon extension
        if self.config.extend_horizon and features.n_days < horizon:
            features, labels = self._extend(features, assignment, horizon)

        regime_signal = assignment.regime_signal(historical_returns, labels)

        # Stage 4: scores
        contributions = self.scorer.contributions(
            features.returns,
            features.market_delta,
            features.fund_characteristics,
            regime_signal,
        )
        scores = contributions["score"].to_numpy()

        # Stage 5: tilts
        tilted = self.tilts.apply(scores, action_values=action_values, sentiment=sentiment)

        # Stage 6: normalize
        used_fallback = False
        try:
            allocation = self.normalizer.normalize(tilted)
        except DegenerateAllocationError:
            if not self.config.fallback_to_uniform:
                raise
            logger.warning(
                f"[AllocationPipeline] All {len(tilted)} days scored non-positive, "
                f"falling back to uniform allocation"
            )
            allocation = uniform_allocation(len(tilted))
            used_fallback = True

        logger.info(
            f"[AllocationPipeline] Allocated {len(allocation)} days "
            f"(synthetic={features.n_synthetic}, k={assignment.k}, "
            f"max_weight={allocation.max():.4f}, fallback={used_fallback})"
        )

        return AllocationResult(
            allocation=allocation,
            scores=scores,
            tilted_scores=tilted,
            regime_signal=regime_signal,
            labels=np.asarray(labels),
            contributions=contributions,
            assignment=assignment,
            features=features,
            used_fallback=used_fallback,
        )

    def _extend(self, features: FeatureSet, assignment: ClusterAssignment, horizon: int):
        """Forecast every raw series out to horizon and label the synthetic days."""
        n_hist = features.n_days
        logger.info(f"[AllocationPipeline] Extending {n_hist} historical days to horizon {horizon}")

        extended = {}
        for name in RAW_COLUMNS:
            history = features.frame[name].to_numpy()
            log_levels, bounds = self._forecast_domain(name, history)
            extended[name] = self.forecaster.extend(history, horizon, log_levels=log_levels, bounds=bounds)
        extended_features = self.builder.extend(features, extended)

        synthetic_rows = extended_features.feature_matrix.iloc[n_hist:]
        synthetic_labels = assignment.predict(synthetic_rows)
        labels = np.concatenate([assignment.labels, synthetic_labels])
        return extended_features, labels

    def _forecast_domain(self, name: str, history: np.ndarray):
        """
        Forecast scale and bounds for one raw series.

        - market_index: log scale, so levels stay positive
        - fund_characteristic: clipped to the observed historical range
        - return / cash_flow: clipped to the configured outlier limits
        """
        cfg = self.config
        if name == "market_index":
            return True, None
        if name == "fund_characteristic":
            return False, (float(history.min()), float(history.max()))
        limit = cfg.max_abs_return if name == "return" else cfg.max_abs_cash_flow
        if limit is None:
            return False, None
        return False, (-limit, limit)

    def describe(self) -> dict:
        return {
            "agent": "AllocationPipeline",
            "version": self.VERSION,
            "role": "Blend return, regime, market, fund, action-value and sentiment signals into a per-day allocation",
            "config": self.config.to_dict(),
            "segmenter": self.segmenter.describe(),
            "forecaster": self.forecaster.describe(),
        }


def compute_allocation(
    returns: Sequence[float],
    cash_flows: Sequence[float],
    market_indices: Sequence[float],
    fund_characteristics: Sequence[float],
    horizon_days: int,
    sentiment: Optional[Sequence[float]] = None,
    action_values: Optional[Sequence[float]] = None,
    k_clusters: Optional[int] = None,
    config: Optional[PipelineConfig] = None,
) -> np.ndarray:
    """
    Allocation vector for the given inputs.

    Length is min(horizon_days, shortest input) unless the config enables
    horizon extension. Entries are non-negative and sum to 1.

    Example:
        >>> allocation = compute_allocation(
        ...     returns=[0.01, 0.02, -0.01, 0.03],
        ...     cash_flows=[100, 200, 150, 250],
        ...     market_indices=[1000, 1010, 1005, 1015],
        ...     fund_characteristics=[0.8, 0.9, 0.85, 0.95],
        ...     horizon_days=4,
        ... )
        >>> len(allocation)
        4
    """
    pipeline = AllocationPipeline(config)
    result = pipeline.run(
        returns,
        cash_flows,
        market_indices,
        fund_characteristics,
        horizon_days,
        sentiment=sentiment,
        action_values=action_values,
        k_clusters=k_clusters,
    )
    return result.allocation
