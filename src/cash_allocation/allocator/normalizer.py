"""
AllocationNormalizer: Tilted scores -> valid allocation vector.

Negative scores are clipped to 0 and the rest rescaled to sum to 1.
An all-zero result is surfaced as DegenerateAllocationError; substituting a
uniform allocation is a caller policy (see uniform_allocation).
"""

import logging

import numpy as np

from ..config.pipeline_config import DEFAULT_TOLERANCE
from ..errors import DegenerateAllocationError, InputValidationError, NonFiniteValueError
from .validate import as_series_array, require_finite

logger = logging.getLogger(__name__)


def uniform_allocation(n_days: int) -> np.ndarray:
    """Equal weight on every day."""
    if n_days <= 0:
        raise InputValidationError(f"n_days must be > 0, got {n_days}", stage="Normalizer")
    return np.full(n_days, 1.0 / n_days)


def is_valid_allocation(allocation: np.ndarray, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """Non-negative, finite and summing to 1 within tolerance."""
    allocation = np.asarray(allocation, dtype=np.float64)
    return bool(
        allocation.size > 0
        and np.isfinite(allocation).all()
        and (allocation >= 0).all()
        and abs(allocation.sum() - 1.0) <= tolerance
    )


class AllocationNormalizer:
    """Clips and rescales tilted scores into an allocation vector."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    def normalize(self, tilted_scores: np.ndarray) -> np.ndarray:
        """
        Args:
            tilted_scores: Per-day tilted scores

        Returns:
            Allocation vector: entries >= 0, sum within tolerance of 1

        Raises:
            NonFiniteValueError: If any score is NaN or infinite
            DegenerateAllocationError: If every score is <= 0
        """
        scores = as_series_array("tilted_scores", tilted_scores, stage="Normalizer")
        require_finite("tilted_scores", scores, stage="Normalizer", error_cls=NonFiniteValueError)

        clipped = np.clip(scores, 0.0, None)
        n_clipped = int((scores < 0).sum())
        if n_clipped:
            logger.debug(f"[Normalizer] Clipped {n_clipped}/{len(scores)} negative scores to 0")

        total = clipped.sum()
        if total == 0.0:
            raise DegenerateAllocationError(
                f"All {len(scores)} days scored non-positive; nothing to allocate",
                stage="Normalizer",
            )

        allocation = clipped / total
        if not is_valid_allocation(allocation, self.tolerance):
            raise NonFiniteValueError(
                f"Normalized allocation sums to {allocation.sum():.12f}, outside tolerance {self.tolerance}",
                stage="Normalizer",
            )
        return allocation
