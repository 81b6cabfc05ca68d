"""
Input Validators

Shared precondition checks for per-day series entering the pipeline.
Each check raises the most specific AllocationError subclass.
"""

import logging
from typing import Dict, Optional, Sequence, Type

import numpy as np

from ..errors import AllocationError, InputValidationError

logger = logging.getLogger(__name__)


def as_series_array(name: str, values: Sequence[float], stage: str = "Validator") -> np.ndarray:
    """
    Convert a per-day series to a 1-D float64 array.

    Raises:
        InputValidationError: If the series is None, not 1-D, not numeric or empty
    """
    if values is None:
        raise InputValidationError(f"{name} is required", stage=stage)

    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"{name} must be numeric: {e}", stage=stage) from e

    if arr.ndim != 1:
        raise InputValidationError(f"{name} must be 1-D, got shape {arr.shape}", stage=stage)

    if arr.size == 0:
        raise InputValidationError(f"{name} cannot be empty", stage=stage)

    return arr


def require_finite(
    name: str,
    arr: np.ndarray,
    stage: str = "Validator",
    error_cls: Type[AllocationError] = InputValidationError,
) -> None:
    """Raise error_cls if arr contains NaN or infinite values."""
    bad = ~np.isfinite(arr)
    if bad.any():
        idx = np.flatnonzero(bad)
        raise error_cls(
            f"{name} contains {len(idx)} non-finite value(s) at day(s) {idx[:5].tolist()}",
            stage=stage,
        )


def require_in_range(
    name: str,
    arr: np.ndarray,
    low: float,
    high: float,
    stage: str = "Validator",
) -> None:
    """Raise InputValidationError if any value lies outside [low, high]."""
    outside = (arr < low) | (arr > high)
    if outside.any():
        idx = np.flatnonzero(outside)
        raise InputValidationError(
            f"{name} must lie in [{low}, {high}]; {len(idx)} value(s) outside at day(s) {idx[:5].tolist()}",
            stage=stage,
        )


def check_outliers(
    name: str,
    arr: np.ndarray,
    threshold: Optional[float],
    stage: str = "Validator",
) -> None:
    """Reject values with absolute magnitude above threshold (None disables the check)."""
    if threshold is None:
        return
    outliers = np.abs(arr) > threshold
    if outliers.any():
        idx = np.flatnonzero(outliers)
        raise InputValidationError(
            f"{name} contains {len(idx)} outlier(s) with |value| > {threshold} at day(s) {idx[:5].tolist()}",
            stage=stage,
        )


def validate_horizon(horizon_days, stage: str = "Validator") -> int:
    """
    Validate a requested day count.

    Returns:
        horizon as int

    Raises:
        InputValidationError: If horizon is not a positive integer
    """
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, (int, np.integer)):
        raise InputValidationError(
            f"horizon must be a positive integer, got {horizon_days!r}", stage=stage
        )
    if horizon_days <= 0:
        raise InputValidationError(f"horizon must be > 0, got {horizon_days}", stage=stage)
    return int(horizon_days)


def common_length(series: Dict[str, np.ndarray], horizon: int) -> int:
    """
    Number of days usable by every series: min(horizon, shortest series).

    Logs which inputs were truncated so misaligned feeds are visible.
    """
    lengths = {name: len(arr) for name, arr in series.items()}
    n = min(horizon, *lengths.values())

    truncated = {name: length for name, length in lengths.items() if length > n}
    if truncated:
        logger.debug(f"[Validator] Truncating to {n} days: {truncated}")

    return n
