"""
TiltStage: External action-value and sentiment tilts.

tilted[t] = score[t] * (1 + action_value[t]) * (1 + sentiment[t])

Both signals lie in [0, 1]. A signal of 0 leaves the score unchanged, and a
missing signal is treated as no tilt. Series longer than the scored horizon
are truncated; shorter series are rejected rather than padded.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..errors import InputValidationError
from .validate import as_series_array, require_finite, require_in_range

logger = logging.getLogger(__name__)


class TiltStage:
    """Applies multiplicative tilts from independently supplied signals."""

    def apply(
        self,
        scores: np.ndarray,
        action_values: Optional[Sequence[float]] = None,
        sentiment: Optional[Sequence[float]] = None,
    ) -> np.ndarray:
        """
        Tilt raw scores.

        Args:
            scores: Raw per-day scores
            action_values: Per-day allocate/withhold strength in [0, 1] (optional)
            sentiment: Per-day sentiment score in [0, 1] (optional)

        Returns:
            Tilted scores, same length as scores

        Raises:
            InputValidationError: If a signal is shorter than scores, non-finite,
                                  or outside [0, 1]
        """
        tilted = np.asarray(scores, dtype=np.float64).copy()
        n = len(tilted)

        for name, signal in (("action_values", action_values), ("sentiment", sentiment)):
            if signal is None:
                logger.debug(f"[TiltStage] {name} not provided, no tilt applied")
                continue
            values = self._prepare(name, signal, n)
            tilted *= 1.0 + values
            logger.debug(f"[TiltStage] Applied {name} tilt (mean={values.mean():.4f})")

        return tilted

    @staticmethod
    def _prepare(name: str, signal: Sequence[float], n: int) -> np.ndarray:
        values = as_series_array(name, signal, stage="TiltStage")
        if len(values) < n:
            raise InputValidationError(
                f"{name} has {len(values)} values but the horizon is {n} days",
                stage="TiltStage",
            )
        values = values[:n]
        require_finite(name, values, stage="TiltStage")
        require_in_range(name, values, 0.0, 1.0, stage="TiltStage")
        return values
