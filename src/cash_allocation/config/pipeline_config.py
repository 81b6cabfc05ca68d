"""
Allocation Pipeline Configuration

Explicit configuration objects passed into every pipeline call.
Precedence: module defaults <- configs/allocation.yaml <- explicit arguments.

No process-wide state: load a PipelineConfig once and hand it to the
pipeline (or to compute_allocation) wherever it is needed.
"""

import logging
import math
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "configs/allocation.yaml"

# Scorer weights (equal by default)
DEFAULT_WEIGHT = 0.25

# Segmenter
DEFAULT_K_CLUSTERS = 3
DEFAULT_MAX_ITER = 300
DEFAULT_SEED = 42

# Forecaster
DEFAULT_TREND = "add"
DEFAULT_SMOOTHING_LEVEL = 0.5
DEFAULT_SMOOTHING_TREND = 0.1
DEFAULT_MIN_FIT_OBS = 10
TREND_CHOICES = ("add", None)

# Validation guards
DEFAULT_MAX_ABS_RETURN = 1.0
DEFAULT_TOLERANCE = 1e-6

FEATURE_COLUMN_CHOICES = ("return", "cash_flow", "market_delta", "fund_characteristic")
DEFAULT_FEATURE_COLUMNS = ("return", "cash_flow")


def check_segmenter_params(k_clusters: int, max_iter: int) -> None:
    """Raise ValueError for an unusable cluster count or iteration cap."""
    if k_clusters < 1:
        raise ValueError(f"k_clusters must be >= 1, got {k_clusters}")
    if max_iter < 1:
        raise ValueError(f"max_iter must be >= 1, got {max_iter}")


def check_forecast_params(
    trend: Optional[str],
    smoothing_level: float,
    smoothing_trend: float,
    min_fit_obs: int,
) -> None:
    """Raise ValueError for smoothing parameters outside their valid range."""
    if trend not in TREND_CHOICES:
        raise ValueError(f"trend must be one of {TREND_CHOICES}, got {trend!r}")
    if not 0.0 < smoothing_level <= 1.0:
        raise ValueError(f"smoothing_level must be in (0, 1], got {smoothing_level}")
    if not 0.0 <= smoothing_trend <= 1.0:
        raise ValueError(f"smoothing_trend must be in [0, 1], got {smoothing_trend}")
    if min_fit_obs < 2:
        raise ValueError(f"min_fit_obs must be >= 2, got {min_fit_obs}")


@dataclass(frozen=True)
class ScorerWeights:
    """Linear weights for the per-day signal score."""

    w_return: float = DEFAULT_WEIGHT
    w_market: float = DEFAULT_WEIGHT
    w_fund: float = DEFAULT_WEIGHT
    w_regime: float = DEFAULT_WEIGHT

    def __post_init__(self):
        for name, value in asdict(self).items():
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class SegmenterConfig:
    """K-means regime segmentation parameters."""

    k_clusters: int = DEFAULT_K_CLUSTERS
    max_iter: int = DEFAULT_MAX_ITER
    seed: Optional[int] = DEFAULT_SEED
    standardize: bool = True

    def __post_init__(self):
        check_segmenter_params(self.k_clusters, self.max_iter)


@dataclass(frozen=True)
class ForecastConfig:
    """Exponential smoothing parameters for horizon extension."""

    trend: Optional[str] = DEFAULT_TREND
    smoothing_level: float = DEFAULT_SMOOTHING_LEVEL
    smoothing_trend: float = DEFAULT_SMOOTHING_TREND
    optimize: bool = False
    min_fit_obs: int = DEFAULT_MIN_FIT_OBS

    def __post_init__(self):
        check_forecast_params(self.trend, self.smoothing_level, self.smoothing_trend, self.min_fit_obs)


@dataclass(frozen=True)
class PipelineConfig:
    """Complete configuration for one allocation invocation."""

    weights: ScorerWeights = field(default_factory=ScorerWeights)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    feature_columns: Tuple[str, ...] = DEFAULT_FEATURE_COLUMNS
    extend_horizon: bool = False
    fallback_to_uniform: bool = False
    max_abs_return: Optional[float] = DEFAULT_MAX_ABS_RETURN
    max_abs_cash_flow: Optional[float] = None
    tolerance: float = DEFAULT_TOLERANCE

    def __post_init__(self):
        columns = tuple(self.feature_columns)
        object.__setattr__(self, "feature_columns", columns)
        if not columns:
            raise ValueError("feature_columns cannot be empty")
        unknown = [c for c in columns if c not in FEATURE_COLUMN_CHOICES]
        if unknown:
            raise ValueError(
                f"Unknown feature columns: {unknown}. Expected a subset of {FEATURE_COLUMN_CHOICES}"
            )
        if len(set(columns)) != len(columns):
            raise ValueError(f"feature_columns contains duplicates: {columns}")
        if self.max_abs_return is not None and self.max_abs_return <= 0:
            raise ValueError(f"max_abs_return must be > 0, got {self.max_abs_return}")
        if self.max_abs_cash_flow is not None and self.max_abs_cash_flow <= 0:
            raise ValueError(f"max_abs_cash_flow must be > 0, got {self.max_abs_cash_flow}")
        if not 0.0 < self.tolerance < 1.0:
            raise ValueError(f"tolerance must be in (0, 1), got {self.tolerance}")

    @classmethod
    def from_dict(cls, config: Optional[Dict]) -> "PipelineConfig":
        """
        Build a PipelineConfig from the `allocation` section of a config dict.

        Missing keys fall back to module defaults. Unknown keys are rejected
        so that typos in YAML do not silently revert to defaults.

        Args:
            config: Dict shaped like configs/allocation.yaml (top-level
                    `allocation` key optional)

        Returns:
            PipelineConfig
        """
        config = dict(config or {})
        section = dict(config.get("allocation", config))

        validation = dict(section.pop("validation", {}) or {})
        scorer = dict(section.pop("scorer", {}) or {})
        segmenter = dict(section.pop("segmenter", {}) or {})
        forecast = dict(section.pop("forecaster", {}) or {})

        weights = dict(scorer.pop("weights", {}) or {})
        weight_keys = {"return": "w_return", "market": "w_market", "fund": "w_fund", "regime": "w_regime"}
        _reject_unknown("scorer.weights", weights, weight_keys)
        _reject_unknown("scorer", scorer, {})
        _reject_unknown("segmenter", segmenter, SegmenterConfig.__dataclass_fields__)
        _reject_unknown("forecaster", forecast, ForecastConfig.__dataclass_fields__)
        _reject_unknown("validation", validation, {"max_abs_return", "max_abs_cash_flow"})

        top_level = {"feature_columns", "extend_horizon", "fallback_to_uniform", "tolerance"}
        _reject_unknown("allocation", section, top_level)

        kwargs = {k: section[k] for k in top_level if k in section}
        kwargs.update(validation)

        return cls(
            weights=ScorerWeights(**{weight_keys[k]: float(v) for k, v in weights.items()}),
            segmenter=SegmenterConfig(**segmenter),
            forecast=ForecastConfig(**forecast),
            **kwargs,
        )

    def with_overrides(self, **overrides) -> "PipelineConfig":
        """Return a copy with top-level fields replaced (explicit args win)."""
        values = {name: getattr(self, name) for name in self.__dataclass_fields__}
        values.update(overrides)
        return PipelineConfig(**values)

    def to_dict(self) -> Dict:
        return {
            "allocation": {
                "feature_columns": list(self.feature_columns),
                "extend_horizon": self.extend_horizon,
                "fallback_to_uniform": self.fallback_to_uniform,
                "tolerance": self.tolerance,
                "validation": {
                    "max_abs_return": self.max_abs_return,
                    "max_abs_cash_flow": self.max_abs_cash_flow,
                },
                "scorer": {
                    "weights": {
                        "return": self.weights.w_return,
                        "market": self.weights.w_market,
                        "fund": self.weights.w_fund,
                        "regime": self.weights.w_regime,
                    }
                },
                "segmenter": asdict(self.segmenter),
                "forecaster": asdict(self.forecast),
            }
        }


def _reject_unknown(section: str, values: Dict, allowed) -> None:
    unknown = sorted(set(values) - set(allowed))
    if unknown:
        raise ValueError(f"Unknown keys in '{section}' config section: {unknown}")


def load_pipeline_config(config_path: Optional[Union[str, Path]] = DEFAULT_CONFIG_PATH) -> PipelineConfig:
    """
    Load pipeline configuration from YAML.

    A missing file is not an error: defaults are used and a warning is logged.

    Args:
        config_path: Path to allocation YAML (default: configs/allocation.yaml).
                     None returns the defaults.

    Returns:
        PipelineConfig
    """
    if config_path is None:
        return PipelineConfig()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"[PipelineConfig] Config not found at {path}, using defaults")
        return PipelineConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = PipelineConfig.from_dict(raw)
    logger.info(f"[PipelineConfig] Loaded config from {path}")
    logger.debug(f"[PipelineConfig] {config}")
    return config
