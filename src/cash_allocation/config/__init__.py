"""
Configuration objects for the allocation pipeline.
"""

from .pipeline_config import (
    PipelineConfig,
    ScorerWeights,
    SegmenterConfig,
    ForecastConfig,
    load_pipeline_config,
    DEFAULT_CONFIG_PATH,
    FEATURE_COLUMN_CHOICES,
    DEFAULT_FEATURE_COLUMNS,
)

__all__ = [
    "PipelineConfig",
    "ScorerWeights",
    "SegmenterConfig",
    "ForecastConfig",
    "load_pipeline_config",
    "DEFAULT_CONFIG_PATH",
    "FEATURE_COLUMN_CHOICES",
    "DEFAULT_FEATURE_COLUMNS",
]
