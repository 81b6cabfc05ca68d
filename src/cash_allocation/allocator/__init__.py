"""
Allocator module: the stages of the allocation pipeline.
"""

from .features import FeatureBuilder, FeatureSet, RAW_COLUMNS
from .segmenter import RegimeSegmenter, ClusterAssignment, nearest_centroid
from .forecaster import HorizonForecaster
from .scorer import SignalScorer
from .tilts import TiltStage
from .normalizer import AllocationNormalizer, uniform_allocation, is_valid_allocation
from .cash_flows import calculate_daily_returns, calculate_cash_flows, to_dollar_allocation

__all__ = [
    # Feature Builder
    'FeatureBuilder',
    'FeatureSet',
    'RAW_COLUMNS',
    'calculate_daily_returns',
    'calculate_cash_flows',
    'to_dollar_allocation',
    # Segmenter
    'RegimeSegmenter',
    'ClusterAssignment',
    'nearest_centroid',
    # Horizon Forecaster
    'HorizonForecaster',
    # Signal Scorer
    'SignalScorer',
    # Tilt Stage
    'TiltStage',
    # Normalizer
    'AllocationNormalizer',
    'uniform_allocation',
    'is_valid_allocation',
]
