"""
cash_allocation: per-day cash allocation over a short horizon.

Blends historical returns, k-means regimes, market and fund signals, and
external action-value and sentiment tilts into a non-negative allocation
vector summing to one.
"""

from .pipeline import AllocationPipeline, AllocationResult, compute_allocation
from .batch import AllocationRequest, run_allocation_batch
from .config import PipelineConfig, ScorerWeights, SegmenterConfig, ForecastConfig, load_pipeline_config
from .errors import (
    AllocationError,
    InputValidationError,
    InsufficientDataError,
    ClusteringError,
    NonFiniteValueError,
    DegenerateAllocationError,
)

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "compute_allocation",
    "AllocationPipeline",
    "AllocationResult",
    # Batch
    "AllocationRequest",
    "run_allocation_batch",
    # Config
    "PipelineConfig",
    "ScorerWeights",
    "SegmenterConfig",
    "ForecastConfig",
    "load_pipeline_config",
    # Errors
    "AllocationError",
    "InputValidationError",
    "InsufficientDataError",
    "ClusteringError",
    "NonFiniteValueError",
    "DegenerateAllocationError",
]
