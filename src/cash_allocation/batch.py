"""
Batch allocation runner.

Independent requests (different funds, different horizons) share no state,
so they can be dispatched to a process pool with no ordering requirement.
Each request yields one result row; failures are captured per row with the
error type so one bad request does not abort the batch.
"""

import logging
from dataclasses import dataclass
from multiprocessing import Pool, cpu_count
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config.pipeline_config import PipelineConfig
from .errors import AllocationError
from .pipeline import AllocationPipeline

logger = logging.getLogger(__name__)


@dataclass
class AllocationRequest:
    """Inputs for one compute_allocation call."""

    returns: Sequence[float]
    cash_flows: Sequence[float]
    market_indices: Sequence[float]
    fund_characteristics: Sequence[float]
    horizon_days: int
    sentiment: Optional[Sequence[float]] = None
    action_values: Optional[Sequence[float]] = None
    k_clusters: Optional[int] = None
    request_id: Optional[str] = None


def _run_single_allocation(args) -> Dict[str, Any]:
    """
    Run one allocation request.

    This function is designed to be called by multiprocessing.Pool.

    Args:
        args: Tuple of (position, request, config)

    Returns:
        Dict with request_id, success flag, allocation or error details
    """
    position, request, config = args
    request_id = request.request_id if request.request_id is not None else str(position)

    row = {
        "request_id": request_id,
        "success": False,
        "allocation": None,
        "n_days": 0,
        "used_fallback": False,
        "error_type": None,
        "error": None,
    }

    try:
        result = AllocationPipeline(config).run(
            request.returns,
            request.cash_flows,
            request.market_indices,
            request.fund_characteristics,
            request.horizon_days,
            sentiment=request.sentiment,
            action_values=request.action_values,
            k_clusters=request.k_clusters,
        )
    except AllocationError as e:
        row["error_type"] = type(e).__name__
        row["error"] = str(e)
        return row

    row.update({
        "success": True,
        "allocation": result.allocation.tolist(),
        "n_days": result.n_days,
        "used_fallback": result.used_fallback,
    })
    return row


def run_allocation_batch(
    requests: List[AllocationRequest],
    config: Optional[PipelineConfig] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Compute allocations for many independent requests.

    Args:
        requests: Allocation requests
        config: PipelineConfig shared by every request (defaults if None)
        n_workers: Process count (default: cpu_count() - 1). 1 runs serially.

    Returns:
        DataFrame with one row per request, in request order:
        request_id, success, allocation, n_days, used_fallback, error_type, error
    """
    config = config or PipelineConfig()

    if n_workers is None:
        n_workers = max(1, cpu_count() - 1)
    n_workers = max(1, min(n_workers, len(requests)))

    logger.info(f"[AllocationBatch] Running {len(requests)} requests on {n_workers} worker(s)")

    tasks = [(i, request, config) for i, request in enumerate(requests)]

    if n_workers > 1:
        with Pool(processes=n_workers) as pool:
            results = pool.map(_run_single_allocation, tasks)
    else:
        # Serial execution for debugging
        results = [_run_single_allocation(task) for task in tasks]

    df = pd.DataFrame(
        results,
        columns=["request_id", "success", "allocation", "n_days", "used_fallback", "error_type", "error"],
    )

    n_success = int(df["success"].sum()) if len(df) else 0
    logger.info(f"[AllocationBatch] Completed: {n_success} successful, {len(df) - n_success} failed")

    for _, failed in df[~df["success"].astype(bool)].iterrows():
        logger.warning(f"[AllocationBatch] Request {failed['request_id']} failed: {failed['error_type']}: {failed['error']}")

    return df
