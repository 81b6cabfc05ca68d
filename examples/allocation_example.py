"""
Example: Daily Cash Allocation for a Single Fund

Demonstrates the allocation pipeline end to end.

Workflow:
1. Derive daily returns and cash flows from a price history
2. Compute an allocation over a short horizon
3. Inspect per-day signal contributions
4. Extend a short history to a longer horizon
5. Run a small batch of independent requests

To run:
    python examples/allocation_example.py
    python examples/allocation_example.py --config configs/allocation.yaml --horizon 10
"""

import argparse
import logging

import numpy as np
import pandas as pd

from cash_allocation import (
    AllocationPipeline,
    AllocationRequest,
    DegenerateAllocationError,
    compute_allocation,
    load_pipeline_config,
    run_allocation_batch,
)
from cash_allocation.allocator import calculate_cash_flows, calculate_daily_returns


def make_market_data(n_days: int = 30, seed: int = 0):
    """Simulated fund prices, market index and fund characteristic scores."""
    rng = np.random.default_rng(seed)
    prices = 50.0 * np.cumprod(1.0 + rng.normal(0.0005, 0.015, size=n_days + 1))
    market = 4000.0 * np.cumprod(1.0 + rng.normal(0.0003, 0.01, size=n_days))
    fund = np.clip(0.75 + rng.normal(0.0, 0.08, size=n_days), 0.0, 1.0)
    return pd.Series(prices), market, fund


def example_single_allocation(config, horizon: int):
    """Basic example: allocate $10,000 over the next `horizon` days."""

    print("=" * 60)
    print(f"Example 1: Allocation over {horizon} days")
    print("=" * 60)

    prices, market, fund = make_market_data()
    returns = calculate_daily_returns(prices)
    cash_flows = calculate_cash_flows(returns, initial_investment=10000.0)

    result = AllocationPipeline(config).run(
        returns=returns,
        cash_flows=cash_flows,
        market_indices=market,
        fund_characteristics=fund,
        horizon_days=horizon,
    )

    frame = result.to_frame()
    frame["dollars"] = result.dollar_amounts(10000.0)

    print("\nPer-day allocation:")
    print(frame[["return", "cluster", "regime_signal", "contrib_score", "allocation", "dollars"]].round(4))
    print(f"\nSum of allocation: {result.allocation.sum():.6f}")
    print(f"Cluster sizes: {result.assignment.cluster_sizes.tolist()}")


def example_tilts(config):
    """Action-value and sentiment tilts on the reference four-day case."""

    print("\n" + "=" * 60)
    print("Example 2: Sentiment and action-value tilts")
    print("=" * 60)

    inputs = {
        "returns": [0.01, 0.02, -0.01, 0.03],
        "cash_flows": [100, 200, 150, 250],
        "market_indices": [1000, 1010, 1005, 1015],
        "fund_characteristics": [0.8, 0.9, 0.85, 0.95],
        "horizon_days": 4,
    }

    base = compute_allocation(config=config, **inputs)
    tilted = compute_allocation(
        config=config,
        sentiment=[0.9, 0.1, 0.1, 0.5],
        action_values=[1.0, 0.0, 0.0, 0.0],
        **inputs,
    )

    print(f"\nNo tilt:   {np.round(base, 4)}")
    print(f"With tilt: {np.round(tilted, 4)}")


def example_extension(config):
    """Forecast a five-day history out to ten days."""

    print("\n" + "=" * 60)
    print("Example 3: Horizon extension")
    print("=" * 60)

    prices, market, fund = make_market_data(n_days=5, seed=1)
    returns = calculate_daily_returns(prices)
    cash_flows = calculate_cash_flows(returns, initial_investment=10000.0)

    result = AllocationPipeline(config.with_overrides(extend_horizon=True)).run(
        returns=returns,
        cash_flows=cash_flows,
        market_indices=market,
        fund_characteristics=fund,
        horizon_days=10,
    )

    print(f"\nDays: {result.n_days} ({result.n_synthetic_days} forecast)")
    print(result.to_frame()[["return", "market_index", "synthetic", "allocation"]].round(4))


def example_batch(config):
    """Several independent requests; one of them fails."""

    print("\n" + "=" * 60)
    print("Example 4: Batch of requests")
    print("=" * 60)

    requests = []
    for seed, fund_id in enumerate(["FUND_A", "FUND_B", "FUND_C"]):
        prices, market, fund = make_market_data(n_days=20, seed=seed)
        returns = calculate_daily_returns(prices)
        requests.append(AllocationRequest(
            returns=returns.tolist(),
            cash_flows=calculate_cash_flows(returns, 10000.0).tolist(),
            market_indices=market.tolist(),
            fund_characteristics=fund.tolist(),
            horizon_days=10,
            request_id=fund_id,
        ))

    requests.append(AllocationRequest(
        returns=[-0.01, -0.02, -0.03],
        cash_flows=[100.0, 99.0, 98.0],
        market_indices=[1000.0, 990.0, 980.0],
        fund_characteristics=[0.0, 0.0, 0.0],
        horizon_days=3,
        request_id="FUND_LOSING",
    ))

    df = run_allocation_batch(requests, config=config, n_workers=2)
    print(df[["request_id", "success", "n_days", "error_type"]])


def main():
    parser = argparse.ArgumentParser(description="Cash allocation examples")
    parser.add_argument("--config", default="configs/allocation.yaml", help="Allocation config YAML")
    parser.add_argument("--horizon", type=int, default=10, help="Allocation horizon in days")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_pipeline_config(args.config)

    example_single_allocation(config, args.horizon)
    example_tilts(config)
    example_extension(config)

    try:
        compute_allocation(
            returns=[-0.01, -0.02],
            cash_flows=[100.0, 99.0],
            market_indices=[1000.0, 990.0],
            fund_characteristics=[0.0, 0.0],
            horizon_days=2,
            config=config,
        )
    except DegenerateAllocationError as e:
        print(f"\nDegenerate input rejected: {e}")

    example_batch(config)


if __name__ == "__main__":
    main()
