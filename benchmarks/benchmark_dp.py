"""
Smoothed DP Benchmark

Times forward + backward DTW and Needleman-Wunsch for every max operator
across a few lattice sizes.

Usage:
    python benchmarks/benchmark_dp.py

Output:
    - Console table with results
    - JSON file: benchmarks/results/dp_benchmark_{timestamp}.json
"""
from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from smoothdp import EntropyMax, HardMax, LeakyMax, SquaredMax, dtw_grad, needleman_wunsch_grad
from smoothdp.core.math_utils import pairwise_sq_euclidean

OPERATORS = [HardMax(), LeakyMax(0.1), EntropyMax(1.0), SquaredMax(1.0)]


def generate_random_series(n: int, d: int = 8, seed: int = 0) -> np.ndarray:
    """Generate a random walk of n d-dimensional points."""
    rng = np.random.default_rng(seed)
    return np.cumsum(rng.normal(size=(n, d)), axis=0)


def time_runs(fn, runs: int = 3) -> dict:
    times = []
    value = float("nan")
    for _ in range(runs):
        start = time.perf_counter()
        value = fn().value
        times.append(time.perf_counter() - start)

    return {
        "mean_sec": float(np.mean(times)),
        "std_sec": float(np.std(times)),
        "min_sec": float(np.min(times)),
        "value": value,
    }


def run_benchmark_suite(runs: int = 3) -> dict:
    """Run the DTW and Needleman-Wunsch benchmark suite."""
    print("=" * 80)
    print("Smoothed DP Benchmark")
    print("=" * 80)

    sizes = [(20, 20, "Small (20x20)"), (50, 50, "Medium (50x50)"), (100, 80, "Large (100x80)")]

    results = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "test_cases": [],
    }

    for n, m, label in sizes:
        print(f"\n{label}")
        print("-" * 80)
        theta = pairwise_sq_euclidean(generate_random_series(n, seed=1), generate_random_series(m, seed=2))
        similarity = -theta / theta.max()

        for op in OPERATORS:
            dtw_result = time_runs(lambda: dtw_grad(op, theta), runs)
            nw_result = time_runs(lambda: needleman_wunsch_grad(op, similarity, 0.1), runs)
            print(
                f"  {op!r:<28} DTW {dtw_result['mean_sec']:.3f}s ± {dtw_result['std_sec']:.3f}s"
                f"   NW {nw_result['mean_sec']:.3f}s ± {nw_result['std_sec']:.3f}s"
            )
            results["test_cases"].append({
                "label": label,
                "n": n,
                "m": m,
                "operator": repr(op),
                "dtw": dtw_result,
                "nw": nw_result,
            })

    output_dir = Path(__file__).parent / "results"
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    output_file = output_dir / f"dp_benchmark_{timestamp}.json"

    with output_file.open("w") as f:
        json.dump(results, f, indent=2)

    print("\n" + "=" * 80)
    print(f"Results saved to: {output_file}")
    print("=" * 80)

    return results


if __name__ == "__main__":
    run_benchmark_suite()
