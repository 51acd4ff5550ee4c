"""Performance benchmarks for the propagation runner."""

import time
from typing import Dict

import numpy as np

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.primitives.propagation import propagate
from propsmith.primitives.terrain import slope


def benchmark_propagate(
    grid_size: int = 200,
    n_realizations: int = 200,
    n_workers: int = 1,
) -> Dict[str, float]:
    """Benchmark slope propagation over a DEM ensemble.

    Args:
        grid_size: Number of rows and columns of each realization.
        n_realizations: Number of model runs.
        n_workers: Worker threads.

    Returns:
        Dictionary with timing results.
    """
    rng = np.random.default_rng(42)
    values = 100.0 + rng.standard_normal((n_realizations, grid_size, grid_size))
    ensemble = RealizationEnsemble(values=values, name="elevation", units="m")

    start = time.perf_counter()
    propagate(ensemble, slope, n_workers=n_workers, cell_size=10.0)
    total_time = time.perf_counter() - start

    return {
        "n_realizations": n_realizations,
        "n_workers": n_workers,
        "total_time_seconds": total_time,
        "runs_per_second": n_realizations / total_time,
    }


def run_all_propagation_benchmarks() -> Dict[str, Dict]:
    """Run all propagation benchmarks and return results.

    Returns:
        Dictionary with all benchmark results.
    """
    results: Dict[str, Dict] = {"worker_scaling": {}}

    print("Benchmarking propagation worker scaling...")
    for n_workers in (1, 2, 4):
        print(f"  Benchmarking {n_workers} worker(s)...")
        results["worker_scaling"][f"{n_workers}_workers"] = benchmark_propagate(
            n_workers=n_workers
        )

    return results


if __name__ == "__main__":
    """Run benchmarks and print results."""
    results = run_all_propagation_benchmarks()

    print("\n" + "=" * 60)
    print("PROPAGATION PERFORMANCE BENCHMARKS")
    print("=" * 60)
    for name, data in results["worker_scaling"].items():
        print(f"  {name:10s}: {data['total_time_seconds']:6.2f} s ({data['runs_per_second']:6.1f} runs/s)")
