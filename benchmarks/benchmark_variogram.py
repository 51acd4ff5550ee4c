"""Performance benchmarks for grid variogram computation."""

import time
from typing import Dict

import numpy as np

from propsmith.primitives.variogram import compute_grid_variogram, fit_correlogram


def benchmark_variogram_computation(
    grid_size: int = 100,
    n_lags: int = 15,
    max_pairs: int = 200_000,
) -> Dict[str, float]:
    """Benchmark experimental variogram computation on a residual grid.

    Args:
        grid_size: Number of rows and columns of the grid.
        n_lags: Number of lag bins.
        max_pairs: Pair cap before subsampling.

    Returns:
        Dictionary with timing results.
    """
    rng = np.random.default_rng(42)
    rows, cols = np.indices((grid_size, grid_size))
    field = np.sin(rows / 7.0) + np.cos(cols / 11.0) + 0.3 * rng.standard_normal(rows.shape)

    start = time.perf_counter()
    lags, semi_vars, n_pairs = compute_grid_variogram(
        field, cell_size=10.0, n_lags=n_lags, max_pairs=max_pairs, seed=42
    )
    compute_time = time.perf_counter() - start

    start = time.perf_counter()
    fit_correlogram(lags, semi_vars, family="Sph")
    fit_time = time.perf_counter() - start

    return {
        "n_cells": grid_size * grid_size,
        "n_lags": n_lags,
        "compute_time_seconds": compute_time,
        "fit_time_seconds": fit_time,
        "total_time_seconds": compute_time + fit_time,
        "pairs_used": int(n_pairs.sum()),
    }


def benchmark_variogram_scalability() -> Dict[str, Dict[str, float]]:
    """Benchmark variogram computation across different grid sizes.

    Returns:
        Dictionary with results for different sizes.
    """
    results = {}

    sizes = [
        ("small", 20),
        ("medium", 50),
        ("large", 100),
        ("xlarge", 300),
    ]

    for size_name, grid_size in sizes:
        print(f"  Benchmarking {size_name} ({grid_size}x{grid_size} grid)...")
        results[size_name] = benchmark_variogram_computation(grid_size=grid_size)

    return results


def run_all_variogram_benchmarks() -> Dict[str, Dict]:
    """Run all variogram benchmarks and return results.

    Returns:
        Dictionary with all benchmark results.
    """
    results = {}

    print("Benchmarking grid variogram scalability...")
    results["variogram_scalability"] = benchmark_variogram_scalability()

    return results


if __name__ == "__main__":
    """Run benchmarks and print results."""
    results = run_all_variogram_benchmarks()

    print("\n" + "=" * 60)
    print("VARIOGRAM PERFORMANCE BENCHMARKS")
    print("=" * 60)

    for size, data in results["variogram_scalability"].items():
        print(f"  {size:8s}: {data['n_cells']:6d} cells, {data['pairs_used']:7d} pairs")
        print(f"            Compute: {data['compute_time_seconds']*1000:8.2f} ms")
        print(f"            Fit:     {data['fit_time_seconds']*1000:8.2f} ms")
