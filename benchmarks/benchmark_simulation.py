"""Performance benchmarks for realization sampling."""

import time
from typing import Dict

import numpy as np

from propsmith import RasterGrid
from propsmith.primitives.correlogram import make_correlogram
from propsmith.primitives.sampling import gen_sample
from propsmith.primitives.uncertainty import define_um


def benchmark_gen_sample(
    grid_size: int = 30,
    n_realizations: int = 10,
    method: str = "ugs",
    simulation_method: str = "auto",
) -> Dict[str, float]:
    """Benchmark spatially correlated sampling on a square grid.

    Args:
        grid_size: Number of rows and columns of the grid.
        n_realizations: Number of realizations to generate.
        method: Sampling method passed to gen_sample.
        simulation_method: Gaussian field engine for 'ugs'.

    Returns:
        Dictionary with timing results.
    """
    template = RasterGrid.from_origin(
        np.zeros((grid_size, grid_size)), 0.0, 10.0 * (grid_size - 1), 10.0
    )
    mean = template.with_data(np.full(template.shape, 100.0))
    crm = make_correlogram("Sph", sill=0.9, range=100.0)
    um = define_um(True, "norm", [mean, 2.0], crm if method == "ugs" else None)

    start = time.perf_counter()
    gen_sample(
        um,
        n_realizations,
        method,
        nmax=16,
        seed=42,
        simulation_method=simulation_method,
    )
    total_time = time.perf_counter() - start

    n_cells = grid_size * grid_size
    return {
        "n_cells": n_cells,
        "n_realizations": n_realizations,
        "total_time_seconds": total_time,
        "time_per_realization": total_time / n_realizations,
        "cells_per_second": (n_cells * n_realizations) / total_time,
    }


def benchmark_sampling_scalability() -> Dict[str, Dict[str, float]]:
    """Benchmark sampling across different grid sizes and engines.

    Returns:
        Dictionary with results for different sizes.
    """
    results = {}

    configs = [
        ("small_cholesky", 20, 20, "cholesky"),
        ("small_sgs", 20, 20, "sgs"),
        ("medium_sgs", 50, 10, "sgs"),
        ("large_sgs", 100, 5, "sgs"),
    ]

    for size_name, grid_size, n_realizations, engine in configs:
        print(f"  Benchmarking {size_name} ({grid_size}x{grid_size} grid, {n_realizations} realizations)...")
        results[size_name] = benchmark_gen_sample(
            grid_size=grid_size,
            n_realizations=n_realizations,
            simulation_method=engine,
        )

    print("  Benchmarking uncorrelated baseline (100x100 grid, 100 realizations)...")
    results["random_baseline"] = benchmark_gen_sample(
        grid_size=100, n_realizations=100, method="random"
    )
    return results


def run_all_simulation_benchmarks() -> Dict[str, Dict]:
    """Run all simulation benchmarks and return results.

    Returns:
        Dictionary with all benchmark results.
    """
    results = {}

    print("Benchmarking realization sampling scalability...")
    results["sampling_scalability"] = benchmark_sampling_scalability()

    return results


if __name__ == "__main__":
    """Run benchmarks and print results."""
    results = run_all_simulation_benchmarks()

    print("\n" + "=" * 60)
    print("SAMPLING PERFORMANCE BENCHMARKS")
    print("=" * 60)

    print("\nRealization Sampling Scalability:")
    for size, data in results["sampling_scalability"].items():
        print(f"  {size:16s}: {data['n_cells']:6d} cells, {data['n_realizations']:3d} realizations")
        print(f"            Total time: {data['total_time_seconds']:6.2f} s")
        print(f"            Time per realization: {data['time_per_realization']:6.3f} s")
        print(f"            Throughput: {data['cells_per_second']:8.0f} cells/s")
