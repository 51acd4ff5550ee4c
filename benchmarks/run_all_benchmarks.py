"""Run all performance benchmarks and generate report."""

import json
from pathlib import Path

from benchmark_propagation import run_all_propagation_benchmarks
from benchmark_simulation import run_all_simulation_benchmarks
from benchmark_variogram import run_all_variogram_benchmarks


def main():
    """Run all benchmarks and save results."""
    print("=" * 60)
    print("PROPSMITH PERFORMANCE BENCHMARK SUITE")
    print("=" * 60)
    print()

    all_results = {}

    print("\n[1/3] Variogram Benchmarks")
    print("-" * 60)
    all_results["variogram"] = run_all_variogram_benchmarks()

    print("\n[2/3] Sampling Benchmarks")
    print("-" * 60)
    all_results["simulation"] = run_all_simulation_benchmarks()

    print("\n[3/3] Propagation Benchmarks")
    print("-" * 60)
    all_results["propagation"] = run_all_propagation_benchmarks()

    output_file = Path("benchmarks/results.json")
    output_file.parent.mkdir(exist_ok=True)

    # Convert numpy types to native Python types for JSON serialization
    def convert_to_native(obj):
        """Convert numpy types to native Python types."""
        if isinstance(obj, dict):
            return {k: convert_to_native(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_to_native(item) for item in obj]
        elif hasattr(obj, "item"):  # numpy scalar
            return obj.item()
        else:
            return obj

    with open(output_file, "w") as f:
        json.dump(convert_to_native(all_results), f, indent=2)

    print(f"\nResults saved to {output_file}")

    print("\n" + "=" * 60)
    print("BENCHMARK SUMMARY")
    print("=" * 60)

    var_results = all_results["variogram"]["variogram_scalability"]
    print("\nGrid Variogram:")
    print(f"  Small (20x20):    {var_results['small']['total_time_seconds']*1000:6.2f} ms")
    print(f"  Large (300x300):  {var_results['xlarge']['total_time_seconds']*1000:6.2f} ms")

    sim_results = all_results["simulation"]["sampling_scalability"]
    print("\nSpatially Correlated Sampling:")
    print(f"  Small SGS (20x20, 20 realizations):  {sim_results['small_sgs']['total_time_seconds']:6.2f} s")
    print(f"  Large SGS (100x100, 5 realizations): {sim_results['large_sgs']['total_time_seconds']:6.2f} s")

    prop_results = all_results["propagation"]["worker_scaling"]
    print("\nSlope Propagation (200 realizations):")
    for workers, data in prop_results.items():
        print(f"  {workers}: {data['total_time_seconds']:6.2f} s")

    print("\nAll benchmarks completed successfully!")


if __name__ == "__main__":
    main()
