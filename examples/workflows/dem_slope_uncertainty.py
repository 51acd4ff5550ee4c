"""DEM Slope Uncertainty Workflow Demo.

This demo shows how DEM elevation errors propagate into slope using:

1. Residual analysis against check points
2. Error correlogram estimation
3. Spatially correlated DEM realizations
4. Slope computed on each realization
5. Slope uncertainty and exceedance mapping

This workflow is used for:
- Landslide susceptibility screening
- Erosion and runoff modelling
- Construction suitability mapping
"""

import logging

import numpy as np

from propsmith import RasterGrid
from propsmith.config import AnalysisConfig
from propsmith.primitives.spatial_analysis import morans_i_grid
from propsmith.primitives.summary import exceedance_probability
from propsmith.primitives.terrain import slope
from propsmith.primitives.variogram import compute_grid_variogram, fit_correlogram
from propsmith.workflows.propagation import UncertaintyPropagationAnalysis


def create_synthetic_dem():
    """Create a synthetic DEM and a correlated error field for demonstration."""
    rng = np.random.default_rng(42)
    rows, cols = np.indices((60, 60))

    # Rolling terrain with a valley along the diagonal
    elevation = (
        250.0
        + 0.8 * cols
        + 15.0 * np.sin(rows / 9.0)
        - 20.0 * np.exp(-((rows - cols) ** 2) / 200.0)
    )

    # Smooth the noise with a moving average to mimic correlated DEM error
    noise = rng.standard_normal((70, 70))
    kernel = np.ones(11) / 11.0
    smooth = np.apply_along_axis(lambda r: np.convolve(r, kernel, mode="valid"), 1, noise)
    smooth = np.apply_along_axis(lambda c: np.convolve(c, kernel, mode="valid"), 0, smooth)
    residuals = 1.5 * smooth / smooth.std()

    dem = RasterGrid.from_origin(
        elevation, x_origin=5.0, y_origin=595.0, cell_size=10.0, name="elevation", units="m"
    )
    return dem, dem.with_data(residuals, name="residual")


def main():
    """Run DEM slope uncertainty workflow."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 80)
    print("DEM SLOPE UNCERTAINTY WORKFLOW")
    print("=" * 80)

    # ============================================================================
    # STEP 1: Load DEM and Residuals
    # ============================================================================
    print("\nSTEP 1: Load DEM and Residuals")
    print("-" * 80)

    dem, residuals = create_synthetic_dem()
    print(f"  DEM: {dem.shape[0]} x {dem.shape[1]} cells, {dem.cell_size[0]:.0f} m")
    print(f"  Residual sd: {np.nanstd(residuals.data):.2f} m")

    # ============================================================================
    # STEP 2: Spatial Autocorrelation of the Residuals
    # ============================================================================
    print("\nSTEP 2: Spatial Autocorrelation of the Residuals")
    print("-" * 80)

    moran_result = morans_i_grid(residuals)
    print(f"  Moran's I: {moran_result.I:.4f}")
    print(f"    Z-score: {moran_result.z_score:.2f}")
    print(f"    P-value: {moran_result.p_value:.4f}")

    # ============================================================================
    # STEP 3: Error Correlogram
    # ============================================================================
    print("\nSTEP 3: Error Correlogram")
    print("-" * 80)

    lags, semi_vars, _ = compute_grid_variogram(residuals, n_lags=15, max_lag=300.0, seed=1)
    correlogram = fit_correlogram(lags, semi_vars, family="Sph")
    print(f"  Fitted {correlogram.family.value} correlogram:")
    print(f"    Sill:   {correlogram.sill:.2f}")
    print(f"    Nugget: {correlogram.nugget:.2f}")
    print(f"    Range:  {correlogram.range:.0f} m")

    # ============================================================================
    # STEP 4: Propagate Elevation Error to Slope
    # ============================================================================
    print("\nSTEP 4: Propagate Elevation Error to Slope")
    print("-" * 80)

    config = AnalysisConfig(
        family="Sph",
        sill=correlogram.sill,
        range=correlogram.range,
        nugget=correlogram.nugget,
        n_realizations=100,
        n_runs=100,
        nmax=20,
        seed=12345,
        n_workers=4,
        quantiles=(0.05, 0.5, 0.95),
    )
    dem_sd = float(np.nanstd(residuals.data))
    analysis = UncertaintyPropagationAnalysis(dem, dem_sd, slope, config)
    result = analysis.run()
    print(f"  {result}")

    # ============================================================================
    # STEP 5: Slope Uncertainty
    # ============================================================================
    print("\nSTEP 5: Slope Uncertainty")
    print("-" * 80)

    reference = slope(dem)
    sd = result.summary["sd"].data
    print(f"  Reference slope: {np.nanmean(reference.data):.2f} degrees (mean)")
    print(f"  Ensemble mean:   {np.nanmean(result.summary['mean'].data):.2f} degrees")
    print(f"  Slope sd:        {np.nanmean(sd):.2f} degrees (mean), {np.nanmax(sd):.2f} (max)")

    steep = exceedance_probability(result.output, 15.0)
    print(f"  Cells with P(slope > 15 deg) > 0.5: {(steep.data > 0.5).sum()}")

    print("\n  Summary table (first rows):")
    print(result.table.head().to_string(index=False))


if __name__ == "__main__":
    main()
