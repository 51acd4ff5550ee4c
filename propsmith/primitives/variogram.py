"""Experimental variograms of gridded fields and correlogram fitting.

Used to check that simulated realizations reproduce their correlogram and
to derive a correlogram from an observed error field.
"""

import logging
from typing import Optional, Union

import numpy as np
from scipy.optimize import curve_fit
from scipy.spatial.distance import pdist

from propsmith.objects.rastergrid import RasterGrid, as_array
from propsmith.primitives.correlogram import (
    CORRELOGRAM_SHAPES,
    CorrelogramFamily,
    CorrelogramModel,
    make_correlogram,
    parse_family,
)
from propsmith.utils.random import RandomStream, as_stream

logger = logging.getLogger(__name__)


def compute_grid_variogram(
    field: Union[np.ndarray, RasterGrid],
    cell_size: Optional[float] = None,
    n_lags: int = 15,
    max_lag: Optional[float] = None,
    max_pairs: int = 200_000,
    seed: Union[None, int, RandomStream] = None,
    standardize: bool = True,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute the experimental semivariogram of a 2D field.

    Cells are subsampled when the number of cell pairs would exceed
    ``max_pairs``.

    Args:
        field: 2D array or RasterGrid. NaN cells are ignored.
        cell_size: Cell size. Defaults to the grid's cell geometry, or 1 for
            bare arrays.
        n_lags: Number of lag bins.
        max_lag: Maximum lag distance (default: half of max distance).
        max_pairs: Upper bound on the number of pairs evaluated.
        seed: Seed for the cell subsample.
        standardize: Divide by the field variance so that the semivariance of
            independent cells is 1.

    Returns:
        Tuple of (lags, semi_variance, n_pairs) for each non-empty bin.

    Raises:
        ValueError: If inputs are invalid.
    """
    values = as_array(field)
    if values.ndim != 2:
        raise ValueError(f"field must be 2D, got shape {values.shape}")
    if n_lags < 1:
        raise ValueError(f"n_lags must be >= 1, got {n_lags}")

    if isinstance(field, RasterGrid) and cell_size is None:
        coordinates = field.coordinates()
    else:
        size = 1.0 if cell_size is None else float(cell_size)
        rows, cols = np.indices(values.shape)
        coordinates = np.column_stack([cols.ravel() * size, -rows.ravel() * size])

    flat = values.ravel()
    valid = ~np.isnan(flat)
    coordinates, flat = coordinates[valid], flat[valid]
    if len(flat) < 10:
        raise ValueError(f"Need at least 10 valid cells for variogram, got {len(flat)}")

    max_points = int((1 + np.sqrt(1 + 8 * max_pairs)) / 2)
    if len(flat) > max_points:
        keep = as_stream(seed).shared_generator().choice(len(flat), max_points, replace=False)
        coordinates, flat = coordinates[keep], flat[keep]
        logger.debug(f"Variogram subsampled to {max_points} cells")

    if standardize:
        variance = np.var(flat)
        if variance == 0:
            raise ValueError("Cannot standardize a constant field")
        flat = (flat - flat.mean()) / np.sqrt(variance)

    distances = pdist(coordinates)
    semi_variance_pairs = 0.5 * pdist(flat.reshape(-1, 1)) ** 2

    if max_lag is None:
        max_lag = distances.max() / 2.0
    lag_bins = np.linspace(0, max_lag, n_lags + 1)
    lag_centers = (lag_bins[:-1] + lag_bins[1:]) / 2

    bin_index = np.digitize(distances, lag_bins) - 1
    in_range = (bin_index >= 0) & (bin_index < n_lags) & (distances > 0)
    n_pairs = np.bincount(bin_index[in_range], minlength=n_lags)
    sums = np.bincount(
        bin_index[in_range], weights=semi_variance_pairs[in_range], minlength=n_lags
    )

    filled = n_pairs > 0
    return lag_centers[filled], sums[filled] / n_pairs[filled], n_pairs[filled]


def fit_correlogram(
    lags: np.ndarray,
    semi_variances: np.ndarray,
    family: Union[str, CorrelogramFamily] = "Exp",
    initial_range: Optional[float] = None,
) -> CorrelogramModel:
    """Fit a correlogram to a standardized experimental semivariogram.

    The semivariance of a unit-variance field is ``1 - corr(h)``. Only the
    structured part of the correlogram is visible at non-zero lags, so the
    fit returns ``sill = 1`` with the unexplained short-range variance as
    nugget.

    Args:
        lags: Lag distances.
        semi_variances: Standardized experimental semivariances.
        family: Correlogram family.
        initial_range: Starting value for the range (default: half the
            largest lag).

    Returns:
        Fitted CorrelogramModel.

    Raises:
        ValueError: If fewer than 3 lag bins are given.
    """
    lags = np.asarray(lags, dtype=float)
    semi_variances = np.asarray(semi_variances, dtype=float)
    if len(lags) < 3:
        raise ValueError(f"Need at least 3 lag bins, got {len(lags)}")
    family = parse_family(family)
    shape = CORRELOGRAM_SHAPES[family]

    def model_func(h: np.ndarray, partial_sill: float, range_param: float) -> np.ndarray:
        return 1.0 - partial_sill * shape(h / range_param)

    range_guess = initial_range if initial_range is not None else lags[-1] / 2.0
    partial_guess = float(np.clip(1.0 - semi_variances[0], 0.05, 1.0))
    try:
        popt, _ = curve_fit(
            model_func,
            lags,
            semi_variances,
            p0=[partial_guess, range_guess],
            bounds=([0.0, 1e-12], [1.0, np.inf]),
        )
        partial_sill, range_param = popt
    except RuntimeError as e:
        logger.warning(f"Correlogram fit did not converge ({e}); using initial guesses")
        partial_sill, range_param = partial_guess, range_guess

    partial_sill = float(np.clip(partial_sill, 0.0, 1.0))
    model = make_correlogram(
        family, sill=1.0, range=float(range_param), nugget=1.0 - partial_sill
    )
    logger.info(f"Fitted {model}")
    return model
