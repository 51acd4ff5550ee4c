"""Ensemble summary statistics.

Cell-wise statistics across the realization axis of an ensemble: mean,
standard deviation, quantiles, exceedance probabilities and, for categorical
ensembles, category frequencies.
"""

import logging
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid
from propsmith.utils.errors import InvalidCountError, raise_parameter_error

logger = logging.getLogger(__name__)

EnsembleLike = Union[RealizationEnsemble, np.ndarray, Sequence]


def _stack(ensemble: EnsembleLike) -> np.ndarray:
    if isinstance(ensemble, RealizationEnsemble):
        values = ensemble.values
    else:
        values = np.asarray(
            [r.data if isinstance(r, RasterGrid) else r for r in ensemble]
        )
    if values.ndim < 1 or values.shape[0] < 1:
        raise InvalidCountError("Cannot summarize an empty ensemble")
    return np.asarray(values, dtype=float)


def _wrap(ensemble: EnsembleLike, stat: np.ndarray, name: str) -> Union[np.ndarray, RasterGrid]:
    """Return a grid when the ensemble carries one, else the bare array."""
    if (
        isinstance(ensemble, RealizationEnsemble)
        and ensemble.template is not None
        and stat.shape == ensemble.template.shape
    ):
        label = f"{ensemble.name}_{name}" if ensemble.name else name
        return ensemble.template.with_data(stat, name=label, units=ensemble.units)
    return stat


def ensemble_mean(ensemble: EnsembleLike, ignore_missing: bool = False):
    """Cell-wise mean across realizations."""
    values = _stack(ensemble)
    stat = np.nanmean(values, axis=0) if ignore_missing else values.mean(axis=0)
    return _wrap(ensemble, stat, "mean")


def ensemble_std(ensemble: EnsembleLike, ignore_missing: bool = False):
    """Cell-wise sample standard deviation (ddof=1) across realizations.

    A single-realization ensemble yields NaN everywhere.
    """
    values = _stack(ensemble)
    if values.shape[0] < 2:
        stat = np.full(values.shape[1:], np.nan)
    elif ignore_missing:
        stat = np.nanstd(values, axis=0, ddof=1)
    else:
        stat = values.std(axis=0, ddof=1)
    return _wrap(ensemble, stat, "sd")


def _check_probability(p: float) -> float:
    p = float(p)
    if not 0.0 < p < 1.0:
        raise_parameter_error("p", p, constraint="0 < p < 1")
    return p


def ensemble_quantile(ensemble: EnsembleLike, p: float, ignore_missing: bool = False):
    """Cell-wise empirical quantile across realizations.

    Uses linear interpolation between order statistics, so ``p=0.5`` equals
    the median and repeating the call gives the same grid.

    Args:
        ensemble: Ensemble or stack of realizations.
        p: Probability in (0, 1), or a sequence of probabilities.
        ignore_missing: Skip NaN cells when computing the quantile.

    Returns:
        One grid (or array) for a scalar ``p``; a list of them, in order,
        for a sequence.

    Raises:
        InvalidParameterError: If any ``p`` is outside (0, 1).
    """
    if np.ndim(p) > 0:
        return [ensemble_quantile(ensemble, q, ignore_missing) for q in p]
    p = _check_probability(p)
    values = _stack(ensemble)
    func = np.nanquantile if ignore_missing else np.quantile
    stat = func(values, p, axis=0, method="linear")
    return _wrap(ensemble, stat, f"q{p:g}")


def exceedance_probability(ensemble: EnsembleLike, threshold: float, ignore_missing: bool = False):
    """Cell-wise fraction of realizations strictly above ``threshold``.

    Missing values propagate as NaN unless ``ignore_missing`` is set, in
    which case they are left out of the denominator.
    """
    values = _stack(ensemble)
    above = (values > threshold).astype(float)
    above[np.isnan(values)] = np.nan
    func = np.nanmean if ignore_missing else np.mean
    stat = func(above, axis=0)
    return _wrap(ensemble, stat, f"p_gt_{threshold:g}")


def category_frequencies(ensemble: RealizationEnsemble) -> dict:
    """Cell-wise relative frequency of each category.

    Returns:
        Mapping category label -> frequency grid (or array).
    """
    if not ensemble.is_categorical:
        raise ValueError("category_frequencies requires a categorical ensemble")
    codes = ensemble.values
    return {
        label: _wrap(ensemble, (codes == k).mean(axis=0), str(label))
        for k, label in enumerate(ensemble.categories)
    }


def category_mode(ensemble: RealizationEnsemble):
    """Most frequent category code per cell (lowest code on ties)."""
    if not ensemble.is_categorical:
        raise ValueError("category_mode requires a categorical ensemble")
    counts = np.stack(
        [(ensemble.values == k).sum(axis=0) for k in range(len(ensemble.categories))]
    )
    return _wrap(ensemble, np.argmax(counts, axis=0), "mode")


def summarize(
    ensemble: RealizationEnsemble,
    quantiles: Sequence[float] = (0.025, 0.5, 0.975),
    ignore_missing: bool = False,
) -> pd.DataFrame:
    """Tabulate per-cell statistics.

    Args:
        ensemble: Numeric ensemble. Spatial ensembles get one row per cell
            with row/col indices and cell-center coordinates.
        quantiles: Probabilities to tabulate, each in (0, 1).
        ignore_missing: Skip NaN values.

    Returns:
        DataFrame with columns mean, sd and one ``q<p>`` column per quantile,
        preceded by row, col, x, y for spatial ensembles.

    Example:
        >>> table = summarize(slope_ensemble, quantiles=(0.1, 0.9))
        >>> table.columns.tolist()
        ['row', 'col', 'x', 'y', 'mean', 'sd', 'q0.1', 'q0.9']
    """
    probabilities = [_check_probability(p) for p in quantiles]
    values = _stack(ensemble)

    def flat(stat) -> np.ndarray:
        data = stat.data if isinstance(stat, RasterGrid) else np.asarray(stat)
        return data.ravel()

    columns: dict[str, np.ndarray] = {}
    template = getattr(ensemble, "template", None)
    if template is not None and values.shape[1:] == template.shape:
        rows, cols = np.indices(template.shape)
        xy = template.coordinates()
        columns["row"] = rows.ravel()
        columns["col"] = cols.ravel()
        columns["x"] = xy[:, 0]
        columns["y"] = xy[:, 1]

    columns["mean"] = flat(ensemble_mean(ensemble, ignore_missing))
    columns["sd"] = flat(ensemble_std(ensemble, ignore_missing))
    for p in probabilities:
        columns[f"q{p:g}"] = flat(ensemble_quantile(ensemble, p, ignore_missing))

    table = pd.DataFrame(columns)
    logger.debug(f"Summarized {values.shape[0]} realizations into {len(table)} rows")
    return table
