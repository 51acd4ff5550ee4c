"""Correlogram models.

A correlogram maps separation distance to the expected correlation between
two cells of a standardized spatial variable. Models are immutable and are
consumed by the spatially-correlated sampler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np
from scipy.spatial.distance import cdist

from propsmith.utils.errors import raise_parameter_error


class CorrelogramFamily(str, Enum):
    """Supported correlogram shapes."""

    EXPONENTIAL = "Exp"
    SPHERICAL = "Sph"
    LINEAR = "Lin"
    GAUSSIAN = "Gau"


_FAMILY_ALIASES: dict[str, CorrelogramFamily] = {
    "exp": CorrelogramFamily.EXPONENTIAL,
    "exponential": CorrelogramFamily.EXPONENTIAL,
    "sph": CorrelogramFamily.SPHERICAL,
    "spherical": CorrelogramFamily.SPHERICAL,
    "lin": CorrelogramFamily.LINEAR,
    "linear": CorrelogramFamily.LINEAR,
    "gau": CorrelogramFamily.GAUSSIAN,
    "gaussian": CorrelogramFamily.GAUSSIAN,
}


def parse_family(family: "str | CorrelogramFamily") -> CorrelogramFamily:
    """Resolve a family tag or alias ('Exp', 'exponential', ...)."""
    if isinstance(family, CorrelogramFamily):
        return family
    key = str(family).strip().lower()
    if key not in _FAMILY_ALIASES:
        raise_parameter_error(
            "family",
            family,
            valid_values=[f.value for f in CorrelogramFamily],
        )
    return _FAMILY_ALIASES[key]


def _exponential_shape(h: np.ndarray) -> np.ndarray:
    return np.exp(-h)


def _spherical_shape(h: np.ndarray) -> np.ndarray:
    rho = np.zeros_like(h, dtype=float)
    mask = h < 1.0
    rho[mask] = 1.0 - 1.5 * h[mask] + 0.5 * h[mask] ** 3
    return rho


def _linear_shape(h: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, 1.0 - h)


def _gaussian_shape(h: np.ndarray) -> np.ndarray:
    return np.exp(-(h**2))


# Unit-sill shapes as a function of d / range
CORRELOGRAM_SHAPES: dict[CorrelogramFamily, Callable[[np.ndarray], np.ndarray]] = {
    CorrelogramFamily.EXPONENTIAL: _exponential_shape,
    CorrelogramFamily.SPHERICAL: _spherical_shape,
    CorrelogramFamily.LINEAR: _linear_shape,
    CorrelogramFamily.GAUSSIAN: _gaussian_shape,
}


@dataclass(frozen=True)
class CorrelogramModel:
    """Parametric spatial autocorrelation function.

    Attributes:
        family: Correlogram shape.
        sill: Short-range correlation, the value approached as distance goes
            to zero (0 <= sill <= 1).
        range: Distance scale of the decay (> 0). For spherical and linear
            shapes correlation is exactly zero beyond it.
        nugget: Part of the sill lost at any non-zero distance
            (0 <= nugget <= sill).
    """

    family: CorrelogramFamily
    sill: float
    range: float
    nugget: float = 0.0

    def __post_init__(self) -> None:
        """Validate CorrelogramModel parameters."""
        object.__setattr__(self, "family", parse_family(self.family))
        for attr in ("sill", "range", "nugget"):
            value = getattr(self, attr)
            if not np.isfinite(value):
                raise_parameter_error(attr, value, constraint="must be finite")
            object.__setattr__(self, attr, float(value))
        if not 0.0 <= self.sill <= 1.0:
            raise_parameter_error("sill", self.sill, constraint="0 <= sill <= 1")
        if self.range <= 0:
            raise_parameter_error("range", self.range, constraint="range > 0")
        if not 0.0 <= self.nugget <= self.sill:
            raise_parameter_error(
                "nugget", self.nugget, constraint=f"0 <= nugget <= sill ({self.sill})"
            )

    @property
    def partial_sill(self) -> float:
        """Structured (spatially correlated) part of the sill."""
        return self.sill - self.nugget

    def correlation(self, distance: "np.ndarray | float") -> np.ndarray:
        """Correlation at separation ``distance`` (>= 0)."""
        return correlation(self, distance)

    def __repr__(self) -> str:
        """String representation."""
        nugget_str = f", nugget={self.nugget:.4f}" if self.nugget else ""
        return (
            f"CorrelogramModel(family={self.family.value}, sill={self.sill:.4f}, "
            f"range={self.range:.4f}{nugget_str})"
        )


def make_correlogram(
    family: "str | CorrelogramFamily" = "Exp",
    sill: float = 1.0,
    range: float = 1.0,
    nugget: float = 0.0,
) -> CorrelogramModel:
    """Build a correlogram model.

    Args:
        family: 'Exp', 'Sph', 'Lin' or 'Gau' (full names accepted).
        sill: Short-range correlation in [0, 1].
        range: Correlation distance (> 0).
        nugget: Uncorrelated share of the sill at non-zero distance.

    Returns:
        Immutable CorrelogramModel.

    Raises:
        InvalidParameterError: If the family is unknown or a value is out of range.

    Example:
        >>> crm = make_correlogram("Exp", sill=0.8, range=300)
        >>> float(crm.correlation(0.0))
        0.8
    """
    return CorrelogramModel(family=family, sill=sill, range=range, nugget=nugget)


def correlation(model: CorrelogramModel, distance: "np.ndarray | float") -> np.ndarray:
    """Evaluate a correlogram at the given separation distances.

    Args:
        model: Correlogram model.
        distance: Distances (>= 0), scalar or array.

    Returns:
        Correlation values in [0, 1], same shape as ``distance``.
    """
    d = np.asarray(distance, dtype=float)
    if np.any(d < 0):
        raise_parameter_error("distance", "negative", constraint="distance >= 0")
    rho = model.partial_sill * CORRELOGRAM_SHAPES[model.family](d / model.range)
    return np.where(d == 0, model.sill, rho)


def covariance_matrix(
    model: CorrelogramModel,
    coords_a: np.ndarray,
    coords_b: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Covariance between point sets for a unit-variance field.

    Coincident points have covariance 1; any other pair gets the
    correlogram value, so a sill below one acts as a nugget.

    Args:
        model: Correlogram model.
        coords_a: Coordinates (n_a, n_dims).
        coords_b: Coordinates (n_b, n_dims). Defaults to ``coords_a``.

    Returns:
        Covariance matrix (n_a, n_b).
    """
    coords_a = np.atleast_2d(np.asarray(coords_a, dtype=float))
    coords_b = coords_a if coords_b is None else np.atleast_2d(np.asarray(coords_b, dtype=float))
    distances = cdist(coords_a, coords_b)
    cov = model.partial_sill * CORRELOGRAM_SHAPES[model.family](distances / model.range)
    cov[distances == 0] = 1.0
    return cov
