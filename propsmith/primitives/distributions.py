"""Marginal distributions for uncertain variables.

Each distribution is described by an ordered list of named parameters and a
factory that builds the matching scipy.stats frozen distribution. Parameters
may be scalars or grids; everything broadcasts cell by cell.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy import special, stats

from propsmith.utils.errors import raise_parameter_error


@dataclass(frozen=True)
class DistributionSpec:
    """Registry entry for a marginal distribution.

    Attributes:
        tag: Short distribution tag ('norm', 'lnorm', ...).
        parameters: Parameter names in positional order.
        factory: Builds a scipy frozen distribution from parameter arrays.
        positive: Parameters that must be strictly positive.
        non_negative: Parameters that must be >= 0.
        location: Parameter holding the central value (used when the
            variable is declared certain).
    """

    tag: str
    parameters: tuple[str, ...]
    factory: Callable[..., "stats.rv_continuous"]
    positive: tuple[str, ...] = ()
    non_negative: tuple[str, ...] = ()
    location: Optional[str] = None


DISTRIBUTIONS: dict[str, DistributionSpec] = {
    "norm": DistributionSpec(
        tag="norm",
        parameters=("mean", "sd"),
        factory=lambda mean, sd: stats.norm(loc=mean, scale=sd),
        non_negative=("sd",),
        location="mean",
    ),
    "lnorm": DistributionSpec(
        tag="lnorm",
        parameters=("meanlog", "sdlog"),
        factory=lambda meanlog, sdlog: stats.lognorm(s=sdlog, scale=np.exp(meanlog)),
        non_negative=("sdlog",),
        location="meanlog",
    ),
    "unif": DistributionSpec(
        tag="unif",
        parameters=("min", "max"),
        factory=lambda lo, hi: stats.uniform(loc=lo, scale=np.asarray(hi) - lo),
    ),
    "gamma": DistributionSpec(
        tag="gamma",
        parameters=("shape", "rate"),
        factory=lambda shape, rate: stats.gamma(a=shape, scale=1.0 / np.asarray(rate)),
        positive=("shape", "rate"),
    ),
    "beta": DistributionSpec(
        tag="beta",
        parameters=("shape1", "shape2"),
        factory=lambda a, b: stats.beta(a=a, b=b),
        positive=("shape1", "shape2"),
    ),
    "exp": DistributionSpec(
        tag="exp",
        parameters=("rate",),
        factory=lambda rate: stats.expon(scale=1.0 / np.asarray(rate)),
        positive=("rate",),
    ),
    "t": DistributionSpec(
        tag="t",
        parameters=("df",),
        factory=lambda df: stats.t(df=df),
        positive=("df",),
    ),
    "logis": DistributionSpec(
        tag="logis",
        parameters=("location", "scale"),
        factory=lambda loc, scale: stats.logistic(loc=loc, scale=scale),
        positive=("scale",),
        location="location",
    ),
    "weibull": DistributionSpec(
        tag="weibull",
        parameters=("shape", "scale"),
        factory=lambda shape, scale: stats.weibull_min(c=shape, scale=scale),
        positive=("shape", "scale"),
    ),
}

_DISTRIBUTION_ALIASES = {
    "normal": "norm",
    "gaussian": "norm",
    "lognormal": "lnorm",
    "uniform": "unif",
    "exponential": "exp",
    "logistic": "logis",
}

# Distributions with a known spatially-correlated sampling procedure
SPATIALLY_CORRELATED_DISTRIBUTIONS = frozenset({"norm", "lnorm"})


def get_distribution(distribution: str) -> DistributionSpec:
    """Look up a distribution by tag or alias."""
    key = str(distribution).strip().lower()
    key = _DISTRIBUTION_ALIASES.get(key, key)
    if key not in DISTRIBUTIONS:
        raise_parameter_error(
            "distribution", distribution, valid_values=list(DISTRIBUTIONS)
        )
    return DISTRIBUTIONS[key]


def validate_parameters(spec: DistributionSpec, params: dict[str, np.ndarray]) -> None:
    """Check parameter domains cell by cell (NaN cells are skipped)."""
    for name in spec.positive:
        values = np.asarray(params[name], dtype=float)
        if np.any(values[~np.isnan(values)] <= 0):
            raise_parameter_error(name, "non-positive values", constraint=f"{name} > 0")
    for name in spec.non_negative:
        values = np.asarray(params[name], dtype=float)
        if np.any(values[~np.isnan(values)] < 0):
            raise_parameter_error(name, "negative values", constraint=f"{name} >= 0")
    if spec.tag == "unif":
        lo = np.asarray(params["min"], dtype=float)
        hi = np.asarray(params["max"], dtype=float)
        with np.errstate(invalid="ignore"):
            if np.any(hi - lo <= 0):
                raise_parameter_error("max", "<= min", constraint="max > min")


def freeze(spec: DistributionSpec, params: dict[str, np.ndarray]):
    """Frozen scipy distribution with broadcast parameters."""
    return spec.factory(*(np.asarray(params[p], dtype=float) for p in spec.parameters))


def from_standard_normal(
    spec: DistributionSpec, params: dict[str, np.ndarray], z: np.ndarray
) -> np.ndarray:
    """Map standard-normal deviates onto the marginal distribution.

    Normal and lognormal use the closed form, which stays valid for a zero
    standard deviation; other distributions go through the quantile function.
    """
    if spec.tag == "norm":
        return np.asarray(params["mean"], dtype=float) + np.asarray(params["sd"], dtype=float) * z
    if spec.tag == "lnorm":
        return np.exp(
            np.asarray(params["meanlog"], dtype=float)
            + np.asarray(params["sdlog"], dtype=float) * z
        )
    return freeze(spec, params).ppf(special.ndtr(z))


def quantile(
    spec: DistributionSpec, params: dict[str, np.ndarray], u: np.ndarray
) -> np.ndarray:
    """Quantile function of the marginal at probabilities ``u``."""
    if spec.tag in ("norm", "lnorm"):
        return from_standard_normal(spec, params, special.ndtri(u))
    return freeze(spec, params).ppf(u)
