"""Layer 2: Primitives - Algorithm interfaces and pure operations.

Correlograms, uncertainty models, samplers, the propagation runner and
ensemble summaries. Imports numpy, scipy and pandas. No file I/O or plotting.
"""

from propsmith.primitives.correlogram import (
    CORRELOGRAM_SHAPES,
    CorrelogramFamily,
    CorrelogramModel,
    correlation,
    covariance_matrix,
    make_correlogram,
    parse_family,
)
from propsmith.primitives.distributions import (
    DISTRIBUTIONS,
    SPATIALLY_CORRELATED_DISTRIBUTIONS,
    DistributionSpec,
    freeze,
    get_distribution,
)
from propsmith.primitives.uncertainty import (
    ModelKind,
    UncertaintyModel,
    define_categorical_um,
    define_mum,
    define_um,
)
from propsmith.primitives.simulation import (
    CHOLESKY_MAX_NODES,
    SGSPlan,
    plan_sgs,
    simulate_gaussian_field,
)
from propsmith.primitives.sampling import SAMPLERS, gen_sample, parse_method
from propsmith.primitives.propagation import PropagationResult, propagate
from propsmith.primitives.summary import (
    category_frequencies,
    category_mode,
    ensemble_mean,
    ensemble_quantile,
    ensemble_std,
    exceedance_probability,
    summarize,
)
from propsmith.primitives.spatial_analysis import MoranResult, morans_i_grid
from propsmith.primitives.terrain import aspect, horn_gradient, slope
from propsmith.primitives.variogram import compute_grid_variogram, fit_correlogram

__all__ = [
    # Correlograms
    "CORRELOGRAM_SHAPES",
    "CorrelogramFamily",
    "CorrelogramModel",
    "correlation",
    "covariance_matrix",
    "make_correlogram",
    "parse_family",
    # Distributions
    "DISTRIBUTIONS",
    "SPATIALLY_CORRELATED_DISTRIBUTIONS",
    "DistributionSpec",
    "freeze",
    "get_distribution",
    # Uncertainty models
    "ModelKind",
    "UncertaintyModel",
    "define_categorical_um",
    "define_mum",
    "define_um",
    # Sampling
    "CHOLESKY_MAX_NODES",
    "SAMPLERS",
    "SGSPlan",
    "gen_sample",
    "parse_method",
    "plan_sgs",
    "simulate_gaussian_field",
    # Propagation
    "PropagationResult",
    "propagate",
    # Summaries
    "category_frequencies",
    "category_mode",
    "ensemble_mean",
    "ensemble_quantile",
    "ensemble_std",
    "exceedance_probability",
    "summarize",
    # Diagnostics and reference models
    "MoranResult",
    "morans_i_grid",
    "aspect",
    "horn_gradient",
    "slope",
    "compute_grid_variogram",
    "fit_correlogram",
]
