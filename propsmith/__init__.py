"""PropSmith: Monte Carlo propagation of spatial input uncertainty.

Layers:
    objects: RasterGrid, RealizationEnsemble
    primitives: correlograms, uncertainty models, sampling, propagation, summaries
    tasks: PropagationTask
    workflows: UncertaintyPropagationAnalysis
"""

from propsmith.objects import RasterGrid, RealizationEnsemble
from propsmith.primitives import (
    CorrelogramModel,
    ModelKind,
    PropagationResult,
    UncertaintyModel,
    define_categorical_um,
    define_mum,
    define_um,
    ensemble_mean,
    ensemble_quantile,
    ensemble_std,
    gen_sample,
    make_correlogram,
    propagate,
    summarize,
)
from propsmith.utils.errors import (
    DimensionMismatchError,
    InvalidCountError,
    InvalidParameterError,
    PropSmithError,
    TransformError,
    UnknownMethodError,
    UnsupportedCombinationError,
)

__version__ = "0.1.0"

__all__ = [
    "RasterGrid",
    "RealizationEnsemble",
    "CorrelogramModel",
    "ModelKind",
    "PropagationResult",
    "UncertaintyModel",
    "make_correlogram",
    "define_um",
    "define_categorical_um",
    "define_mum",
    "gen_sample",
    "propagate",
    "ensemble_mean",
    "ensemble_std",
    "ensemble_quantile",
    "summarize",
    "PropSmithError",
    "InvalidParameterError",
    "DimensionMismatchError",
    "UnsupportedCombinationError",
    "InvalidCountError",
    "UnknownMethodError",
    "TransformError",
    "__version__",
]
