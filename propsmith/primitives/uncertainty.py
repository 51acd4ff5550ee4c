"""Uncertainty model definitions.

An UncertaintyModel bundles the marginal distribution of a variable (with
parameters that may vary per cell) and an optional correlogram describing
the spatial correlation of its errors. The ``kind`` tag decides which
sampling procedures apply.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from propsmith.objects.rastergrid import RasterGrid
from propsmith.primitives.correlogram import CorrelogramModel
from propsmith.primitives.distributions import (
    SPATIALLY_CORRELATED_DISTRIBUTIONS,
    get_distribution,
    validate_parameters,
)
from propsmith.utils.errors import (
    UnsupportedCombinationError,
    raise_dimension_error,
    raise_parameter_error,
)

logger = logging.getLogger(__name__)

FieldLike = Union[float, int, np.ndarray, RasterGrid]


class ModelKind(str, Enum):
    """Structural class of an uncertainty model."""

    NUMERIC_SPATIAL = "numeric_spatial"
    CATEGORICAL_SPATIAL = "categorical_spatial"
    SCALAR = "scalar"
    JOINT_NUMERIC_SPATIAL = "joint_numeric_spatial"
    JOINT_SCALAR = "joint_scalar"


@dataclass(frozen=True)
class UncertaintyModel:
    """Sampleable stochastic description of one (or several) variables.

    Attributes:
        kind: Structural class used for sampler dispatch.
        uncertain: False if the variable is treated as exactly known.
        distribution: Marginal distribution tag ('norm', 'lnorm', ...,
            'categorical' or 'mvnorm' for joint models).
        parameters: Read-only mapping of distribution parameters by name, as
            read-only float arrays sharing the model's field shape (0-d for
            scalars).
        correlogram: Spatial correlogram, or None for uncorrelated errors.
        template: Grid geometry of spatial models.
        name: Variable name.
        units: Variable units.
        categories: Category labels of categorical models.
        members: Member models of joint models.
        cormatrix: Cross-correlation between members of joint models.
    """

    kind: ModelKind
    uncertain: bool
    distribution: str
    parameters: Mapping[str, np.ndarray] = field(default_factory=dict)
    correlogram: Optional[CorrelogramModel] = None
    template: Optional[RasterGrid] = None
    name: Optional[str] = None
    units: Optional[str] = None
    categories: Optional[tuple] = None
    members: tuple["UncertaintyModel", ...] = ()
    cormatrix: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        """Freeze the parameter mapping and its arrays."""
        params = {}
        for key, value in self.parameters.items():
            array = np.asarray(value)
            if array.flags.writeable:
                array = array.copy()
                array.setflags(write=False)
            params[key] = array
        object.__setattr__(self, "parameters", MappingProxyType(params))

    @property
    def is_spatial(self) -> bool:
        return self.kind in (
            ModelKind.NUMERIC_SPATIAL,
            ModelKind.CATEGORICAL_SPATIAL,
            ModelKind.JOINT_NUMERIC_SPATIAL,
        )

    @property
    def is_joint(self) -> bool:
        return self.kind in (ModelKind.JOINT_NUMERIC_SPATIAL, ModelKind.JOINT_SCALAR)

    @property
    def field_shape(self) -> tuple[int, ...]:
        """Shape of one realization of a single variable."""
        if self.template is not None:
            return self.template.shape
        return ()

    def __repr__(self) -> str:
        """String representation."""
        crm_str = f", correlogram={self.correlogram!r}" if self.correlogram else ""
        name_str = f", name='{self.name}'" if self.name else ""
        return (
            f"UncertaintyModel(kind={self.kind.value}, distribution={self.distribution}, "
            f"field_shape={self.field_shape}{crm_str}{name_str})"
        )


def _resolve_template(values: Iterable[Any]) -> Optional[RasterGrid]:
    """First RasterGrid among the values, checking all grids are aligned."""
    template = None
    for value in values:
        if isinstance(value, RasterGrid):
            if template is None:
                template = value
            elif not template.is_aligned(value):
                raise_dimension_error(
                    "Parameter grids must share shape and cell geometry",
                    expected=f"{template.shape} with transform {template.transform}",
                    received=f"{value.shape} with transform {value.transform}",
                )
    return template


def _align_fields(
    named: Mapping[str, FieldLike],
) -> tuple[dict[str, np.ndarray], Optional[RasterGrid]]:
    """Convert parameter fields to arrays on one common grid.

    Scalars broadcast to the grid; arrays must have exactly the grid shape.
    """
    template = _resolve_template(named.values())
    arrays = {
        key: np.asarray(value.data if isinstance(value, RasterGrid) else value, dtype=float)
        for key, value in named.items()
    }

    shape: Optional[tuple[int, ...]] = template.shape if template is not None else None
    for key, array in arrays.items():
        if array.ndim == 0:
            continue
        if array.ndim != 2:
            raise_dimension_error(
                f"Parameter '{key}' must be a scalar or a 2D grid",
                received=f"array with shape {array.shape}",
            )
        if shape is None:
            shape = array.shape
        elif array.shape != shape:
            raise_dimension_error(
                f"Parameter '{key}' is not aligned with the other parameter fields",
                expected=str(shape),
                received=str(array.shape),
                suggestion="Resample all parameter fields to the same grid.",
            )

    if shape is not None:
        arrays = {key: np.broadcast_to(a, shape).copy() for key, a in arrays.items()}
        if template is None:
            logger.debug(f"No grid geometry supplied; using unit cells for shape {shape}")
            template = RasterGrid(data=np.zeros(shape))
    for array in arrays.values():
        array.setflags(write=False)
    return arrays, template


def _named_parameters(parameters: Sequence[str], distr_param: Any) -> dict[str, FieldLike]:
    """Match positional or named distribution parameters to their names."""
    if isinstance(distr_param, Mapping):
        unknown = set(distr_param) - set(parameters)
        missing = set(parameters) - set(distr_param)
        if unknown or missing:
            raise_parameter_error(
                "distr_param",
                sorted(distr_param),
                valid_values=list(parameters),
                constraint="parameter names must match the distribution",
            )
        return {name: distr_param[name] for name in parameters}

    if isinstance(distr_param, (np.ndarray, RasterGrid)) or np.isscalar(distr_param):
        distr_param = [distr_param]
    distr_param = list(distr_param)
    if len(distr_param) != len(parameters):
        raise_parameter_error(
            "distr_param",
            f"{len(distr_param)} values",
            constraint=f"expected {len(parameters)} values ({', '.join(parameters)})",
        )
    return dict(zip(parameters, distr_param))


def define_um(
    uncertain: bool,
    distribution: str = "norm",
    distr_param: Any = (),
    crm: Optional[CorrelogramModel] = None,
    *,
    name: Optional[str] = None,
    units: Optional[str] = None,
    correlated_distributions: Optional[Iterable[str]] = None,
) -> UncertaintyModel:
    """Define the uncertainty model of a numeric variable.

    Args:
        uncertain: Whether the variable is uncertain.
        distribution: Marginal distribution tag ('norm', 'lnorm', 'unif', ...).
        distr_param: Distribution parameters, positional (list) or named
            (dict). Each may be a scalar, a 2D array or a RasterGrid; for
            'norm' these are the mean and standard deviation fields.
        crm: Optional correlogram for spatially correlated errors.
        name: Variable name.
        units: Variable units.
        correlated_distributions: Distributions allowed together with a
            correlogram. Defaults to SPATIALLY_CORRELATED_DISTRIBUTIONS.

    Returns:
        UncertaintyModel of kind NUMERIC_SPATIAL (any gridded parameter) or
        SCALAR.

    Raises:
        InvalidParameterError: Malformed parameters.
        DimensionMismatchError: Parameter fields are not spatially aligned.
        UnsupportedCombinationError: Correlogram combined with a distribution
            or a scalar variable that has no correlated sampling procedure.

    Example:
        >>> crm = make_correlogram("Exp", sill=0.8, range=300)
        >>> um = define_um(True, "norm", [dem_grid, dem_sd_grid], crm)
    """
    spec = get_distribution(distribution)
    named = _named_parameters(spec.parameters, distr_param)
    params, template = _align_fields(named)
    validate_parameters(spec, params)

    kind = ModelKind.NUMERIC_SPATIAL if template is not None else ModelKind.SCALAR

    if crm is not None:
        allowed = (
            SPATIALLY_CORRELATED_DISTRIBUTIONS
            if correlated_distributions is None
            else frozenset(get_distribution(d).tag for d in correlated_distributions)
        )
        if kind is ModelKind.SCALAR:
            raise UnsupportedCombinationError(
                "A correlogram was supplied for a scalar variable",
                suggestion="Pass gridded parameters or drop the correlogram.",
            )
        if spec.tag not in allowed:
            raise UnsupportedCombinationError(
                f"No spatially correlated sampling procedure for distribution "
                f"'{spec.tag}'",
                suggestion=f"Use one of {sorted(allowed)} or drop the correlogram.",
                details={"distribution": spec.tag, "allowed": sorted(allowed)},
            )

    if name is None and template is not None:
        name = template.name
    if units is None and template is not None:
        units = template.units

    model = UncertaintyModel(
        kind=kind,
        uncertain=bool(uncertain),
        distribution=spec.tag,
        parameters=params,
        correlogram=crm,
        template=template,
        name=name,
        units=units,
    )
    logger.debug(f"Defined {model!r}")
    return model


def define_categorical_um(
    probabilities: Any,
    categories: Optional[Sequence[Any]] = None,
    crm: Optional[CorrelogramModel] = None,
    *,
    uncertain: bool = True,
    name: Optional[str] = None,
    units: Optional[str] = None,
    tolerance: float = 1e-6,
) -> UncertaintyModel:
    """Define the uncertainty model of a categorical spatial variable.

    Args:
        probabilities: Per-category probability grids, as a sequence of
            grids/arrays or a stacked array (n_categories, rows, cols).
        categories: Category labels. Defaults to 0..n_categories-1.
        crm: Optional correlogram; categorical realizations then follow a
            thresholded Gaussian field.
        uncertain: Whether the variable is uncertain. A certain categorical
            variable always takes its most probable category.
        tolerance: Allowed deviation of per-cell probability sums from one.

    Returns:
        UncertaintyModel of kind CATEGORICAL_SPATIAL.
    """
    layers = list(probabilities)
    if len(layers) < 2:
        raise_parameter_error(
            "probabilities", f"{len(layers)} categories", constraint="at least 2 categories"
        )
    if categories is None:
        categories = tuple(range(len(layers)))
    if len(categories) != len(layers):
        raise_dimension_error(
            "Each category needs one probability field",
            expected=f"{len(categories)} fields",
            received=f"{len(layers)} fields",
        )

    named = {f"p{i}": layer for i, layer in enumerate(layers)}
    params, template = _align_fields(named)
    if template is None:
        raise_dimension_error(
            "Categorical probabilities must be spatial grids",
            received="scalars",
        )

    stack = np.stack([params[f"p{i}"] for i in range(len(layers))])
    if np.any(~np.isfinite(stack)) or np.any(stack < 0) or np.any(stack > 1):
        raise_parameter_error(
            "probabilities", "values outside [0, 1]", constraint="0 <= p <= 1"
        )
    if np.any(np.abs(stack.sum(axis=0) - 1.0) > tolerance):
        raise_parameter_error(
            "probabilities",
            "per-cell sums differ from 1",
            constraint=f"probabilities must sum to 1 (tolerance {tolerance})",
        )
    stack.setflags(write=False)

    return UncertaintyModel(
        kind=ModelKind.CATEGORICAL_SPATIAL,
        uncertain=bool(uncertain),
        distribution="categorical",
        parameters={"probabilities": stack},
        correlogram=crm,
        template=template,
        name=name if name is not None else template.name,
        units=units,
        categories=tuple(categories),
    )


def define_mum(
    models: Sequence[UncertaintyModel],
    cormatrix: Any,
    *,
    name: Optional[str] = None,
) -> UncertaintyModel:
    """Define a joint uncertainty model for several normal variables.

    Spatial members are simulated with an intrinsic linear model of
    coregionalization, so all of them must carry the same correlogram.

    Args:
        models: Member models, all NUMERIC_SPATIAL or all SCALAR, normal.
        cormatrix: Cross-correlation matrix between members.
        name: Joint model name.

    Returns:
        UncertaintyModel of kind JOINT_NUMERIC_SPATIAL or JOINT_SCALAR.
    """
    models = tuple(models)
    if len(models) < 2:
        raise_parameter_error("models", len(models), constraint="at least 2 members")

    kinds = {m.kind for m in models}
    if kinds == {ModelKind.NUMERIC_SPATIAL}:
        kind = ModelKind.JOINT_NUMERIC_SPATIAL
    elif kinds == {ModelKind.SCALAR}:
        kind = ModelKind.JOINT_SCALAR
    else:
        raise UnsupportedCombinationError(
            f"Joint models need members of one numeric kind, got "
            f"{sorted(k.value for k in kinds)}"
        )
    non_normal = [m.distribution for m in models if m.distribution != "norm"]
    if non_normal:
        raise UnsupportedCombinationError(
            f"Joint models support normal members only, got {non_normal}"
        )

    template = models[0].template
    for member in models[1:]:
        if member.field_shape != models[0].field_shape or (
            template is not None and not template.is_aligned(member.template)
        ):
            raise_dimension_error(
                "Joint model members must share the same grid",
                expected=str(models[0].field_shape),
                received=str(member.field_shape),
            )

    if kind is ModelKind.JOINT_NUMERIC_SPATIAL:
        correlograms = [m.correlogram for m in models]
        if any(c is None for c in correlograms):
            raise UnsupportedCombinationError(
                "Every member of a spatial joint model needs a correlogram"
            )
        reference = correlograms[0]
        for crm in correlograms[1:]:
            if crm != reference:
                raise UnsupportedCombinationError(
                    "Members of a spatial joint model must share one correlogram",
                    details={"reference": repr(reference), "received": repr(crm)},
                )

    matrix = np.asarray(cormatrix, dtype=float)
    n = len(models)
    if matrix.shape != (n, n):
        raise_dimension_error(
            "cormatrix must be square with one row per member",
            expected=str((n, n)),
            received=str(matrix.shape),
        )
    if not np.allclose(matrix, matrix.T):
        raise_parameter_error("cormatrix", "not symmetric", constraint="symmetric")
    if not np.allclose(np.diag(matrix), 1.0):
        raise_parameter_error("cormatrix", "diagonal != 1", constraint="unit diagonal")
    if np.any(np.abs(matrix) > 1.0 + 1e-12):
        raise_parameter_error("cormatrix", "|r| > 1", constraint="-1 <= r <= 1")
    if np.linalg.eigvalsh(matrix).min() < -1e-10:
        raise_parameter_error(
            "cormatrix", "not positive semidefinite", constraint="valid correlation matrix"
        )
    matrix = matrix.copy()
    matrix.setflags(write=False)

    return UncertaintyModel(
        kind=kind,
        uncertain=any(m.uncertain for m in models),
        distribution="mvnorm",
        correlogram=models[0].correlogram,
        template=template,
        name=name,
        members=models,
        cormatrix=matrix,
    )
