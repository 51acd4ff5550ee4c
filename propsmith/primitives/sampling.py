"""Realization sampler.

Draws an ensemble of realizations from an UncertaintyModel. The sampling
procedure is chosen from an explicit table keyed by (model kind, method);
a pair missing from the table has no known procedure.

Methods:
    random: independent draws per cell, no spatial coherence.
    ugs: unconditional Gaussian simulation honoring the model correlogram.
    stratified: N equal-probability strata per cell, one draw in each.
"""

import logging
from typing import Any, Callable, Literal, Optional, Union

import numpy as np
from scipy import special

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.primitives.distributions import (
    from_standard_normal,
    get_distribution,
    quantile,
)
from propsmith.primitives.simulation import cholesky_factor, simulate_gaussian_field
from propsmith.primitives.uncertainty import ModelKind, UncertaintyModel
from propsmith.utils.errors import (
    InvalidCountError,
    UnknownMethodError,
    UnsupportedCombinationError,
)
from propsmith.utils.random import RandomStream, as_stream

logger = logging.getLogger(__name__)

SamplingMethod = Literal["random", "ugs", "stratified"]

_METHOD_ALIASES: dict[str, str] = {
    "random": "random",
    "randomsampling": "random",
    "uncorrelated": "random",
    "independent": "random",
    "ugs": "ugs",
    "sgs": "ugs",
    "spatially_correlated": "ugs",
    "correlated": "ugs",
    "stratified": "stratified",
    "stratifiedsampling": "stratified",
}


def parse_method(method: str) -> str:
    """Resolve a sampling method tag or alias."""
    key = str(method).strip().lower()
    if key not in _METHOD_ALIASES:
        raise UnknownMethodError(
            f"Unknown sampling method: {method}",
            suggestion="Use 'random', 'ugs' or 'stratified'.",
            details={"method": method},
        )
    return _METHOD_ALIASES[key]


def _check_count(n: Any) -> int:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise InvalidCountError(
            f"Number of realizations must be an integer >= 1, got {n!r}"
        )
    return int(n)


def _stratified_uniforms(n: int, shape: tuple[int, ...], rng: np.random.Generator) -> np.ndarray:
    """Uniforms with exactly one value in each of the n strata of every cell.

    Stratum order is shuffled independently per cell so realizations do not
    sort cells by probability level.
    """
    n_cells = int(np.prod(shape)) if shape else 1
    strata = np.argsort(rng.random((n, n_cells)), axis=0)
    u = (strata + rng.random((n, n_cells))) / n
    return u.reshape((n,) + tuple(shape))


def _certain_values(um: UncertaintyModel) -> np.ndarray:
    """Central value of a certain numeric variable."""
    spec = get_distribution(um.distribution)
    if spec.location is not None:
        return np.asarray(um.parameters[spec.location], dtype=float)
    with np.errstate(all="ignore"):
        return np.asarray(
            quantile(spec, um.parameters, np.full(um.field_shape, 0.5)), dtype=float
        )


# Numeric marginal (spatial or scalar) -------------------------------------


def _numeric_random(um: UncertaintyModel, n: int, stream: RandomStream, **_) -> np.ndarray:
    spec = get_distribution(um.distribution)
    shape = um.field_shape
    out = np.empty((n,) + shape)
    for i in range(n):
        rng = stream.generator(i)
        if spec.tag in ("norm", "lnorm"):
            out[i] = from_standard_normal(spec, um.parameters, rng.standard_normal(shape))
        else:
            out[i] = quantile(spec, um.parameters, rng.random(shape))
    return out


def _numeric_stratified(um: UncertaintyModel, n: int, stream: RandomStream, **_) -> np.ndarray:
    spec = get_distribution(um.distribution)
    u = _stratified_uniforms(n, um.field_shape, stream.shared_generator())
    return quantile(spec, um.parameters, u)


def _numeric_ugs(
    um: UncertaintyModel,
    n: int,
    stream: RandomStream,
    nmax: int = 24,
    simulation_method: str = "auto",
    **_,
) -> np.ndarray:
    if um.correlogram is None:
        raise UnsupportedCombinationError(
            "Spatially correlated sampling requires a correlogram",
            suggestion="Pass crm= to define_um, or use method='random'.",
        )
    spec = get_distribution(um.distribution)
    eps = simulate_gaussian_field(
        um.template.coordinates(),
        um.correlogram,
        n,
        stream,
        nmax=nmax,
        method=simulation_method,
    ).reshape((n,) + um.field_shape)
    return from_standard_normal(spec, um.parameters, eps)


# Categorical spatial ------------------------------------------------------


def _categorize(um: UncertaintyModel, u: np.ndarray) -> np.ndarray:
    """Map uniforms to category codes through per-cell cumulative probabilities."""
    cumulative = np.cumsum(um.parameters["probabilities"], axis=0)
    cumulative[-1] = 1.0
    codes = (u[:, np.newaxis] >= cumulative[np.newaxis, :]).sum(axis=1)
    return np.minimum(codes, len(um.categories) - 1)


def _categorical_random(um: UncertaintyModel, n: int, stream: RandomStream, **_) -> np.ndarray:
    u = np.stack([stream.generator(i).random(um.field_shape) for i in range(n)])
    return _categorize(um, u)


def _categorical_stratified(
    um: UncertaintyModel, n: int, stream: RandomStream, **_
) -> np.ndarray:
    return _categorize(um, _stratified_uniforms(n, um.field_shape, stream.shared_generator()))


def _categorical_ugs(
    um: UncertaintyModel,
    n: int,
    stream: RandomStream,
    nmax: int = 24,
    simulation_method: str = "auto",
    **_,
) -> np.ndarray:
    if um.correlogram is None:
        raise UnsupportedCombinationError(
            "Spatially correlated sampling requires a correlogram",
            suggestion="Pass crm= to define_categorical_um, or use method='random'.",
        )
    eps = simulate_gaussian_field(
        um.template.coordinates(),
        um.correlogram,
        n,
        stream,
        nmax=nmax,
        method=simulation_method,
    ).reshape((n,) + um.field_shape)
    return _categorize(um, special.ndtr(eps))


# Joint normal -------------------------------------------------------------


def _joint_scale(um: UncertaintyModel, z: np.ndarray) -> np.ndarray:
    """Scale correlated standard deviates (n, n_vars, ...) by member mean/sd."""
    out = np.empty_like(z)
    for k, member in enumerate(um.members):
        if member.uncertain:
            out[:, k] = member.parameters["mean"] + member.parameters["sd"] * z[:, k]
        else:
            out[:, k] = member.parameters["mean"]
    return out


def _joint_random(um: UncertaintyModel, n: int, stream: RandomStream, **_) -> np.ndarray:
    factor = cholesky_factor(um.cormatrix)
    n_vars = len(um.members)
    shape = um.field_shape
    z = np.empty((n, n_vars) + shape)
    for i in range(n):
        eta = stream.generator(i).standard_normal((n_vars,) + shape)
        z[i] = np.tensordot(factor, eta, axes=1)
    return _joint_scale(um, z)


def _joint_ugs(
    um: UncertaintyModel,
    n: int,
    stream: RandomStream,
    nmax: int = 24,
    simulation_method: str = "auto",
    **_,
) -> np.ndarray:
    factor = cholesky_factor(um.cormatrix)
    n_vars = len(um.members)
    shape = um.field_shape
    coords = um.template.coordinates()
    eta = np.stack(
        [
            simulate_gaussian_field(
                coords,
                um.correlogram,
                n,
                stream.child(k),
                nmax=nmax,
                method=simulation_method,
            ).reshape((n,) + shape)
            for k in range(n_vars)
        ],
        axis=1,
    )
    z = np.einsum("kj,nj...->nk...", factor, eta)
    return _joint_scale(um, z)


Sampler = Callable[..., np.ndarray]

SAMPLERS: dict[tuple[ModelKind, str], Sampler] = {
    (ModelKind.NUMERIC_SPATIAL, "random"): _numeric_random,
    (ModelKind.NUMERIC_SPATIAL, "ugs"): _numeric_ugs,
    (ModelKind.NUMERIC_SPATIAL, "stratified"): _numeric_stratified,
    (ModelKind.SCALAR, "random"): _numeric_random,
    (ModelKind.SCALAR, "stratified"): _numeric_stratified,
    (ModelKind.CATEGORICAL_SPATIAL, "random"): _categorical_random,
    (ModelKind.CATEGORICAL_SPATIAL, "ugs"): _categorical_ugs,
    (ModelKind.CATEGORICAL_SPATIAL, "stratified"): _categorical_stratified,
    (ModelKind.JOINT_NUMERIC_SPATIAL, "random"): _joint_random,
    (ModelKind.JOINT_NUMERIC_SPATIAL, "ugs"): _joint_ugs,
    (ModelKind.JOINT_SCALAR, "random"): _joint_random,
}


def _certain_sample(um: UncertaintyModel, n: int) -> np.ndarray:
    if um.kind is ModelKind.CATEGORICAL_SPATIAL:
        mode = np.argmax(um.parameters["probabilities"], axis=0)
        return np.broadcast_to(mode, (n,) + um.field_shape).copy()
    if um.is_joint:
        field = np.stack([_certain_values(m) for m in um.members])
        return np.broadcast_to(field, (n,) + field.shape).copy()
    field = _certain_values(um)
    return np.broadcast_to(field, (n,) + field.shape).copy()


def gen_sample(
    um: UncertaintyModel,
    n: int,
    method: Union[SamplingMethod, str] = "ugs",
    *,
    nmax: int = 24,
    seed: Union[None, int, RandomStream] = None,
    simulation_method: Literal["auto", "sgs", "cholesky"] = "auto",
    name: Optional[str] = None,
) -> RealizationEnsemble:
    """Generate an ensemble of realizations from an uncertainty model.

    Args:
        um: Uncertainty model from define_um, define_categorical_um or
            define_mum.
        n: Number of realizations (>= 1).
        method: 'random', 'ugs' or 'stratified' (aliases such as
            'randomSampling' and 'stratifiedSampling' are accepted).
        nmax: Neighborhood cap for sequential simulation.
        seed: Global seed or RandomStream. Realization ``i`` is a function of
            (seed, i) only. The entropy actually used is recorded as
            ``metadata["seed"]`` (with ``metadata["stream_key"]``), so unseeded
            ensembles can be regenerated.
        simulation_method: Gaussian field engine for 'ugs'.
        name: Ensemble name; defaults to the model name.

    Returns:
        RealizationEnsemble with exactly ``n`` realizations.

    Raises:
        InvalidCountError: If ``n`` < 1.
        UnknownMethodError: If ``method`` is not recognized.
        UnsupportedCombinationError: If the model kind has no procedure for
            ``method``.

    Example:
        >>> ens = gen_sample(um, n=100, method="ugs", nmax=20, seed=12345)
        >>> len(ens)
        100
    """
    n = _check_count(n)
    method = parse_method(method)
    stream = as_stream(seed)

    sampler = SAMPLERS.get((um.kind, method))
    if sampler is None:
        raise UnsupportedCombinationError(
            f"No '{method}' sampling procedure for {um.kind.value} models",
            suggestion="Choose another sampling method for this model kind.",
            details={"kind": um.kind.value, "method": method},
        )

    if um.uncertain:
        values = sampler(
            um, n, stream, nmax=nmax, simulation_method=simulation_method
        )
    else:
        values = _certain_sample(um, n)

    ensemble = RealizationEnsemble(
        values=values,
        template=um.template,
        name=name if name is not None else um.name,
        units=um.units,
        categories=um.categories,
        variables=(
            tuple(m.name or f"var{k}" for k, m in enumerate(um.members))
            if um.is_joint
            else None
        ),
        metadata={
            "method": method,
            "kind": um.kind.value,
            "seed": stream.entropy,
            "stream_key": stream.stream_key,
        },
    )
    logger.info(
        f"Generated {n} realizations of {um.name or um.kind.value} "
        f"(method={method}, field_shape={ensemble.field_shape})"
    )
    return ensemble
