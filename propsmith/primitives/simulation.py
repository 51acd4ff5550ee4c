"""Unconditional Gaussian field simulation.

Produces zero-mean, unit-variance Gaussian fields whose covariance follows a
correlogram model. Two engines are available:

- Sequential Gaussian simulation (SGS): nodes are visited along a random
  path and each is drawn from its simple-kriging distribution given at most
  ``nmax`` nearest previously simulated nodes.
- Cholesky decomposition of the full covariance matrix, exact but limited
  to small grids.

The SGS path and kriging weights depend only on geometry, so they are
computed once per call and shared by every realization; each realization
then only needs its own standard-normal draws.
"""

import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
from scipy import linalg

from propsmith.primitives.correlogram import CorrelogramModel, covariance_matrix
from propsmith.utils.errors import raise_parameter_error
from propsmith.utils.random import RandomStream

logger = logging.getLogger(__name__)

# Largest number of nodes simulated with the Cholesky engine under method="auto"
CHOLESKY_MAX_NODES = 1500


@dataclass(frozen=True)
class SGSPlan:
    """Precomputed sequential simulation plan.

    Attributes:
        path: Visiting order of the nodes.
        neighbors: Per path step, indices of the conditioning nodes (-1 padded).
        weights: Simple-kriging weights matching ``neighbors`` (0 padded).
        sigma: Conditional standard deviation per path step.
    """

    path: np.ndarray
    neighbors: np.ndarray
    weights: np.ndarray
    sigma: np.ndarray


def plan_sgs(
    coordinates: np.ndarray,
    correlogram: CorrelogramModel,
    path: np.ndarray,
    nmax: int = 24,
) -> SGSPlan:
    """Compute neighbors and simple-kriging weights along a path.

    Args:
        coordinates: Node coordinates (n_nodes, n_dims).
        correlogram: Correlogram of the standardized field.
        path: Visiting order (permutation of node indices).
        nmax: Maximum number of previously simulated nodes used per step.

    Returns:
        SGSPlan shared by all realizations.
    """
    n_nodes = len(coordinates)
    ordered = coordinates[path]
    neighbors = np.full((n_nodes, nmax), -1, dtype=np.int64)
    weights = np.zeros((n_nodes, nmax))
    sigma = np.ones(n_nodes)

    for step in range(1, n_nodes):
        target = ordered[step]
        previous = ordered[:step]
        d_sq = np.sum((previous - target) ** 2, axis=1)
        k = min(nmax, step)
        if k < step:
            nearest = np.argpartition(d_sq, k - 1)[:k]
        else:
            nearest = np.arange(step)

        c_nn = covariance_matrix(correlogram, previous[nearest])
        c_n0 = covariance_matrix(correlogram, previous[nearest], target[np.newaxis, :])[:, 0]
        if not np.any(c_n0):
            continue
        try:
            w = linalg.solve(c_nn, c_n0, assume_a="pos")
        except (linalg.LinAlgError, ValueError):
            w = linalg.lstsq(c_nn, c_n0)[0]

        neighbors[step, :k] = nearest
        weights[step, :k] = w
        sigma[step] = np.sqrt(max(1.0 - float(w @ c_n0), 0.0))

    return SGSPlan(path=path, neighbors=neighbors, weights=weights, sigma=sigma)


def _run_sgs_plan(plan: SGSPlan, z: np.ndarray) -> np.ndarray:
    """Simulate one field along a plan from standard-normal draws ``z``."""
    n_nodes = len(plan.path)
    simulated = np.empty(n_nodes)
    for step in range(n_nodes):
        nb = plan.neighbors[step]
        valid = nb >= 0
        mean = plan.weights[step, valid] @ simulated[nb[valid]] if valid.any() else 0.0
        simulated[step] = mean + plan.sigma[step] * z[step]
    field = np.empty(n_nodes)
    field[plan.path] = simulated
    return field


def cholesky_factor(cov: np.ndarray) -> np.ndarray:
    """Lower Cholesky factor, adding diagonal jitter to near-singular matrices."""
    jitter = 0.0
    for _ in range(6):
        try:
            return linalg.cholesky(cov + jitter * np.eye(len(cov)), lower=True)
        except linalg.LinAlgError:
            jitter = 1e-10 if jitter == 0.0 else jitter * 100
            logger.debug(f"Covariance not positive definite, retrying with jitter {jitter:g}")
    raise linalg.LinAlgError("Covariance matrix could not be factorized")


def simulate_gaussian_field(
    coordinates: np.ndarray,
    correlogram: CorrelogramModel,
    n_realizations: int,
    stream: RandomStream,
    nmax: int = 24,
    method: Literal["auto", "sgs", "cholesky"] = "auto",
) -> np.ndarray:
    """Simulate standard Gaussian random fields.

    Args:
        coordinates: Node coordinates (n_nodes, n_dims).
        correlogram: Correlogram of the standardized field.
        n_realizations: Number of fields.
        stream: Random stream; realization ``i`` draws from ``stream.generator(i)``.
        nmax: Neighborhood cap for SGS.
        method: 'sgs', 'cholesky' or 'auto' (Cholesky up to
            CHOLESKY_MAX_NODES nodes, SGS beyond).

    Returns:
        Array (n_realizations, n_nodes) of zero-mean, unit-variance fields.
    """
    coordinates = np.asarray(coordinates, dtype=float)
    if coordinates.ndim == 1:
        coordinates = coordinates[:, np.newaxis]
    n_nodes = len(coordinates)
    if nmax < 1:
        raise_parameter_error("nmax", nmax, constraint="nmax >= 1")
    if method not in ("auto", "sgs", "cholesky"):
        raise_parameter_error(
            "simulation_method", method, valid_values=["auto", "sgs", "cholesky"]
        )
    if method == "auto":
        method = "cholesky" if n_nodes <= CHOLESKY_MAX_NODES else "sgs"

    fields = np.empty((n_realizations, n_nodes))

    if method == "cholesky":
        factor = cholesky_factor(covariance_matrix(correlogram, coordinates))
        for i in range(n_realizations):
            fields[i] = factor @ stream.generator(i).standard_normal(n_nodes)
    else:
        path = stream.shared_generator().permutation(n_nodes)
        plan = plan_sgs(coordinates, correlogram, path, nmax=nmax)
        for i in range(n_realizations):
            fields[i] = _run_sgs_plan(plan, stream.generator(i).standard_normal(n_nodes))

    logger.debug(
        f"Simulated {n_realizations} Gaussian fields on {n_nodes} nodes ({method})"
    )
    return fields
