"""Tests for unconditional Gaussian field simulation."""

import numpy as np
import pytest

from propsmith.objects.rastergrid import RasterGrid
from propsmith.primitives.correlogram import make_correlogram
from propsmith.primitives.simulation import (
    cholesky_factor,
    plan_sgs,
    simulate_gaussian_field,
)
from propsmith.utils.errors import InvalidParameterError
from propsmith.utils.random import RandomStream


def _lag_one_correlation(fields: np.ndarray, shape: tuple[int, int]) -> float:
    """Empirical correlation between horizontally adjacent cells."""
    grids = fields.reshape((-1,) + shape)
    left = grids[:, :, :-1].ravel()
    right = grids[:, :, 1:].ravel()
    return float(np.corrcoef(left, right)[0, 1])


class TestSimulateGaussianField:
    """Tests for simulate_gaussian_field."""

    @pytest.fixture
    def coords(self):
        return RasterGrid.from_origin(np.zeros((12, 12)), 0.0, 110.0, 10.0).coordinates()

    @pytest.mark.parametrize("method", ["cholesky", "sgs"])
    def test_unit_variance(self, coords, method):
        """Test simulated fields have zero mean and unit variance per node."""
        crm = make_correlogram("Exp", sill=1.0, range=50.0)
        fields = simulate_gaussian_field(coords, crm, 400, RandomStream(seed=1), method=method)
        assert fields.shape == (400, 144)
        assert fields.mean() == pytest.approx(0.0, abs=0.1)
        assert fields.var(axis=0).mean() == pytest.approx(1.0, abs=0.1)

    @pytest.mark.parametrize("method", ["cholesky", "sgs"])
    def test_reproduces_correlogram(self, coords, method):
        """Test neighbor correlation matches the correlogram at one cell."""
        crm = make_correlogram("Exp", sill=1.0, range=50.0)
        fields = simulate_gaussian_field(coords, crm, 400, RandomStream(seed=2), method=method)
        expected = float(crm.correlation(10.0))
        assert _lag_one_correlation(fields, (12, 12)) == pytest.approx(expected, abs=0.08)

    def test_sill_below_one_acts_as_nugget(self, coords):
        """Test a low sill weakens neighbor correlation."""
        crm = make_correlogram("Exp", sill=0.3, range=50.0)
        fields = simulate_gaussian_field(coords, crm, 400, RandomStream(seed=3), method="cholesky")
        assert _lag_one_correlation(fields, (12, 12)) == pytest.approx(
            0.3 * np.exp(-0.2), abs=0.08
        )

    def test_auto_uses_cholesky_for_small_grids(self, coords):
        """Test method='auto' matches the Cholesky engine on small grids."""
        crm = make_correlogram("Sph", sill=1.0, range=40.0)
        auto = simulate_gaussian_field(coords, crm, 3, RandomStream(seed=4))
        chol = simulate_gaussian_field(coords, crm, 3, RandomStream(seed=4), method="cholesky")
        np.testing.assert_array_equal(auto, chol)

    def test_one_dimensional_coordinates(self):
        """Test 1D coordinates are accepted."""
        crm = make_correlogram("Gau", sill=1.0, range=3.0)
        fields = simulate_gaussian_field(np.arange(10.0), crm, 2, RandomStream(seed=0))
        assert fields.shape == (2, 10)

    def test_invalid_nmax(self, coords):
        """Test nmax must be positive."""
        crm = make_correlogram("Exp", sill=1.0, range=50.0)
        with pytest.raises(InvalidParameterError, match="nmax"):
            simulate_gaussian_field(coords, crm, 1, RandomStream(seed=0), nmax=0)

    def test_invalid_method(self, coords):
        """Test unknown engines raise."""
        crm = make_correlogram("Exp", sill=1.0, range=50.0)
        with pytest.raises(InvalidParameterError, match="simulation_method"):
            simulate_gaussian_field(coords, crm, 1, RandomStream(seed=0), method="fft")


class TestPlanSgs:
    """Tests for the sequential simulation plan."""

    def test_plan_structure(self):
        """Test the first node is unconditional and neighbors come earlier on the path."""
        coords = RasterGrid(np.zeros((4, 4))).coordinates()
        crm = make_correlogram("Exp", sill=1.0, range=2.0)
        path = np.random.default_rng(0).permutation(16)
        plan = plan_sgs(coords, crm, path, nmax=4)

        assert plan.sigma[0] == pytest.approx(1.0)
        assert np.all(plan.neighbors[0] == -1)
        for step in range(1, 16):
            nb = plan.neighbors[step]
            valid = nb[nb >= 0]
            assert len(valid) == min(4, step)
            assert np.all(valid < step)
        assert np.all((plan.sigma > 0) & (plan.sigma <= 1.0 + 1e-12))


class TestCholeskyFactor:
    """Tests for cholesky_factor."""

    def test_positive_definite(self):
        """Test a regular covariance factorizes exactly."""
        cov = np.array([[1.0, 0.5], [0.5, 1.0]])
        factor = cholesky_factor(cov)
        np.testing.assert_allclose(factor @ factor.T, cov)

    def test_singular_matrix_gets_jitter(self):
        """Test a singular covariance is factorized after adding jitter."""
        cov = np.ones((3, 3))
        factor = cholesky_factor(cov)
        np.testing.assert_allclose(factor @ factor.T, cov, atol=1e-6)
