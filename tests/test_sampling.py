"""Tests for the realization sampler."""

import numpy as np
import pytest
from scipy import stats

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid
from propsmith.primitives.correlogram import make_correlogram
from propsmith.primitives.sampling import SAMPLERS, gen_sample, parse_method
from propsmith.primitives.spatial_analysis import morans_i_grid
from propsmith.primitives.uncertainty import (
    ModelKind,
    define_categorical_um,
    define_mum,
    define_um,
)
from propsmith.utils.errors import (
    InvalidCountError,
    UnknownMethodError,
    UnsupportedCombinationError,
)
from propsmith.utils.random import RandomStream


@pytest.fixture
def normal_um(small_grid, exp_correlogram):
    """Normal model, mean 100 and sd 5 on a 5 x 5 grid."""
    mean = small_grid.with_data(np.full((5, 5), 100.0))
    return define_um(True, "norm", [mean, 5.0], exp_correlogram)


class TestMethodParsing:
    """Tests for sampling method tags."""

    @pytest.mark.parametrize(
        "tag, expected",
        [
            ("random", "random"),
            ("randomSampling", "random"),
            ("uncorrelated", "random"),
            ("ugs", "ugs"),
            ("spatially_correlated", "ugs"),
            ("sgs", "ugs"),
            ("stratified", "stratified"),
            ("stratifiedSampling", "stratified"),
        ],
    )
    def test_aliases(self, tag, expected):
        """Test method aliases."""
        assert parse_method(tag) == expected

    def test_unknown_method(self, normal_um):
        """Test unknown method tags raise."""
        with pytest.raises(UnknownMethodError, match="lhs"):
            gen_sample(normal_um, 10, "lhs")

    def test_dispatch_table(self):
        """Test unsupported pairings are absent from the dispatch table."""
        assert (ModelKind.SCALAR, "ugs") not in SAMPLERS
        assert (ModelKind.JOINT_NUMERIC_SPATIAL, "stratified") not in SAMPLERS
        assert (ModelKind.NUMERIC_SPATIAL, "ugs") in SAMPLERS


class TestGenSample:
    """Tests for gen_sample on numeric spatial models."""

    @pytest.mark.parametrize("method", ["random", "ugs", "stratified"])
    def test_ensemble_shape(self, normal_um, method):
        """Test the ensemble holds exactly n realizations of the grid shape."""
        ens = gen_sample(normal_um, 12, method, seed=1)
        assert isinstance(ens, RealizationEnsemble)
        assert len(ens) == 12
        assert ens.field_shape == (5, 5)
        assert isinstance(ens[0], RasterGrid)
        assert ens.metadata["method"] == method
        np.testing.assert_array_equal(ens.indices, np.arange(12))

    @pytest.mark.parametrize("n", [0, -3, 2.5, True])
    def test_invalid_count(self, normal_um, n):
        """Test n must be a positive integer."""
        with pytest.raises(InvalidCountError):
            gen_sample(normal_um, n, "random")

    def test_reproducible_with_seed(self, normal_um):
        """Test the same seed gives identical ensembles."""
        a = gen_sample(normal_um, 5, "ugs", seed=42)
        b = gen_sample(normal_um, 5, "ugs", seed=42)
        c = gen_sample(normal_um, 5, "ugs", seed=43)
        np.testing.assert_array_equal(a.values, b.values)
        assert not np.allclose(a.values, c.values)

    def test_unseeded_run_records_entropy(self, normal_um):
        """Test the recorded seed regenerates an unseeded ensemble."""
        ens = gen_sample(normal_um, 4, "ugs")
        assert ens.metadata["seed"] is not None
        again = gen_sample(
            normal_um,
            4,
            "ugs",
            seed=RandomStream(
                seed=ens.metadata["seed"], stream_key=ens.metadata["stream_key"]
            ),
        )
        np.testing.assert_array_equal(again.values, ens.values)

    @pytest.mark.parametrize("method", ["random", "ugs"])
    def test_realization_depends_on_index_only(self, normal_um, method):
        """Test realization i does not depend on the ensemble size."""
        small = gen_sample(normal_um, 3, method, seed=7)
        large = gen_sample(normal_um, 8, method, seed=7)
        np.testing.assert_array_equal(small.values, large.values[:3])

    def test_sgs_engine_independent_of_size(self, normal_um):
        """Test SGS realizations do not depend on the ensemble size."""
        small = gen_sample(normal_um, 2, "ugs", seed=7, simulation_method="sgs")
        large = gen_sample(normal_um, 4, "ugs", seed=7, simulation_method="sgs")
        np.testing.assert_array_equal(small.values, large.values[:2])

    @pytest.mark.parametrize("method", ["random", "ugs", "stratified"])
    def test_convergence(self, normal_um, method):
        """Test mean and sd converge to the model parameters for N=2000."""
        ens = gen_sample(normal_um, 2000, method, seed=2024)
        cell_means = ens.values.mean(axis=0)
        cell_sds = ens.values.std(axis=0, ddof=1)
        np.testing.assert_allclose(cell_means, 100.0, rtol=0.05)
        assert cell_sds.mean() == pytest.approx(5.0, rel=0.05)

    def test_two_by_two_scenario(self):
        """Test mean 100, sd 5, N=1000, random sampling on a 2 x 2 grid."""
        um = define_um(True, "norm", [np.full((2, 2), 100.0), np.full((2, 2), 5.0)])
        ens = gen_sample(um, 1000, "randomSampling", seed=12345)
        means = ens.values.mean(axis=0)
        sds = ens.values.std(axis=0, ddof=1)
        assert np.all((means >= 99.0) & (means <= 101.0))
        assert np.all((sds >= 4.5) & (sds <= 5.5))

    def test_stratified_one_value_per_stratum(self, normal_um):
        """Test stratified sampling puts one value in each probability stratum."""
        n = 20
        ens = gen_sample(normal_um, n, "stratified", seed=3)
        u = stats.norm.cdf((ens.values - 100.0) / 5.0)
        strata = np.floor(u * n).astype(int)
        expected = np.arange(n)[:, np.newaxis, np.newaxis]
        np.testing.assert_array_equal(np.sort(strata, axis=0), np.broadcast_to(expected, strata.shape))

    def test_stratified_order_shuffled(self, normal_um):
        """Test stratum order differs between cells."""
        ens = gen_sample(normal_um, 20, "stratified", seed=3)
        order = np.argsort(ens.values, axis=0).reshape(20, -1)
        assert not np.all(order == order[:, :1])

    def test_lognormal_ugs_positive(self, small_grid, exp_correlogram):
        """Test lognormal realizations stay positive."""
        um = define_um(True, "lnorm", [small_grid.with_data(np.zeros((5, 5))), 0.5], exp_correlogram)
        ens = gen_sample(um, 50, "ugs", seed=0)
        assert np.all(ens.values > 0)

    def test_other_marginal_random(self):
        """Test a non-normal marginal is sampled through its quantile function."""
        um = define_um(True, "unif", [np.zeros((3, 3)), np.full((3, 3), 2.0)])
        ens = gen_sample(um, 500, "random", seed=0)
        assert ens.values.min() >= 0.0
        assert ens.values.max() <= 2.0
        assert ens.values.mean() == pytest.approx(1.0, abs=0.05)

    def test_ugs_without_correlogram(self):
        """Test ugs requires a correlogram."""
        um = define_um(True, "norm", [np.zeros((3, 3)), 1.0])
        with pytest.raises(UnsupportedCombinationError, match="correlogram"):
            gen_sample(um, 5, "ugs")

    def test_certain_model(self, small_grid):
        """Test a certain variable returns copies of its mean."""
        mean = small_grid.with_data(np.arange(25.0).reshape(5, 5))
        um = define_um(False, "norm", [mean, 3.0])
        ens = gen_sample(um, 4, "random", seed=1)
        for realization in ens.values:
            np.testing.assert_array_equal(realization, mean.data)

    def test_zero_sd_cells(self, exp_correlogram):
        """Test cells with zero sd always take their mean."""
        sd = np.ones((3, 3))
        sd[1, 1] = 0.0
        um = define_um(True, "norm", [np.full((3, 3), 7.0), sd], exp_correlogram)
        ens = gen_sample(um, 10, "ugs", seed=5)
        np.testing.assert_array_equal(ens.values[:, 1, 1], 7.0)


class TestSpatialCorrelation:
    """Tests that correlograms control smoothness."""

    def test_higher_sill_smoother(self):
        """Test sill 0.8 yields higher Moran's I than sill 0.2 (range 300)."""
        grid = RasterGrid.from_origin(np.zeros((20, 20)), 15.0, 585.0, 30.0)

        def mean_morans_i(sill: float) -> float:
            crm = make_correlogram("Exp", sill=sill, range=300.0)
            um = define_um(True, "norm", [grid.with_data(np.zeros((20, 20))), 1.0], crm)
            ens = gen_sample(um, 10, "ugs", nmax=20, seed=12345)
            return float(np.mean([morans_i_grid(r).I for r in ens]))

        assert mean_morans_i(0.8) > mean_morans_i(0.2)

    def test_random_has_no_autocorrelation(self, normal_um):
        """Test random sampling ignores the correlogram."""
        ens = gen_sample(normal_um, 40, "random", seed=8)
        mean_i = np.mean([morans_i_grid(r).I for r in ens])
        assert abs(mean_i) < 0.15


class TestScalarSampling:
    """Tests for scalar models."""

    def test_random(self):
        """Test scalar realizations have shape (n,)."""
        um = define_um(True, "norm", [10.0, 2.0])
        ens = gen_sample(um, 1000, "random", seed=4)
        assert ens.values.shape == (1000,)
        assert not ens.is_spatial
        assert ens.values.mean() == pytest.approx(10.0, abs=0.3)

    def test_stratified(self):
        """Test stratified scalar sampling covers every stratum."""
        um = define_um(True, "norm", [0.0, 1.0])
        ens = gen_sample(um, 50, "stratified", seed=4)
        strata = np.floor(stats.norm.cdf(ens.values) * 50).astype(int)
        np.testing.assert_array_equal(np.sort(strata), np.arange(50))

    def test_ugs_unsupported(self):
        """Test scalar models have no spatially correlated procedure."""
        um = define_um(True, "norm", [0.0, 1.0])
        with pytest.raises(UnsupportedCombinationError, match="scalar"):
            gen_sample(um, 5, "ugs")


class TestCategoricalSampling:
    """Tests for categorical models."""

    @pytest.fixture
    def categorical_um(self, small_grid, exp_correlogram):
        p = [np.full((5, 5), 0.2), np.full((5, 5), 0.3), np.full((5, 5), 0.5)]
        return define_categorical_um(p, ["sand", "silt", "clay"], exp_correlogram)

    @pytest.mark.parametrize("method", ["random", "ugs", "stratified"])
    def test_codes_and_frequencies(self, categorical_um, method):
        """Test category codes follow the per-cell probabilities."""
        ens = gen_sample(categorical_um, 1000, method, seed=9)
        assert ens.is_categorical
        assert ens.categories == ("sand", "silt", "clay")
        assert set(np.unique(ens.values)) <= {0, 1, 2}
        freq = [(ens.values == k).mean() for k in range(3)]
        np.testing.assert_allclose(freq, [0.2, 0.3, 0.5], atol=0.05)

    def test_certain_categorical(self, categorical_um):
        """Test a certain categorical variable takes its most probable category."""
        p = categorical_um.parameters["probabilities"]
        um = define_categorical_um(p, uncertain=False)
        ens = gen_sample(um, 3, "random")
        np.testing.assert_array_equal(ens.values, 2)


class TestJointSampling:
    """Tests for joint normal models."""

    def test_joint_scalar_correlation(self):
        """Test joint scalar draws reproduce the cross-correlation."""
        a = define_um(True, "norm", [0.0, 1.0], name="a")
        b = define_um(True, "norm", [10.0, 2.0], name="b")
        um = define_mum([a, b], [[1.0, 0.7], [0.7, 1.0]])
        ens = gen_sample(um, 2000, "random", seed=11)
        assert ens.values.shape == (2000, 2)
        assert ens.variables == ("a", "b")
        r = np.corrcoef(ens.values[:, 0], ens.values[:, 1])[0, 1]
        assert r == pytest.approx(0.7, abs=0.05)
        assert ens.values[:, 1].mean() == pytest.approx(10.0, abs=0.2)

    def test_joint_spatial_ugs(self, exp_correlogram):
        """Test joint spatial realizations have one field per member."""
        a = define_um(True, "norm", [np.zeros((4, 4)), 1.0], exp_correlogram, name="a")
        b = define_um(True, "norm", [np.ones((4, 4)), 2.0], exp_correlogram, name="b")
        um = define_mum([a, b], [[1.0, -0.5], [-0.5, 1.0]])
        ens = gen_sample(um, 500, "ugs", seed=12)
        assert ens.values.shape == (500, 2, 4, 4)
        assert ens.is_joint
        member_b = ens.variable("b")
        assert member_b.field_shape == (4, 4)
        r = np.corrcoef(ens.values[:, 0, 0, 0], ens.values[:, 1, 0, 0])[0, 1]
        assert r == pytest.approx(-0.5, abs=0.1)

    def test_joint_stratified_unsupported(self):
        """Test joint models have no stratified procedure."""
        a = define_um(True, "norm", [0.0, 1.0])
        b = define_um(True, "norm", [0.0, 1.0])
        um = define_mum([a, b], np.eye(2))
        with pytest.raises(UnsupportedCombinationError, match="stratified"):
            gen_sample(um, 5, "stratified")
