"""Tests for ensemble summary statistics."""

import numpy as np
import pandas as pd
import pytest

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid
from propsmith.primitives.summary import (
    category_frequencies,
    category_mode,
    ensemble_mean,
    ensemble_quantile,
    ensemble_std,
    exceedance_probability,
    summarize,
)
from propsmith.utils.errors import InvalidParameterError


@pytest.fixture
def ensemble(small_grid):
    """Five realizations on the small grid with known statistics."""
    rng = np.random.default_rng(0)
    values = rng.normal(10.0, 2.0, size=(5, 5, 5))
    return RealizationEnsemble(values=values, template=small_grid, name="z", units="m")


class TestMomentSummaries:
    """Tests for ensemble_mean and ensemble_std."""

    def test_mean_and_sd(self, ensemble):
        """Test cell-wise mean and sample sd (ddof=1)."""
        mean = ensemble_mean(ensemble)
        sd = ensemble_std(ensemble)
        assert isinstance(mean, RasterGrid)
        np.testing.assert_allclose(mean.data, ensemble.values.mean(axis=0))
        np.testing.assert_allclose(sd.data, ensemble.values.std(axis=0, ddof=1))
        assert mean.name == "z_mean"
        assert sd.units == "m"

    def test_bare_arrays(self):
        """Test a plain stack of realizations is accepted."""
        stack = np.array([[1.0, 2.0], [3.0, 6.0]])
        np.testing.assert_allclose(ensemble_mean(stack), [2.0, 4.0])
        np.testing.assert_allclose(ensemble_std(stack), [np.sqrt(2.0), np.sqrt(8.0)])

    def test_list_of_grids(self, small_grid):
        """Test a list of RasterGrid realizations is accepted."""
        grids = [small_grid.with_data(np.full((5, 5), v)) for v in (1.0, 3.0)]
        np.testing.assert_allclose(ensemble_mean(grids), 2.0)

    def test_ignore_missing(self):
        """Test NaN values are skipped when requested."""
        stack = np.array([[1.0, np.nan], [3.0, 4.0], [5.0, 6.0]])
        assert np.isnan(ensemble_mean(stack)[1])
        np.testing.assert_allclose(ensemble_mean(stack, ignore_missing=True), [3.0, 5.0])
        np.testing.assert_allclose(
            ensemble_std(stack, ignore_missing=True), [2.0, np.sqrt(2.0)]
        )

    def test_single_realization_sd(self):
        """Test the sd of one realization is undefined."""
        assert np.all(np.isnan(ensemble_std(np.ones((1, 3)))))

    def test_does_not_modify_ensemble(self, ensemble):
        """Test summaries leave the ensemble untouched."""
        before = ensemble.values.copy()
        ensemble_mean(ensemble)
        ensemble_quantile(ensemble, 0.9)
        np.testing.assert_array_equal(ensemble.values, before)


class TestQuantiles:
    """Tests for ensemble_quantile."""

    def test_median(self, ensemble):
        """Test p=0.5 equals the median."""
        q = ensemble_quantile(ensemble, 0.5)
        np.testing.assert_allclose(q.data, np.median(ensemble.values, axis=0))

    def test_idempotent(self, ensemble):
        """Test repeated calls return the same grid."""
        a = ensemble_quantile(ensemble, 0.25)
        b = ensemble_quantile(ensemble, 0.25)
        np.testing.assert_array_equal(a.data, b.data)

    def test_linear_interpolation(self):
        """Test quantiles interpolate linearly between order statistics."""
        stack = np.array([0.0, 10.0, 20.0, 30.0, 40.0])
        assert float(ensemble_quantile(stack, 0.1)) == pytest.approx(4.0)
        assert float(ensemble_quantile(stack, 0.875)) == pytest.approx(35.0)

    def test_sequence_of_probabilities(self, ensemble):
        """Test a sequence of probabilities returns one grid per value."""
        grids = ensemble_quantile(ensemble, [0.1, 0.9])
        assert len(grids) == 2
        assert np.all(grids[0].data <= grids[1].data)
        assert grids[1].name == "z_q0.9"

    @pytest.mark.parametrize("p", [0.0, 1.0, -0.5, 1.5])
    def test_probability_out_of_range(self, ensemble, p):
        """Test p outside (0, 1) raises."""
        with pytest.raises(InvalidParameterError, match="0 < p < 1"):
            ensemble_quantile(ensemble, p)

    def test_ignore_missing(self):
        """Test NaN-aware quantiles."""
        stack = np.array([[1.0], [np.nan], [3.0]])
        np.testing.assert_allclose(ensemble_quantile(stack, 0.5, ignore_missing=True), [2.0])


class TestExceedance:
    """Tests for exceedance_probability."""

    def test_fraction_above(self):
        """Test the fraction of realizations strictly above a threshold."""
        stack = np.array([[1.0, 5.0], [2.0, 5.0], [3.0, 6.0], [4.0, 7.0]])
        np.testing.assert_allclose(exceedance_probability(stack, 2.0), [0.5, 1.0])
        np.testing.assert_allclose(exceedance_probability(stack, 5.0), [0.0, 0.5])

    def test_ignore_missing(self):
        """Test missing values are excluded from the denominator."""
        stack = np.array([[1.0], [np.nan], [3.0]])
        np.testing.assert_allclose(
            exceedance_probability(stack, 2.0, ignore_missing=True), [0.5]
        )

    def test_missing_values_propagate(self):
        """Test a missing value makes the cell NaN unless ignored."""
        stack = np.array([[1.0, 3.0], [np.nan, 3.0], [3.0, 3.0]])
        prob = exceedance_probability(stack, 2.0)
        assert np.isnan(prob[0])
        assert prob[1] == pytest.approx(1.0)


class TestCategoricalSummaries:
    """Tests for categorical ensembles."""

    @pytest.fixture
    def categorical(self):
        values = np.array([[[0, 1]], [[0, 2]], [[1, 2]], [[0, 2]]])
        return RealizationEnsemble(values=values, categories=("a", "b", "c"))

    def test_frequencies(self, categorical):
        """Test per-cell category frequencies."""
        freq = category_frequencies(categorical)
        assert set(freq) == {"a", "b", "c"}
        np.testing.assert_allclose(freq["a"], [[0.75, 0.0]])
        np.testing.assert_allclose(freq["c"], [[0.0, 0.75]])
        total = sum(freq.values())
        np.testing.assert_allclose(total, 1.0)

    def test_mode(self, categorical):
        """Test the most frequent category code per cell."""
        np.testing.assert_array_equal(category_mode(categorical), [[0, 2]])

    def test_requires_categories(self, ensemble):
        """Test numeric ensembles are rejected."""
        with pytest.raises(ValueError, match="categorical"):
            category_frequencies(ensemble)


class TestSummarize:
    """Tests for summarize."""

    def test_spatial_table(self, ensemble):
        """Test one row per cell with coordinates and statistics."""
        table = summarize(ensemble, quantiles=(0.1, 0.9))
        assert isinstance(table, pd.DataFrame)
        assert list(table.columns) == ["row", "col", "x", "y", "mean", "sd", "q0.1", "q0.9"]
        assert len(table) == 25
        first = table.iloc[0]
        assert (first["x"], first["y"]) == ensemble.template.xy(0, 0)
        assert first["mean"] == pytest.approx(ensemble.values[:, 0, 0].mean())

    def test_default_quantiles(self, ensemble):
        """Test the default 95% interval and median columns."""
        table = summarize(ensemble)
        assert {"q0.025", "q0.5", "q0.975"} <= set(table.columns)

    def test_scalar_ensemble(self):
        """Test scalar ensembles summarize to a single row."""
        ens = RealizationEnsemble(values=np.arange(11.0))
        table = summarize(ens, quantiles=(0.5,))
        assert list(table.columns) == ["mean", "sd", "q0.5"]
        assert table["q0.5"].iloc[0] == pytest.approx(5.0)

    def test_invalid_quantile(self, ensemble):
        """Test invalid probabilities raise."""
        with pytest.raises(InvalidParameterError):
            summarize(ensemble, quantiles=(0.5, 1.0))
