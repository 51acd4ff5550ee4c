"""Tests for RasterGrid and RealizationEnsemble."""

import numpy as np
import pytest

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid, as_array
from propsmith.utils.errors import DimensionMismatchError


class TestRasterGrid:
    """Tests for RasterGrid."""

    def test_from_origin(self):
        """Test north-up grid construction and cell-center coordinates."""
        grid = RasterGrid.from_origin(np.zeros((2, 3)), 100.0, 500.0, 10.0)
        assert grid.shape == (2, 3)
        assert grid.n_cells == 6
        assert grid.cell_size == (10.0, 10.0)
        coords = grid.coordinates()
        assert coords.shape == (6, 2)
        np.testing.assert_allclose(coords[0], [100.0, 500.0])
        np.testing.assert_allclose(coords[4], [110.0, 490.0])
        assert grid.xy(1, 1) == (110.0, 490.0)

    def test_nodata_becomes_nan(self):
        """Test nodata cells are read as NaN."""
        grid = RasterGrid(np.array([[1.0, -9999.0], [3.0, 4.0]]), nodata=-9999.0)
        assert np.isnan(grid.data[0, 1])

    def test_read_only(self):
        """Test grid data cannot be modified."""
        grid = RasterGrid(np.zeros((2, 2)))
        with pytest.raises(ValueError):
            grid.data[0, 0] = 1.0

    def test_requires_2d(self):
        """Test non-2D data raises."""
        with pytest.raises(ValueError, match="2D"):
            RasterGrid(np.zeros(4))

    def test_with_data(self):
        """Test replacing values keeps geometry."""
        grid = RasterGrid.from_origin(np.zeros((2, 2)), 0.0, 0.0, 5.0, name="a", units="m")
        other = grid.with_data(np.ones((2, 2)), name="b")
        assert other.is_aligned(grid)
        assert other.name == "b"
        assert other.units == "m"
        with pytest.raises(DimensionMismatchError):
            grid.with_data(np.ones((3, 3)))

    def test_as_array(self):
        """Test as_array accepts grids, arrays and scalars."""
        grid = RasterGrid(np.ones((2, 2)))
        assert as_array(grid).shape == (2, 2)
        assert as_array(3).shape == ()


class TestRealizationEnsemble:
    """Tests for RealizationEnsemble."""

    @pytest.fixture
    def ensemble(self, small_grid):
        values = np.arange(4 * 25.0).reshape(4, 5, 5)
        return RealizationEnsemble(values=values, template=small_grid, name="z", units="m")

    def test_indexing_returns_grids(self, ensemble, small_grid):
        """Test realizations are returned as grids on the template geometry."""
        first = ensemble[0]
        assert isinstance(first, RasterGrid)
        assert first.is_aligned(small_grid)
        assert first.name == "z"
        assert len(list(ensemble)) == 4

    def test_default_indices(self, ensemble):
        """Test indices default to 0..n-1."""
        np.testing.assert_array_equal(ensemble.indices, np.arange(4))
        assert ensemble.n_realizations == 4

    def test_take_and_head_keep_indices(self, ensemble):
        """Test subsets keep source indices."""
        subset = ensemble.take([3, 1])
        np.testing.assert_array_equal(subset.indices, [3, 1])
        np.testing.assert_array_equal(subset.values[0], ensemble.values[3])
        np.testing.assert_array_equal(ensemble.head(2).indices, [0, 1])

    def test_template_mismatch(self, small_grid):
        """Test realizations must match the template shape."""
        with pytest.raises(DimensionMismatchError, match="template"):
            RealizationEnsemble(values=np.zeros((2, 4, 4)), template=small_grid)

    def test_index_length_mismatch(self):
        """Test indices must label every realization."""
        with pytest.raises(DimensionMismatchError, match="indices"):
            RealizationEnsemble(values=np.zeros(3), indices=[0, 1])

    def test_empty(self):
        """Test empty ensembles raise."""
        with pytest.raises(ValueError, match="at least one"):
            RealizationEnsemble(values=np.zeros((0, 2, 2)))

    def test_values_read_only(self, ensemble):
        """Test ensemble values cannot be modified."""
        with pytest.raises(ValueError):
            ensemble.values[0, 0, 0] = -1.0

    def test_variable_requires_joint(self, ensemble):
        """Test variable() is only defined for joint ensembles."""
        with pytest.raises(ValueError, match="joint"):
            ensemble.variable(0)
