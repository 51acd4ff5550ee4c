"""Shared fixtures for PropSmith tests."""

import numpy as np
import pytest

from propsmith.objects.rastergrid import RasterGrid
from propsmith.primitives.correlogram import make_correlogram


@pytest.fixture
def small_grid():
    """5 x 5 north-up grid with 10 m cells."""
    return RasterGrid.from_origin(
        np.zeros((5, 5)), x_origin=0.0, y_origin=40.0, cell_size=10.0, name="z", units="m"
    )


@pytest.fixture
def dem():
    """Smooth synthetic 20 x 20 DEM with 10 m cells."""
    rows, cols = np.indices((20, 20))
    elevation = 100.0 + 0.5 * cols + 0.2 * rows + 3.0 * np.sin(cols / 4.0)
    return RasterGrid.from_origin(
        elevation, x_origin=5.0, y_origin=195.0, cell_size=10.0, name="elevation", units="m"
    )


@pytest.fixture
def exp_correlogram():
    """Exponential correlogram, sill 0.8, range 300."""
    return make_correlogram("Exp", sill=0.8, range=300.0)
