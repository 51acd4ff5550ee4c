"""Terrain derivatives of elevation grids.

Slope and aspect by Horn's 3x3 finite-difference method. Border cells use
replicated edge values, so outputs keep the input shape.
"""

from typing import Literal, Optional, Union

import numpy as np

from propsmith.objects.rastergrid import RasterGrid, as_array
from propsmith.utils.errors import raise_parameter_error

Elevation = Union[np.ndarray, RasterGrid]


def _cell_sizes(elevation: Elevation, cell_size: Optional[float]) -> tuple[float, float]:
    if cell_size is not None:
        if cell_size <= 0:
            raise_parameter_error("cell_size", cell_size, constraint="cell_size > 0")
        return float(cell_size), float(cell_size)
    if isinstance(elevation, RasterGrid):
        return elevation.cell_size
    return 1.0, 1.0


def horn_gradient(
    elevation: Elevation, cell_size: Optional[float] = None
) -> tuple[np.ndarray, np.ndarray]:
    """Elevation gradient (dz/dx east, dz/dy south) by Horn's method.

    Args:
        elevation: 2D elevation array or RasterGrid (rows run north to south).
        cell_size: Cell size in the elevation's horizontal units. Defaults to
            the grid's cell size, or 1 for bare arrays.

    Returns:
        Tuple of gradient arrays, each with the input shape.
    """
    z = as_array(elevation)
    if z.ndim != 2:
        raise ValueError(f"elevation must be 2D, got shape {z.shape}")
    dx, dy = _cell_sizes(elevation, cell_size)

    p = np.pad(z, 1, mode="edge")
    a, b, c = p[:-2, :-2], p[:-2, 1:-1], p[:-2, 2:]
    d, f = p[1:-1, :-2], p[1:-1, 2:]
    g, h, i = p[2:, :-2], p[2:, 1:-1], p[2:, 2:]

    dz_dx = ((c + 2 * f + i) - (a + 2 * d + g)) / (8.0 * dx)
    dz_dy = ((g + 2 * h + i) - (a + 2 * b + c)) / (8.0 * dy)
    return dz_dx, dz_dy


def slope(
    elevation: Elevation,
    cell_size: Optional[float] = None,
    units: Literal["degrees", "percent"] = "degrees",
) -> Elevation:
    """Slope of an elevation grid.

    Args:
        elevation: 2D elevation array or RasterGrid.
        cell_size: Cell size; see horn_gradient.
        units: 'degrees' or 'percent' (rise over run times 100).

    Returns:
        Slope with the input shape; a RasterGrid when given one.

    Example:
        >>> dem = np.add.outer(np.zeros(3), np.arange(3.0))
        >>> float(slope(dem)[1, 1])
        45.0
    """
    if units not in ("degrees", "percent"):
        raise_parameter_error("units", units, valid_values=["degrees", "percent"])
    dz_dx, dz_dy = horn_gradient(elevation, cell_size)
    rise = np.hypot(dz_dx, dz_dy)
    if units == "degrees":
        result = np.degrees(np.arctan(rise))
    else:
        result = 100.0 * rise

    if isinstance(elevation, RasterGrid):
        unit_label = "degrees" if units == "degrees" else "%"
        return elevation.with_data(result, name="slope", units=unit_label)
    return result


def aspect(elevation: Elevation, cell_size: Optional[float] = None) -> Elevation:
    """Downslope direction in degrees clockwise from north.

    Flat cells get -1.
    """
    dz_dx, dz_dy = horn_gradient(elevation, cell_size)
    result = np.mod(np.degrees(np.arctan2(-dz_dx, dz_dy)), 360.0)
    result = np.where((dz_dx == 0) & (dz_dy == 0), -1.0, result)

    if isinstance(elevation, RasterGrid):
        return elevation.with_data(result, name="aspect", units="degrees")
    return result
