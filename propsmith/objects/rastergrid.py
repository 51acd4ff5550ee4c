"""Raster grid object.

A RasterGrid holds a 2D field of cell values together with the affine
transform that places its cells in space, and the name and units used by
reporting collaborators.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from propsmith.utils.errors import raise_dimension_error


@dataclass(frozen=True)
class RasterGrid:
    """Spatial field on a regular grid.

    Attributes:
        data: Cell values, shape (rows, cols).
        transform: Affine transform (a, b, c, d, e, f) mapping (col, row) of a
            cell center to x = a*col + b*row + c, y = d*col + e*row + f.
        nodata: Optional nodata value; matching cells are read as NaN.
        name: Variable name.
        units: Physical units of the values.
        crs: Optional coordinate reference system identifier.
    """

    data: np.ndarray
    transform: tuple[float, float, float, float, float, float] = (
        1.0,
        0.0,
        0.0,
        0.0,
        -1.0,
        0.0,
    )
    nodata: Optional[float] = None
    name: Optional[str] = None
    units: Optional[str] = None
    crs: Optional[str] = None
    metadata: dict = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        """Validate RasterGrid parameters."""
        data = np.asarray(self.data)
        if data.ndim != 2:
            raise ValueError(f"data must be 2D (rows, cols), got shape {data.shape}")
        if len(self.transform) != 6:
            raise ValueError(
                f"transform must have 6 coefficients, got {len(self.transform)}"
            )
        if np.issubdtype(data.dtype, np.number) and self.nodata is not None:
            data = np.where(data == self.nodata, np.nan, data.astype(float))
        data = data.copy()
        data.setflags(write=False)
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "transform", tuple(float(v) for v in self.transform))

    @classmethod
    def from_origin(
        cls,
        data: np.ndarray,
        x_origin: float,
        y_origin: float,
        cell_size: float,
        **kwargs,
    ) -> "RasterGrid":
        """Build a north-up grid from the center of its upper-left cell."""
        transform = (cell_size, 0.0, x_origin, 0.0, -cell_size, y_origin)
        return cls(data=data, transform=transform, **kwargs)

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape  # type: ignore[return-value]

    @property
    def n_cells(self) -> int:
        return int(self.data.size)

    @property
    def cell_size(self) -> tuple[float, float]:
        """Cell size along x and y (absolute values)."""
        a, b, _, d, e, _ = self.transform
        return float(np.hypot(a, d)), float(np.hypot(b, e))

    def coordinates(self) -> np.ndarray:
        """Cell-center coordinates (n_cells, 2) in row-major order."""
        n_rows, n_cols = self.shape
        a, b, c, d, e, f = self.transform
        col_coords, row_coords = np.meshgrid(np.arange(n_cols), np.arange(n_rows))
        x_coords = a * col_coords + b * row_coords + c
        y_coords = d * col_coords + e * row_coords + f
        return np.column_stack([x_coords.ravel(), y_coords.ravel()])

    def xy(self, row: int, col: int) -> tuple[float, float]:
        """Coordinates of a single cell center."""
        a, b, c, d, e, f = self.transform
        return a * col + b * row + c, d * col + e * row + f

    def is_aligned(self, other: "RasterGrid") -> bool:
        """Whether both grids share shape and cell geometry."""
        return self.shape == other.shape and np.allclose(
            self.transform, other.transform
        )

    def with_data(
        self,
        data: np.ndarray,
        name: Optional[str] = None,
        units: Optional[str] = None,
    ) -> "RasterGrid":
        """New grid on the same geometry carrying different values."""
        data = np.asarray(data)
        if data.shape != self.shape:
            raise_dimension_error(
                "Replacement data must match the grid shape",
                expected=str(self.shape),
                received=str(data.shape),
            )
        return RasterGrid(
            data=data,
            transform=self.transform,
            name=name if name is not None else self.name,
            units=units if units is not None else self.units,
            crs=self.crs,
        )

    def __repr__(self) -> str:
        """String representation."""
        name_str = f", name='{self.name}'" if self.name else ""
        units_str = f", units='{self.units}'" if self.units else ""
        return f"RasterGrid(shape={self.shape}{name_str}{units_str})"


def as_array(field: "np.ndarray | RasterGrid | float") -> np.ndarray:
    """Values of a grid, array or scalar as a float numpy array."""
    if isinstance(field, RasterGrid):
        return np.asarray(field.data, dtype=float)
    return np.asarray(field, dtype=float)
