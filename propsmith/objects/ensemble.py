"""Realization ensembles.

An ensemble is an ordered stack of realizations of one variable. Index
identity matters: realization ``i`` of an input ensemble and output ``i`` of
a propagation run are paired.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from propsmith.objects.rastergrid import RasterGrid
from propsmith.utils.errors import raise_dimension_error


@dataclass(frozen=True)
class RealizationEnsemble:
    """Ordered collection of sampled fields.

    Attributes:
        values: Stacked realizations. Shape (n, rows, cols) for spatial
            variables, (n,) for scalars, (n, n_vars, ...) for joint models.
        template: Grid whose geometry the spatial realizations share.
        name: Variable name (or names for joint ensembles).
        units: Units of the values.
        categories: Category labels when values hold category codes.
        indices: Source indices of each realization. Defaults to 0..n-1;
            propagation results keep the indices of the inputs they consumed.
        variables: Member names for joint ensembles.
    """

    values: np.ndarray
    template: Optional[RasterGrid] = None
    name: Optional[str] = None
    units: Optional[str] = None
    categories: Optional[tuple] = None
    indices: Optional[np.ndarray] = None
    variables: Optional[tuple[str, ...]] = None
    metadata: dict = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        """Validate RealizationEnsemble parameters."""
        values = np.asarray(self.values)
        if values.ndim < 1 or values.shape[0] < 1:
            raise ValueError("An ensemble needs at least one realization")
        values = values.copy()
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

        if self.indices is None:
            indices = np.arange(values.shape[0])
        else:
            indices = np.asarray(self.indices, dtype=int)
            if indices.shape != (values.shape[0],):
                raise_dimension_error(
                    "indices must label every realization",
                    expected=str((values.shape[0],)),
                    received=str(indices.shape),
                )
        indices.setflags(write=False)
        object.__setattr__(self, "indices", indices)

        if self.template is not None and self.field_shape[-2:] != self.template.shape:
            raise_dimension_error(
                "Realizations must match the template grid",
                expected=str(self.template.shape),
                received=str(self.field_shape),
            )
        if self.categories is not None:
            object.__setattr__(self, "categories", tuple(self.categories))
        if self.variables is not None:
            object.__setattr__(self, "variables", tuple(self.variables))

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def __getitem__(self, i: int):
        """Realization ``i`` as a RasterGrid (spatial) or array/scalar."""
        value = self.values[i]
        if self.template is not None and value.ndim == 2:
            return self.template.with_data(value, name=self.name, units=self.units)
        return value

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]

    @property
    def n_realizations(self) -> int:
        return len(self)

    @property
    def field_shape(self) -> tuple[int, ...]:
        """Shape of one realization."""
        return tuple(self.values.shape[1:])

    @property
    def is_spatial(self) -> bool:
        return self.template is not None

    @property
    def is_categorical(self) -> bool:
        return self.categories is not None

    @property
    def is_joint(self) -> bool:
        return self.variables is not None

    def head(self, n: int) -> "RealizationEnsemble":
        """First ``n`` realizations, keeping their source indices."""
        return self.take(range(n))

    def take(self, positions: Sequence[int]) -> "RealizationEnsemble":
        """Realizations at ``positions`` (in the given order)."""
        positions = np.asarray(list(positions), dtype=int)
        return RealizationEnsemble(
            values=self.values[positions],
            template=self.template,
            name=self.name,
            units=self.units,
            categories=self.categories,
            indices=self.indices[positions],
            variables=self.variables,
        )

    def variable(self, key: "int | str") -> "RealizationEnsemble":
        """Single-member ensemble of a joint ensemble."""
        if self.variables is None:
            raise ValueError("variable() is only defined for joint ensembles")
        position = self.variables.index(key) if isinstance(key, str) else int(key)
        return RealizationEnsemble(
            values=self.values[:, position],
            template=self.template,
            name=self.variables[position],
            units=self.units,
            indices=self.indices,
        )

    def __repr__(self) -> str:
        """String representation."""
        name_str = f", name='{self.name}'" if self.name else ""
        return (
            f"RealizationEnsemble(n={len(self)}, field_shape={self.field_shape}"
            f"{name_str})"
        )
