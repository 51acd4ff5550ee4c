"""Analysis configuration.

Collects the literals of an uncertainty propagation analysis (correlogram,
distribution, ensemble size, sampling method, run count, summary quantiles,
seed) in one validated object that can be loaded from YAML or JSON.

Example file::

    correlogram:
      family: Exp
      sill: 0.8
      range: 300
    sampling:
      method: ugs
      n_realizations: 100
      nmax: 20
      seed: 12345
    propagation:
      n_runs: 50
      n_workers: 4
    summary:
      quantiles: [0.05, 0.5, 0.95]
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from propsmith.primitives.correlogram import CorrelogramModel, make_correlogram
from propsmith.primitives.distributions import get_distribution
from propsmith.primitives.sampling import parse_method
from propsmith.utils.errors import InvalidCountError, raise_parameter_error

logger = logging.getLogger(__name__)

# Nested section name -> {key in section: AnalysisConfig field}
_SECTIONS: dict[str, dict[str, str]] = {
    "correlogram": {
        "family": "family",
        "model": "family",
        "sill": "sill",
        "range": "range",
        "nugget": "nugget",
    },
    "sampling": {
        "distribution": "distribution",
        "method": "method",
        "n_realizations": "n_realizations",
        "n": "n_realizations",
        "nmax": "nmax",
        "seed": "seed",
        "simulation_method": "simulation_method",
    },
    "propagation": {
        "n_runs": "n_runs",
        "n_workers": "n_workers",
    },
    "summary": {
        "quantiles": "quantiles",
        "ignore_missing": "ignore_missing",
    },
}


@dataclass
class AnalysisConfig:
    """Settings of an uncertainty propagation analysis.

    Attributes:
        family: Correlogram family ('Exp', 'Sph', 'Lin', 'Gau').
        sill: Correlogram sill in [0, 1].
        range: Correlogram range (> 0), in grid coordinate units.
        nugget: Correlogram nugget (0 <= nugget <= sill).
        distribution: Marginal distribution of the uncertain input.
        method: Sampling method ('random', 'ugs', 'stratified').
        n_realizations: Ensemble size.
        nmax: Neighborhood cap for sequential simulation.
        seed: Global seed (None for fresh entropy).
        simulation_method: Gaussian field engine ('auto', 'sgs', 'cholesky').
        n_runs: Number of model runs (default: all realizations).
        n_workers: Worker threads for propagation.
        quantiles: Summary quantile probabilities.
        ignore_missing: Skip NaN values in summaries.
    """

    family: str = "Exp"
    sill: float = 1.0
    range: float = 1.0
    nugget: float = 0.0
    distribution: str = "norm"
    method: str = "ugs"
    n_realizations: int = 100
    nmax: int = 24
    seed: Optional[int] = None
    simulation_method: str = "auto"
    n_runs: Optional[int] = None
    n_workers: int = 1
    quantiles: tuple[float, ...] = field(default=(0.025, 0.5, 0.975))
    ignore_missing: bool = False

    def __post_init__(self) -> None:
        """Validate AnalysisConfig parameters."""
        self.method = parse_method(self.method)
        get_distribution(self.distribution)
        # Raises on an invalid correlogram
        self.correlogram()

        if isinstance(self.n_realizations, bool) or not isinstance(self.n_realizations, int) or self.n_realizations < 1:
            raise InvalidCountError(
                f"n_realizations must be an integer >= 1, got {self.n_realizations!r}"
            )
        if self.n_runs is not None and not 1 <= self.n_runs <= self.n_realizations:
            raise InvalidCountError(
                f"n_runs must be in [1, {self.n_realizations}], got {self.n_runs}"
            )
        if self.nmax < 1:
            raise_parameter_error("nmax", self.nmax, constraint="nmax >= 1")
        if self.n_workers < 1:
            raise_parameter_error("n_workers", self.n_workers, constraint="n_workers >= 1")
        if self.simulation_method not in ("auto", "sgs", "cholesky"):
            raise_parameter_error(
                "simulation_method",
                self.simulation_method,
                valid_values=["auto", "sgs", "cholesky"],
            )
        self.quantiles = tuple(float(p) for p in self.quantiles)
        for p in self.quantiles:
            if not 0.0 < p < 1.0:
                raise_parameter_error("quantiles", p, constraint="0 < p < 1")

    def correlogram(self) -> CorrelogramModel:
        """Correlogram model described by this configuration."""
        return make_correlogram(
            self.family, sill=self.sill, range=self.range, nugget=self.nugget
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisConfig":
        """Build a configuration from a flat or sectioned mapping.

        Raises:
            InvalidParameterError: On unknown keys.
        """
        data = dict(data or {})
        field_names = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}

        for section, mapping in _SECTIONS.items():
            values = data.pop(section, None)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise_parameter_error(section, values, constraint="must be a mapping")
            for key, value in values.items():
                if key not in mapping:
                    raise_parameter_error(
                        f"{section}.{key}", value, valid_values=sorted(mapping)
                    )
                kwargs[mapping[key]] = value

        for key, value in data.items():
            if key not in field_names:
                raise_parameter_error(key, value, valid_values=sorted(field_names))
            kwargs[key] = value

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Sectioned mapping that from_dict reads back."""
        return {
            "correlogram": {
                "family": self.family,
                "sill": self.sill,
                "range": self.range,
                "nugget": self.nugget,
            },
            "sampling": {
                "distribution": self.distribution,
                "method": self.method,
                "n_realizations": self.n_realizations,
                "nmax": self.nmax,
                "seed": self.seed,
                "simulation_method": self.simulation_method,
            },
            "propagation": {"n_runs": self.n_runs, "n_workers": self.n_workers},
            "summary": {
                "quantiles": list(self.quantiles),
                "ignore_missing": self.ignore_missing,
            },
        }


def load_config(file_path: Union[str, Path]) -> AnalysisConfig:
    """Load an analysis configuration from a YAML or JSON file.

    Args:
        file_path: Path to a .yaml, .yml or .json file.

    Returns:
        Validated AnalysisConfig.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file format is unsupported.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    suffix = file_path.suffix.lower()

    with open(file_path) as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config file format: {suffix}. "
                "Use .yaml, .yml, or .json"
            )

    config = AnalysisConfig.from_dict(data or {})
    logger.info(f"Loaded config from {file_path}")
    return config
