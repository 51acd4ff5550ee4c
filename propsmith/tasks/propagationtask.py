"""Uncertainty propagation task.

Layer 3: Tasks - User intent translation.

Turns the settings of a Monte Carlo analysis (sampling method, ensemble
size, seed, workers) into sampler and propagation runner calls.
"""

import logging
from typing import Any, Callable, Optional, Union

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.primitives.propagation import PropagationResult, propagate
from propsmith.primitives.sampling import gen_sample, parse_method
from propsmith.primitives.uncertainty import UncertaintyModel
from propsmith.utils.random import RandomStream, as_stream

logger = logging.getLogger(__name__)


class PropagationTask:
    """Task for sampling uncertain inputs and running a model on them.

    The task holds one RandomStream, so repeated ``sample`` calls with the
    same model return the same ensemble.
    """

    def __init__(
        self,
        method: str = "ugs",
        n_realizations: int = 100,
        nmax: int = 24,
        seed: Union[None, int, RandomStream] = None,
        n_workers: int = 1,
        simulation_method: str = "auto",
    ):
        """Initialize PropagationTask.

        Args:
            method: Sampling method ('random', 'ugs', 'stratified').
            n_realizations: Ensemble size drawn by ``sample``.
            nmax: Neighborhood cap for sequential simulation.
            seed: Global seed or RandomStream.
            n_workers: Worker threads used by ``propagate``.
            simulation_method: Gaussian field engine for 'ugs'.
        """
        self.method = parse_method(method)
        self.n_realizations = n_realizations
        self.nmax = nmax
        self.stream = as_stream(seed)
        self.n_workers = n_workers
        self.simulation_method = simulation_method

    def sample(self, um: UncertaintyModel, n: Optional[int] = None) -> RealizationEnsemble:
        """Draw realizations of ``um``.

        Args:
            um: Uncertainty model.
            n: Ensemble size (default: ``n_realizations``).

        Returns:
            RealizationEnsemble.
        """
        return gen_sample(
            um,
            n if n is not None else self.n_realizations,
            self.method,
            nmax=self.nmax,
            seed=self.stream,
            simulation_method=self.simulation_method,
        )

    def propagate(
        self,
        realizations: Union[RealizationEnsemble, list[RealizationEnsemble]],
        model: Callable[..., Any],
        n_runs: Optional[int] = None,
        **model_kwargs: Any,
    ) -> PropagationResult:
        """Run ``model`` on existing realizations with the task's worker count."""
        return propagate(
            realizations, model, n_runs, n_workers=self.n_workers, **model_kwargs
        )

    def run(
        self,
        um: Union[UncertaintyModel, list[UncertaintyModel]],
        model: Callable[..., Any],
        n_runs: Optional[int] = None,
        **model_kwargs: Any,
    ) -> tuple[Union[RealizationEnsemble, list[RealizationEnsemble]], PropagationResult]:
        """Sample the uncertain input(s) and propagate them through ``model``.

        Several models are sampled from independent sub-streams and passed to
        ``model`` positionally.

        Returns:
            Tuple of (input ensemble or list of ensembles, output ensemble).
        """
        if isinstance(um, UncertaintyModel):
            inputs = self.sample(um)
        else:
            inputs = [
                gen_sample(
                    member,
                    self.n_realizations,
                    self.method,
                    nmax=self.nmax,
                    seed=self.stream.child(k),
                    simulation_method=self.simulation_method,
                )
                for k, member in enumerate(um)
            ]
        output = self.propagate(inputs, model, n_runs, **model_kwargs)
        logger.info(f"PropagationTask completed {len(output)} model runs")
        return inputs, output
