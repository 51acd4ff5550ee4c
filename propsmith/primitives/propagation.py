"""Propagation runner.

Applies a deterministic model to each realization of one or more input
ensembles and collects the outputs as an ensemble index-aligned with the
consumed inputs. The model is an opaque callable: the runner only
orchestrates calls and never inspects what the model computes.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid
from propsmith.utils.errors import (
    InvalidCountError,
    TransformError,
    raise_dimension_error,
)

logger = logging.getLogger(__name__)

# Returned by workers for realizations not started after a failure
_SKIPPED = object()


@dataclass(frozen=True, repr=False)
class PropagationResult(RealizationEnsemble):
    """Output ensemble of a propagation run.

    ``indices`` holds, for each output, the index of the input realization
    it was computed from.

    Attributes:
        model_name: Name of the model that produced the outputs.
    """

    model_name: Optional[str] = None

    def __repr__(self) -> str:
        """String representation."""
        model_str = f", model='{self.model_name}'" if self.model_name else ""
        return (
            f"PropagationResult(n={len(self)}, field_shape={self.field_shape}"
            f"{model_str})"
        )


def _check_ensembles(
    realizations: Union[RealizationEnsemble, Sequence[RealizationEnsemble]],
) -> list[RealizationEnsemble]:
    if isinstance(realizations, RealizationEnsemble):
        return [realizations]
    ensembles = list(realizations)
    if not ensembles:
        raise InvalidCountError("At least one input ensemble is required")
    reference = ensembles[0]
    for ensemble in ensembles[1:]:
        if len(ensemble) != len(reference) or not np.array_equal(
            ensemble.indices, reference.indices
        ):
            raise_dimension_error(
                "Input ensembles must hold the same realizations in the same order",
                expected=f"{len(reference)} realizations",
                received=f"{len(ensemble)} realizations",
            )
    return ensembles


def _select_positions(
    n_available: int, n: Optional[int], indices: Optional[Sequence[int]]
) -> list[int]:
    """Positions of the realizations to run, in run order."""
    if indices is not None:
        positions = [int(i) for i in indices]
        if n is not None and n != len(positions):
            raise InvalidCountError(
                f"n ({n}) does not match the number of indices ({len(positions)})"
            )
        if not positions or any(p < 0 or p >= n_available for p in positions):
            raise InvalidCountError(
                f"indices must be within [0, {n_available - 1}] and non-empty"
            )
        return positions

    if n is None:
        n = n_available
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or not 1 <= n <= n_available:
        raise InvalidCountError(
            f"Number of runs must be an integer in [1, {n_available}], got {n!r}",
            suggestion="Generate more realizations or lower the number of runs.",
        )
    return list(range(int(n)))


def _output_array(output: Any) -> np.ndarray:
    if isinstance(output, RasterGrid):
        return np.asarray(output.data)
    return np.asarray(output)


def propagate(
    realizations: Union[RealizationEnsemble, Sequence[RealizationEnsemble]],
    model: Callable[..., Any],
    n: Optional[int] = None,
    *,
    indices: Optional[Sequence[int]] = None,
    n_workers: int = 1,
    pass_grids: bool = False,
    name: Optional[str] = None,
    units: Optional[str] = None,
    **model_kwargs: Any,
) -> PropagationResult:
    """Run a model on each realization and collect the output ensemble.

    Args:
        realizations: One ensemble, or a sequence of aligned ensembles for a
            model with several uncertain inputs (passed positionally).
        model: Deterministic callable, field(s) -> field or scalar.
        n: Number of runs (<= ensemble size). Defaults to all realizations;
            the first ``n`` are used in index order.
        indices: Explicit positions to run instead of the first ``n``.
        n_workers: Worker threads. Outputs are re-indexed into input order, and
            no realization is started once a model call has failed.
        pass_grids: Pass RasterGrid realizations instead of bare arrays.
        name: Output variable name. Defaults to the model's name.
        units: Output units.
        **model_kwargs: Extra keyword arguments forwarded to every model call.

    Returns:
        PropagationResult with one output per consumed realization.

    Raises:
        InvalidCountError: If ``n`` or ``indices`` are out of range.
        DimensionMismatchError: If input ensembles are misaligned, or model
            outputs change shape between realizations.
        TransformError: If the model raises; ``index`` is the position of the
            failing realization and no result is returned.

    Example:
        >>> slope_ens = propagate(dem_ensemble, slope, n=50, cell_size=10.0)
        >>> slope_ens.indices[:3]
        array([0, 1, 2])
    """
    ensembles = _check_ensembles(realizations)
    positions = _select_positions(len(ensembles[0]), n, indices)
    model_name = getattr(model, "__name__", type(model).__name__)

    def run_one(position: int) -> Any:
        args = [
            ensemble[position] if pass_grids else ensemble.values[position]
            for ensemble in ensembles
        ]
        return model(*args, **model_kwargs)

    def fail(position: int, exc: BaseException) -> TransformError:
        logger.error(f"Model '{model_name}' failed on realization {position}: {exc}")
        return TransformError(
            f"Model '{model_name}' failed on realization {position}: {exc}",
            index=position,
            details={"model": model_name, "error_type": type(exc).__name__},
        )

    outputs: list[Any] = []
    if n_workers <= 1:
        for position in positions:
            try:
                outputs.append(run_one(position))
            except Exception as exc:
                raise fail(position, exc) from exc
            logger.debug(f"Realization {position} propagated")
    else:
        stop = threading.Event()

        def run_unless_stopped(position: int) -> Any:
            if stop.is_set():
                return _SKIPPED
            return run_one(position)

        def stop_on_failure(future: Future) -> None:
            if not future.cancelled() and future.exception() is not None:
                stop.set()

        executor = ThreadPoolExecutor(max_workers=n_workers)
        try:
            futures = []
            for position in positions:
                future = executor.submit(run_unless_stopped, position)
                future.add_done_callback(stop_on_failure)
                futures.append(future)
            for position, future in zip(positions, futures):
                try:
                    output = future.result()
                    if output is _SKIPPED:
                        # Skipped after a later realization failed
                        output = run_one(position)
                except Exception as exc:
                    stop.set()
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise fail(position, exc) from exc
                outputs.append(output)
        finally:
            executor.shutdown(wait=True)

    arrays = [_output_array(output) for output in outputs]
    shape = arrays[0].shape
    for position, array in zip(positions, arrays):
        if array.shape != shape:
            raise_dimension_error(
                f"Model output for realization {position} changed shape",
                expected=str(shape),
                received=str(array.shape),
            )

    template = None
    if isinstance(outputs[0], RasterGrid):
        template = outputs[0]
    elif ensembles[0].template is not None and shape == ensembles[0].template.shape:
        template = ensembles[0].template

    result = PropagationResult(
        values=np.stack(arrays),
        template=template,
        name=name if name is not None else model_name,
        units=units,
        indices=ensembles[0].indices[positions],
        model_name=model_name,
    )
    logger.info(
        f"Propagated {len(positions)} realizations through '{model_name}' "
        f"(output shape {shape})"
    )
    return result
