"""Explicit, immutable random-number streams.

A RandomStream replaces global seeding: realization ``i`` always draws from
the child sequence keyed by ``(seed, i)``, so an ensemble is reproducible
bit for bit no matter how many workers generate it or in which order.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np

from propsmith.utils.errors import raise_parameter_error


@dataclass(frozen=True)
class RandomStream:
    """Deterministic source of per-realization generators.

    Attributes:
        seed: Global seed. None draws fresh OS entropy once at construction.
        stream_key: Extra spawn key, used to derive independent sub-streams
            (e.g. one per variable of a joint model).
    """

    seed: Optional[int] = None
    stream_key: tuple[int, ...] = ()
    _entropy: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.seed is not None and int(self.seed) < 0:
            raise_parameter_error("seed", self.seed, constraint="seed >= 0")
        entropy = (
            np.random.SeedSequence().entropy if self.seed is None else int(self.seed)
        )
        object.__setattr__(self, "_entropy", entropy)

    @property
    def entropy(self) -> int:
        """Entropy the stream draws from; equals ``seed`` when one was given.

        ``RandomStream(seed=stream.entropy, stream_key=stream.stream_key)``
        reproduces an unseeded stream.
        """
        return self._entropy

    def child(self, key: int) -> "RandomStream":
        """Return an independent sub-stream identified by ``key``."""
        stream = RandomStream(seed=self._entropy, stream_key=self.stream_key + (int(key),))
        return stream

    def generator(self, index: int) -> np.random.Generator:
        """Generator dedicated to realization ``index``."""
        sequence = np.random.SeedSequence(
            entropy=self._entropy, spawn_key=self.stream_key + (int(index),)
        )
        return np.random.default_rng(sequence)

    def shared_generator(self) -> np.random.Generator:
        """Generator for draws that span the whole ensemble at once."""
        sequence = np.random.SeedSequence(
            entropy=self._entropy, spawn_key=self.stream_key + (2**32 - 1,)
        )
        return np.random.default_rng(sequence)


def as_stream(seed: Union[None, int, RandomStream] = None) -> RandomStream:
    """Coerce a seed or an existing stream to a RandomStream."""
    if isinstance(seed, RandomStream):
        return seed
    return RandomStream(seed=seed)
