"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No sampling, no I/O, no plotting.
Only standard library + numpy.
"""

from propsmith.objects.ensemble import RealizationEnsemble
from propsmith.objects.rastergrid import RasterGrid, as_array

__all__ = [
    "RasterGrid",
    "RealizationEnsemble",
    "as_array",
]
