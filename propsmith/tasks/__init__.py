"""Layer 3: Tasks - User intent translation.

Tasks translate user intent into uncertainty model sampling and model runs.
"""

from propsmith.tasks.propagationtask import PropagationTask

__all__ = ["PropagationTask"]
