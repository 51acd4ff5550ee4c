"""Layer 4: Workflows - Public entry points.

Workflows provide the public entry points users call. Config file loading
happens here.
"""

from propsmith.workflows.propagation import (
    PropagationAnalysisResult,
    UncertaintyPropagationAnalysis,
    run_analysis_from_config,
)

__all__ = [
    "PropagationAnalysisResult",
    "UncertaintyPropagationAnalysis",
    "run_analysis_from_config",
]
