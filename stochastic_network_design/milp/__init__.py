# Network Design MILP Package
"""
Two-stage stochastic MILP for network design.

First-stage decisions:
- is_open_n: open/close configurable node n
Second-stage decisions (per scenario k):
- flow_{i,j,k}: flow on declared arc (i, j)
- lost_demand_{n,k}: unmet demand at demand node n
"""

from .model_builder import NetworkDesignMILP, build_generalized_model, build_instance_model
from .solver import MILPSolver, TerminationStatus
from .results import NetworkDesignResult, ResultExtractor, ScenarioCosts, extract_results, format_report

__all__ = [
    "NetworkDesignMILP",
    "build_generalized_model",
    "build_instance_model",
    "MILPSolver",
    "TerminationStatus",
    "NetworkDesignResult",
    "ResultExtractor",
    "ScenarioCosts",
    "extract_results",
    "format_report",
]
