"""
Configuration module for stochastic network design.

Contains solver settings, result tolerances, scenario checks and
layout/plot parameters.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass
class SolverConfig:
    """MILP solver settings passed to PuLP."""
    solver_name: str = "PULP_CBC_CMD"  # PULP_CBC_CMD, GUROBI_CMD or HiGHS_CMD
    time_limit: Optional[int] = 300    # Seconds, None for no limit
    msg: bool = False                  # Echo solver log to stdout
    gap_rel: Optional[float] = None    # Relative MIP gap


@dataclass
class ResultConfig:
    """Tolerances used when reading a solved model."""
    open_threshold: float = 0.5   # is_open above this counts as opened
    value_epsilon: float = 1e-6   # Flows / lost demand below this are noise


@dataclass
class ScenarioConfig:
    """Scenario table checks."""
    probability_tolerance: float = 1e-6  # |Σ p(k) - 1| allowed


@dataclass
class LayoutConfig:
    """Echelon layout settings. Both distances must be positive."""
    x_increment: float = 2.5         # Horizontal distance between echelons
    y_spacing: float = 1.0           # Vertical distance inside an echelon
    unknown_prefix: str = "UNKNOWN"  # Echelon for ids without leading letters

    def __post_init__(self):
        if self.x_increment <= 0:
            raise ValueError(f"x_increment must be positive, got {self.x_increment}")
        if self.y_spacing <= 0:
            raise ValueError(f"y_spacing must be positive, got {self.y_spacing}")


@dataclass
class PlotConfig:
    """Rendering settings for the network plot."""
    figsize: Tuple[int, int] = (14, 9)
    dpi: int = 150
    node_size: int = 900
    font_size: int = 10
    edge_label_font_size: int = 8
    colors: Dict[str, str] = field(default_factory=lambda: {
        "open": "#27ae60",          # Green
        "closed": "#e74c3c",        # Red
        "source": "#bdc3c7",        # Light gray
        "demand": "#3498db",        # Blue
        "intermediate": "#f39c12",  # Orange
        "unknown": "#7f8c8d",       # Gray
    })
    edge_color: str = "#555555"


@dataclass
class NetworkDesignConfig:
    """Master configuration for building, solving and plotting."""
    solver: SolverConfig = field(default_factory=SolverConfig)
    results: ResultConfig = field(default_factory=ResultConfig)
    scenarios: ScenarioConfig = field(default_factory=ScenarioConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    plot: PlotConfig = field(default_factory=PlotConfig)


def create_default_config() -> NetworkDesignConfig:
    """Create a default configuration."""
    return NetworkDesignConfig()


def create_fast_config() -> NetworkDesignConfig:
    """Create a configuration with a short solver time limit for quick runs."""
    return NetworkDesignConfig(
        solver=SolverConfig(time_limit=30),
    )
