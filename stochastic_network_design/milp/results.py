"""
Result extraction for a solved network design model.

Read-only projection of the solved MILP: opened facilities, non-zero flows
and lost demand per scenario, and a per-scenario profit breakdown.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import ResultConfig
from .model_builder import NetworkDesignMILP
from .solver import MILPSolver, TerminationStatus

logger = logging.getLogger(__name__)


@dataclass
class ScenarioCosts:
    """Second-stage economics of one scenario."""
    revenue: float
    transport: float
    processing: float
    penalty: float

    @property
    def profit(self) -> float:
        return self.revenue - self.transport - self.processing - self.penalty


@dataclass
class NetworkDesignResult:
    """
    Projection of a solved network design model.

    Numeric fields are only populated when the status is OPTIMAL.
    """
    status: TerminationStatus
    objective_value: Optional[float] = None
    open_nodes: List[str] = field(default_factory=list)
    closed_nodes: List[str] = field(default_factory=list)
    flows: Dict[Hashable, Dict[Tuple[str, str], float]] = field(default_factory=dict)
    lost_demand: Dict[Hashable, Dict[str, float]] = field(default_factory=dict)
    cost_breakdown: Dict[Hashable, ScenarioCosts] = field(default_factory=dict)
    opening_cost: float = 0.0
    probabilities: Dict[Hashable, float] = field(default_factory=dict)

    @property
    def is_optimal(self) -> bool:
        return self.status == TerminationStatus.OPTIMAL

    def is_open(self, node_id: str) -> bool:
        return node_id in self.open_nodes

    def active_scenarios_for_arc(self, source: str, target: str) -> List[Hashable]:
        """Scenarios with non-zero flow on (source, target)."""
        return [k for k, arc_flows in self.flows.items() if (source, target) in arc_flows]

    def expected_profit(self) -> float:
        """Σ_k p(k)·profit_k − opening costs."""
        if not self.cost_breakdown:
            return -self.opening_cost
        probs = np.array([self.probabilities.get(k, 0.0) for k in self.cost_breakdown])
        profits = np.array([costs.profit for costs in self.cost_breakdown.values()])
        return float(probs @ profits) - self.opening_cost

    def flows_frame(self) -> pd.DataFrame:
        """Non-zero flows as rows (scenario, source, target, flow)."""
        rows = [
            {"scenario": k, "source": i, "target": j, "flow": value}
            for k, arc_flows in self.flows.items()
            for (i, j), value in arc_flows.items()
        ]
        return pd.DataFrame(rows, columns=["scenario", "source", "target", "flow"])

    def lost_demand_frame(self) -> pd.DataFrame:
        """Non-zero lost demand as rows (scenario, node, lost_demand)."""
        rows = [
            {"scenario": k, "node": n, "lost_demand": value}
            for k, nodes in self.lost_demand.items()
            for n, value in nodes.items()
        ]
        return pd.DataFrame(rows, columns=["scenario", "node", "lost_demand"])

    def cost_frame(self) -> pd.DataFrame:
        """Per-scenario profit breakdown indexed by scenario."""
        columns = ["probability", "revenue", "transport", "processing", "penalty", "profit"]
        rows = {
            k: {
                "probability": self.probabilities.get(k, 0.0),
                "revenue": costs.revenue,
                "transport": costs.transport,
                "processing": costs.processing,
                "penalty": costs.penalty,
                "profit": costs.profit,
            }
            for k, costs in self.cost_breakdown.items()
        }
        frame = pd.DataFrame.from_dict(rows, orient="index", columns=columns)
        frame.index.name = "scenario"
        return frame


class ResultExtractor:
    """Reads decisions out of a solved NetworkDesignMILP without mutating it."""

    def __init__(self, config: Optional[ResultConfig] = None):
        """
        Initialize extractor.

        Args:
            config: Open threshold and value epsilon
        """
        self.config = config or ResultConfig()

    def extract(self, milp: NetworkDesignMILP) -> NetworkDesignResult:
        """
        Extract the result report.

        Args:
            milp: Model after solve()

        Returns:
            NetworkDesignResult; status only unless the model is optimal
        """
        status = milp.status if milp.status is not None else TerminationStatus.NOT_SOLVED
        if status != TerminationStatus.OPTIMAL:
            logger.info("No numeric report for %s: status %s", milp.name, status.value)
            return NetworkDesignResult(status=status)

        value = MILPSolver.value
        eps = self.config.value_epsilon

        open_nodes = [n for n in milp.open_index
                      if value(milp.is_open[n]) > self.config.open_threshold]
        closed_nodes = [n for n in milp.open_index if n not in open_nodes]

        flows: Dict[Hashable, Dict[Tuple[str, str], float]] = {}
        lost_demand: Dict[Hashable, Dict[str, float]] = {}
        cost_breakdown: Dict[Hashable, ScenarioCosts] = {}
        for k in milp.scenarios.ids:
            flows[k] = {}
            for arc in milp.network.arcs:
                flow_val = value(milp.flow[(arc.source, arc.target, k)])
                if flow_val > eps:
                    flows[k][arc.pair] = flow_val

            lost_demand[k] = {}
            for node in milp.network.demand_nodes:
                ld_val = value(milp.lost_demand[(node.id, k)])
                if ld_val > eps:
                    lost_demand[k][node.id] = ld_val

            cost_breakdown[k] = ScenarioCosts(
                revenue=value(milp.revenue_expr(k)),
                transport=value(milp.transport_expr(k)),
                processing=value(milp.processing_expr(k)),
                penalty=value(milp.penalty_expr(k))
            )

        return NetworkDesignResult(
            status=status,
            objective_value=milp.optimal_value,
            open_nodes=open_nodes,
            closed_nodes=closed_nodes,
            flows=flows,
            lost_demand=lost_demand,
            cost_breakdown=cost_breakdown,
            opening_cost=value(milp.opening_cost_expr()),
            probabilities=dict(milp.scenarios.probabilities)
        )


def extract_results(
    milp: NetworkDesignMILP,
    config: Optional[ResultConfig] = None
) -> NetworkDesignResult:
    """Convenience function to extract results."""
    return ResultExtractor(config).extract(milp)


def format_report(result: NetworkDesignResult, title: str = "Network Design") -> str:
    """
    Render the result as a console report.

    Args:
        result: Extracted result
        title: Name used in the headings

    Returns:
        Multi-line report text
    """
    lines = [f"\n--- Results for {title} ---"]

    if not result.is_optimal:
        lines.append(f"Solver status for {title}: {result.status.value}")
        return "\n".join(lines)

    lines.append(f"Optimal solution found for {title}.")
    lines.append(f"Objective value: {result.objective_value:.2f}")

    lines.append("\nSelected Configurable Nodes (is_open):")
    if result.open_nodes:
        for n in result.open_nodes:
            lines.append(f"  Node {n} is selected/open.")
    else:
        lines.append("  (No configurable nodes were selected/opened)")

    lines.append(f"\n--- Second-Stage Variables for {title} (Non-Zero Flow & Lost Demand per Scenario) ---")
    for k, arc_flows in result.flows.items():
        lines.append(f"\n  Scenario {k} (Probability: {result.probabilities.get(k, 0.0)})")
        lines.append("    Flow (source -> destination: value):")
        if arc_flows:
            for (i, j), flow_val in arc_flows.items():
                lines.append(f"      {i} -> {j}: {flow_val:.2f}")
        else:
            lines.append("      (No non-zero flow in this scenario)")

        lines.append("    Lost Demand:")
        scenario_lost = result.lost_demand.get(k, {})
        if scenario_lost:
            for n, ld_val in scenario_lost.items():
                lines.append(f"      Node {n}: {ld_val:.2f}")
        else:
            lines.append("      (No lost demand in this scenario)")

    return "\n".join(lines)
