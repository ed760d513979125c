"""
Discrete scenario set for the two-stage stochastic program.

Each scenario k has a probability p(k) and perturbs node capacity and
demand through multiplicative factors (default 1.0 when absent).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Mapping, Tuple

import numpy as np

from .models import DemandNode, Node

logger = logging.getLogger(__name__)

CAPACITY_FACTOR = "capacity_factor"
DEMAND_FACTOR = "demand_factor"

FactorTable = Dict[Tuple[str, Hashable], float]


@dataclass
class ScenarioSet:
    """
    Scenario index set K with probabilities and factor tables.

    Attributes:
        probabilities: p(k) per scenario, in scenario order
        capacity_factors: multiplier per (node, scenario) applied to capacity
        demand_factors: multiplier per (node, scenario) applied to demand
        default_factor: factor used for missing (node, scenario) entries
    """
    probabilities: Dict[Hashable, float]
    capacity_factors: FactorTable = field(default_factory=dict)
    demand_factors: FactorTable = field(default_factory=dict)
    default_factor: float = 1.0

    def __post_init__(self):
        """Validate probabilities and factors."""
        self.probabilities = dict(self.probabilities)
        for k, p in self.probabilities.items():
            if p < 0:
                raise ValueError(f"Scenario {k}: probability must be non-negative, got {p}")
        for name, table in ((CAPACITY_FACTOR, self.capacity_factors),
                            (DEMAND_FACTOR, self.demand_factors)):
            for key, value in table.items():
                if value < 0:
                    raise ValueError(f"{name}{key} must be non-negative, got {value}")

    @property
    def ids(self) -> List[Hashable]:
        """Scenario identifiers in declaration order."""
        return list(self.probabilities)

    @property
    def num_scenarios(self) -> int:
        return len(self.probabilities)

    def probability(self, k: Hashable) -> float:
        return self.probabilities[k]

    def capacity_factor(self, node_id: str, k: Hashable) -> float:
        return self.capacity_factors.get((node_id, k), self.default_factor)

    def demand_factor(self, node_id: str, k: Hashable) -> float:
        return self.demand_factors.get((node_id, k), self.default_factor)

    def probability_total(self) -> float:
        return float(sum(self.probabilities.values()))

    def sums_to_one(self, tolerance: float = 1e-6) -> bool:
        """Whether Σ p(k) equals 1 within tolerance."""
        return bool(np.isclose(self.probability_total(), 1.0, rtol=0.0, atol=tolerance))

    def check_probabilities(self, tolerance: float = 1e-6) -> bool:
        """
        Flag probability tables that do not sum to one.

        The table is still usable; the objective is then a weighted sum
        rather than an expectation.
        """
        if self.sums_to_one(tolerance):
            return True
        logger.warning(
            "Scenario probabilities sum to %.6f, expected 1.0 (tolerance %g)",
            self.probability_total(), tolerance
        )
        return False

    def scenario_capacity(self, node: Node, k: Hashable) -> float:
        """Capacity of node under scenario k (inf when uncapacitated)."""
        if node.capacity is None:
            return float("inf")
        return node.capacity * self.capacity_factor(node.id, k)

    def scenario_demand(self, node: DemandNode, k: Hashable) -> float:
        """Demand d(n)·demand_factor(n, k)."""
        return node.demand * self.demand_factor(node.id, k)

    def expected_demand(self, node: DemandNode) -> float:
        """E[d(n)] = Σ_k p(k)·d(n)·demand_factor(n, k)."""
        if not self.probabilities:
            return 0.0
        probs = np.array([self.probability(k) for k in self.ids])
        demands = np.array([self.scenario_demand(node, k) for k in self.ids])
        return float(probs @ demands)

    @classmethod
    def from_definitions(
        cls,
        scenario_data: Mapping[str, Mapping[Tuple[str, Hashable], Any]],
        probabilities: Mapping[Hashable, float],
        default_factor: float = 1.0
    ) -> "ScenarioSet":
        """
        Build a scenario set from the declarative factor tables.

        Args:
            scenario_data: {'capacity_factor': {(node, k): f}, 'demand_factor': {...}}
            probabilities: {k: p(k)}
            default_factor: factor for missing entries

        Returns:
            ScenarioSet
        """
        tables: Dict[str, FactorTable] = {CAPACITY_FACTOR: {}, DEMAND_FACTOR: {}}
        for category, entries in (scenario_data or {}).items():
            if category not in tables:
                logger.warning("Unknown scenario factor category %r; ignored", category)
                continue
            for (node_id, k), value in entries.items():
                if k not in probabilities:
                    logger.warning(
                        "%s for (%s, %s) references an unknown scenario; ignored",
                        category, node_id, k
                    )
                    continue
                tables[category][(str(node_id), k)] = float(value)

        return cls(
            probabilities={k: float(p) for k, p in probabilities.items()},
            capacity_factors=tables[CAPACITY_FACTOR],
            demand_factors=tables[DEMAND_FACTOR],
            default_factor=default_factor
        )
