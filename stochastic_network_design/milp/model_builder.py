"""
Generalized two-stage stochastic network design MILP.

First stage:  is_open[n]         binary, one per configurable node
Second stage: flow[i, j, k]      continuous, one per declared arc and scenario
              lost_demand[n, k]  continuous, one per demand node and scenario

Objective (maximize expected profit):
    - Σ_n opening_cost(n)·is_open[n]
    + Σ_k p(k)·[ revenue·Σ_n (d(n)·df(n,k) − lost_demand[n,k])
                 − Σ_(i,j) c(i,j)·flow[i,j,k]
                 − Σ_n processing_cost(n)·outflow(n,k)
                 − Σ_n penalty(n)·lost_demand[n,k] ]
"""

import logging
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Tuple, Union

import pulp

from ..config import ScenarioConfig, SolverConfig
from ..data.examples import NetworkDesignInstance
from ..data.models import SupplyChainNetwork
from ..data.scenarios import ScenarioSet
from .solver import MILPSolver, TerminationStatus

logger = logging.getLogger(__name__)

FlowKey = Tuple[str, str, Hashable]
NodeScenarioKey = Tuple[str, Hashable]


class NetworkDesignMILP:
    """
    Expected-profit network design model over a generalized node/arc graph.

    All index sets are materialized once by build_model(); variables and
    constraints exist only for their index sets. Each instance owns its own
    containers, so models built from the same network never share state.
    """

    def __init__(
        self,
        network: SupplyChainNetwork,
        scenarios: ScenarioSet,
        revenue_per_unit: float,
        name: str = "NetworkDesign",
        probability_tolerance: float = 1e-6
    ):
        """
        Initialize the model.

        Args:
            network: Nodes, arcs and configurable set
            scenarios: Scenario probabilities and factor tables
            revenue_per_unit: Revenue per unit of satisfied demand
            name: PuLP problem name
            probability_tolerance: Allowed deviation of Σ p(k) from 1
        """
        self.network = network
        self.scenarios = scenarios
        self.revenue_per_unit = revenue_per_unit
        self.name = name
        self.probability_tolerance = probability_tolerance

        # PuLP model
        self.model: Optional[pulp.LpProblem] = None

        # Exclusive groups survive rebuilds and are re-applied to each new model
        self._exclusive_groups: Dict[str, List[str]] = {}

        self._reset()

    def _reset(self):
        """Drop every container tied to a previously built model."""
        # Index sets
        self.open_index: List[str] = []
        self.flow_index: List[FlowKey] = []
        self.lost_demand_index: List[NodeScenarioKey] = []
        self.balance_index: List[NodeScenarioKey] = []
        self.demand_index: List[NodeScenarioKey] = []
        self.capacity_index: List[NodeScenarioKey] = []

        # Decision variables
        self.is_open: Dict[str, pulp.LpVariable] = {}
        self.flow: Dict[FlowKey, pulp.LpVariable] = {}
        self.lost_demand: Dict[NodeScenarioKey, pulp.LpVariable] = {}

        # Constraint families
        self.flow_balance: Dict[NodeScenarioKey, pulp.LpConstraint] = {}
        self.demand_satisfaction: Dict[NodeScenarioKey, pulp.LpConstraint] = {}
        self.node_capacity: Dict[NodeScenarioKey, pulp.LpConstraint] = {}
        self.exclusive_selection: Dict[str, pulp.LpConstraint] = {}

        # Positions used in variable and constraint names
        self._node_pos: Dict[str, int] = {}
        self._scen_pos: Dict[Hashable, int] = {}

        # Results
        self.status: Optional[TerminationStatus] = None
        self.optimal_value: Optional[float] = None

    @property
    def is_built(self) -> bool:
        return self.model is not None

    def build_model(self) -> pulp.LpProblem:
        """
        Build the complete MILP model. Never invokes a solver.

        Rebuilding discards the previous model, its variables and results;
        exclusive groups added earlier are applied again.

        Returns:
            PuLP LpProblem object
        """
        self._reset()
        self.model = pulp.LpProblem(self.name, pulp.LpMaximize)

        self.scenarios.check_probabilities(self.probability_tolerance)
        if self.scenarios.num_scenarios == 0 and self.network.num_nodes > 0:
            logger.warning("Empty scenario set: model %s is degenerate", self.name)

        self._build_index_sets()
        self._create_variables()
        self._set_objective()

        self._add_flow_balance_constraints()
        self._add_demand_satisfaction_constraints()
        self._add_node_capacity_constraints()
        for group_name, members in self._exclusive_groups.items():
            members = [n for n in members if n in self.is_open]
            if members:
                self._add_exclusive_constraint(group_name, members)

        logger.info(
            "Built %s: %d variables, %d constraints",
            self.name, len(self.model.variables()), len(self.model.constraints)
        )
        return self.model

    def _build_index_sets(self):
        """Materialize the valid (node,), (i, j, k) and (node, k) tuples."""
        network = self.network
        K = self.scenarios.ids

        self.open_index = [n for n in network.node_ids if network.is_configurable(n)]
        self.flow_index = [(arc.source, arc.target, k) for arc in network.arcs for k in K]
        self.lost_demand_index = [(node.id, k) for node in network.demand_nodes for k in K]
        self.demand_index = list(self.lost_demand_index)

        # Nodes without incident arcs take no part in flow balance
        self.balance_index = [
            (node.id, k)
            for node in network.intermediate_nodes
            if network.incoming(node.id) or network.outgoing(node.id)
            for k in K
        ]

        # Capacity bounds outflow, so nodes without outgoing arcs need none
        self.capacity_index = [
            (node.id, k)
            for node in network.nodes
            if node.has_capacity and network.outgoing(node.id)
            for k in K
        ]

        for node in network.source_nodes:
            if not node.has_capacity:
                logger.info("Source node %s has no capacity: outflow is unbounded", node.id)
        for n in self.open_index:
            if not network.get_node(n).has_capacity:
                logger.warning(
                    "Configurable node %s has no capacity: closing it does not restrict its flow", n
                )

    def _create_variables(self):
        """Create decision variables for the materialized index sets."""
        # Names use positions so arbitrary ids cannot clash after PuLP sanitizing
        node_pos = {node_id: p for p, node_id in enumerate(self.network.node_ids)}
        arc_pos = {arc.pair: a for a, arc in enumerate(self.network.arcs)}
        scen_pos = {k: s for s, k in enumerate(self.scenarios.ids)}

        for n in self.open_index:
            self.is_open[n] = pulp.LpVariable(f"is_open_{node_pos[n]}", cat=pulp.LpBinary)

        for (i, j, k) in self.flow_index:
            self.flow[(i, j, k)] = pulp.LpVariable(
                f"flow_{arc_pos[(i, j)]}_{scen_pos[k]}",
                lowBound=0,
                cat=pulp.LpContinuous
            )

        for (n, k) in self.lost_demand_index:
            self.lost_demand[(n, k)] = pulp.LpVariable(
                f"lost_demand_{node_pos[n]}_{scen_pos[k]}",
                lowBound=0,
                cat=pulp.LpContinuous
            )

        self._node_pos = node_pos
        self._scen_pos = scen_pos

    # ------------------------------------------------------------------
    # Expression helpers
    # ------------------------------------------------------------------

    def flow_var(self, i: str, j: str, k: Hashable) -> Union[pulp.LpVariable, float]:
        """Flow variable on (i, j) in scenario k; 0 when (i, j) is not an arc."""
        return self.flow.get((i, j, k), 0.0)

    def open_factor(self, n: str) -> Union[pulp.LpVariable, float]:
        """is_open[n] for configurable nodes, 1.0 otherwise."""
        return self.is_open.get(n, 1.0)

    def inflow(self, n: str, k: Hashable) -> pulp.LpAffineExpression:
        return pulp.lpSum(self.flow_var(arc.source, n, k) for arc in self.network.incoming(n))

    def outflow(self, n: str, k: Hashable) -> pulp.LpAffineExpression:
        return pulp.lpSum(self.flow_var(n, arc.target, k) for arc in self.network.outgoing(n))

    def opening_cost_expr(self) -> pulp.LpAffineExpression:
        """First-stage cost Σ opening_cost(n)·is_open[n]."""
        return pulp.lpSum(
            self.network.get_node(n).opening_cost * self.is_open[n]
            for n in self.open_index
            if self.network.get_node(n).opening_cost is not None
        )

    def revenue_expr(self, k: Hashable) -> pulp.LpAffineExpression:
        """revenue·Σ_n (d(n)·df(n, k) − lost_demand[n, k])."""
        return self.revenue_per_unit * pulp.lpSum(
            self.scenarios.scenario_demand(node, k) - self.lost_demand[(node.id, k)]
            for node in self.network.demand_nodes
        )

    def transport_expr(self, k: Hashable) -> pulp.LpAffineExpression:
        return pulp.lpSum(
            arc.transport_cost * self.flow_var(arc.source, arc.target, k)
            for arc in self.network.arcs
        )

    def processing_expr(self, k: Hashable) -> pulp.LpAffineExpression:
        """Processing cost charged per unit flowing out of a node."""
        return pulp.lpSum(
            node.processing_cost * self.outflow(node.id, k)
            for node in self.network.nodes
            if node.processing_cost > 0
        )

    def penalty_expr(self, k: Hashable) -> pulp.LpAffineExpression:
        return pulp.lpSum(
            node.lost_demand_penalty * self.lost_demand[(node.id, k)]
            for node in self.network.demand_nodes
        )

    def scenario_profit_expr(self, k: Hashable) -> pulp.LpAffineExpression:
        """Second-stage profit of scenario k."""
        return (
            self.revenue_expr(k)
            - self.transport_expr(k)
            - self.processing_expr(k)
            - self.penalty_expr(k)
        )

    # ------------------------------------------------------------------
    # Objective and constraints
    # ------------------------------------------------------------------

    def _set_objective(self):
        """Maximize −opening costs + Σ_k p(k)·profit_k."""
        expected_profit = pulp.lpSum(
            self.scenarios.probability(k) * self.scenario_profit_expr(k)
            for k in self.scenarios.ids
        )
        self.model += -self.opening_cost_expr() + expected_profit, "ExpectedProfit"

    def _add_flow_balance_constraints(self):
        """
        Flow balance for intermediate nodes:
        Σ_i flow[i, n, k] = Σ_j flow[n, j, k]
        """
        for (n, k) in self.balance_index:
            name = f"FlowBalance_{self._node_pos[n]}_{self._scen_pos[k]}"
            con = self.inflow(n, k) == self.outflow(n, k)
            self.model.addConstraint(con, name)
            self.flow_balance[(n, k)] = con

    def _add_demand_satisfaction_constraints(self):
        """
        Demand satisfaction for demand nodes:
        Σ_i flow[i, n, k] + lost_demand[n, k] = d(n)·df(n, k)
        """
        for (n, k) in self.demand_index:
            node = self.network.get_node(n)
            name = f"DemandSat_{self._node_pos[n]}_{self._scen_pos[k]}"
            con = self.inflow(n, k) + self.lost_demand[(n, k)] == self.scenarios.scenario_demand(node, k)
            self.model.addConstraint(con, name)
            self.demand_satisfaction[(n, k)] = con

    def _add_node_capacity_constraints(self):
        """
        Node capacity for every node carrying a capacity:
        Σ_j flow[n, j, k] ≤ cap(n)·cf(n, k)·(is_open[n] or 1)
        """
        for (n, k) in self.capacity_index:
            node = self.network.get_node(n)
            bound = node.capacity * self.scenarios.capacity_factor(n, k)
            name = f"NodeCap_{self._node_pos[n]}_{self._scen_pos[k]}"
            con = self.outflow(n, k) <= bound * self.open_factor(n)
            self.model.addConstraint(con, name)
            self.node_capacity[(n, k)] = con

    def add_exclusive_selection(self, group: Iterable[str], name: str) -> Optional[pulp.LpConstraint]:
        """
        Allow at most one node of a group of configurable nodes to open,
        e.g. the small and large variant of a facility location.

        Args:
            group: Configurable node ids
            name: Constraint name

        Returns:
            The added constraint, None when no node of the group is configurable

        Raises:
            ValueError: a group with the same name was already added
        """
        if self.model is None:
            self.build_model()
        if name in self._exclusive_groups:
            raise ValueError(f"Exclusive group {name!r} already exists")

        members = []
        for n in group:
            if n in self.is_open:
                members.append(n)
            else:
                logger.warning("Exclusive group %s: %s is not configurable; skipped", name, n)
        if not members:
            return None

        self._exclusive_groups[name] = members
        return self._add_exclusive_constraint(name, members)

    def _add_exclusive_constraint(self, name: str, members: List[str]) -> pulp.LpConstraint:
        # PuLP name by position; the group name may contain any characters
        con = pulp.lpSum(self.is_open[n] for n in members) <= 1
        self.model.addConstraint(con, f"Exclusive_{len(self.exclusive_selection)}")
        self.exclusive_selection[name] = con
        return con

    def solve(self, config: Optional[SolverConfig] = None) -> TerminationStatus:
        """
        Solve the model with the solver collaborator.

        Args:
            config: Solver settings

        Returns:
            TerminationStatus (never raises on infeasible/unbounded)
        """
        if self.model is None:
            self.build_model()

        solver = MILPSolver(config)
        self.status = solver.solve(self.model)

        if self.status in (TerminationStatus.OPTIMAL, TerminationStatus.SUBOPTIMAL):
            self.optimal_value = solver.objective_value(self.model)
        else:
            self.optimal_value = None

        return self.status


def build_generalized_model(
    nodes: Iterable[str],
    arc_definitions: Iterable[Mapping[str, Any]],
    node_data: Mapping[str, Mapping[str, Any]],
    scenario_data: Mapping[str, Mapping[Tuple[str, Hashable], float]],
    configurable_nodes: Iterable[str],
    probabilities: Mapping[Hashable, float],
    revenue_per_unit: float,
    name: str = "NetworkDesign"
) -> NetworkDesignMILP:
    """
    Build the network design model from the declarative input format.

    Args:
        nodes: Node identifiers
        arc_definitions: Records with 'from', 'to' and 'cost'
        node_data: Attribute table keyed by node id
        scenario_data: {'capacity_factor': {(n, k): f}, 'demand_factor': {(n, k): f}}
        configurable_nodes: Nodes with a first-stage open/close decision
        probabilities: {k: p(k)}
        revenue_per_unit: Revenue per unit of satisfied demand
        name: Problem name

    Returns:
        Built (unsolved) NetworkDesignMILP
    """
    network = SupplyChainNetwork.from_definitions(
        nodes, arc_definitions, node_data, configurable_nodes
    )
    scenarios = ScenarioSet.from_definitions(scenario_data, probabilities)

    milp = NetworkDesignMILP(network, scenarios, revenue_per_unit, name=name)
    milp.build_model()
    return milp


def build_instance_model(
    instance: NetworkDesignInstance,
    scenario_config: Optional[ScenarioConfig] = None
) -> NetworkDesignMILP:
    """Build the model of a NetworkDesignInstance including its exclusive groups."""
    scenario_config = scenario_config or ScenarioConfig()
    milp = NetworkDesignMILP(
        instance.network,
        instance.scenarios,
        instance.revenue_per_unit,
        name=f"NetworkDesign_{instance.name}",
        probability_tolerance=scenario_config.probability_tolerance
    )
    milp.build_model()
    for group_name, members in instance.exclusive_groups.items():
        milp.add_exclusive_selection(members, group_name)
    return milp
