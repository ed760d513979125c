"""
Shared fixtures and feasibility checks for the test suite.
"""

import matplotlib

matplotlib.use("Agg")

from typing import Dict

import pytest

from stochastic_network_design.config import SolverConfig
from stochastic_network_design.data.examples import (
    create_complex_instance,
    create_extended_instance,
    create_simple_instance,
)
from stochastic_network_design.milp.model_builder import NetworkDesignMILP, build_instance_model
from stochastic_network_design.milp.solver import MILPSolver

TOL = 1e-5


@pytest.fixture
def round_trip_definitions():
    """2 suppliers -> 1 processing node -> 1 demand node, one scenario."""
    return {
        "nodes": ["S1", "S2", "P1", "D1"],
        "arc_definitions": [
            {"from": "S1", "to": "P1", "cost": 1.0},
            {"from": "S2", "to": "P1", "cost": 2.0},
            {"from": "P1", "to": "D1", "cost": 3.0},
        ],
        "node_data": {
            "S1": {"type": "source", "capacity": 1000, "opening_cost": 0},
            "S2": {"type": "source", "capacity": 1000, "opening_cost": 0},
            "P1": {"type": "intermediate", "capacity": 1000, "processing_cost": 0},
            "D1": {"type": "demand", "demand": 100, "lost_demand_penalty": 50},
        },
        "scenario_data": {},
        "configurable_nodes": ["S1", "S2"],
        "probabilities": {1: 1.0},
        "revenue_per_unit": 10.0,
    }


@pytest.fixture
def simple_instance():
    return create_simple_instance()


@pytest.fixture
def complex_instance():
    return create_complex_instance()


@pytest.fixture
def extended_instance():
    return create_extended_instance()


@pytest.fixture(scope="module")
def solved_simple():
    """Simple instance solved with CBC: (instance, milp)."""
    instance = create_simple_instance()
    milp = build_instance_model(instance)
    milp.solve(SolverConfig(time_limit=60))
    return instance, milp


def check_constraints(milp: NetworkDesignMILP) -> Dict[str, int]:
    """
    Count violated modelling properties in a solved model.

    Returns:
        Dict of property name -> violation count
    """
    value = MILPSolver.value
    network = milp.network
    scenarios = milp.scenarios
    violations = {"demand_satisfaction": 0, "flow_balance": 0, "closed_outflow": 0}

    for k in scenarios.ids:
        for node in network.demand_nodes:
            lhs = value(milp.inflow(node.id, k)) + value(milp.lost_demand[(node.id, k)])
            if abs(lhs - scenarios.scenario_demand(node, k)) > TOL:
                violations["demand_satisfaction"] += 1

        for node in network.intermediate_nodes:
            if abs(value(milp.inflow(node.id, k)) - value(milp.outflow(node.id, k))) > TOL:
                violations["flow_balance"] += 1

        for n, var in milp.is_open.items():
            if value(var) < 0.5 and (n, k) in milp.node_capacity:
                if value(milp.outflow(n, k)) > TOL:
                    violations["closed_outflow"] += 1

    return violations


def coefficients(expression) -> Dict[str, float]:
    """Variable name -> coefficient of a PuLP expression or constraint."""
    return {var.name: coef for var, coef in expression.items()}
