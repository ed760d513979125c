"""Tests for NetworkDesignMILP construction (no solver involved)."""

import logging

import pulp
import pytest

from conftest import coefficients

from stochastic_network_design.data.models import (
    Arc,
    DemandNode,
    IntermediateNode,
    SourceNode,
    SupplyChainNetwork,
)
from stochastic_network_design.data.scenarios import ScenarioSet
from stochastic_network_design.milp.model_builder import (
    NetworkDesignMILP,
    build_generalized_model,
    build_instance_model,
)


def test_build_does_not_solve(round_trip_definitions):
    milp = build_generalized_model(**round_trip_definitions)

    assert milp.is_built
    assert milp.status is None
    assert milp.optimal_value is None
    assert milp.model.sense == pulp.LpMaximize
    assert all(var.varValue is None for var in milp.model.variables())


def test_variables_exist_only_for_index_sets(round_trip_definitions):
    milp = build_generalized_model(**round_trip_definitions)

    assert set(milp.is_open) == {"S1", "S2"}
    assert set(milp.flow) == {("S1", "P1", 1), ("S2", "P1", 1), ("P1", "D1", 1)}
    assert set(milp.lost_demand) == {("D1", 1)}
    assert len(milp.model.variables()) == 2 + 3 + 1

    assert milp.flow_var("S1", "D1", 1) == 0.0
    assert milp.open_factor("P1") == 1.0
    assert milp.open_factor("S1") is milp.is_open["S1"]


def test_constraint_families(round_trip_definitions):
    milp = build_generalized_model(**round_trip_definitions)

    assert set(milp.flow_balance) == {("P1", 1)}
    assert set(milp.demand_satisfaction) == {("D1", 1)}
    # D1 has no capacity and no outgoing arcs
    assert set(milp.node_capacity) == {("S1", 1), ("S2", 1), ("P1", 1)}
    assert len(milp.model.constraints) == 5

    demand = milp.demand_satisfaction[("D1", 1)]
    assert demand.sense == pulp.LpConstraintEQ
    assert -demand.constant == pytest.approx(100.0)

    capacity = milp.node_capacity[("S1", 1)]
    assert capacity.sense == pulp.LpConstraintLE
    assert coefficients(capacity).get(milp.is_open["S1"].name, 0.0) == pytest.approx(-1000.0)


def test_objective_coefficients(round_trip_definitions):
    round_trip_definitions["node_data"]["S1"]["opening_cost"] = 7
    milp = build_generalized_model(**round_trip_definitions)
    coef = coefficients(milp.model.objective)

    assert coef[milp.is_open["S1"].name] == pytest.approx(-7.0)
    assert coef[milp.flow[("S1", "P1", 1)].name] == pytest.approx(-1.0)
    assert coef[milp.flow[("P1", "D1", 1)].name] == pytest.approx(-3.0)
    # revenue 10 lost plus penalty 50 per unit of lost demand
    assert coef[milp.lost_demand[("D1", 1)].name] == pytest.approx(-60.0)
    assert milp.model.objective.constant == pytest.approx(10.0 * 100)


def test_processing_cost_charged_on_outflow():
    network = SupplyChainNetwork(
        nodes=[SourceNode("S1", capacity=10), IntermediateNode("M1", processing_cost=4.0),
               DemandNode("C1", demand=5, lost_demand_penalty=1)],
        arcs=[Arc("S1", "M1", 0.0), Arc("M1", "C1", 0.0)],
    )
    milp = NetworkDesignMILP(network, ScenarioSet({1: 0.5, 2: 0.5}), revenue_per_unit=1.0)
    milp.build_model()
    coef = coefficients(milp.model.objective)

    assert coef[milp.flow[("M1", "C1", 1)].name] == pytest.approx(-2.0)
    assert coef.get(milp.flow[("S1", "M1", 1)].name, 0.0) == 0


def test_scenario_factors_scale_demand_and_capacity(complex_instance):
    milp = build_instance_model(complex_instance)

    c1_surge = milp.demand_satisfaction[("C1", 2)]
    assert -c1_surge.constant == pytest.approx(150 * 1.2)

    w1s_failed = milp.node_capacity[("W1S", 2)]
    assert coefficients(w1s_failed).get(milp.is_open["W1S"].name, 0.0) == pytest.approx(0.0)
    s3_reduced = milp.node_capacity[("S3", 3)]
    assert coefficients(s3_reduced).get(milp.is_open["S3"].name, 0.0) == pytest.approx(-550 * 0.7)


def test_isolated_intermediate_gets_no_constraints():
    network = SupplyChainNetwork(
        nodes=[SourceNode("S1", capacity=10), IntermediateNode("X1", capacity=5),
               DemandNode("C1", demand=5, lost_demand_penalty=1)],
        arcs=[Arc("S1", "C1", 1.0)],
    )
    milp = NetworkDesignMILP(network, ScenarioSet({1: 1.0}), revenue_per_unit=1.0)
    milp.build_model()

    assert milp.balance_index == []
    assert all("X1" not in key for key in milp.flow)
    assert ("X1", 1) not in milp.node_capacity


def test_source_without_capacity_is_unbounded(caplog):
    network = SupplyChainNetwork(
        nodes=[SourceNode("S1"), DemandNode("C1", demand=5, lost_demand_penalty=1)],
        arcs=[Arc("S1", "C1", 1.0)],
    )
    milp = NetworkDesignMILP(network, ScenarioSet({1: 1.0}), revenue_per_unit=1.0)

    with caplog.at_level(logging.INFO, logger="stochastic_network_design"):
        milp.build_model()

    assert milp.node_capacity == {}
    assert "outflow is unbounded" in caplog.text


def test_models_do_not_share_state(simple_instance):
    first = NetworkDesignMILP(simple_instance.network, simple_instance.scenarios, 50.0)
    second = NetworkDesignMILP(simple_instance.network, simple_instance.scenarios, 50.0)
    first.build_model()
    first.add_exclusive_selection(["S1", "S2"], "only_one")

    second.build_model()

    assert first.model is not second.model
    assert first.flow[("S1", "R", 1)] is not second.flow[("S1", "R", 1)]
    assert second.exclusive_selection == {}
    assert "only_one" not in second.model.constraints


def test_unbalanced_probabilities_flagged(round_trip_definitions, caplog):
    round_trip_definitions["probabilities"] = {1: 0.5}

    with caplog.at_level(logging.WARNING):
        milp = build_generalized_model(**round_trip_definitions)

    assert milp.is_built
    assert "probabilities sum to" in caplog.text


def test_empty_scenario_set_builds_degenerate_model(round_trip_definitions, caplog):
    round_trip_definitions["probabilities"] = {}

    with caplog.at_level(logging.WARNING):
        milp = build_generalized_model(**round_trip_definitions)

    assert milp.flow == {}
    assert milp.lost_demand == {}
    assert set(milp.is_open) == {"S1", "S2"}
    assert "Empty scenario set" in caplog.text


def test_exclusive_selection(complex_instance):
    milp = build_instance_model(complex_instance)

    assert set(milp.exclusive_selection) == {"dc_size_select_w1", "dc_size_select_w2"}
    w1 = milp.exclusive_selection["dc_size_select_w1"]
    assert w1.sense == pulp.LpConstraintLE
    assert coefficients(w1).get(milp.is_open["W1S"].name, 0.0) == 1
    assert coefficients(w1).get(milp.is_open["W1L"].name, 0.0) == 1


def test_exclusive_selection_skips_non_configurable(complex_instance, caplog):
    milp = build_instance_model(complex_instance)

    with caplog.at_level(logging.WARNING):
        assert milp.add_exclusive_selection(["M1", "M2"], "manufacturers") is None
    assert "not configurable" in caplog.text
    assert "manufacturers" not in milp.model.constraints


def test_variable_names_are_unique_for_awkward_ids():
    nodes = ["S-1", "S 1", "C/1"]
    network = SupplyChainNetwork.from_definitions(
        nodes,
        [{"from": "S-1", "to": "C/1", "cost": 1}, {"from": "S 1", "to": "C/1", "cost": 1}],
        {"S-1": {"type": "source", "capacity": 5},
         "S 1": {"type": "source", "capacity": 5},
         "C/1": {"type": "demand", "demand": 3, "lost_demand_penalty": 1}},
    )
    milp = NetworkDesignMILP(network, ScenarioSet({"base": 1.0}), revenue_per_unit=1.0)
    milp.build_model()

    names = [var.name for var in milp.model.variables()]
    assert len(names) == len(set(names)) == 3


def test_configurable_node_without_capacity_is_flagged(caplog):
    network = SupplyChainNetwork(
        nodes=[SourceNode("S1", opening_cost=5.0), DemandNode("C1", demand=5, lost_demand_penalty=1)],
        arcs=[Arc("S1", "C1", 1.0)],
        configurable={"S1"},
    )
    milp = NetworkDesignMILP(network, ScenarioSet({1: 1.0}), revenue_per_unit=1.0)

    with caplog.at_level(logging.WARNING):
        milp.build_model()

    assert "S1" in milp.is_open
    assert milp.node_capacity == {}
    assert "closing it does not restrict its flow" in caplog.text


def test_exclusive_group_name_with_special_characters(complex_instance):
    milp = NetworkDesignMILP(complex_instance.network, complex_instance.scenarios, 50.0)
    milp.build_model()

    con = milp.add_exclusive_selection(["W1S", "W1L"], "dc size w1/large-or->small")

    assert milp.exclusive_selection["dc size w1/large-or->small"] is con
    assert any(c is con for c in milp.model.constraints.values())
    assert coefficients(con) == {milp.is_open["W1S"].name: 1, milp.is_open["W1L"].name: 1}


def test_duplicate_exclusive_group_rejected(complex_instance):
    milp = build_instance_model(complex_instance)
    constraints_before = len(milp.model.constraints)

    with pytest.raises(ValueError, match="already exists"):
        milp.add_exclusive_selection(["W2S", "W2L"], "dc_size_select_w1")

    assert len(milp.model.constraints) == constraints_before


def test_constraint_families_are_stored_in_model(round_trip_definitions):
    milp = build_generalized_model(**round_trip_definitions)
    stored = list(milp.model.constraints.values())

    for family in (milp.flow_balance, milp.demand_satisfaction, milp.node_capacity):
        assert all(any(c is con for c in stored) for con in family.values())


def test_rebuild_starts_fresh_and_keeps_exclusive_groups(complex_instance):
    milp = build_instance_model(complex_instance)
    first_model = milp.model
    first_flow = milp.flow[("S1", "M1", 1)]

    milp.scenarios = ScenarioSet({1: 1.0})
    milp.build_model()

    assert milp.model is not first_model
    assert milp.flow[("S1", "M1", 1)] is not first_flow
    assert all(k == 1 for (_, _, k) in milp.flow)
    assert all(k == 1 for (_, k) in milp.node_capacity)
    assert set(milp.exclusive_selection) == {"dc_size_select_w1", "dc_size_select_w2"}
    stored = list(milp.model.constraints.values())
    assert all(any(c is con for c in stored) for con in milp.exclusive_selection.values())
    assert milp.status is None and milp.optimal_value is None
