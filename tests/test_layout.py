"""Tests for the echelon layout engine."""

import logging

import networkx as nx
import pytest

from stochastic_network_design.config import LayoutConfig
from stochastic_network_design.layout.echelon import (
    EchelonOrder,
    OrderKind,
    Point,
    build_prefix_graph,
    compute_echelon_layout,
    layout_network,
    node_prefix,
    order_echelons,
    resolve_echelon_order,
)


@pytest.mark.parametrize("node_id, expected", [
    ("S1", "S"),
    ("WC1L", "WC"),
    ("wr2s", "WR"),
    ("R", "R"),
    ("123", "UNKNOWN"),
    ("_X1", "UNKNOWN"),
])
def test_node_prefix(node_id, expected):
    assert node_prefix(node_id) == expected


def test_complex_instance_columns(complex_instance):
    positions = layout_network(complex_instance.network)

    assert {n: p.x for n, p in positions.items() if n in ("S1", "M1", "W1S", "C1")} == {
        "S1": 0.0, "M1": 2.5, "W1S": 5.0, "C1": 7.5
    }
    assert set(positions) == set(complex_instance.network.node_ids)


def test_extended_instance_orders_central_before_regional(extended_instance):
    positions = layout_network(extended_instance.network)

    assert positions["WC1S"].x < positions["WR1S"].x < positions["C1"].x
    assert positions["S1"].x == 0.0


def test_echelon_members_are_centered_and_sorted():
    positions = compute_echelon_layout(
        ["S2", "S1", "S3", "C1"],
        [("S1", "C1"), ("S2", "C1"), ("S3", "C1")],
    )

    assert positions["S1"] == Point(0.0, -1.0)
    assert positions["S2"] == Point(0.0, 0.0)
    assert positions["S3"] == Point(0.0, 1.0)
    assert positions["C1"] == Point(2.5, 0.0)


def test_even_sized_echelon_is_centered():
    positions = compute_echelon_layout(["A1", "A2"], [], LayoutConfig(y_spacing=2.0))

    assert sorted(p.y for p in positions.values()) == [-1.0, 1.0]


def test_arc_formats_are_accepted(complex_instance):
    network = complex_instance.network
    records = [{"from": i, "to": j} for i, j in network.arc_pairs]

    from_records = compute_echelon_layout(network.node_ids, records)
    from_arcs = compute_echelon_layout(network.node_ids, network.arcs)

    assert from_records == from_arcs == layout_network(network)


def test_cycle_falls_back_to_alphabetical(caplog):
    nodes = ["A1", "B1", "C1"]
    arcs = [("A1", "B1"), ("B1", "C1"), ("C1", "A1")]

    assert order_echelons(build_prefix_graph(nodes, arcs)).kind == OrderKind.CYCLIC
    with caplog.at_level(logging.WARNING):
        positions = compute_echelon_layout(nodes, arcs)

    assert [positions[n].x for n in nodes] == [0.0, 2.5, 5.0]
    assert "Cycle detected" in caplog.text


def test_disconnected_prefixes_follow_sorted_ones():
    nodes = ["Z1", "A1", "S1", "M1"]
    graph = build_prefix_graph(nodes, [("S1", "M1")])

    assert order_echelons(graph) == EchelonOrder(OrderKind.SORTED, ("S", "M"))
    assert resolve_echelon_order(graph) == ["S", "M", "A", "Z"]

    positions = compute_echelon_layout(nodes, [("S1", "M1")])
    assert [positions[n].x for n in ("S1", "M1", "A1", "Z1")] == [0.0, 2.5, 5.0, 7.5]


def test_empty_input():
    assert order_echelons(nx.DiGraph()).kind == OrderKind.EMPTY
    assert resolve_echelon_order(nx.DiGraph()) == []
    assert compute_echelon_layout([], []) == {}


def test_isolated_nodes_are_placed():
    positions = compute_echelon_layout(["S1", "X1", "C1", "9"], [("S1", "C1")])

    assert set(positions) == {"S1", "X1", "C1", "9"}
    assert positions["S1"].x < positions["C1"].x


def test_intra_echelon_arcs_are_ignored():
    graph = build_prefix_graph(["W1", "W2", "C1"], [("W1", "W2"), ("W2", "C1")])

    assert list(graph.edges) == [("W", "C")]


def test_arcs_to_unknown_nodes_are_ignored():
    graph = build_prefix_graph(["S1", "C1"], [("S1", "C1"), ("S1", "Q9")])

    assert set(graph.nodes) == {"S", "C"}


def test_layout_is_deterministic(extended_instance):
    network = extended_instance.network

    first = layout_network(network)
    second = compute_echelon_layout(list(reversed(network.node_ids)),
                                    list(reversed(network.arc_pairs)))

    assert first == second


def test_custom_increment():
    positions = compute_echelon_layout(["S1", "C1"], [("S1", "C1")], LayoutConfig(x_increment=4.0))

    assert positions["C1"].x == 4.0


def test_cyclic_layout_is_total_and_non_colliding():
    nodes = ["A1", "A2", "B1", "B2", "B3", "C1", "7"]
    arcs = [("A1", "B1"), ("B2", "C1"), ("C1", "A2"), ("7", "A1")]

    positions = compute_echelon_layout(nodes, arcs)

    assert set(positions) == set(nodes)
    assert len(set(positions.values())) == len(nodes)


@pytest.mark.parametrize("kwargs", [{"y_spacing": 0.0}, {"y_spacing": -1.0}, {"x_increment": 0.0}])
def test_layout_config_rejects_non_positive_spacing(kwargs):
    with pytest.raises(ValueError, match="must be positive"):
        LayoutConfig(**kwargs)
