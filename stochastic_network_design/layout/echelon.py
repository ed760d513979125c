"""
Echelon layout for network drawings.

Infers a left-to-right layered layout from node identifiers: the leading
alphabetic run of an id (S1 -> S, WC1L -> WC) names its echelon, and the
echelons are ordered topologically along the arcs between them.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

import networkx as nx
import numpy as np

from ..config import LayoutConfig
from ..data.models import SupplyChainNetwork

logger = logging.getLogger(__name__)

_PREFIX_PATTERN = re.compile(r"^[A-Za-z]+")


class Point(NamedTuple):
    """2-D drawing position."""
    x: float
    y: float


class OrderKind(str, Enum):
    """Outcome of ordering the prefix graph."""
    SORTED = "sorted"
    CYCLIC = "cyclic"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class EchelonOrder:
    """
    Tagged result of the topological sort.

    Attributes:
        kind: SORTED, CYCLIC, EMPTY or FAILED
        order: Sorted prefixes (only for SORTED); prefixes without any
            inter-echelon arc are not part of it
    """
    kind: OrderKind
    order: Tuple[str, ...] = ()


def node_prefix(node_id: str, unknown_prefix: str = "UNKNOWN") -> str:
    """Leading alphabetic run of node_id, upper-cased; unknown_prefix if none."""
    match = _PREFIX_PATTERN.match(str(node_id))
    if match is None:
        return unknown_prefix
    return match.group(0).upper()


def _arc_endpoints(arc: Any) -> Tuple[str, str]:
    """Accept Arc objects, {'from', 'to'} records or (from, to) pairs."""
    if hasattr(arc, "pair"):
        return arc.pair
    if isinstance(arc, Mapping):
        return str(arc["from"]), str(arc["to"])
    source, target = tuple(arc)[:2]
    return str(source), str(target)


def build_prefix_graph(
    node_ids: Iterable[str],
    arcs: Iterable[Any],
    unknown_prefix: str = "UNKNOWN"
) -> nx.DiGraph:
    """
    One vertex per prefix, an edge prefix(u) -> prefix(v) for every arc
    between different prefixes. Arcs touching prefixes of no node are ignored.
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(node_prefix(n, unknown_prefix) for n in node_ids)

    for arc in arcs:
        source, target = _arc_endpoints(arc)
        prefix_from = node_prefix(source, unknown_prefix)
        prefix_to = node_prefix(target, unknown_prefix)
        if prefix_from != prefix_to and prefix_from in graph and prefix_to in graph:
            graph.add_edge(prefix_from, prefix_to)

    return graph


def order_echelons(prefix_graph: nx.DiGraph) -> EchelonOrder:
    """
    Topologically sort the prefixes that take part in an inter-echelon arc.

    Ties are broken lexicographically so the order is deterministic.
    """
    if prefix_graph.number_of_nodes() == 0:
        return EchelonOrder(OrderKind.EMPTY)

    connected = prefix_graph.subgraph(
        p for p in prefix_graph.nodes if prefix_graph.degree(p) > 0
    )
    if not nx.is_directed_acyclic_graph(connected):
        return EchelonOrder(OrderKind.CYCLIC)

    try:
        order = tuple(nx.lexicographical_topological_sort(connected))
    except nx.NetworkXException as e:
        logger.debug("Topological sort failed: %s", e)
        return EchelonOrder(OrderKind.FAILED)

    return EchelonOrder(OrderKind.SORTED, order)


def resolve_echelon_order(prefix_graph: nx.DiGraph) -> List[str]:
    """
    Final echelon order with the fallback policy applied:
    sorted prefixes first, unconnected prefixes appended alphabetically;
    cycles or sort failures fall back to alphabetical order of all prefixes.
    """
    result = order_echelons(prefix_graph)
    all_prefixes = sorted(prefix_graph.nodes)

    if result.kind == OrderKind.SORTED:
        placed = set(result.order)
        return list(result.order) + [p for p in all_prefixes if p not in placed]

    if result.kind == OrderKind.CYCLIC:
        logger.warning(
            "Cycle detected in prefix graph, cannot order echelons topologically. "
            "Falling back to alphabetical order."
        )
        return all_prefixes

    if result.kind == OrderKind.FAILED:
        logger.warning("Could not order echelons topologically. Falling back to alphabetical order.")
        return all_prefixes

    return []


def _centered_offsets(count: int, spacing: float) -> np.ndarray:
    """y offsets (j - 1) - (m - 1) / 2 for j = 1..m, scaled by spacing."""
    return (np.arange(count) - (count - 1) / 2.0) * spacing


def compute_echelon_layout(
    nodes: Iterable[str],
    arcs: Iterable[Any],
    config: Optional[LayoutConfig] = None
) -> Dict[str, Point]:
    """
    Compute a layered position for every node.

    Args:
        nodes: Node identifiers
        arcs: Arc objects, {'from', 'to'} records or (from, to) pairs
        config: Layout settings (x increment, y spacing, unknown prefix)

    Returns:
        Mapping node id -> Point; every node gets exactly one position
    """
    config = config or LayoutConfig()
    node_ids = list(dict.fromkeys(str(n) for n in nodes))
    arcs = list(arcs)

    nodes_by_prefix: Dict[str, List[str]] = defaultdict(list)
    for node_id in node_ids:
        nodes_by_prefix[node_prefix(node_id, config.unknown_prefix)].append(node_id)

    prefix_graph = build_prefix_graph(node_ids, arcs, config.unknown_prefix)
    ordering = resolve_echelon_order(prefix_graph)

    positions: Dict[str, Point] = {}
    column = 0
    for prefix in ordering:
        members = sorted(nodes_by_prefix.get(prefix, []))
        if not members:
            continue
        x = column * config.x_increment
        for node_id, y in zip(members, _centered_offsets(len(members), config.y_spacing)):
            positions[node_id] = Point(float(x), float(y))
        column += 1

    unplaced = sorted(n for n in node_ids if n not in positions)
    if unplaced:
        x = column * config.x_increment
        for node_id, y in zip(unplaced, _centered_offsets(len(unplaced), config.y_spacing)):
            logger.warning(
                "Node %s was not placed by the echelon ordering; using trailing column", node_id
            )
            positions[node_id] = Point(float(x), float(y))

    return positions


def layout_network(network: SupplyChainNetwork, config: Optional[LayoutConfig] = None) -> Dict[str, Point]:
    """Echelon layout of a SupplyChainNetwork."""
    return compute_echelon_layout(network.node_ids, network.arc_pairs, config)
