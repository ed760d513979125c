"""
Data models for network design entities.

Defines the tagged node variants (source, intermediate, demand), arcs and
the complete network structure with its configurable facility set.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Role of a node in the network."""
    SOURCE = "source"
    INTERMEDIATE = "intermediate"
    DEMAND = "demand"


def _check_non_negative(node_id: str, name: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise ValueError(f"Node {node_id}: {name} must be non-negative, got {value}")


@dataclass(frozen=True)
class Node:
    """
    Common node attributes.

    Attributes:
        id: Unique node identifier (also drives the echelon layout prefix)
        capacity: Base outflow capacity, None for unlimited
        processing_cost: Cost per unit flowing out of the node
        opening_cost: One-time cost of opening, only for configurable nodes
    """
    kind: ClassVar[NodeKind]

    id: str
    capacity: Optional[float] = None
    processing_cost: float = 0.0
    opening_cost: Optional[float] = None

    def __post_init__(self):
        """Validate attribute ranges."""
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"Node identifier must be a non-empty string, got {self.id!r}")
        _check_non_negative(self.id, "capacity", self.capacity)
        _check_non_negative(self.id, "processing_cost", self.processing_cost)
        _check_non_negative(self.id, "opening_cost", self.opening_cost)

    @property
    def has_capacity(self) -> bool:
        return self.capacity is not None


@dataclass(frozen=True)
class SourceNode(Node):
    """Supply node; its capacity bounds total outflow (production)."""
    kind: ClassVar[NodeKind] = NodeKind.SOURCE


@dataclass(frozen=True)
class IntermediateNode(Node):
    """Pure transshipment node (manufacturer, warehouse, ...)."""
    kind: ClassVar[NodeKind] = NodeKind.INTERMEDIATE


@dataclass(frozen=True)
class DemandNode(Node):
    """
    Demand node.

    Attributes:
        demand: Base demand, scaled per scenario by the demand factor
        lost_demand_penalty: Penalty per unit of unmet demand
    """
    kind: ClassVar[NodeKind] = NodeKind.DEMAND

    demand: Optional[float] = None
    lost_demand_penalty: Optional[float] = None

    def __post_init__(self):
        super().__post_init__()
        if self.demand is None:
            raise ValueError(f"Demand node {self.id} must define 'demand'")
        if self.lost_demand_penalty is None:
            raise ValueError(f"Demand node {self.id} must define 'lost_demand_penalty'")
        _check_non_negative(self.id, "demand", self.demand)
        _check_non_negative(self.id, "lost_demand_penalty", self.lost_demand_penalty)


NODE_TYPES: Dict[NodeKind, type] = {
    NodeKind.SOURCE: SourceNode,
    NodeKind.INTERMEDIATE: IntermediateNode,
    NodeKind.DEMAND: DemandNode,
}

DEMAND_ONLY_ATTRIBUTES = ("demand", "lost_demand_penalty")
COMMON_ATTRIBUTES = ("capacity", "processing_cost", "opening_cost")


@dataclass(frozen=True)
class Arc:
    """Directed arc; the only permitted direction of flow between two nodes."""
    source: str
    target: str
    transport_cost: float = 0.0

    def __post_init__(self):
        if self.transport_cost < 0:
            raise ValueError(
                f"Arc {self.source}->{self.target}: transport_cost must be non-negative"
            )

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.source, self.target)


@dataclass
class SupplyChainNetwork:
    """
    Complete network: nodes, arcs and the configurable facility set.

    Arcs referencing unknown nodes (and repeated arcs) are dropped with a
    warning; node-level inconsistencies raise ValueError.
    """
    nodes: List[Node]
    arcs: List[Arc] = field(default_factory=list)
    configurable: FrozenSet[str] = field(default_factory=frozenset)

    _by_id: Dict[str, Node] = field(init=False, repr=False)
    _incoming: Dict[str, List[Arc]] = field(init=False, repr=False)
    _outgoing: Dict[str, List[Arc]] = field(init=False, repr=False)

    def __post_init__(self):
        """Validate the network structure and index adjacency."""
        self.nodes = list(self.nodes)
        self.configurable = frozenset(self.configurable)

        self._by_id = {}
        for node in self.nodes:
            if node.id in self._by_id:
                raise ValueError(f"Duplicate node identifier: {node.id}")
            self._by_id[node.id] = node

        unknown = sorted(self.configurable - set(self._by_id))
        if unknown:
            raise ValueError(f"Configurable nodes not in network: {unknown}")

        for node in self.nodes:
            if node.opening_cost is not None and node.id not in self.configurable:
                raise ValueError(
                    f"Node {node.id} has an opening_cost but is not configurable"
                )

        valid_arcs: List[Arc] = []
        seen = set()
        for arc in self.arcs:
            if arc.source not in self._by_id or arc.target not in self._by_id:
                logger.warning(
                    "Arc %s->%s references an unknown node; excluded from the network",
                    arc.source, arc.target
                )
                continue
            if arc.pair in seen:
                logger.warning(
                    "Duplicate arc %s->%s; keeping the first definition",
                    arc.source, arc.target
                )
                continue
            seen.add(arc.pair)
            valid_arcs.append(arc)
        self.arcs = valid_arcs

        self._incoming = {node.id: [] for node in self.nodes}
        self._outgoing = {node.id: [] for node in self.nodes}
        for arc in self.arcs:
            self._outgoing[arc.source].append(arc)
            self._incoming[arc.target].append(arc)

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    @property
    def arc_pairs(self) -> List[Tuple[str, str]]:
        return [arc.pair for arc in self.arcs]

    @property
    def num_nodes(self) -> int:
        return len(self.nodes)

    @property
    def num_arcs(self) -> int:
        return len(self.arcs)

    def get_node(self, node_id: str) -> Node:
        """Get node by identifier."""
        return self._by_id[node_id]

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def has_arc(self, source: str, target: str) -> bool:
        return any(arc.target == target for arc in self._outgoing.get(source, ()))

    def nodes_of_kind(self, kind: NodeKind) -> List[Node]:
        return [node for node in self.nodes if node.kind == kind]

    @property
    def source_nodes(self) -> List[Node]:
        return self.nodes_of_kind(NodeKind.SOURCE)

    @property
    def intermediate_nodes(self) -> List[Node]:
        return self.nodes_of_kind(NodeKind.INTERMEDIATE)

    @property
    def demand_nodes(self) -> List[DemandNode]:
        return self.nodes_of_kind(NodeKind.DEMAND)

    def incoming(self, node_id: str) -> List[Arc]:
        """Arcs ending at node_id."""
        return list(self._incoming.get(node_id, ()))

    def outgoing(self, node_id: str) -> List[Arc]:
        """Arcs starting at node_id."""
        return list(self._outgoing.get(node_id, ()))

    def is_configurable(self, node_id: str) -> bool:
        return node_id in self.configurable

    def isolated_nodes(self) -> List[str]:
        """Nodes without any incident arc."""
        return [
            node.id for node in self.nodes
            if not self._incoming[node.id] and not self._outgoing[node.id]
        ]

    @classmethod
    def from_definitions(
        cls,
        nodes: Iterable[str],
        arc_definitions: Iterable[Mapping[str, Any]],
        node_data: Mapping[str, Mapping[str, Any]],
        configurable_nodes: Iterable[str] = ()
    ) -> "SupplyChainNetwork":
        """
        Build a network from the declarative input format.

        Args:
            nodes: Node identifiers
            arc_definitions: Records with 'from', 'to' and 'cost'
            node_data: Attribute table keyed by node id ('type', 'capacity',
                'processing_cost', 'opening_cost', 'demand', 'lost_demand_penalty')
            configurable_nodes: Ids with a first-stage open/close decision

        Returns:
            SupplyChainNetwork; invalid nodes and arcs are excluded with a warning
        """
        node_ids = list(dict.fromkeys(str(n) for n in nodes))
        configurable_input = [str(n) for n in configurable_nodes]

        parsed: List[Node] = []
        for node_id in node_ids:
            attrs = dict(node_data.get(node_id, {}))
            if "opening_cost" in attrs and node_id not in configurable_input:
                logger.warning(
                    "Node %s has an opening_cost but is not configurable; ignoring it",
                    node_id
                )
                attrs.pop("opening_cost")
            try:
                parsed.append(parse_node(node_id, attrs))
            except (TypeError, ValueError) as e:
                logger.warning("Excluding node %s: %s", node_id, e)

        known = {node.id for node in parsed}
        configurable = set()
        for node_id in configurable_input:
            if node_id in known:
                configurable.add(node_id)
            else:
                logger.warning("Configurable node %s is not a valid node; ignored", node_id)

        arcs: List[Arc] = []
        for arc_def in arc_definitions:
            try:
                arcs.append(Arc(
                    source=str(arc_def["from"]),
                    target=str(arc_def["to"]),
                    transport_cost=float(arc_def.get("cost", 0.0))
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Excluding malformed arc definition %r: %s", arc_def, e)

        return cls(nodes=parsed, arcs=arcs, configurable=frozenset(configurable))


def parse_node(node_id: str, attrs: Mapping[str, Any]) -> Node:
    """
    Create the tagged node variant described by an attribute record.

    Raises:
        ValueError: unknown or missing type, demand attributes on a
            non-demand node, missing demand attributes, negative values
    """
    raw_type = attrs.get("type")
    if raw_type is None:
        raise ValueError("missing 'type'")
    try:
        kind = NodeKind(raw_type.value if isinstance(raw_type, Enum) else str(raw_type).lower())
    except ValueError:
        raise ValueError(f"unknown node type {raw_type!r}") from None

    unknown = set(attrs) - {"type", *COMMON_ATTRIBUTES, *DEMAND_ONLY_ATTRIBUTES}
    if unknown:
        logger.debug("Node %s: ignoring unknown attributes %s", node_id, sorted(unknown))

    kwargs: Dict[str, Any] = {}
    for name in COMMON_ATTRIBUTES:
        if attrs.get(name) is not None:
            kwargs[name] = float(attrs[name])

    if kind == NodeKind.DEMAND:
        for name in DEMAND_ONLY_ATTRIBUTES:
            if attrs.get(name) is not None:
                kwargs[name] = float(attrs[name])
    else:
        present = [name for name in DEMAND_ONLY_ATTRIBUTES if name in attrs]
        if present:
            raise ValueError(f"{kind.value} node cannot carry {present}")

    return NODE_TYPES[kind](id=node_id, **kwargs)
