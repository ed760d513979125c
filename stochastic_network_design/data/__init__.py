# Data layer for network design
"""
Contains node/arc models, scenario tables and reference instances.
"""

from .models import (
    NodeKind, Node, SourceNode, IntermediateNode, DemandNode, Arc,
    SupplyChainNetwork, parse_node,
)
from .scenarios import ScenarioSet
from .examples import NetworkDesignInstance, get_instance, INSTANCE_BUILDERS

__all__ = [
    "NodeKind", "Node", "SourceNode", "IntermediateNode", "DemandNode", "Arc",
    "SupplyChainNetwork", "parse_node",
    "ScenarioSet",
    "NetworkDesignInstance", "get_instance", "INSTANCE_BUILDERS",
]
