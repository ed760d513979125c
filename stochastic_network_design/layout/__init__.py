"""Echelon layout for network drawings."""

from .echelon import (
    Point, OrderKind, EchelonOrder, node_prefix, build_prefix_graph,
    order_echelons, resolve_echelon_order, compute_echelon_layout, layout_network,
)

__all__ = [
    "Point", "OrderKind", "EchelonOrder", "node_prefix", "build_prefix_graph",
    "order_echelons", "resolve_echelon_order", "compute_echelon_layout", "layout_network",
]
