# Utilities Package
"""Utility functions for visualization."""

from .visualization import ColorTag, NetworkVisualizer, node_color_tags, edge_labels, plot_network, plot_results

__all__ = [
    "ColorTag",
    "NetworkVisualizer",
    "node_color_tags",
    "edge_labels",
    "plot_network",
    "plot_results",
]
