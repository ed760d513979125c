"""
Visualization utilities for the designed network and its results.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
import networkx as nx

from ..config import LayoutConfig, PlotConfig
from ..data.models import NodeKind, SupplyChainNetwork
from ..layout.echelon import Point, layout_network
from ..milp.results import NetworkDesignResult

logger = logging.getLogger(__name__)


class ColorTag(str, Enum):
    """Node coloring categories."""
    OPEN = "open"
    CLOSED = "closed"
    SOURCE = "source"
    DEMAND = "demand"
    INTERMEDIATE = "intermediate"
    UNKNOWN = "unknown"


_KIND_TAGS = {
    NodeKind.SOURCE: ColorTag.SOURCE,
    NodeKind.DEMAND: ColorTag.DEMAND,
    NodeKind.INTERMEDIATE: ColorTag.INTERMEDIATE,
}

_LEGEND_LABELS = {
    ColorTag.OPEN: "Open (configurable)",
    ColorTag.CLOSED: "Closed (configurable)",
    ColorTag.SOURCE: "Source",
    ColorTag.INTERMEDIATE: "Intermediate",
    ColorTag.DEMAND: "Demand",
    ColorTag.UNKNOWN: "Unknown",
}


def node_color_tags(
    network: SupplyChainNetwork,
    result: NetworkDesignResult,
    node_ids: Optional[Iterable[str]] = None
) -> Dict[str, ColorTag]:
    """
    Color tag per node: open/closed for configurable nodes, otherwise by kind.

    Ids missing from the network are tagged UNKNOWN.
    """
    tags = {}
    for node_id in (node_ids if node_ids is not None else network.node_ids):
        if not network.has_node(node_id):
            logger.warning("Node %s not found in network for coloring. Defaulting to unknown.", node_id)
            tags[node_id] = ColorTag.UNKNOWN
        elif network.is_configurable(node_id):
            tags[node_id] = ColorTag.OPEN if result.is_open(node_id) else ColorTag.CLOSED
        else:
            tags[node_id] = _KIND_TAGS.get(network.get_node(node_id).kind, ColorTag.UNKNOWN)
    return tags


def edge_labels(
    network: SupplyChainNetwork,
    result: NetworkDesignResult,
    tags: Dict[str, ColorTag]
) -> Dict[Tuple[str, str], Optional[str]]:
    """
    Label per arc listing the scenarios with non-zero flow ("S:1,3").

    Arcs touching a closed node map to None (hidden); arcs without flow map
    to an empty label.
    """
    labels: Dict[Tuple[str, str], Optional[str]] = {}
    for source, target in network.arc_pairs:
        if tags.get(source) == ColorTag.CLOSED or tags.get(target) == ColorTag.CLOSED:
            labels[(source, target)] = None
            continue
        scenarios = result.active_scenarios_for_arc(source, target)
        labels[(source, target)] = "S:" + ",".join(str(k) for k in scenarios) if scenarios else ""
    return labels


class NetworkVisualizer:
    """Render the network design result on an echelon layout."""

    def __init__(
        self,
        network: SupplyChainNetwork,
        plot_config: Optional[PlotConfig] = None,
        layout_config: Optional[LayoutConfig] = None
    ):
        """
        Initialize visualizer.

        Args:
            network: Network that was optimized
            plot_config: Figure and color settings
            layout_config: Echelon layout settings
        """
        self.network = network
        self.plot_config = plot_config or PlotConfig()
        self.layout_config = layout_config or LayoutConfig()

    def compute_layout(self) -> Dict[str, Point]:
        return layout_network(self.network, self.layout_config)

    def plot_network(
        self,
        result: NetworkDesignResult,
        title: str = "Supply Chain Network Design",
        save_path: Optional[str] = None
    ) -> Optional[plt.Figure]:
        """
        Plot opened/closed facilities and the arcs carrying flow.

        Args:
            result: Extracted result
            title: Plot title
            save_path: Path to save figure

        Returns:
            Matplotlib figure, or None when skipped or rendering failed
        """
        if not result.is_optimal:
            logger.info(
                "Skipping plot generation as the model was not solved optimally. Status: %s",
                result.status.value
            )
            return None

        fig = None
        try:
            cfg = self.plot_config
            positions = self.compute_layout()
            tags = node_color_tags(self.network, result)
            labels = edge_labels(self.network, result, tags)

            G = nx.DiGraph()
            G.add_nodes_from(self.network.node_ids)
            G.add_edges_from(self.network.arc_pairs)
            pos = {n: (p.x, p.y) for n, p in positions.items()}

            fig, ax = plt.subplots(figsize=cfg.figsize)

            nodelist = list(G.nodes)
            nx.draw_networkx_nodes(
                G, pos, nodelist=nodelist,
                node_color=[cfg.colors[tags[n].value] for n in nodelist],
                node_size=cfg.node_size, ax=ax
            )

            # Arcs touching closed facilities are drawn fully transparent
            visible = [edge for edge, label in labels.items() if label is not None]
            hidden = [edge for edge, label in labels.items() if label is None]
            for edgelist, alpha in ((visible, 1.0), (hidden, 0.0)):
                if edgelist:
                    nx.draw_networkx_edges(
                        G, pos, edgelist=edgelist,
                        edge_color=cfg.edge_color, width=2, arrows=True,
                        arrowsize=15, node_size=cfg.node_size, alpha=alpha, ax=ax
                    )

            nx.draw_networkx_labels(G, pos, font_size=cfg.font_size, ax=ax)

            shown_labels = {edge: label for edge, label in labels.items() if label}
            if shown_labels:
                nx.draw_networkx_edge_labels(
                    G, pos, edge_labels=shown_labels,
                    font_size=cfg.edge_label_font_size, font_color='dimgray', ax=ax
                )

            used_tags = sorted(set(tags.values()), key=list(ColorTag).index)
            legend_elements = [
                mpatches.Patch(color=cfg.colors[tag.value], label=_LEGEND_LABELS[tag])
                for tag in used_tags
            ]
            ax.legend(handles=legend_elements, loc='upper left')

            ax.set_title(title, fontsize=14, fontweight='bold')
            ax.axis('off')

            plt.tight_layout()

            if save_path:
                fig.savefig(save_path, dpi=cfg.dpi, bbox_inches='tight')
                logger.info("Plot saved to %s", save_path)

            return fig
        except Exception:
            logger.exception("Error during plotting of %s (save_path=%s)", title, save_path)
            if fig is not None:
                plt.close(fig)
            return None

    def plot_scenario_profits(
        self,
        result: NetworkDesignResult,
        figsize: Tuple[int, int] = (12, 5),
        save_path: Optional[str] = None
    ) -> Optional[plt.Figure]:
        """
        Plot per-scenario cost breakdown and profit.

        Args:
            result: Extracted result
            figsize: Figure size
            save_path: Path to save figure

        Returns:
            Matplotlib figure, or None when skipped or rendering failed
        """
        if not result.is_optimal or not result.cost_breakdown:
            logger.info("Skipping scenario profit plot. Status: %s", result.status.value)
            return None

        fig = None
        try:
            fig, axes = plt.subplots(1, 2, figsize=figsize)
            frame = result.cost_frame()
            scenarios = [str(k) for k in frame.index]

            # Left: stacked cost components per scenario
            ax1 = axes[0]
            bottom = None
            for column, color in (('transport', '#3498db'),
                                  ('processing', '#f39c12'),
                                  ('penalty', '#e74c3c')):
                ax1.bar(scenarios, frame[column], bottom=bottom, color=color,
                        alpha=0.8, label=column.capitalize())
                bottom = frame[column] if bottom is None else bottom + frame[column]
            ax1.set_xlabel('Scenario')
            ax1.set_ylabel('Cost')
            ax1.set_title('Second-Stage Costs', fontweight='bold')
            ax1.legend()

            # Right: profit per scenario against the expectation
            ax2 = axes[1]
            ax2.bar(scenarios, frame['profit'], color='#27ae60', alpha=0.8)
            expected = result.expected_profit()
            ax2.axhline(y=expected, color='#e74c3c', linestyle='--',
                        label=f'Expected (net of opening): {expected:.0f}')
            ax2.set_xlabel('Scenario')
            ax2.set_ylabel('Profit')
            ax2.set_title('Scenario Profit', fontweight='bold')
            ax2.legend()

            plt.tight_layout()

            if save_path:
                fig.savefig(save_path, dpi=self.plot_config.dpi, bbox_inches='tight')
                logger.info("Plot saved to %s", save_path)

            return fig
        except Exception:
            logger.exception("Error during scenario profit plotting (save_path=%s)", save_path)
            if fig is not None:
                plt.close(fig)
            return None


def plot_network(
    network: SupplyChainNetwork,
    result: NetworkDesignResult,
    **kwargs
) -> Optional[plt.Figure]:
    """Convenience function to plot network."""
    viz = NetworkVisualizer(network)
    return viz.plot_network(result, **kwargs)


def plot_results(
    network: SupplyChainNetwork,
    result: NetworkDesignResult,
    save_dir: Optional[str] = None,
    prefix: str = "network",
    plot_config: Optional[PlotConfig] = None,
    layout_config: Optional[LayoutConfig] = None
) -> List[plt.Figure]:
    """
    Plot all result visualizations.

    Args:
        network: Network that was optimized
        result: Extracted result
        save_dir: Directory to save figures
        prefix: File name prefix
        plot_config: Figure and color settings
        layout_config: Echelon layout settings

    Returns:
        List of figures that were produced
    """
    viz = NetworkVisualizer(network, plot_config, layout_config)
    save_root = Path(save_dir) if save_dir else None

    figures = [
        viz.plot_network(
            result,
            title=f"Optimized Network ({prefix})",
            save_path=str(save_root / f"{prefix}_network.png") if save_root else None
        ),
        viz.plot_scenario_profits(
            result,
            save_path=str(save_root / f"{prefix}_scenario_profits.png") if save_root else None
        ),
    ]
    return [fig for fig in figures if fig is not None]
