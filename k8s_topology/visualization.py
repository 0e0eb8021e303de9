import logging
from pathlib import Path
from typing import Any

import networkx as nx

from k8s_topology.layout import to_visual_graph
from k8s_topology.models import ClusterGraph, TopologyOptions

logger = logging.getLogger(__name__)


def draw_topology(
    graph: ClusterGraph,
    output_file: str,
    options: TopologyOptions | None = None,
    title: str | None = None,
    **kwargs: Any,
) -> None:
    """
    Render a topology snapshot to an image using its grid layout.

    Args:
        graph: Topology snapshot
        output_file: Path to output image file
        options: Layout options used to place nodes
        title: Optional title for the image
        **kwargs: figsize and font_size overrides

    Example:
        >>> draw_topology(graph, "topology.png", title="Cluster: prod")
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        logger.error(
            "matplotlib is required for visualization. Install with: pip install matplotlib"
        )
        raise

    Path(output_file).parent.mkdir(parents=True, exist_ok=True)

    visual = to_visual_graph(graph, options)
    # Grid y grows downwards, matplotlib y grows upwards.
    pos = {node.id: (node.position.x, -node.position.y) for node in visual.nodes}
    nx_graph = graph.to_networkx()

    node_attrs = list(nx_graph.nodes(data=True))

    fig, ax = plt.subplots(figsize=kwargs.pop("figsize", (16, 12)))

    nx.draw_networkx_nodes(
        nx_graph,
        pos,
        nodelist=[node_id for node_id, _ in node_attrs],
        node_color=[_get_node_color(attrs.get("kind", "")) for _, attrs in node_attrs],
        node_size=[_get_node_size(attrs.get("kind", "")) for _, attrs in node_attrs],
        alpha=0.9,
        ax=ax,
    )
    nx.draw_networkx_labels(
        nx_graph,
        pos,
        labels={node_id: _format_node_label(attrs) for node_id, attrs in node_attrs},
        font_size=kwargs.get("font_size", 6),
        font_weight="bold",
        ax=ax,
    )
    nx.draw_networkx_edges(
        nx_graph,
        pos,
        edge_color="gray",
        alpha=0.5,
        arrows=True,
        arrowsize=10,
        ax=ax,
    )

    if title:
        ax.set_title(title, fontsize=16, fontweight="bold")

    ax.axis("off")
    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Saved topology visualization to {output_file}")


def export_to_dot(graph: ClusterGraph, output_file: str) -> None:
    """
    Export a topology snapshot to Graphviz DOT format.

    Example:
        >>> export_to_dot(graph, "topology.dot")
        >>> # Then: dot -Tpng topology.dot -o topology.png
    """
    try:
        import pydot
    except ImportError:
        logger.error("pydot is not installed. Install with: pip install pydot")
        raise

    dot = pydot.Dot(graph_type="digraph", rankdir="LR")

    for node in graph.nodes:
        dot.add_node(
            pydot.Node(
                f'"{node.id}"',
                label=f'"{node.kind.value}\\n{node.name}"',
                shape="box",
                style="filled",
                fillcolor=_get_node_color(node.kind.value),
            )
        )

    for edge in graph.edges:
        dot.add_edge(pydot.Edge(f'"{edge.source}"', f'"{edge.target}"', label=edge.rule.value))

    dot.write(output_file)
    logger.info(f"Exported topology to {output_file}")


def _get_node_color(kind: str) -> str:
    """Get color for node based on kind."""
    color_map = {
        "Node": "#B0C4DE",
        "Namespace": "#E8F4F8",
        "Pod": "#6495ED",
        "Deployment": "#90EE90",
        "StatefulSet": "#90EE90",
        "DaemonSet": "#90EE90",
        "ReplicaSet": "#98FB98",
        "Service": "#FFD700",
        "HorizontalPodAutoscaler": "#F0E68C",
    }
    return color_map.get(kind, "#FFFFFF")


def _get_node_size(kind: str) -> int:
    size_map = {
        "Node": 1200,
        "Namespace": 1500,
        "Deployment": 1000,
        "StatefulSet": 1000,
        "DaemonSet": 1000,
        "Service": 800,
        "HorizontalPodAutoscaler": 700,
        "ReplicaSet": 600,
        "Pod": 400,
    }
    return size_map.get(kind, 400)


def _format_node_label(attrs: dict[str, Any]) -> str:
    kind = attrs.get("kind", "?")
    name = attrs.get("name", "unknown")

    if len(name) > 15:
        name = name[:12] + "..."

    return f"{kind}\n{name}"
