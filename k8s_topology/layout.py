import logging

from k8s_topology.models import (
    ClusterGraph,
    GraphNode,
    NodeData,
    Position,
    TopologyOptions,
    VisualEdge,
    VisualGraph,
    VisualNode,
)

logger = logging.getLogger(__name__)


def grid_position(index: int, options: TopologyOptions) -> Position:
    """
    Grid slot for the node at ``index``.

    Nodes fill a column top to bottom and wrap into the next column after
    ``layout_rows_per_column`` rows.
    """
    row = index % options.layout_rows_per_column
    column = index // options.layout_rows_per_column
    return Position(x=column * options.layout_x_step, y=row * options.layout_y_step)


def format_node_label(node: GraphNode) -> str:
    return f"{node.kind.value}: {node.name}"


def to_visual_graph(graph: ClusterGraph, options: TopologyOptions | None = None) -> VisualGraph:
    """
    Convert a ClusterGraph into a visualization-ready graph.

    Positions are a deterministic placeholder grid; the same node order always
    yields the same coordinates. Node and edge ids are preserved.

    Args:
        graph: Domain snapshot
        options: Layout constants (defaults to TopologyOptions())

    Returns:
        VisualGraph mirroring the snapshot 1:1

    Example:
        >>> visual = to_visual_graph(graph)
        >>> visual.to_dict()["nodes"][0]["position"]
        {'x': 0.0, 'y': 0.0}
    """
    options = options or TopologyOptions()

    nodes = tuple(
        VisualNode(
            id=node.id,
            position=grid_position(index, options),
            data=NodeData(
                label=format_node_label(node),
                namespace=node.namespace or None,
                kind=node.kind.value,
                labels=dict(node.labels),
            ),
        )
        for index, node in enumerate(graph.nodes)
    )
    edges = tuple(
        VisualEdge(id=edge.id, source=edge.source, target=edge.target) for edge in graph.edges
    )

    logger.debug(f"Laid out {len(nodes)} nodes and {len(edges)} edges")
    return VisualGraph(nodes=nodes, edges=edges)
