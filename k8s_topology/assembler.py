import asyncio
import logging
from collections.abc import Iterable, Mapping

from k8s_topology.catalog import ResourceKind, kind_order
from k8s_topology.models import ClusterGraph, GraphEdge, GraphNode

logger = logging.getLogger(__name__)


class GraphAccumulator:
    """
    Collects nodes emitted by concurrent fetch tasks.

    Appends are serialized with an asyncio lock. Each kind keeps its nodes in
    arrival order, and a node id is only ever recorded once.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._nodes_by_kind: dict[ResourceKind, list[GraphNode]] = {}
        self._ids: set[str] = set()

    async def add_nodes(self, kind: ResourceKind, nodes: Iterable[GraphNode]) -> int:
        """
        Record nodes for one kind.

        Returns:
            Number of nodes actually added (duplicates are skipped)
        """
        added = 0
        async with self._lock:
            bucket = self._nodes_by_kind.setdefault(kind, [])
            for node in nodes:
                if node.id in self._ids:
                    logger.debug(f"Skipping duplicate node {node.id}")
                    continue
                self._ids.add(node.id)
                bucket.append(node)
                added += 1
        return added

    def nodes_by_kind(self) -> dict[ResourceKind, list[GraphNode]]:
        return {kind: list(nodes) for kind, nodes in self._nodes_by_kind.items()}

    def __len__(self) -> int:
        return len(self._ids)


def assemble_graph(
    nodes_by_kind: Mapping[ResourceKind, Iterable[GraphNode]],
    edges: Iterable[GraphEdge],
) -> ClusterGraph:
    """
    Merge fetched nodes and inferred edges into one snapshot.

    Nodes are ordered by catalog kind, then by fetch order. Edges keep their
    order; duplicate ids and edges whose endpoints are missing are dropped, so
    every edge of the result references nodes of the same graph.

    Args:
        nodes_by_kind: Nodes per kind
        edges: Inferred edges

    Returns:
        Immutable ClusterGraph
    """
    nodes: list[GraphNode] = []
    node_ids: set[str] = set()
    for kind in sorted(nodes_by_kind, key=kind_order):
        for node in nodes_by_kind[kind]:
            if node.id in node_ids:
                continue
            node_ids.add(node.id)
            nodes.append(node)

    kept_edges: list[GraphEdge] = []
    edge_ids: set[str] = set()
    dropped = 0
    for edge in edges:
        if edge.id in edge_ids:
            continue
        if edge.source not in node_ids or edge.target not in node_ids:
            dropped += 1
            logger.debug(f"Dropping edge {edge.id}: endpoint not in graph")
            continue
        edge_ids.add(edge.id)
        kept_edges.append(edge)

    if dropped:
        logger.debug(f"Dropped {dropped} edges with missing endpoints")

    return ClusterGraph(nodes=tuple(nodes), edges=tuple(kept_edges))
