from k8s_topology.adapters import KubernetesAdapter
from k8s_topology.assembler import GraphAccumulator, assemble_graph
from k8s_topology.builder import TopologyBuilder
from k8s_topology.catalog import CATALOG, ResourceKind, edge_id, node_id
from k8s_topology.discoverers import (
    EdgeInferencer,
    FetchResult,
    ResourceFetcher,
    normalize_namespace_filter,
    owner_ref_matches,
    selector_matches,
)
from k8s_topology.exceptions import ResourceAccessError, TopologyError, UnsupportedKindError
from k8s_topology.layout import to_visual_graph
from k8s_topology.models import (
    ClusterGraph,
    EdgeRule,
    GraphEdge,
    GraphNode,
    NodeData,
    Position,
    ResourceIdentifier,
    TopologyOptions,
    VisualEdge,
    VisualGraph,
    VisualNode,
)
from k8s_topology.protocols import K8sClientProtocol

__version__ = "0.1.0"

__all__ = [
    "CATALOG",
    "ClusterGraph",
    "EdgeInferencer",
    "EdgeRule",
    "FetchResult",
    "GraphAccumulator",
    "GraphEdge",
    "GraphNode",
    "K8sClientProtocol",
    "KubernetesAdapter",
    "NodeData",
    "Position",
    "ResourceAccessError",
    "ResourceFetcher",
    "ResourceIdentifier",
    "ResourceKind",
    "TopologyBuilder",
    "TopologyError",
    "TopologyOptions",
    "UnsupportedKindError",
    "VisualEdge",
    "VisualGraph",
    "VisualNode",
    "assemble_graph",
    "edge_id",
    "node_id",
    "normalize_namespace_filter",
    "owner_ref_matches",
    "selector_matches",
    "to_visual_graph",
]
