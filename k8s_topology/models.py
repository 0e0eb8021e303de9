from collections.abc import Mapping
from enum import Enum
from typing import Any

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from k8s_topology.catalog import ResourceKind, get_kind_spec, node_id


class EdgeRule(str, Enum):
    """Inference rule that produced an edge."""

    SERVICE_SELECTS_POD = "service_selects_pod"
    DEPLOYMENT_OWNS_REPLICASET = "deployment_owns_replicaset"
    REPLICASET_OWNS_POD = "replicaset_owns_pod"
    STATEFULSET_OWNS_POD = "statefulset_owns_pod"
    DAEMONSET_OWNS_POD = "daemonset_owns_pod"
    HPA_SCALES_TARGET = "hpa_scales_target"


class ResourceIdentifier(BaseModel):
    """
    Identifies a single Kubernetes resource.

    Example:
        >>> rid = ResourceIdentifier(kind="Pod", name="web-1", namespace="default")
        >>> str(rid)
        'Pod/web-1 (ns: default)'
    """

    model_config = ConfigDict(frozen=True)

    kind: str = Field(min_length=1)
    name: str = Field(min_length=1)
    namespace: str | None = None

    @field_validator("kind")
    @classmethod
    def _kind_is_capitalized(cls, value: str) -> str:
        if not value[0].isupper():
            raise ValueError(f"kind must start with an uppercase letter, got '{value}'")
        return value

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind}/{self.name} (ns: {self.namespace})"
        return f"{self.kind}/{self.name}"


class GraphNode(BaseModel):
    """One discovered cluster object."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ResourceKind
    name: str
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_resource(cls, resource: dict[str, Any], kind: str | None = None) -> "GraphNode":
        """
        Build a node from a resource dictionary as returned by the API.

        Args:
            resource: Resource dictionary (camelCase keys)
            kind: Kind to use when the item itself carries none (list items)

        Returns:
            GraphNode with its full label set

        Raises:
            UnsupportedKindError: If the kind is outside the catalog
            ValueError: If the resource has no name
        """
        resolved_kind = kind or resource.get("kind")
        spec = get_kind_spec(resolved_kind or "")

        metadata = resource.get("metadata")
        if not isinstance(metadata, Mapping):
            metadata = {}
        name = metadata.get("name")
        if not name or not isinstance(name, str):
            raise ValueError(f"{spec.kind.value} resource has no metadata.name")

        namespace = (metadata.get("namespace") or "") if spec.namespaced else ""
        labels = metadata.get("labels")
        if not isinstance(labels, Mapping):
            labels = {}

        return cls(
            id=node_id(spec.kind, name, namespace),
            kind=spec.kind,
            name=name,
            namespace=namespace,
            labels={str(k): str(v) for k, v in labels.items()},
        )


class GraphEdge(BaseModel):
    """One inferred directed relationship between two nodes."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str
    rule: EdgeRule


class ClusterGraph(BaseModel):
    """
    Point-in-time topology snapshot of one cluster.

    Nodes and edges are kept in a stable order: nodes by catalog kind, then in
    the order they were fetched; edges in the order the rules produced them.
    """

    model_config = ConfigDict(frozen=True)

    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def get_node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_networkx(self) -> nx.DiGraph:
        """
        Convert the snapshot into a NetworkX directed graph.

        Node attributes are kind, name, namespace and labels; edge attributes
        carry the edge id and the rule that produced it.
        """
        graph = nx.DiGraph()
        for node in self.nodes:
            graph.add_node(
                node.id,
                kind=node.kind.value,
                name=node.name,
                namespace=node.namespace or None,
                labels=dict(node.labels),
            )
        for edge in self.edges:
            graph.add_edge(edge.source, edge.target, id=edge.id, rule=edge.rule.value)
        return graph


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class NodeData(BaseModel):
    """Display payload attached to a visual node."""

    model_config = ConfigDict(frozen=True)

    label: str
    namespace: str | None = None
    kind: str | None = None
    labels: dict[str, str] | None = None


class VisualNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: str = "default"
    position: Position
    data: NodeData


class VisualEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    target: str


class VisualGraph(BaseModel):
    """Visualization-ready graph handed to the HTTP layer."""

    model_config = ConfigDict(frozen=True)

    nodes: tuple[VisualNode, ...] = ()
    edges: tuple[VisualEdge, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serializable structure; optional display fields are omitted when unset."""
        return {
            "nodes": [node.model_dump(exclude_none=True) for node in self.nodes],
            "edges": [edge.model_dump() for edge in self.edges],
        }


class TopologyOptions(BaseModel):
    """
    Options for one topology discovery request.

    Example:
        >>> options = TopologyOptions(timeout_seconds=20, layout_rows_per_column=10)
    """

    model_config = ConfigDict(frozen=True)

    timeout_seconds: float = Field(default=45.0, gt=0, le=600)
    request_timeout_seconds: float | None = Field(default=None, gt=0, le=600)
    include_nodes: bool = True
    layout_x_step: float = Field(default=250.0, gt=0)
    layout_y_step: float = Field(default=100.0, gt=0)
    layout_rows_per_column: int = Field(default=20, ge=1, le=10000)

    @property
    def effective_request_timeout(self) -> float:
        return self.request_timeout_seconds or self.timeout_seconds
