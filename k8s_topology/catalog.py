"""
Resource catalog for topology discovery.

The catalog is the fixed list of built-in kinds that are discovered, together
with the prefix used to build graph node identifiers. Nothing outside this
list is ever fetched.
"""

from enum import Enum
from typing import NamedTuple

from k8s_topology.exceptions import UnsupportedKindError


class ResourceKind(str, Enum):
    """Kinds discovered when building a topology snapshot."""

    NODE = "Node"
    NAMESPACE = "Namespace"
    DEPLOYMENT = "Deployment"
    STATEFUL_SET = "StatefulSet"
    DAEMON_SET = "DaemonSet"
    REPLICA_SET = "ReplicaSet"
    POD = "Pod"
    SERVICE = "Service"
    HORIZONTAL_POD_AUTOSCALER = "HorizontalPodAutoscaler"


class KindSpec(NamedTuple):
    kind: ResourceKind
    prefix: str
    namespaced: bool


CATALOG: tuple[KindSpec, ...] = (
    KindSpec(ResourceKind.NODE, "node", False),
    KindSpec(ResourceKind.NAMESPACE, "ns", False),
    KindSpec(ResourceKind.DEPLOYMENT, "deploy", True),
    KindSpec(ResourceKind.STATEFUL_SET, "sts", True),
    KindSpec(ResourceKind.DAEMON_SET, "ds", True),
    KindSpec(ResourceKind.REPLICA_SET, "rs", True),
    KindSpec(ResourceKind.POD, "pod", True),
    KindSpec(ResourceKind.SERVICE, "svc", True),
    KindSpec(ResourceKind.HORIZONTAL_POD_AUTOSCALER, "hpa", True),
)

_BY_KIND: dict[str, KindSpec] = {spec.kind.value: spec for spec in CATALOG}
_ORDER: dict[str, int] = {spec.kind.value: index for index, spec in enumerate(CATALOG)}

CLUSTER_SCOPED_KINDS: tuple[ResourceKind, ...] = tuple(
    spec.kind for spec in CATALOG if not spec.namespaced
)
NAMESPACED_KINDS: tuple[ResourceKind, ...] = tuple(spec.kind for spec in CATALOG if spec.namespaced)


def get_kind_spec(kind: str | ResourceKind) -> KindSpec:
    """
    Look up the catalog entry for a kind.

    Args:
        kind: Kind name (e.g., "Deployment") or ResourceKind member

    Returns:
        Matching KindSpec

    Raises:
        UnsupportedKindError: If the kind is not part of the catalog
    """
    key = kind.value if isinstance(kind, ResourceKind) else kind
    spec = _BY_KIND.get(key)
    if spec is None:
        raise UnsupportedKindError(str(key))
    return spec


def is_supported(kind: str | None) -> bool:
    return kind is not None and kind in _BY_KIND


def kind_order(kind: str | ResourceKind) -> int:
    """Position of the kind in the catalog, used for stable node ordering."""
    key = kind.value if isinstance(kind, ResourceKind) else kind
    return _ORDER.get(key, len(CATALOG))


def node_id(kind: str | ResourceKind, name: str, namespace: str | None = None) -> str:
    """
    Build the graph identifier for a resource.

    Namespaced kinds use ``<prefix>:<namespace>:<name>`` and cluster-scoped
    kinds use ``<prefix>:<name>``.

    Example:
        >>> node_id("Service", "web", "default")
        'svc:default:web'
        >>> node_id("Node", "worker-1")
        'node:worker-1'
    """
    spec = get_kind_spec(kind)
    if spec.namespaced:
        return f"{spec.prefix}:{namespace or ''}:{name}"
    return f"{spec.prefix}:{name}"


def edge_id(
    source_kind: str | ResourceKind,
    target_kind: str | ResourceKind,
    namespace: str,
    source_name: str,
    target_name: str,
) -> str:
    """
    Build the deterministic identifier for an inferred edge.

    Example:
        >>> edge_id("Service", "Pod", "default", "web", "web-1")
        'edge:svc->pod:default:web->web-1'
    """
    source_prefix = get_kind_spec(source_kind).prefix
    target_prefix = get_kind_spec(target_kind).prefix
    return f"edge:{source_prefix}->{target_prefix}:{namespace}:{source_name}->{target_name}"
