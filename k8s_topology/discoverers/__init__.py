from k8s_topology.discoverers.fetcher import (
    FetchResult,
    ResourceFetcher,
    normalize_namespace_filter,
)
from k8s_topology.discoverers.inference import EdgeInferencer
from k8s_topology.discoverers.matching import (
    group_by_namespace,
    owner_ref_matches,
    selector_matches,
)

__all__ = [
    "EdgeInferencer",
    "FetchResult",
    "ResourceFetcher",
    "group_by_namespace",
    "normalize_namespace_filter",
    "owner_ref_matches",
    "selector_matches",
]
