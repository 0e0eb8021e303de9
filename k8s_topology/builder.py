import logging
from typing import Any

from k8s_topology.adapters.kubernetes import KubernetesAdapter
from k8s_topology.assembler import GraphAccumulator, assemble_graph
from k8s_topology.discoverers.fetcher import FetchResult, ResourceFetcher
from k8s_topology.discoverers.inference import EdgeInferencer
from k8s_topology.layout import to_visual_graph
from k8s_topology.models import ClusterGraph, TopologyOptions, VisualGraph
from k8s_topology.protocols import K8sClientProtocol

logger = logging.getLogger(__name__)


class TopologyBuilder:
    """
    Builds topology snapshots of a Kubernetes cluster.

    The TopologyBuilder orchestrates one discovery request:
    - Fetching every catalog kind in parallel under one deadline
    - Inferring edges from label selectors, owner references and scale targets
    - Assembling the ClusterGraph with stable ordering
    - Laying the graph out for visualization

    Key features:
    - Read-only, point-in-time snapshots (no caching between requests)
    - Graceful degradation: failed or slow kinds are left out, never raised
    - Deterministic node ids, edge ids and positions

    get_fetch_stats() and get_permission_errors() describe the most recently
    completed request. When several requests run concurrently on one builder,
    use discover(), which returns each request's own FetchResult.

    Example:
        >>> from k8s_topology import KubernetesAdapter, TopologyBuilder
        >>> client = KubernetesAdapter.from_kubeconfig(kubeconfig_bytes)
        >>> builder = TopologyBuilder(client)
        >>> graph = await builder.build_topology("default")
        >>> payload = graph.to_dict()
    """

    def __init__(
        self,
        client: K8sClientProtocol,
        options: TopologyOptions | None = None,
    ):
        """
        Initialize the topology builder.

        Args:
            client: Cluster API capability
            options: Discovery and layout options (defaults to TopologyOptions())
        """
        self.client = client
        self.options = options or TopologyOptions()
        self.fetcher = ResourceFetcher(client, self.options)
        self.inferencer = EdgeInferencer()

        self._last_fetch: FetchResult | None = None

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: bytes | str | dict[str, Any],
        options: TopologyOptions | None = None,
        context: str | None = None,
    ) -> "TopologyBuilder":
        """
        Build a builder backed by a KubernetesAdapter for an in-memory kubeconfig.

        Every API call made by the adapter carries
        ``options.effective_request_timeout`` as its HTTP timeout.

        Raises:
            ConfigException: If the kubeconfig is invalid
        """
        options = options or TopologyOptions()
        client = KubernetesAdapter.from_kubeconfig(
            kubeconfig,
            context=context,
            request_timeout=options.effective_request_timeout,
        )
        return cls(client, options)

    async def discover(
        self, namespace_filter: str | None = None
    ) -> tuple[ClusterGraph, FetchResult]:
        """
        Discover the cluster and return the snapshot with its own fetch outcome.

        Unlike get_fetch_stats(), the returned FetchResult always belongs to
        this call, even when several requests share the builder.

        Args:
            namespace_filter: "" / "all" / None for cluster-wide, else one namespace

        Returns:
            Tuple of (ClusterGraph, FetchResult)
        """
        accumulator = GraphAccumulator()
        fetch_result = await self.fetcher.fetch(namespace_filter, accumulator)
        self._last_fetch = fetch_result

        edges = self.inferencer.infer(fetch_result.resources)
        graph = assemble_graph(accumulator.nodes_by_kind(), edges)

        logger.info(
            f"Built topology for namespace '{fetch_result.namespace or 'all'}' with "
            f"{len(graph.nodes)} nodes and {len(graph.edges)} edges"
        )

        return graph, fetch_result

    async def build_cluster_graph(self, namespace_filter: str | None = None) -> ClusterGraph:
        """
        Discover the cluster and return the domain snapshot.

        Args:
            namespace_filter: "" / "all" / None for cluster-wide, else one namespace

        Returns:
            ClusterGraph; empty but well-formed when nothing could be fetched
        """
        graph, _ = await self.discover(namespace_filter)
        return graph

    async def build_topology(self, namespace_filter: str | None = None) -> VisualGraph:
        """
        Discover the cluster and return the visualization graph.

        Example:
            >>> visual = await builder.build_topology("all")
            >>> len(visual.nodes)
            42
        """
        graph = await self.build_cluster_graph(namespace_filter)
        return to_visual_graph(graph, self.options)

    def get_permission_errors(self) -> list[str]:
        """
        Get list of kinds that couldn't be listed due to permissions.

        Returns:
            Descriptions of list calls rejected with 403 in the most recently
            completed request
        """
        if self._last_fetch is None:
            return []
        return list(self._last_fetch.permission_errors)

    def get_fetch_stats(self) -> dict[str, Any]:
        """
        Get per-kind outcome of the last discovery request.

        Returns:
            Dictionary with succeeded, failed and timed-out kinds and item counts
        """
        if self._last_fetch is None:
            return {}
        return self._last_fetch.stats()
