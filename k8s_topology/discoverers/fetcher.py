import asyncio
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from k8s_topology.assembler import GraphAccumulator
from k8s_topology.catalog import NAMESPACED_KINDS, ResourceKind
from k8s_topology.discoverers.matching import get_name
from k8s_topology.models import GraphNode, TopologyOptions
from k8s_topology.protocols import K8sClientProtocol

logger = logging.getLogger(__name__)

ALL_NAMESPACES = "all"


def normalize_namespace_filter(namespace_filter: str | None) -> str | None:
    """
    Resolve a namespace filter to a single namespace, or None for cluster-wide.

    Example:
        >>> normalize_namespace_filter("all") is None
        True
        >>> normalize_namespace_filter("prod")
        'prod'
    """
    if namespace_filter is None:
        return None
    namespace_filter = namespace_filter.strip()
    if not namespace_filter or namespace_filter == ALL_NAMESPACES:
        return None
    return namespace_filter


class FetchResult(BaseModel):
    """Raw outcome of one discovery fetch."""

    namespace: str | None = None
    resources: dict[ResourceKind, list[dict[str, Any]]] = Field(default_factory=dict)
    namespaces: list[str] = Field(default_factory=list)
    succeeded_kinds: list[ResourceKind] = Field(default_factory=list)
    failed_kinds: list[ResourceKind] = Field(default_factory=list)
    timed_out_kinds: list[ResourceKind] = Field(default_factory=list)
    permission_errors: list[str] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_kinds or self.timed_out_kinds)

    def stats(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace or ALL_NAMESPACES,
            "succeeded": [kind.value for kind in self.succeeded_kinds],
            "failed": [kind.value for kind in self.failed_kinds],
            "timed_out": [kind.value for kind in self.timed_out_kinds],
            "permission_errors": list(self.permission_errors),
            "items": {kind.value: len(items) for kind, items in self.resources.items()},
        }


class ResourceFetcher:
    """
    Lists every catalog kind concurrently under a single deadline.

    Discovery runs in two steps that share the same deadline:
    1. Namespaces (and, concurrently, cluster Nodes) are listed. The
       namespace listing gates namespaced discovery: if it fails, or the
       requested namespace does not exist, no namespaced kind is fetched.
    2. One task per namespaced kind is started. The Node task keeps running
       alongside them.

    A failed or timed-out list call only removes that kind from the snapshot.
    Nodes for every kind that succeeds are emitted into the shared
    GraphAccumulator as soon as its list call returns.

    Example:
        >>> fetcher = ResourceFetcher(client, TopologyOptions(timeout_seconds=20))
        >>> accumulator = GraphAccumulator()
        >>> result = await fetcher.fetch("default", accumulator)
    """

    def __init__(self, client: K8sClientProtocol, options: TopologyOptions | None = None) -> None:
        self.client = client
        self.options = options or TopologyOptions()

    async def fetch(
        self, namespace_filter: str | None, accumulator: GraphAccumulator
    ) -> FetchResult:
        """
        Fetch all catalog kinds.

        Args:
            namespace_filter: "" / "all" / None for cluster-wide, else one namespace
            accumulator: Receives GraphNodes for every successfully listed kind

        Returns:
            FetchResult with the raw items per kind and per-kind outcome
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.options.timeout_seconds

        def remaining() -> float:
            return max(0.0, deadline - loop.time())

        namespace = normalize_namespace_filter(namespace_filter)
        result = FetchResult(namespace=namespace)

        background: dict[asyncio.Task[None], ResourceKind] = {}
        if self.options.include_nodes:
            node_task = asyncio.create_task(
                self._fetch_kind(ResourceKind.NODE, None, accumulator, result)
            )
            background[node_task] = ResourceKind.NODE

        keep_namespace = None
        if namespace:

            def keep_namespace(item: dict[str, Any]) -> bool:
                return get_name(item) == namespace

        namespace_task = asyncio.create_task(
            self._fetch_kind(ResourceKind.NAMESPACE, None, accumulator, result, keep_namespace)
        )
        await self._wait({namespace_task: ResourceKind.NAMESPACE}, remaining(), result)

        if self._namespaced_discovery_allowed(namespace, result):
            for kind in NAMESPACED_KINDS:
                task = asyncio.create_task(self._fetch_kind(kind, namespace, accumulator, result))
                background[task] = kind

        await self._wait(background, remaining(), result)

        if result.is_partial:
            logger.warning(
                f"Partial discovery: failed={[k.value for k in result.failed_kinds]} "
                f"timed_out={[k.value for k in result.timed_out_kinds]}"
            )

        return result

    def _namespaced_discovery_allowed(self, namespace: str | None, result: FetchResult) -> bool:
        if ResourceKind.NAMESPACE not in result.resources:
            logger.warning("Namespace listing failed; skipping namespaced discovery")
            return False

        result.namespaces = [get_name(item) for item in result.resources[ResourceKind.NAMESPACE]]

        if namespace and namespace not in result.namespaces:
            logger.warning(f"Namespace '{namespace}' not found; skipping namespaced discovery")
            return False

        return True

    async def _wait(
        self,
        tasks: dict[asyncio.Task[None], ResourceKind],
        timeout: float,
        result: FetchResult,
    ) -> None:
        if not tasks:
            return

        done, pending = await asyncio.wait(tasks.keys(), timeout=timeout)

        for task in done:
            if task.cancelled():
                continue
            error = task.exception()
            if error is None:
                continue
            kind = tasks[task]
            if kind not in result.failed_kinds:
                result.failed_kinds.append(kind)
            logger.warning(f"Listing {kind.value} failed unexpectedly: {error!r}")

        if not pending:
            return

        for task in pending:
            task.cancel()
            kind = tasks[task]
            result.timed_out_kinds.append(kind)
            logger.warning(f"Listing {kind.value} did not finish before the deadline")

        await asyncio.gather(*pending, return_exceptions=True)

    async def _fetch_kind(
        self,
        kind: ResourceKind,
        namespace: str | None,
        accumulator: GraphAccumulator,
        result: FetchResult,
        keep: Callable[[dict[str, Any]], bool] | None = None,
    ) -> None:
        try:
            items, _ = await self.client.list_resources(kind=kind.value, namespace=namespace)
        except Exception as e:
            status = getattr(e, "status", None)
            if status == 403:
                message = f"{kind.value} (namespace: {namespace or ALL_NAMESPACES})"
                result.permission_errors.append(message)
                logger.warning(f"Permission denied listing {message}")
            else:
                logger.warning(f"Error listing {kind.value}: {e}")
            result.failed_kinds.append(kind)
            return

        kept: list[dict[str, Any]] = []
        nodes: list[GraphNode] = []
        for item in items or []:
            if not isinstance(item, dict):
                logger.debug(f"Skipping {kind.value} item of type {type(item).__name__}")
                continue
            if keep is not None and not keep(item):
                continue
            try:
                node = GraphNode.from_resource(item, kind=kind.value)
            except ValueError as e:
                logger.debug(f"Skipping {kind.value} item: {e}")
                continue
            kept.append(item)
            nodes.append(node)

        added = await accumulator.add_nodes(kind, nodes)
        result.resources[kind] = kept
        result.succeeded_kinds.append(kind)

        logger.debug(f"Listed {added} {kind.value} resources")
