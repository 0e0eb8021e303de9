import logging
from collections.abc import Mapping
from typing import Any

from k8s_topology.catalog import ResourceKind, edge_id, node_id
from k8s_topology.discoverers.matching import (
    get_labels,
    get_name,
    get_owner_refs,
    group_by_namespace,
    owner_ref_matches,
    selector_matches,
)
from k8s_topology.models import EdgeRule, GraphEdge

logger = logging.getLogger(__name__)

ResourceSets = Mapping[ResourceKind, list[dict[str, Any]]]
GroupedResources = dict[ResourceKind, dict[str, list[dict[str, Any]]]]

_HPA_TARGET_KINDS = (ResourceKind.DEPLOYMENT, ResourceKind.STATEFUL_SET)


class _EdgeCollector:
    """Edges of one inference run, in insertion order and unique by id."""

    def __init__(self) -> None:
        self.edges: list[GraphEdge] = []
        self._seen: set[str] = set()

    def add(
        self,
        source_kind: ResourceKind,
        target_kind: ResourceKind,
        namespace: str,
        source_name: str,
        target_name: str,
        rule: EdgeRule,
    ) -> None:
        identifier = edge_id(source_kind, target_kind, namespace, source_name, target_name)
        if identifier in self._seen:
            return
        self._seen.add(identifier)
        self.edges.append(
            GraphEdge(
                id=identifier,
                source=node_id(source_kind, source_name, namespace),
                target=node_id(target_kind, target_name, namespace),
                rule=rule,
            )
        )
        logger.debug(f"Added edge: {identifier}")


class EdgeInferencer:
    """
    Derives relationships between fetched resources.

    Rules are applied per namespace and never cross namespaces:
    - Service -> Pod by label selector
    - Deployment -> ReplicaSet -> Pod by owner references (two hops)
    - StatefulSet -> Pod and DaemonSet -> Pod by owner references
    - HorizontalPodAutoscaler -> Deployment/StatefulSet by scale target

    Kinds missing from the input (failed or timed-out fetches) simply produce
    no edges. Inference is synchronous and keeps no state between calls, so
    one instance can serve concurrent requests.

    Example:
        >>> edges = EdgeInferencer().infer({ResourceKind.SERVICE: services, ResourceKind.POD: pods})
    """

    def infer(self, resources: ResourceSets) -> list[GraphEdge]:
        """
        Apply every rule to the fetched resource sets.

        Args:
            resources: Raw items per kind; kinds that failed to fetch are absent

        Returns:
            Edges in rule order, without duplicate ids
        """
        grouped = {kind: group_by_namespace(items) for kind, items in resources.items()}
        collector = _EdgeCollector()

        self._services_to_pods(grouped, collector)
        self._deployments_to_replicasets_to_pods(grouped, collector)
        self._owner_to_pods(
            grouped, collector, ResourceKind.STATEFUL_SET, EdgeRule.STATEFULSET_OWNS_POD
        )
        self._owner_to_pods(
            grouped, collector, ResourceKind.DAEMON_SET, EdgeRule.DAEMONSET_OWNS_POD
        )
        self._hpas_to_targets(grouped, collector)

        logger.debug(f"Inferred {len(collector.edges)} edges")
        return collector.edges

    def _services_to_pods(self, grouped: GroupedResources, collector: _EdgeCollector) -> None:
        pods_by_ns = grouped.get(ResourceKind.POD, {})

        for namespace, services in grouped.get(ResourceKind.SERVICE, {}).items():
            pods = pods_by_ns.get(namespace, [])
            for service in services:
                selector = (service.get("spec") or {}).get("selector")
                if not selector:
                    continue
                for pod in pods:
                    if selector_matches(get_labels(pod), selector):
                        collector.add(
                            ResourceKind.SERVICE,
                            ResourceKind.POD,
                            namespace,
                            get_name(service),
                            get_name(pod),
                            EdgeRule.SERVICE_SELECTS_POD,
                        )

    def _deployments_to_replicasets_to_pods(
        self, grouped: GroupedResources, collector: _EdgeCollector
    ) -> None:
        replicasets_by_ns = grouped.get(ResourceKind.REPLICA_SET, {})
        pods_by_ns = grouped.get(ResourceKind.POD, {})

        for namespace, deployments in grouped.get(ResourceKind.DEPLOYMENT, {}).items():
            replicasets = replicasets_by_ns.get(namespace, [])
            pods = pods_by_ns.get(namespace, [])

            for deployment in deployments:
                deployment_name = get_name(deployment)
                for replicaset in replicasets:
                    if not owner_ref_matches(
                        get_owner_refs(replicaset), "Deployment", deployment_name
                    ):
                        continue

                    replicaset_name = get_name(replicaset)
                    collector.add(
                        ResourceKind.DEPLOYMENT,
                        ResourceKind.REPLICA_SET,
                        namespace,
                        deployment_name,
                        replicaset_name,
                        EdgeRule.DEPLOYMENT_OWNS_REPLICASET,
                    )

                    for pod in pods:
                        if owner_ref_matches(get_owner_refs(pod), "ReplicaSet", replicaset_name):
                            collector.add(
                                ResourceKind.REPLICA_SET,
                                ResourceKind.POD,
                                namespace,
                                replicaset_name,
                                get_name(pod),
                                EdgeRule.REPLICASET_OWNS_POD,
                            )

    def _owner_to_pods(
        self,
        grouped: GroupedResources,
        collector: _EdgeCollector,
        owner_kind: ResourceKind,
        rule: EdgeRule,
    ) -> None:
        pods_by_ns = grouped.get(ResourceKind.POD, {})

        for namespace, owners in grouped.get(owner_kind, {}).items():
            pods = pods_by_ns.get(namespace, [])
            for owner in owners:
                owner_name = get_name(owner)
                for pod in pods:
                    if owner_ref_matches(get_owner_refs(pod), owner_kind.value, owner_name):
                        collector.add(
                            owner_kind,
                            ResourceKind.POD,
                            namespace,
                            owner_name,
                            get_name(pod),
                            rule,
                        )

    def _hpas_to_targets(self, grouped: GroupedResources, collector: _EdgeCollector) -> None:
        for namespace, hpas in grouped.get(ResourceKind.HORIZONTAL_POD_AUTOSCALER, {}).items():
            for hpa in hpas:
                target_ref = (hpa.get("spec") or {}).get("scaleTargetRef") or {}
                target_kind = target_ref.get("kind")
                target_name = target_ref.get("name")

                kind = next((k for k in _HPA_TARGET_KINDS if k.value == target_kind), None)
                if kind is None or not target_name:
                    logger.debug(
                        f"HPA {namespace}/{get_name(hpa)} targets unsupported kind {target_kind}"
                    )
                    continue

                targets = grouped.get(kind, {}).get(namespace, [])
                if not any(get_name(target) == target_name for target in targets):
                    logger.debug(
                        f"HPA {namespace}/{get_name(hpa)} target {target_kind}/{target_name} "
                        "not found in namespace"
                    )
                    continue

                collector.add(
                    ResourceKind.HORIZONTAL_POD_AUTOSCALER,
                    kind,
                    namespace,
                    get_name(hpa),
                    target_name,
                    EdgeRule.HPA_SCALES_TARGET,
                )
